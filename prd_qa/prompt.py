"""
Multimodal prompt assembly.

Turns an InputBundle into the ordered list of text and inline-binary parts
sent to the LLM service. This module is a pure transform: no I/O, no LLM calls.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Union

from .models import InputBundle, Attachment
from .exceptions import NoContentError

FRAME_MIME_TYPE = "image/jpeg"


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class InlineDataPart:
    """Base64 payload (no data-URI prefix) with its mimetype."""
    mime_type: str
    data: str

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


PromptPart = Union[TextPart, InlineDataPart]


def strip_data_url(data_url: str) -> str:
    """Return the base64 payload of a data URL (unchanged if it has no prefix)."""
    if data_url.startswith("data:") and "," in data_url:
        return data_url.split(",", 1)[1]
    return data_url


def _attachment_parts(attachment: Attachment) -> List[PromptPart]:
    if not attachment.is_ready:
        return []

    if attachment.is_image and attachment.data_url:
        return [
            TextPart(f'Analyze the following UI mockup/screenshot named "{attachment.name}":'),
            InlineDataPart(attachment.mime_type, strip_data_url(attachment.data_url)),
        ]

    if attachment.is_video and attachment.frames:
        parts: List[PromptPart] = [
            TextPart(f'Analyze the following keyframes extracted from the video named "{attachment.name}":')
        ]
        parts.extend(InlineDataPart(FRAME_MIME_TYPE, strip_data_url(frame)) for frame in attachment.frames)
        return parts

    return []


def build_multimodal_prompt(inputs: InputBundle, additional_context: Optional[str] = None) -> List[PromptPart]:
    """
    Build the ordered multimodal parts for a request.

    Args:
        inputs: User supplied PRD text, design URL and attachments
        additional_context: Optional trailing instructions appended last

    Returns:
        Ordered list of TextPart / InlineDataPart

    Raises:
        NoContentError: If the inputs contribute no parts at all
    """
    parts: List[PromptPart] = []

    if inputs.prd_text.strip():
        parts.append(TextPart(f"Here is the PRD to analyze:\n\n---\n\n{inputs.prd_text}\n\n"))
    if inputs.design_url.strip():
        parts.append(TextPart(f"The following design is also relevant: {inputs.design_url.strip()}\n\n"))

    for attachment in inputs.attachments:
        parts.extend(_attachment_parts(attachment))

    if not parts:
        raise NoContentError()

    if additional_context:
        parts.append(TextPart(additional_context))

    return parts


def text_prompt(text: str) -> List[PromptPart]:
    """Single-part prompt for the text-only enrichment calls."""
    return [TextPart(text)]
