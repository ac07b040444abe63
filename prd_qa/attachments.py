"""
Attachment preprocessing.

Turns local image and video files into Attachment records the prompt
assembler can read. Every file starts as a `processing` record and is
replaced exactly once by a `ready` or `error` record. Files are processed
concurrently; each worker only ever produces the replacement for its own
attachment.
"""

from __future__ import annotations
import base64
import math
import mimetypes
import uuid
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Protocol, Sequence
import logging

from .models import Attachment

logger = logging.getLogger(__name__)

DEFAULT_FRAME_COUNT = 5


class FrameExtractor(Protocol):
    """Samples still frames from a video file."""

    def __call__(self, path: Path, timestamps: Sequence[float]) -> List[str]:
        """Return one JPEG data URL per timestamp (seconds), in order."""
        ...


class VideoProbe(Protocol):
    def __call__(self, path: Path) -> float:
        """Return the video duration in seconds."""
        ...


def keyframe_timestamps(duration: float, count: int = DEFAULT_FRAME_COUNT) -> List[float]:
    """
    Evenly spaced sample times that exclude the very start and end.

    Raises:
        ValueError: If the duration is zero, negative or not finite
    """
    if not math.isfinite(duration) or duration <= 0:
        raise ValueError("Video has no duration or is invalid.")
    if count <= 0:
        return []
    interval = duration / (count + 1)
    return [interval * i for i in range(1, count + 1)]


def to_data_url(payload: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(payload).decode('ascii')}"


class AttachmentLoader:
    """
    Loads attachments from disk.

    Video support needs both a duration probe and a frame extractor; without
    them video files become error records.
    """

    def __init__(
        self,
        frame_extractor: Optional[FrameExtractor] = None,
        video_probe: Optional[VideoProbe] = None,
        frame_count: int = DEFAULT_FRAME_COUNT,
        max_workers: int = 4
    ):
        self.frame_extractor = frame_extractor
        self.video_probe = video_probe
        self.frame_count = frame_count
        self.max_workers = max_workers

    @staticmethod
    def create(path: Path) -> Attachment:
        """New `processing` record for a selected file."""
        mime_type, _ = mimetypes.guess_type(path.name)
        size = path.stat().st_size if path.exists() else 0
        return Attachment(
            temp_id=uuid.uuid4().hex,
            name=path.name,
            size=size,
            mime_type=mime_type or "application/octet-stream",
        )

    def load_all(self, paths: Sequence[Path]) -> List[Attachment]:
        """Process every file concurrently; results keep the input order."""
        pending = [(self.create(Path(p)), Path(p)) for p in paths]
        if not pending:
            return []

        with ThreadPoolExecutor(max_workers=max(1, min(self.max_workers, len(pending)))) as executor:
            futures = [executor.submit(self.process, attachment, path) for attachment, path in pending]
            results = [future.result() for future in futures]

        failed = [a.name for a in results if a.status == "error"]
        if failed:
            logger.warning(f"{len(failed)} attachments failed preprocessing: {failed}")
        return results

    def process(self, attachment: Attachment, path: Path) -> Attachment:
        """Return the ready/error replacement for one attachment."""
        try:
            if attachment.is_image:
                return attachment.mark_ready(data_url=to_data_url(path.read_bytes(), attachment.mime_type))
            if attachment.is_video:
                return self._process_video(attachment, path)
        except OSError as e:
            return attachment.mark_error(f"Failed to read {attachment.name}: {e}")

        return attachment.mark_error(f"Unsupported file type: {attachment.mime_type}")

    def _process_video(self, attachment: Attachment, path: Path) -> Attachment:
        if self.frame_extractor is None or self.video_probe is None:
            return attachment.mark_error("Video frame extraction is not available.")

        try:
            timestamps = keyframe_timestamps(self.video_probe(path), self.frame_count)
            frames = self.frame_extractor(path, timestamps)
        except Exception as e:
            logger.warning(f"Frame extraction failed for {attachment.name}: {e}")
            return attachment.mark_error(f"Failed to extract frames: {e}")

        if not frames:
            return attachment.mark_error("No frames could be extracted from the video.")
        return attachment.mark_ready(frames=frames)


def load_attachments(paths: Sequence[Path], frame_extractor: Optional[FrameExtractor] = None,
                     video_probe: Optional[VideoProbe] = None) -> List[Attachment]:
    """Convenience function to preprocess a list of files."""
    return AttachmentLoader(frame_extractor, video_probe).load_all(paths)
