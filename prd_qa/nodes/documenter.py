"""
QADocumenter Node (LLM-based)

Free-form narrative generation: full QA documentation for the inputs, and an
enhanced PRD rewritten to address analysis findings.
"""

from __future__ import annotations
from typing import List, Optional
import logging

from ..client import GenerationClient, DOCUMENTATION, PRD_ENHANCEMENT
from ..instructions import QA_DOCS_GENERATION_INSTRUCTION, PRD_ENHANCEMENT_INSTRUCTION
from ..models import InputBundle, Finding
from ..prompt import build_multimodal_prompt, text_prompt

logger = logging.getLogger(__name__)


class QADocumenter:

    def __init__(self, client: GenerationClient):
        self.client = client

    def generate_docs(self, inputs: InputBundle) -> str:
        parts = build_multimodal_prompt(inputs, QA_DOCS_GENERATION_INSTRUCTION)
        docs = self.client.generate_text(DOCUMENTATION, parts)
        logger.info(f"Generated {len(docs)} chars of QA documentation")
        return docs

    def enhance_prd(self, inputs: InputBundle, findings: Optional[List[Finding]] = None) -> str:
        """Rewrite the PRD text so it addresses the findings."""
        prompt = f"{PRD_ENHANCEMENT_INSTRUCTION}\n\nPRD:\n{inputs.prd_text}\n\n"
        if findings:
            prompt += "Missing or weak areas identified by analysis:\n"
            for finding in findings:
                story = f" (Story: {finding.source_story_id})" if finding.source_story_id else ""
                prompt += f"- {finding.category}: {finding.description}{story}\n"
        prompt += "\nPlease provide the enhanced PRD only, do not include commentary or notes."

        return self.client.generate_text(PRD_ENHANCEMENT, text_prompt(prompt))
