"""
InputAnalyzer Node (LLM-based)

Runs gap analysis over the PRD, design reference and visual attachments.
"""

from __future__ import annotations
import logging

from ..client import GenerationClient, ANALYSIS
from ..exceptions import InputValidationError
from ..instructions import ANALYSIS_SYSTEM_INSTRUCTION
from ..models import InputBundle, Analysis
from ..prompt import build_multimodal_prompt

logger = logging.getLogger(__name__)


class InputAnalyzer:
    """Produces the list of findings for an input bundle."""

    def __init__(self, client: GenerationClient):
        self.client = client

    def process(self, inputs: InputBundle) -> Analysis:
        """
        Analyze inputs for gaps and ambiguities.

        Raises:
            InputValidationError: If the bundle is empty (no network call is made)
            GenerationError: If the call fails or the response is malformed
        """
        if inputs.is_empty():
            raise InputValidationError("At least one input (PRD, file, or design URL) is required.")

        parts = build_multimodal_prompt(inputs)
        analysis = self.client.generate_json(ANALYSIS, parts, ANALYSIS_SYSTEM_INSTRUCTION, Analysis)

        logger.info(f"Analysis produced {len(analysis.findings)} findings")
        return analysis
