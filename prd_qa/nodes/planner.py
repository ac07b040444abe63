"""
PlanGenerator Node (LLM-based)

Generates the raw test plan: a markdown table of test cases plus Gherkin
scenarios. Findings from a prior analysis are folded into the request so the
plan addresses the identified gaps.
"""

from __future__ import annotations
from typing import List, Optional, Sequence
import logging

from ..client import GenerationClient, TEST_PLAN
from ..instructions import TEST_PLAN_SYSTEM_INSTRUCTION
from ..models import InputBundle, Finding, TestPlanResponse
from ..prompt import build_multimodal_prompt

logger = logging.getLogger(__name__)


def render_findings_context(findings: Optional[Sequence[Finding]]) -> str:
    """Trailing instructions for the plan request."""
    context = "\n---\n"
    if findings:
        findings_text = "\n".join(finding.render() for finding in findings)
        context += (
            "\nPlease pay special attention to addressing the following gaps that were identified:\n"
            f"{findings_text}"
        )
    return context


class PlanGenerator:
    """Node: one test plan generation call."""

    def __init__(self, client: GenerationClient):
        self.client = client

    def process(self, inputs: InputBundle, findings: Optional[List[Finding]] = None) -> TestPlanResponse:
        """
        Generate the markdown table and Gherkin text.

        Raises:
            NoContentError: If the inputs produce no prompt parts
            GenerationError: If the call fails or the response lacks either field
        """
        parts = build_multimodal_prompt(inputs, render_findings_context(findings))
        plan = self.client.generate_json(TEST_PLAN, parts, TEST_PLAN_SYSTEM_INSTRUCTION, TestPlanResponse)

        logger.debug(f"Test plan markdown is {len(plan.markdown)} chars, gherkin {len(plan.gherkin)} chars")
        return plan
