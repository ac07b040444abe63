"""
Prioritizer Node (LLM-based)

Assigns a priority and reasoning to every parsed test case. Only a minimal
projection of each record is sent. The merge is a one-to-one augmentation by
test case id: every input record comes back exactly once, in input order,
and records the response does not mention get the default priority.
"""

from __future__ import annotations
import json
from typing import List, Dict, Tuple
import logging

from ..client import GenerationClient, PRIORITIZATION
from ..instructions import PRIORITIZATION_SYSTEM_INSTRUCTION
from ..models import (
    TestCaseRecord,
    PrioritizedTestCase,
    PrioritizationResponse,
    DEFAULT_PRIORITY,
    DEFAULT_PRIORITY_REASONING
)
from ..prompt import text_prompt

logger = logging.getLogger(__name__)


class Prioritizer:
    """Node: one prioritization call, merged back onto the records."""

    def __init__(self, client: GenerationClient):
        self.client = client

    def process(self, records: List[TestCaseRecord]) -> List[PrioritizedTestCase]:
        """
        Prioritize test cases.

        Args:
            records: Parsed test cases (non-empty)

        Returns:
            One PrioritizedTestCase per record, in the same order
        """
        projection = [{"id": r.id, "summary": r.summary, "risk": r.risk} for r in records]
        prompt = f"Prioritize the following test cases:\n\n{json.dumps(projection, indent=2, ensure_ascii=False)}"

        response = self.client.generate_json(
            PRIORITIZATION,
            text_prompt(prompt),
            PRIORITIZATION_SYSTEM_INSTRUCTION,
            PrioritizationResponse
        )
        return self.merge(records, response)

    @staticmethod
    def merge(records: List[TestCaseRecord], response: PrioritizationResponse) -> List[PrioritizedTestCase]:
        """Apply the response to the records by id, defaulting unmatched ones."""
        priority_map: Dict[str, Tuple[str, str]] = {
            case.test_case_id: (case.priority, case.reasoning)
            for case in response.prioritized_cases
        }

        known_ids = {r.id for r in records}
        unknown = [case_id for case_id in priority_map if case_id not in known_ids]
        if unknown:
            logger.warning(f"Prioritization returned unknown test case ids: {unknown}")

        prioritized = []
        defaulted = 0
        for record in records:
            priority, reasoning = priority_map.get(record.id, (DEFAULT_PRIORITY, DEFAULT_PRIORITY_REASONING))
            if record.id not in priority_map:
                defaulted += 1
            prioritized.append(PrioritizedTestCase.from_record(record, priority, reasoning))

        if defaulted:
            logger.warning(f"{defaulted} test cases were not prioritized and defaulted to {DEFAULT_PRIORITY}")
        return prioritized


def merge_priorities(records: List[TestCaseRecord], response: PrioritizationResponse) -> List[PrioritizedTestCase]:
    """Convenience function for the prioritization merge."""
    return Prioritizer.merge(records, response)
