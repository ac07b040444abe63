"""
TraceabilityBuilder Node (LLM-based)

Builds the requirement -> test case coverage matrix from the prioritized set.
"""

from __future__ import annotations
import json
from typing import List
import logging

from ..client import GenerationClient, TRACEABILITY
from ..instructions import TRACEABILITY_SYSTEM_INSTRUCTION
from ..models import PrioritizedTestCase, TraceabilityEntry, TraceabilityResponse
from ..prompt import text_prompt

logger = logging.getLogger(__name__)


class TraceabilityBuilder:
    """Node: one traceability call over {test_case_id, story_id} pairs."""

    def __init__(self, client: GenerationClient):
        self.client = client

    def process(self, test_cases: List[PrioritizedTestCase]) -> List[TraceabilityEntry]:
        pairs = [{"test_case_id": tc.id, "story_id": tc.story_id} for tc in test_cases]
        prompt = (
            "Generate a traceability matrix from the following test case data:\n\n"
            f"{json.dumps(pairs, indent=2, ensure_ascii=False)}"
        )

        response = self.client.generate_json(
            TRACEABILITY,
            text_prompt(prompt),
            TRACEABILITY_SYSTEM_INSTRUCTION,
            TraceabilityResponse
        )
        return self.restrict(test_cases, response)

    @staticmethod
    def restrict(test_cases: List[PrioritizedTestCase], response: TraceabilityResponse) -> List[TraceabilityEntry]:
        """
        Keep only story ids and test case ids present in the prioritized set.

        Entries keep the response order; duplicate ids collapse to their first
        occurrence. An entry whose test cases were all dropped is kept with
        empty coverage.
        """
        story_ids = {tc.story_id for tc in test_cases}
        case_ids = {tc.id for tc in test_cases}

        entries: List[TraceabilityEntry] = []
        seen_stories = set()
        for entry in response.matrix:
            if entry.story_id not in story_ids:
                logger.warning(f"Traceability entry for unknown story {entry.story_id} dropped")
                continue
            if entry.story_id in seen_stories:
                continue
            seen_stories.add(entry.story_id)

            covered = []
            for case_id in entry.test_case_ids:
                if case_id in case_ids and case_id not in covered:
                    covered.append(case_id)
            entries.append(TraceabilityEntry(story_id=entry.story_id, test_case_ids=covered))

        logger.info(f"Traceability matrix covers {len(entries)} stories")
        return entries
