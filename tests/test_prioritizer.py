"""Test Prioritizer and TraceabilityBuilder nodes."""

import json

import pytest

from prd_qa.client import GenerationClient
from prd_qa.models import (
    PrioritizationResponse,
    PrioritizedTestCase,
    TestCaseRecord,
    TraceabilityResponse,
    DEFAULT_PRIORITY,
    DEFAULT_PRIORITY_REASONING
)
from prd_qa.nodes import Prioritizer, TraceabilityBuilder
from prd_qa.nodes.prioritizer import merge_priorities
from prd_qa.runtime import MockLLMRuntime


def make_records(*specs):
    """Records from (id, story_id) pairs."""
    return [
        TestCaseRecord(
            id=case_id,
            type="Manual",
            summary=f"Summary {case_id}",
            preconditions="None",
            steps=["Step"],
            expected_result="Result",
            story_id=story_id,
            risk="High",
        )
        for case_id, story_id in specs
    ]


def prioritization(*cases):
    return PrioritizationResponse.model_validate({
        "prioritized_cases": [
            {"test_case_id": case_id, "priority": priority, "reasoning": f"because {case_id}"}
            for case_id, priority in cases
        ]
    })


class TestPrioritizationMerge:
    """Test the one-to-one merge of priorities onto records."""

    @pytest.mark.parametrize("response_cases", [
        [],
        [("TC-2", "P0")],
        [("TC-3", "P1"), ("TC-1", "P0"), ("TC-2", "P3")],
        [("TC-99", "P0"), ("TC-1", "P1")],
    ])
    def test_every_record_returned_once_in_order(self, response_cases):
        records = make_records(("TC-1", "US-1"), ("TC-2", "US-1"), ("TC-3", "US-2"))

        merged = merge_priorities(records, prioritization(*response_cases))

        assert [c.id for c in merged] == ["TC-1", "TC-2", "TC-3"]
        assert all(c.priority for c in merged)

    def test_unmentioned_records_default(self):
        records = make_records(("TC-1", "US-1"), ("TC-2", "US-1"))

        merged = Prioritizer.merge(records, prioritization(("TC-1", "P0")))

        assert merged[0].priority == "P0"
        assert merged[0].priority_reasoning == "because TC-1"
        assert merged[1].priority == DEFAULT_PRIORITY == "P2"
        assert merged[1].priority_reasoning == DEFAULT_PRIORITY_REASONING == "N/A - Defaulted"

    def test_unknown_ids_are_ignored(self):
        records = make_records(("TC-1", "US-1"))

        merged = Prioritizer.merge(records, prioritization(("TC-404", "P0")))

        assert len(merged) == 1
        assert merged[0].priority == "P2"

    def test_duplicate_response_ids_last_wins(self):
        records = make_records(("TC-1", "US-1"))

        merged = Prioritizer.merge(records, prioritization(("TC-1", "P0"), ("TC-1", "P3")))

        assert merged[0].priority == "P3"

    def test_record_fields_preserved(self):
        record = make_records(("TC-1", "US-7"))[0]

        merged = Prioritizer.merge([record], prioritization(("TC-1", "P1")))[0]

        assert isinstance(merged, PrioritizedTestCase)
        assert merged.model_dump(exclude={"priority", "priority_reasoning"}) == record.model_dump()

    def test_process_sends_minimal_projection(self):
        runtime = MockLLMRuntime({"prioritization": json.dumps({"prioritized_cases": []})})
        records = make_records(("TC-1", "US-1"))

        Prioritizer(GenerationClient(runtime)).process(records)

        prompt_text = runtime.calls[0]["prompt_text"]
        assert prompt_text.startswith("Prioritize the following test cases:")
        payload = json.loads(prompt_text.split("\n\n", 1)[1])
        assert payload == [{"id": "TC-1", "summary": "Summary TC-1", "risk": "High"}]
        assert runtime.calls[0]["temperature"] == 0.1


class TestTraceabilityRestrict:
    """Test that the matrix only references known ids."""

    def setup_method(self):
        records = make_records(("TC-1", "US-1"), ("TC-2", "US-1"), ("TC-3", "US-2"))
        self.test_cases = Prioritizer.merge(records, prioritization())

    def restrict(self, matrix):
        return TraceabilityBuilder.restrict(self.test_cases, TraceabilityResponse.model_validate({"matrix": matrix}))

    def test_valid_matrix_kept(self):
        matrix = self.restrict([
            {"story_id": "US-1", "test_case_ids": ["TC-1", "TC-2"]},
            {"story_id": "US-2", "test_case_ids": ["TC-3"]},
        ])

        assert [(e.story_id, e.test_case_ids) for e in matrix] == [
            ("US-1", ["TC-1", "TC-2"]),
            ("US-2", ["TC-3"]),
        ]

    def test_unknown_story_dropped(self):
        matrix = self.restrict([
            {"story_id": "US-404", "test_case_ids": ["TC-1"]},
            {"story_id": "US-2", "test_case_ids": ["TC-3"]},
        ])

        assert [e.story_id for e in matrix] == ["US-2"]

    def test_unknown_and_duplicate_case_ids_filtered(self):
        matrix = self.restrict([{"story_id": "US-1", "test_case_ids": ["TC-2", "TC-9", "TC-2", "TC-1"]}])

        assert matrix[0].test_case_ids == ["TC-2", "TC-1"]

    def test_duplicate_story_first_wins(self):
        matrix = self.restrict([
            {"story_id": "US-1", "test_case_ids": ["TC-1"]},
            {"story_id": "US-1", "test_case_ids": ["TC-2"]},
        ])

        assert len(matrix) == 1
        assert matrix[0].test_case_ids == ["TC-1"]

    def test_empty_coverage_kept(self):
        matrix = self.restrict([{"story_id": "US-2", "test_case_ids": ["TC-404"]}])

        assert matrix[0].story_id == "US-2"
        assert matrix[0].test_case_ids == []

    def test_process_sends_id_pairs(self):
        runtime = MockLLMRuntime({"coverage report": json.dumps({"matrix": [
            {"story_id": "US-2", "test_case_ids": ["TC-3"]}
        ]})})

        matrix = TraceabilityBuilder(GenerationClient(runtime)).process(self.test_cases)

        assert [e.story_id for e in matrix] == ["US-2"]
        prompt_text = runtime.calls[0]["prompt_text"]
        assert prompt_text.startswith("Generate a traceability matrix from the following test case data:")
        payload = json.loads(prompt_text.split("\n\n", 1)[1])
        assert payload[0] == {"test_case_id": "TC-1", "story_id": "US-1"}
