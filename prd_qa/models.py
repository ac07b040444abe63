"""
Data models and schemas for the PRD QA pipeline.

These Pydantic models define the inputs, the records passed between pipeline
stages, the terminal result, and the response shapes every LLM call is
validated against. Records handed across stage boundaries are frozen.
"""

from __future__ import annotations
import re
from enum import Enum
from typing import List, Dict, Optional, Literal, Any
from pydantic import BaseModel, ConfigDict, Field, StrictStr

STEP_SEPARATOR = "→"
DEFAULT_PRIORITY = "P2"
DEFAULT_PRIORITY_REASONING = "N/A - Defaulted"


# ==================== Input Models ====================

class Attachment(BaseModel):
    """An uploaded image or video, preprocessed into encoded payloads."""
    model_config = ConfigDict(frozen=True)

    temp_id: str = Field(..., description="Temporary identity assigned on selection")
    name: str = Field(..., description="Original file name")
    size: int = Field(0, ge=0, description="Size in bytes")
    mime_type: str = Field(..., description="Source media type (image/png, video/mp4, ...)")
    data_url: Optional[str] = Field(None, description="Base64 data URL for images")
    frames: List[str] = Field(default_factory=list,
        description="Ordered JPEG data URLs sampled from a video")
    status: Literal["processing", "ready", "error"] = "processing"
    error: Optional[str] = None

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    @property
    def is_video(self) -> bool:
        return self.mime_type.startswith("video/")

    @property
    def is_ready(self) -> bool:
        return self.status == "ready"

    def mark_ready(self, data_url: Optional[str] = None, frames: Optional[List[str]] = None) -> Attachment:
        """Return the ready replacement for this attachment."""
        self._require_processing()
        return self.model_copy(update={
            "status": "ready",
            "data_url": data_url,
            "frames": list(frames or []),
            "error": None,
        })

    def mark_error(self, message: str) -> Attachment:
        """Return the failed replacement for this attachment."""
        self._require_processing()
        return self.model_copy(update={"status": "error", "error": message})

    def _require_processing(self) -> None:
        if self.status != "processing":
            raise ValueError(f"Attachment {self.temp_id} was already processed ({self.status})")


class InputBundle(BaseModel):
    """Everything the user supplied for one analysis run."""
    model_config = ConfigDict(frozen=True)

    prd_text: str = Field("", description="Free-form PRD / user story text")
    design_url: str = Field("", description="External design reference, e.g. a Figma link")
    attachments: List[Attachment] = Field(default_factory=list)

    def is_empty(self) -> bool:
        """True when no text, no design URL and no attachments were supplied."""
        return not self.prd_text.strip() and not self.design_url.strip() and not self.attachments


# ==================== Analysis Models ====================

class Finding(BaseModel):
    """A gap or ambiguity identified in the requirements."""
    model_config = ConfigDict(frozen=True)

    category: StrictStr
    description: StrictStr
    source_story_id: Optional[str] = None

    def render(self) -> str:
        return f"- {self.category} ({self.source_story_id or 'N/A'}): {self.description}"


class Analysis(BaseModel):
    """Expected JSON schema for the analysis call."""
    model_config = ConfigDict(frozen=True)

    findings: List[Finding]


# ==================== Test Case Models ====================

class TestCaseRecord(BaseModel):
    """A test case parsed from the generated markdown table."""
    __test__ = False
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Test case ID, primary key for enrichment joins")
    type: str
    summary: str
    preconditions: str
    steps: List[str] = Field(..., description="Ordered test steps")
    expected_result: str
    story_id: str = Field(..., description="Originating requirement identifier")
    risk: str

    @property
    def steps_text(self) -> str:
        """Steps joined with the separator token used by export formats."""
        return f" {STEP_SEPARATOR} ".join(self.steps)

    @staticmethod
    def split_steps(text: str) -> List[str]:
        return [step.strip() for step in text.split(STEP_SEPARATOR) if step.strip()]


class PrioritizedTestCase(TestCaseRecord):
    """Test case plus the priority assigned by the prioritization stage."""

    priority: str = Field(..., description="P0 is the most urgent")
    priority_reasoning: str

    @property
    def priority_rank(self) -> Optional[int]:
        match = re.search(r"\d+", self.priority)
        return int(match.group(0)) if match else None

    @classmethod
    def from_record(cls, record: TestCaseRecord, priority: str, reasoning: str) -> PrioritizedTestCase:
        return cls(**record.model_dump(), priority=priority, priority_reasoning=reasoning)


class TraceabilityEntry(BaseModel):
    """Requirement identifier and the test cases covering it."""
    model_config = ConfigDict(frozen=True)

    story_id: StrictStr
    test_case_ids: List[StrictStr]


class PipelineResult(BaseModel):
    """Terminal aggregate of a successful test plan run."""
    model_config = ConfigDict(frozen=True)

    test_cases: List[PrioritizedTestCase]
    gherkin: str
    traceability_matrix: List[TraceabilityEntry]

    def priority_distribution(self) -> Dict[str, int]:
        distribution: Dict[str, int] = {}
        for case in self.test_cases:
            distribution[case.priority] = distribution.get(case.priority, 0) + 1
        return dict(sorted(distribution.items()))


# ==================== LLM Response Models ====================

class TestPlanResponse(BaseModel):
    """Expected JSON schema for test plan generation."""
    __test__ = False
    markdown: StrictStr = Field(..., description="Markdown pipe-table of test cases")
    gherkin: StrictStr = Field(..., description="Gherkin feature text")


class PrioritizedCase(BaseModel):
    test_case_id: StrictStr
    priority: StrictStr
    reasoning: StrictStr


class PrioritizationResponse(BaseModel):
    """Expected JSON schema for test case prioritization."""
    prioritized_cases: List[PrioritizedCase]


class TraceabilityResponse(BaseModel):
    """Expected JSON schema for traceability matrix generation."""
    matrix: List[TraceabilityEntry]


# ==================== Session State ====================

class PipelineStep(str, Enum):
    PRD_INPUT = "prd_input"
    ANALYZING = "analyzing"
    ANALYSIS_COMPLETE = "analysis_complete"
    ENHANCE_PRD = "enhance_prd"
    GENERATING_PLAN = "generating_plan"
    PRIORITIZING_PLAN = "prioritizing_plan"
    GENERATING_TRACEABILITY = "generating_traceability"
    PLAN_GENERATED = "plan_generated"
    GENERATING_QA_DOCS = "generating_qa_docs"
    QA_DOCS_GENERATED = "qa_docs_generated"
    FAILED = "failed"


class PipelineSession(BaseModel):
    """
    Immutable snapshot of a user's progress through the pipeline.

    Session operations never mutate a snapshot; they return a new one.
    """
    model_config = ConfigDict(frozen=True)

    step: PipelineStep = PipelineStep.PRD_INPUT
    inputs: Optional[InputBundle] = None
    analysis: Optional[Analysis] = None
    result: Optional[PipelineResult] = None
    enhanced_prd: Optional[str] = None
    qa_docs: Optional[str] = None
    error: Optional[str] = None

    @property
    def findings(self) -> List[Finding]:
        return list(self.analysis.findings) if self.analysis else []

    def advance(self, step: PipelineStep, **updates: Any) -> PipelineSession:
        """Return a copy at `step` with `updates` applied and the error cleared."""
        return self.model_copy(update={**updates, "step": step, "error": None})

    def rollback(self, step: PipelineStep, error: str) -> PipelineSession:
        """Return a copy reverted to `step` carrying the error message."""
        return self.model_copy(update={"step": step, "error": error})


# ==================== JSON Schema Generation ====================

def get_response_json_schema(model_class: type) -> Dict[str, Any]:
    """Get the JSON schema sent alongside a structured generation request."""
    return model_class.model_json_schema()
