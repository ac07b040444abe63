"""
PRD QA Pipeline Workflow

Orchestrates the test plan stages:
1. PlanGenerator → 2. MarkdownTableParser → 3. Prioritizer → 4. TraceabilityBuilder

and the session-level operations around them (analysis, PRD enhancement,
QA documentation). Both classes are stateless: progress lives in the
PipelineSession value each operation receives and returns.
"""

from __future__ import annotations
from typing import Callable, List, Optional
import logging

from .client import GenerationClient
from .config import Settings
from .exceptions import (
    InputValidationError,
    ParseExhaustionError,
    PipelineError,
    StageFailedError
)
from .models import (
    Finding,
    InputBundle,
    PipelineResult,
    PipelineSession,
    PipelineStep
)
from .nodes import (
    InputAnalyzer,
    PlanGenerator,
    MarkdownTableParser,
    Prioritizer,
    TraceabilityBuilder,
    QADocumenter
)
from .runtime import LLMRuntime

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, PipelineStep], None]


def _notify(on_progress: Optional[ProgressCallback], message: str, step: PipelineStep) -> None:
    logger.info(message)
    if on_progress:
        on_progress(message, step)


class PipelineOrchestrator:
    """
    Runs plan generation, parsing, prioritization and traceability strictly in
    sequence. Any stage failure stops the run; no partial result is returned.
    """

    def __init__(self, client: GenerationClient):
        self.client = client

    def generate_full_test_plan(
        self,
        inputs: InputBundle,
        findings: Optional[List[Finding]] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> PipelineResult:
        """
        Execute the complete test plan run.

        Args:
            inputs: User inputs for the plan request
            findings: Findings from a prior analysis, folded into the request
            on_progress: Called with (message, step) before each long-running stage

        Returns:
            PipelineResult with prioritized test cases, Gherkin and traceability

        Raises:
            PipelineError: Wrapping the failure of any stage
        """
        try:
            _notify(on_progress, "Generating comprehensive test plan...", PipelineStep.GENERATING_PLAN)
            plan = PlanGenerator(self.client).process(inputs, findings)

            records = MarkdownTableParser.parse(plan.markdown)
            if not records:
                raise ParseExhaustionError()

            _notify(on_progress, "Prioritizing test cases...", PipelineStep.PRIORITIZING_PLAN)
            prioritized = Prioritizer(self.client).process(records)

            _notify(on_progress, "Creating traceability matrix...", PipelineStep.GENERATING_TRACEABILITY)
            matrix = TraceabilityBuilder(self.client).process(prioritized)

        except Exception as e:
            logger.error(f"Error in the full test plan process: {e}")
            raise PipelineError(e) from e

        result = PipelineResult(test_cases=prioritized, gherkin=plan.gherkin, traceability_matrix=matrix)
        self._log_success_summary(result)
        return result

    @staticmethod
    def _log_success_summary(result: PipelineResult) -> None:
        distribution = ", ".join(f"{p}: {n}" for p, n in result.priority_distribution().items())
        logger.info(
            f"Test plan complete: {len(result.test_cases)} test cases ({distribution}), "
            f"{len(result.traceability_matrix)} traced stories"
        )


class QAWorkflow:
    """
    Session-level operations. Each takes a PipelineSession and returns the
    next one. On failure a StageFailedError carries the session reverted to
    the last stage that holds valid data.
    """

    def __init__(self, client: GenerationClient):
        self.client = client
        self.orchestrator = PipelineOrchestrator(client)

    @classmethod
    def from_runtime(cls, runtime: LLMRuntime, settings: Optional[Settings] = None) -> QAWorkflow:
        return cls(GenerationClient(runtime, settings))

    @staticmethod
    def reset() -> PipelineSession:
        """Start over: a fresh session at PRD input."""
        return PipelineSession()

    def analyze(
        self,
        session: PipelineSession,
        inputs: InputBundle,
        on_progress: Optional[ProgressCallback] = None
    ) -> PipelineSession:
        """Analyze new inputs; clears every downstream result."""
        if inputs is None or inputs.is_empty():
            raise InputValidationError("At least one input (PRD, file, or design URL) is required.")

        started = session.advance(
            PipelineStep.ANALYZING,
            inputs=inputs,
            analysis=None,
            result=None,
            enhanced_prd=None,
            qa_docs=None
        )
        _notify(on_progress, "Analyzing inputs...", PipelineStep.ANALYZING)

        try:
            analysis = InputAnalyzer(self.client).process(inputs)
        except Exception as e:
            self._fail(on_progress, e)
            raise StageFailedError(started.rollback(PipelineStep.PRD_INPUT, str(e)), e) from e

        return started.advance(PipelineStep.ANALYSIS_COMPLETE, analysis=analysis)

    def generate_plan(
        self,
        session: PipelineSession,
        on_progress: Optional[ProgressCallback] = None
    ) -> PipelineSession:
        """Run the full test plan; a success replaces any prior result."""
        inputs = self._require_inputs(session)
        cleared = session.model_copy(update={"result": None, "qa_docs": None})

        try:
            result = self.orchestrator.generate_full_test_plan(inputs, session.findings, on_progress)
        except Exception as e:
            self._fail(on_progress, e)
            raise StageFailedError(cleared.rollback(self._analysis_step(session), str(e)), e) from e

        return cleared.advance(PipelineStep.PLAN_GENERATED, result=result)

    def enhance_prd(
        self,
        session: PipelineSession,
        on_progress: Optional[ProgressCallback] = None
    ) -> PipelineSession:
        inputs = self._require_inputs(session)
        _notify(on_progress, "Enhancing PRD...", PipelineStep.ENHANCE_PRD)

        try:
            enhanced = QADocumenter(self.client).enhance_prd(inputs, session.findings)
        except Exception as e:
            self._fail(on_progress, e)
            rollback = session.rollback(self._analysis_step(session), f"Failed to enhance PRD. {e}")
            raise StageFailedError(rollback, e) from e

        return session.advance(PipelineStep.ENHANCE_PRD, enhanced_prd=enhanced)

    def generate_qa_docs(
        self,
        session: PipelineSession,
        on_progress: Optional[ProgressCallback] = None
    ) -> PipelineSession:
        inputs = self._require_inputs(session)
        cleared = session.model_copy(update={"qa_docs": None})
        _notify(on_progress, "Generating comprehensive QA documentation...", PipelineStep.GENERATING_QA_DOCS)

        try:
            docs = QADocumenter(self.client).generate_docs(inputs)
        except Exception as e:
            self._fail(on_progress, e)
            raise StageFailedError(cleared.rollback(PipelineStep.PLAN_GENERATED, str(e)), e) from e

        return cleared.advance(PipelineStep.QA_DOCS_GENERATED, qa_docs=docs)

    @staticmethod
    def _require_inputs(session: PipelineSession) -> InputBundle:
        if session.inputs is None:
            raise InputValidationError("Input data missing. Please go back to the first step.")
        if session.inputs.is_empty():
            raise InputValidationError("At least one input (PRD, file, or design URL) is required.")
        return session.inputs

    @staticmethod
    def _analysis_step(session: PipelineSession) -> PipelineStep:
        """Rollback target for stages that run after analysis."""
        # a session that skipped analysis has nothing valid past the inputs
        return PipelineStep.ANALYSIS_COMPLETE if session.analysis else PipelineStep.PRD_INPUT

    @staticmethod
    def _fail(on_progress: Optional[ProgressCallback], error: Exception) -> None:
        logger.error(f"Stage failed: {error}")
        if on_progress:
            on_progress(str(error), PipelineStep.FAILED)


# Convenience functions for common workflows

def generate_test_plan(
    inputs: InputBundle,
    runtime: LLMRuntime,
    findings: Optional[List[Finding]] = None,
    settings: Optional[Settings] = None,
    on_progress: Optional[ProgressCallback] = None
) -> PipelineResult:
    """
    Convenience function to run the test plan stages once.

    Returns:
        Generated pipeline result
    """
    orchestrator = PipelineOrchestrator(GenerationClient(runtime, settings))
    return orchestrator.generate_full_test_plan(inputs, findings, on_progress)
