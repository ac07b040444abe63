"""Custom exceptions for the PRD QA pipeline."""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import PipelineSession


class QAPipelineError(Exception):
    """Base exception for PRD QA pipeline errors."""
    pass


class InputValidationError(QAPipelineError):
    """Raised before any network call when the inputs cannot be used."""
    pass


class NoContentError(InputValidationError):
    """Raised when prompt assembly produces no parts at all."""

    def __init__(self, message: str = "No content to analyze."):
        super().__init__(message)


class ResponseFormatError(QAPipelineError):
    """
    Raised when an LLM response does not match the expected shape.

    Attributes:
        operation: Operation whose response failed validation
        raw_response: The raw text returned by the service
        details: Validation detail (decode error or pydantic errors)
    """

    def __init__(self, operation: str, raw_response: str = "", details: Optional[str] = None):
        self.operation = operation
        self.raw_response = raw_response
        self.details = details
        message = f"Invalid {operation} response format."
        if details:
            message = f"{message} {details}"
        super().__init__(message)


class ParseExhaustionError(QAPipelineError):
    """Raised when the generated markdown table yields zero test cases."""

    def __init__(self, message: str = "Failed to parse any test cases from the generated markdown."):
        super().__init__(message)


class LLMRuntimeError(QAPipelineError):
    """Raised when LLM runtime encounters an error."""
    pass


class ConfigurationError(QAPipelineError):
    """Raised when configuration is invalid or missing."""
    pass


class GenerationError(QAPipelineError):
    """Wraps any failure of a single generation call with the operation name."""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Failed to get {operation} from the LLM service. {cause}")


class PipelineError(QAPipelineError):
    """Raised by the orchestrator when any stage of the test plan run fails."""

    def __init__(self, cause: Exception):
        self.cause = cause
        detail = str(cause) or "An unknown error occurred."
        super().__init__(f"Failed to generate and prioritize test plan. {detail}")


class StageFailedError(QAPipelineError):
    """
    Raised by session operations when a stage fails.

    Attributes:
        rollback_session: The session reverted to the last stage that holds
            valid data, with the error message attached
        cause: The underlying error
    """

    def __init__(self, rollback_session: "PipelineSession", cause: Exception):
        self.rollback_session = rollback_session
        self.cause = cause
        super().__init__(str(cause))
