"""
JSON decoding and schema validation for LLM responses.

Handles markdown-wrapped JSON, then validates the decoded value against the
expected Pydantic response model. A response that does not decode or does not
match the model is a hard failure: nothing is repaired or retried.
"""

from __future__ import annotations
import json
import re
from typing import Any, Type, TypeVar
from pydantic import BaseModel, ValidationError
import logging

from .exceptions import ResponseFormatError

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=BaseModel)

_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL | re.IGNORECASE)


class JSONValidator:
    """Decodes and validates LLM JSON responses for one operation."""

    def __init__(self, operation: str):
        self.operation = operation

    def validate_and_parse(self, response: str, model_class: Type[T]) -> T:
        """
        Parse and validate LLM response into Pydantic model.

        Args:
            response: Raw LLM response
            model_class: Pydantic model class to parse into

        Returns:
            Parsed and validated model instance

        Raises:
            ResponseFormatError: If the response is not JSON or fails validation
        """
        data = self.decode(response)

        try:
            return model_class.model_validate(data)
        except ValidationError as e:
            logger.warning(f"{self.operation} response failed schema validation: {e.error_count()} errors")
            raise ResponseFormatError(self.operation, response, _summarize(e)) from e

    def decode(self, response: str) -> Any:
        cleaned = self._clean_response(response)
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.debug(f"JSON parse error: {e}")
            logger.debug(f"Attempted to parse: {cleaned[:200]}...")
            raise ResponseFormatError(self.operation, response, f"Response is not valid JSON ({e.msg}).") from e

    @staticmethod
    def _clean_response(response: str) -> str:
        """Strip whitespace and a surrounding markdown code fence."""
        response = (response or "").strip()
        match = _FENCE_RE.match(response)
        if match:
            response = match.group(1).strip()
        return response


def _summarize(error: ValidationError) -> str:
    problems = []
    for err in error.errors()[:3]:
        location = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
        problems.append(f"{location}: {err.get('msg', 'invalid')}")
    return "; ".join(problems)


def validate_response(response: str, model_class: Type[T], operation: str) -> T:
    """Convenience function to validate one response."""
    return JSONValidator(operation).validate_and_parse(response, model_class)
