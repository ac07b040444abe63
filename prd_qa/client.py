"""
Generation client: one LLM call per operation.

Each call site names its operation, which selects the sampling temperature
and the context attached to any failure. Structured calls decode and validate
the response against a Pydantic model; free-form calls return raw text.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Sequence, Type, TypeVar
import logging

from pydantic import BaseModel

from .config import Settings
from .exceptions import GenerationError
from .instructions import json_schema_hint
from .models import get_response_json_schema
from .prompt import PromptPart
from .runtime import LLMRuntime
from .validation import JSONValidator

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=BaseModel)


@dataclass(frozen=True)
class Operation:
    """A call site: settings key, label used in errors, label used for format errors."""
    key: str
    label: str
    format_label: str


ANALYSIS = Operation("analysis", "analysis", "analysis")
TEST_PLAN = Operation("test_plan", "test plan generation", "test plan")
PRIORITIZATION = Operation("prioritization", "test case prioritization", "prioritization")
TRACEABILITY = Operation("traceability", "traceability matrix", "traceability matrix")
DOCUMENTATION = Operation("documentation", "QA documentation", "QA documentation")
PRD_ENHANCEMENT = Operation("prd_enhancement", "PRD enhancement", "PRD enhancement")


class GenerationClient:
    """Invokes the LLM runtime once per call and unwraps the response."""

    def __init__(self, runtime: LLMRuntime, settings: Optional[Settings] = None):
        self.runtime = runtime
        self.settings = settings or Settings()

    def generate_json(
        self,
        operation: Operation,
        parts: Sequence[PromptPart],
        instruction: str,
        response_model: Type[T],
        temperature: Optional[float] = None,
    ) -> T:
        """
        Run a structured call and return the validated response model.

        Raises:
            GenerationError: Wrapping any transport, decode or validation failure
        """
        if temperature is None:
            temperature = self.settings.temperature_for(operation.key)
        system_instruction = instruction + json_schema_hint(get_response_json_schema(response_model))
        logger.info(f"Requesting {operation.label} ({len(parts)} parts, temperature={temperature})")

        try:
            raw = self.runtime.generate(
                parts,
                system_instruction=system_instruction,
                temperature=temperature,
                json_output=True,
            )
            logger.debug(f"Raw {operation.label} response: {raw[:2000]}")
            return JSONValidator(operation.format_label).validate_and_parse(raw, response_model)
        except Exception as e:
            logger.error(f"{operation.label} call failed: {e}")
            raise GenerationError(operation.label, e) from e

    def generate_text(
        self,
        operation: Operation,
        parts: Sequence[PromptPart],
        instruction: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """
        Run a free-form call and return the raw text.

        Raises:
            GenerationError: Wrapping any transport failure
        """
        if temperature is None:
            temperature = self.settings.temperature_for(operation.key)
        logger.info(f"Requesting {operation.label} ({len(parts)} parts, temperature={temperature})")

        try:
            return self.runtime.generate(
                parts,
                system_instruction=instruction,
                temperature=temperature,
                json_output=False,
            )
        except Exception as e:
            logger.error(f"{operation.label} call failed: {e}")
            raise GenerationError(operation.label, e) from e
