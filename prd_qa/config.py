"""
Layered settings for the PRD QA pipeline.

Merge order: defaults -> user config -> project config -> environment.
"""

from __future__ import annotations
import os
import logging
from pathlib import Path
from typing import Dict, Optional

import tomllib
from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

USER_CFG = Path.home() / ".config" / "prd-qa" / "config.toml"
PROJECT_CFG = Path("prd-qa.toml")

DEFAULT_TEMPERATURES: Dict[str, float] = {
    "analysis": 0.1,
    "test_plan": 0.5,
    "prioritization": 0.1,
    "traceability": 0.1,
    "documentation": 0.6,
    "prd_enhancement": 0.6,
}


class Settings(BaseModel):
    """Runtime settings for the LLM endpoint and per call-site sampling."""
    base_url: str = "https://api.openai.com/v1"
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    timeout: float = Field(120.0, gt=0)
    max_tokens: int = Field(8192, gt=0)
    temperatures: Dict[str, float] = Field(default_factory=lambda: DEFAULT_TEMPERATURES.copy())

    def temperature_for(self, operation: str) -> float:
        return self.temperatures.get(operation, DEFAULT_TEMPERATURES.get(operation, 0.1))

    def require_api_key(self) -> str:
        """Start-up precondition: the service credential must be set."""
        if not self.api_key:
            raise ConfigurationError(
                "API key not configured. Set PRD_QA_API_KEY (or OPENAI_API_KEY) "
                f"or add api_key to {USER_CFG}."
            )
        return self.api_key


def _read_toml(path: Path) -> Dict:
    if not path.exists():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def _env_overrides() -> Dict:
    env = {
        "api_key": os.getenv("PRD_QA_API_KEY") or os.getenv("OPENAI_API_KEY"),
        "base_url": os.getenv("PRD_QA_BASE_URL"),
        "model": os.getenv("PRD_QA_MODEL"),
        "timeout": os.getenv("PRD_QA_TIMEOUT"),
        "max_tokens": os.getenv("PRD_QA_MAX_TOKENS"),
    }
    return {k: v for k, v in env.items() if v not in (None, "")}


def load_settings(
    user_cfg: Optional[Path] = None,
    project_cfg: Optional[Path] = None,
    **overrides,
) -> Settings:
    """
    Build settings from every configuration layer.

    Args:
        user_cfg: User config path (defaults to ~/.config/prd-qa/config.toml)
        project_cfg: Project config path (defaults to ./prd-qa.toml)
        **overrides: Explicit values (e.g. from CLI flags); None values are ignored

    Raises:
        ConfigurationError: If a config file or merged value is invalid
    """
    merged: Dict = {}
    temperatures = DEFAULT_TEMPERATURES.copy()

    def overlay(layer: Dict) -> None:
        if not isinstance(layer, dict):
            return
        for key, value in layer.items():
            if key == "temperatures":
                if not isinstance(value, dict):
                    raise ConfigurationError(f"temperatures must be a table, got {type(value).__name__}")
                temperatures.update(value)
            elif value is not None:
                merged[key] = value

    overlay(_read_toml(user_cfg or USER_CFG))
    overlay(_read_toml(project_cfg or PROJECT_CFG))
    overlay(_env_overrides())
    overlay(overrides)

    try:
        settings = Settings(**merged, temperatures=temperatures)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e

    logger.debug(f"Loaded settings: base_url={settings.base_url} model={settings.model}")
    return settings
