"""
PRD QA Pipeline

Analyzes product requirements (text, design links, screenshots, video
keyframes) with a multimodal LLM and turns them into prioritized test cases,
Gherkin scenarios, a traceability matrix and QA documentation.
"""

__version__ = "0.1.0"
__all__ = [
    "QAWorkflow",
    "PipelineOrchestrator",
    "InputBundle",
    "PipelineResult",
    "PipelineSession",
    "QAPipelineError"
]

from .models import InputBundle, PipelineResult, PipelineSession
from .workflow import QAWorkflow, PipelineOrchestrator
from .exceptions import QAPipelineError
