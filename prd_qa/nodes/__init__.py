"""
Pipeline nodes for the PRD QA pipeline.

1. InputAnalyzer - LLM gap analysis of the inputs
2. PlanGenerator - LLM test plan (markdown table + Gherkin)
3. MarkdownTableParser - Deterministic table to TestCaseRecord conversion
4. Prioritizer - LLM priorities merged back by test case id
5. TraceabilityBuilder - LLM requirement coverage matrix
6. QADocumenter - LLM QA documentation and PRD enhancement
"""

from .analyzer import InputAnalyzer
from .planner import PlanGenerator
from .table_parser import MarkdownTableParser
from .prioritizer import Prioritizer
from .traceability import TraceabilityBuilder
from .documenter import QADocumenter

__all__ = [
    "InputAnalyzer",
    "PlanGenerator",
    "MarkdownTableParser",
    "Prioritizer",
    "TraceabilityBuilder",
    "QADocumenter"
]
