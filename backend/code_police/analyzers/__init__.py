"""Code analyzers and the severity vocabulary they report in."""

from code_police.analyzers.severity import Category, Severity, count_by_severity
from code_police.analyzers.llm_analyzer import Finding, LLMCodeAnalyzer

__all__ = [
    "Category",
    "Severity",
    "count_by_severity",
    "Finding",
    "LLMCodeAnalyzer",
]
