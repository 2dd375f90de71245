"""LLM-backed static analyzer for changed files.

The analyzer sends one file at a time to the model together with the
commit message, the project's custom rules and optional context about
files that depend on it, and maps the structured response to findings.
"""

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from code_police.analyzers.severity import Category, Severity, count_by_severity, sort_by_severity
from code_police.schemas.analysis import AnalysisOutput

if TYPE_CHECKING:
    from code_police.services.github_service import DependentFile
    from code_police.services.llm_service import LLMService

logger = logging.getLogger(__name__)


LANGUAGE_MAP = {
    "ts": "typescript",
    "tsx": "typescript",
    "js": "javascript",
    "jsx": "javascript",
    "py": "python",
    "rb": "ruby",
    "go": "go",
    "rs": "rust",
    "java": "java",
    "kt": "kotlin",
    "swift": "swift",
    "cs": "csharp",
    "cpp": "cpp",
    "c": "c",
    "php": "php",
    "sql": "sql",
    "sol": "solidity",
}

SUMMARY_FALLBACK = "Unable to generate summary. Please review the issues manually."

ANALYSIS_PROMPT = """You are a senior code reviewer with expertise in security, performance, and code quality. Analyze the following code for issues.

**File:** {file_path}
**Language:** {language}
**Commit Message:** {commit_message}
{custom_rules_section}
{dependent_context_section}
**Code to analyze:**
```{language}
{code}
```

**Analysis Focus Areas:**
1. **Security** (severity: critical/high): SQL injection, XSS, command injection, insecure secrets, authentication flaws
2. **Performance** (severity: medium/high): N+1 queries, memory leaks, inefficient algorithms, unnecessary re-renders
3. **Bug Detection** (severity: varies): Null pointer risks, race conditions, incorrect logic, edge cases
4. **Readability** (severity: low/medium): Complex functions (>50 lines), unclear naming, missing comments for complex logic
5. **Test Coverage** (severity: info/low): Untested edge cases, missing error handling tests

**Instructions:**
- Only report REAL issues found in the code
- Be specific with line numbers
- Provide actionable fix suggestions
- If no issues found, return an empty array
- Focus on substantive issues, not style nitpicks
- If custom rules are provided above, treat them as HIGH PRIORITY constraints

Return a JSON object with an "issues" array. Each issue has: severity, category, message, line, explanation, and optionally end_line, suggested_fix and rule_id."""

SUMMARY_PROMPT = """Based on the following code analysis results, generate a concise summary for an email report.

**Repository:** {repo_name}
**Commit:** {commit_sha}
**Branch:** {branch}

**Issue Counts:**
- Critical: {critical}
- High: {high}
- Medium: {medium}
- Low: {low}
- Info: {info}

**Top Issues:**
{top_issues}

Generate a 2-3 paragraph summary that:
1. Highlights the most important findings
2. Provides context on the severity distribution
3. Gives 1-2 actionable recommendations

Keep the tone professional but friendly. Be concise."""


@dataclass
class Finding:
    """Analyzer finding before it is attached to a run."""

    file_path: str
    line: int
    severity: Severity
    category: Category
    message: str
    explanation: str
    end_line: int | None = None
    suggested_fix: str | None = None
    rule_id: str | None = None
    code_snippet: str | None = None


def detect_language(file_path: str) -> str:
    """Detect programming language from file extension."""
    ext = os.path.splitext(file_path)[1].lstrip(".").lower()
    return LANGUAGE_MAP.get(ext, "text")


def extract_code_snippet(code: str, line: int, end_line: int | None = None) -> str:
    """Return the lines around a finding, prefixed with 1-based line numbers."""
    lines = code.split("\n")
    start = max(0, line - 3)
    end = min(len(lines), (end_line or line) + 3)
    return "\n".join(f"{start + i + 1}: {text}" for i, text in enumerate(lines[start:end]))


def format_custom_rules_section(custom_rules: list[str] | None) -> str:
    if not custom_rules:
        return ""
    rules_text = "\n".join(f"  {i}. {rule}" for i, rule in enumerate(custom_rules, start=1))
    return (
        "\n**CUSTOM RULES (HIGH PRIORITY):**\n"
        "The project owner has defined the following rules that MUST be enforced:\n"
        f"{rules_text}\n\n"
        "Violations of these custom rules should be marked as HIGH severity.\n"
    )


def format_dependent_context(dependents: list["DependentFile"]) -> str:
    """Render dependent files as ``- path:`` blocks."""
    return "\n\n".join(f"- {dep.path}:\n{dep.snippet}" for dep in dependents)


def format_dependent_context_section(dependent_context: str | None) -> str:
    if not dependent_context:
        return ""
    return (
        "\n**DEPENDENT FILES CONTEXT:**\n"
        "The following files import or depend on the file being analyzed. "
        "Consider how changes might affect them:\n"
        f"{dependent_context}\n"
    )


class LLMCodeAnalyzer:
    """Analyzes one file per call through the LLM service."""

    def __init__(self, llm_service: "LLMService"):
        self.llm_service = llm_service

    def build_prompt(
        self,
        code: str,
        file_path: str,
        language: str,
        commit_message: str,
        custom_rules: list[str] | None = None,
        dependent_context: str | None = None,
    ) -> str:
        return ANALYSIS_PROMPT.format(
            file_path=file_path,
            language=language,
            commit_message=commit_message,
            custom_rules_section=format_custom_rules_section(custom_rules),
            dependent_context_section=format_dependent_context_section(dependent_context),
            code=code,
        )

    async def analyze_file(
        self,
        code: str,
        file_path: str,
        language: str,
        commit_message: str,
        custom_rules: list[str] | None = None,
        dependent_context: str | None = None,
    ) -> list[Finding]:
        """Analyze a single file.

        Errors from the model are not caught here: a file that cannot be
        analyzed fails the whole run.

        Returns:
            Findings for the file, possibly empty
        """
        prompt = self.build_prompt(
            code, file_path, language, commit_message, custom_rules, dependent_context
        )
        output = await self.llm_service.generate_structured(prompt, AnalysisOutput, temperature=0.0)

        return [
            Finding(
                file_path=file_path,
                line=issue.line,
                end_line=issue.end_line,
                severity=Severity(issue.severity),
                category=Category(issue.category),
                message=issue.message,
                explanation=issue.explanation,
                suggested_fix=issue.suggested_fix,
                rule_id=issue.rule_id,
                code_snippet=extract_code_snippet(code, issue.line, issue.end_line),
            )
            for issue in output.issues
        ]

    def build_summary_prompt(
        self,
        repo_name: str,
        commit_sha: str,
        branch: str,
        findings: list[Finding],
    ) -> str:
        counts = count_by_severity(findings)
        top_issues = "\n".join(
            f"{i}. [{f.severity.value.upper()}] {f.message}"
            for i, f in enumerate(sort_by_severity(findings)[:5], start=1)
        )
        return SUMMARY_PROMPT.format(
            repo_name=repo_name,
            commit_sha=commit_sha[:7],
            branch=branch,
            top_issues=top_issues or "No issues found.",
            **counts,
        )

    async def summarize(
        self,
        repo_name: str,
        commit_sha: str,
        branch: str,
        findings: list[Finding],
    ) -> str:
        """Write the human-readable report text for a run."""
        prompt = self.build_summary_prompt(repo_name, commit_sha, branch, findings)
        return await self.llm_service.generate(prompt, temperature=0.3)
