"""Rendering of analysis reports for email and PR comments."""

from datetime import date
from html import escape

from code_police.analyzers.severity import SEVERITY_ORDER, Severity, sort_by_severity
from code_police.models.analysis_run import AnalysisRun
from code_police.models.code_issue import CodeIssue

MAX_REPORTED_ISSUES = 10

SEVERITY_COLORS = {
    Severity.CRITICAL: "#dc2626",
    Severity.HIGH: "#ea580c",
    Severity.MEDIUM: "#ca8a04",
    Severity.LOW: "#2563eb",
    Severity.INFO: "#6b7280",
}

SEVERITY_EMOJI = {
    Severity.CRITICAL: "🔴",
    Severity.HIGH: "🟠",
    Severity.MEDIUM: "🟡",
    Severity.LOW: "🔵",
    Severity.INFO: "⚪",
}


def email_subject(run: AnalysisRun, issue_total: int) -> str:
    """Subject line derived from the worst severity found."""
    counts = run.issue_counts or {}
    if counts.get(Severity.CRITICAL.value, 0) > 0:
        return f"🚨 Critical Issues Found - {run.short_sha}"
    if counts.get(Severity.HIGH.value, 0) > 0:
        return f"⚠️ High Priority Issues - {run.short_sha}"
    if issue_total > 0:
        return f"📋 Code Review Report - {run.short_sha}"
    return f"✅ Clean Commit - {run.short_sha}"


def _location(issue: CodeIssue) -> str:
    suffix = f"-{issue.end_line}" if issue.end_line and issue.end_line != issue.line else ""
    return f"{issue.file_path}:{issue.line}{suffix}"


def _issue_card(issue: CodeIssue) -> str:
    severity = Severity(issue.severity)
    color = SEVERITY_COLORS[severity]
    parts = [
        f'<div style="border: 1px solid #27272a; border-left: 4px solid {color}; '
        f'border-radius: 8px; padding: 16px; margin-bottom: 16px;">',
        f'<div style="margin-bottom: 8px;">{SEVERITY_EMOJI[severity]} '
        f'<span style="padding: 2px 8px; border-radius: 4px; font-size: 11px; font-weight: 600; '
        f'color: white; background-color: {color}; text-transform: uppercase;">{severity.value}</span> '
        f'<span style="color: #71717a; font-size: 12px;">{escape(issue.category)}</span></div>',
        f'<h3 style="font-size: 15px; margin: 0 0 8px 0;">{escape(issue.message)}</h3>',
        f'<p style="color: #71717a; font-size: 13px; font-family: monospace;">{escape(_location(issue))}</p>',
        f'<p style="font-size: 14px; line-height: 1.5;">{escape(issue.explanation or "")}</p>',
    ]
    if issue.code_snippet:
        parts.append(
            '<pre style="padding: 16px; background-color: #1e1e1e; color: #d4d4d4; '
            f'font-size: 13px; overflow-x: auto;"><code>{escape(issue.code_snippet)}</code></pre>'
        )
    if issue.suggested_fix:
        parts.append(
            '<p style="color: #16a34a; font-size: 13px;"><strong>Suggested Fix:</strong> '
            f"{escape(issue.suggested_fix)}</p>"
        )
    parts.append("</div>")
    return "".join(parts)


def render_email_html(
    run: AnalysisRun,
    issues: list[CodeIssue],
    summary: str,
    repo_name: str,
    commit_url: str,
    dashboard_url: str | None = None,
) -> str:
    """Render the HTML email report for a completed run."""
    counts = run.issue_counts or {}
    stats = "".join(
        f'<td style="padding: 12px; text-align: center;">'
        f'<div style="font-size: 20px; font-weight: bold; color: {SEVERITY_COLORS[severity]};">'
        f"{counts.get(severity.value, 0)}</div>"
        f'<div style="font-size: 12px; color: #71717a;">{severity.value}</div></td>'
        for severity in SEVERITY_ORDER
    )

    ordered = sort_by_severity(issues)
    if ordered:
        cards = "".join(_issue_card(issue) for issue in ordered[:MAX_REPORTED_ISSUES])
        if len(ordered) > MAX_REPORTED_ISSUES:
            cards += (
                f'<p style="text-align: center; color: #71717a;">... and '
                f"{len(ordered) - MAX_REPORTED_ISSUES} more issues. View the full report on the dashboard.</p>"
            )
        issues_html = f"<h2>Issues Found ({len(ordered)})</h2>{cards}"
    else:
        issues_html = "<h3>No Issues Found</h3><p>Great job! Your code looks clean.</p>"

    dashboard_link = (
        f'<p><a href="{escape(dashboard_url, quote=True)}">Open dashboard</a></p>' if dashboard_url else ""
    )
    summary_html = escape(summary or "").replace("\n", "<br>")

    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"></head>"
        "<body style=\"font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;\">"
        '<div style="max-width: 640px; margin: 0 auto; padding: 40px 20px;">'
        f'<h1 style="color: #7c3aed;">Code Police Report</h1>'
        f"<p>{escape(repo_name)} • {escape(run.branch)}</p>"
        f"<h2>Summary</h2><p>{summary_html}</p>"
        f"<table><tr>{stats}</tr></table>"
        f"{issues_html}"
        f'<p><a href="{escape(commit_url, quote=True)}">View Commit on GitHub</a></p>'
        f"{dashboard_link}"
        f'<p style="color: #52525b; font-size: 12px;">Commit: {escape(run.short_sha)} • '
        f"{date.today().isoformat()}</p>"
        "</div></body></html>"
    )


def format_pr_comment(issues: list[CodeIssue], commit_sha: str, issue_counts: dict[str, int]) -> str:
    """Condensed Markdown report for a pull request."""
    badge = " · ".join(
        f"{SEVERITY_EMOJI[severity]} {severity.value.capitalize()}: {issue_counts.get(severity.value, 0)}"
        for severity in SEVERITY_ORDER
    )
    lines = ["## 🛡️ Code Police Review", "", badge, ""]

    ordered = sort_by_severity(issues)
    if not ordered:
        lines.append("✅ No issues found in this change.")
    else:
        lines.append(f"### Top issues ({min(len(ordered), MAX_REPORTED_ISSUES)} of {len(ordered)})")
        lines.append("")
        for issue in ordered[:MAX_REPORTED_ISSUES]:
            severity = Severity(issue.severity)
            lines.append(
                f"- {SEVERITY_EMOJI[severity]} **{severity.value.upper()}** "
                f"`{_location(issue)}`: {issue.message}"
            )
            if issue.suggested_fix:
                lines.append(f"  - 💡 {issue.suggested_fix}")
        if len(ordered) > MAX_REPORTED_ISSUES:
            lines.append("")
            lines.append(f"_...and {len(ordered) - MAX_REPORTED_ISSUES} more on the dashboard._")

    lines.append("")
    lines.append(f"<sub>Analyzed commit `{commit_sha[:7]}`</sub>")
    return "\n".join(lines)
