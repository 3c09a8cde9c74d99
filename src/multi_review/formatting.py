"""Markdown and JSON rendering of aggregated review results."""

import math
from typing import Any

from multi_review.models.issues import Severity
from multi_review.models.review import AggregatedResult, Verdict

VERDICT_ICONS = {
    Verdict.CRITICAL_VULNERABILITIES: ":rotating_light:",
    Verdict.NEEDS_REVIEW: ":mag:",
    Verdict.PROVIDE_FEEDBACK: ":bulb:",
    Verdict.COMMENT_ONLY: ":speech_balloon:",
    Verdict.APPROVE: ":white_check_mark:",
    Verdict.ABSTAIN: ":grey_question:",
    Verdict.ERROR_TIMEOUT: ":hourglass:",
    Verdict.ERROR_NETWORK: ":globe_with_meridians:",
    Verdict.ERROR_AUTH: ":key:",
    Verdict.ERROR_SERVICE: ":warning:",
}

VERDICT_TITLES = {
    Verdict.CRITICAL_VULNERABILITIES: "Critical Vulnerabilities Found",
    Verdict.NEEDS_REVIEW: "Needs Review",
    Verdict.PROVIDE_FEEDBACK: "Feedback Provided",
    Verdict.COMMENT_ONLY: "Comments Only",
    Verdict.APPROVE: "Approved",
    Verdict.ABSTAIN: "Review Inconclusive",
    Verdict.ERROR_TIMEOUT: "Timeout Error",
    Verdict.ERROR_NETWORK: "Network Error",
    Verdict.ERROR_AUTH: "Auth Error",
    Verdict.ERROR_SERVICE: "Service Error",
}

# Per-provider labels differ from the headline titles for a few verdicts
PROVIDER_VERDICT_LABELS = {
    **VERDICT_TITLES,
    Verdict.CRITICAL_VULNERABILITIES: "Critical Vulnerabilities",
    Verdict.APPROVE: "Approve",
    Verdict.ABSTAIN: "Abstain",
}

SEVERITY_ICONS = {
    Severity.CRITICAL: ":red_circle:",
    Severity.MAJOR: ":orange_circle:",
    Severity.MINOR: ":yellow_circle:",
    Severity.SUGGESTION: ":white_circle:",
}


def _floor2(value: float) -> float:
    return math.floor(value * 100) / 100


def format_markdown(result: AggregatedResult) -> str:
    """Render a full review comment for a pull request.

    Args:
        result: Aggregated review result

    Returns:
        Markdown with verdict, reviewers, summary, collapsible issues and
        the individual assessments
    """
    consensus = result.consensus
    icon = VERDICT_ICONS.get(consensus.verdict, ":grey_question:")
    title = VERDICT_TITLES.get(consensus.verdict, "Unknown")

    lines = [
        "## Multi-Agent Code Review",
        "",
        f"**Verdict:** {icon} {title} ({int(consensus.agreement * 100)}% agreement)",
    ]
    if consensus.no_consensus and consensus.voting_count > 1:
        lines.append("")
        lines.append("_Reviewers did not reach consensus; showing the most severe verdict._")

    lines.extend(["", "**Reviewed by:**"])
    for p in result.providers:
        label = PROVIDER_VERDICT_LABELS.get(p.verdict, p.verdict.value)
        lines.append(
            f"- {p.provider} ({p.model or 'unknown'}): {label} "
            f"(confidence: {_floor2(p.confidence)})"
        )

    lines.extend(["", "---", "", "### Summary", ""])
    lines.append(result.combined_summary or "No summary available")
    lines.extend(["", "---", "", "### Issues Found", ""])

    for issue in result.issues:
        lines.append("<details>")
        lines.append(
            f"<summary><b>{SEVERITY_ICONS[issue.severity]} "
            f"{issue.severity.value.capitalize()}: {issue.title}</b> "
            f"(Reported by: {', '.join(issue.reported_by)})</summary>"
        )
        lines.append("")
        location = issue.line if issue.line is not None else "N/A"
        lines.append(f"**File:** `{issue.file or 'unknown'}` (line {location})")
        if issue.escalated:
            lines.append("")
            lines.append(
                f"_Escalated from {issue.base_severity.value}: reported by "
                f"{issue.reporter_count} reviewers._"
            )
        lines.extend(["", issue.description, ""])
        if issue.suggestion:
            lines.extend(["**Suggestion:**", "```", issue.suggestion, "```", ""])
        lines.append("</details>")

    if not result.issues:
        lines.append("No issues found.")

    lines.extend(["", "---", "", "<details>"])
    lines.append("<summary>View individual reviewer assessments</summary>")
    lines.append("")
    for p in result.providers:
        lines.append(f"#### {p.provider} ({p.model or 'unknown'})")
        lines.append("")
        lines.append(p.summary or "No summary provided")
        lines.append("")
    lines.extend(["</details>", "", "---", "*Generated by Multi-Agent Review System*", ""])

    return "\n".join(lines)


def format_summary_markdown(
    result: AggregatedResult,
    files_changed: int | str = "unknown",
    additions: int = 0,
    deletions: int = 0,
) -> str:
    """Render a short summary with a per-category issue table."""
    verdict = result.consensus.verdict
    icon = VERDICT_ICONS.get(verdict, ":grey_question:")
    counts = result.issue_stats.by_severity

    lines = [
        "## Multi-Agent Review Summary",
        "",
        f"**Verdict:** {icon} {verdict.value.replace('_', ' ').title()}",
        "",
        f"**Files Reviewed:** {files_changed} files (+{additions}, -{deletions} lines)",
        f"**Issues Found:** {counts.get('critical', 0)} critical, {counts.get('major', 0)} major, "
        f"{counts.get('minor', 0)} minor, {counts.get('suggestion', 0)} suggestions",
        "",
        "| Category | Critical | Major | Minor | Suggestions |",
        "|----------|----------|-------|-------|-------------|",
    ]

    table: dict[str, dict[Severity, int]] = {}
    for issue in result.issues:
        row = table.setdefault(issue.category, {s: 0 for s in Severity})
        row[issue.severity] += 1

    for category in sorted(table):
        row = table[category]
        lines.append(
            f"| {category} | {row[Severity.CRITICAL]} | {row[Severity.MAJOR]} | "
            f"{row[Severity.MINOR]} | {row[Severity.SUGGESTION]} |"
        )

    lines.extend(["", "*See individual file comments for details.*", ""])
    return "\n".join(lines)


def format_result_as_json(result: AggregatedResult, include_reviews: bool = False) -> dict[str, Any]:
    """Convert a result to a JSON-serializable dict.

    Args:
        result: Aggregated review result
        include_reviews: Also include the raw per-provider reviews

    Returns:
        Dictionary suitable for ``json.dumps``
    """
    data = result.to_dict()
    if include_reviews:
        data["reviews"] = [r.to_dict() for r in result.reviews]
    return data
