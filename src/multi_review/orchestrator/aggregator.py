"""Review aggregation: issue merging, escalation and the final result."""

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, replace

from multi_review.models.issues import Issue, MergedIssue, Severity
from multi_review.models.review import (
    AggregatedResult,
    IssueStats,
    ProviderSummary,
    Review,
)
from multi_review.orchestrator.consensus import ConsensusCalculator, ConsensusConfig

logger = logging.getLogger(__name__)

DESCRIPTION_SEPARATOR = "\n\n---\n\n"

GroupKey = tuple[str, int, str]


@dataclass
class AggregatorConfig:
    """Configuration for the aggregator."""

    line_window: int = 5
    # (minimum reporters, base severity, escalated severity); first match wins
    escalation_rules: tuple[tuple[int, Severity, Severity], ...] = (
        (3, Severity.MINOR, Severity.MAJOR),
        (2, Severity.MAJOR, Severity.CRITICAL),
        (2, Severity.MINOR, Severity.MAJOR),
    )


class IssueAggregator:
    """Merges near-duplicate issues reported by different providers."""

    def __init__(self, config: AggregatorConfig | None = None) -> None:
        self.config = config or AggregatorConfig()

    def aggregate(self, reviews: Iterable[Review]) -> list[MergedIssue]:
        """Merge and escalate every issue from a set of reviews.

        Reviews are ordered by provider name first, so the result does not
        depend on the order in which providers finished.
        """
        ordered = sorted(reviews, key=lambda r: r.provider)
        issues = [issue for review in ordered for issue in review.issues]
        return self.escalate(self.merge(issues))

    def group_key(self, item: Issue | MergedIssue) -> GroupKey:
        """Issues on the same file and category within one line window collide."""
        return (item.file or "", (item.line or 0) // self.config.line_window, item.category)

    def merge(self, items: Iterable[Issue | MergedIssue]) -> list[MergedIssue]:
        """Group items by key and merge each group into one MergedIssue.

        Accepts raw issues, previously merged issues, or a mix; merging an
        already-merged set with itself reproduces it.
        """
        groups: dict[GroupKey, list[Issue | MergedIssue]] = {}
        for item in items:
            groups.setdefault(self.group_key(item), []).append(item)

        merged = [self._merge_group(group) for group in groups.values()]
        return self.sort(merged)

    def _merge_group(self, group: list[Issue | MergedIssue]) -> MergedIssue:
        first = group[0]

        base_severity = min((item.base_severity for item in group), key=lambda s: s.rank)

        descriptions: list[str] = []
        for item in group:
            for part in item.description.split(DESCRIPTION_SEPARATOR):
                part = part.strip()
                if part and part not in descriptions:
                    descriptions.append(part)

        suggestion = next((item.suggestion for item in group if item.suggestion), None)
        reported_by = tuple(sorted({p for item in group for p in item.reported_by}))
        confidence = sum(item.confidence for item in group) / len(group)

        return MergedIssue(
            file=first.file,
            line=first.line,
            category=first.category,
            base_severity=base_severity,
            severity=base_severity,
            title=first.title,
            description=DESCRIPTION_SEPARATOR.join(descriptions),
            suggestion=suggestion,
            reported_by=reported_by,
            confidence=round(confidence, 4),
        )

    def escalate(self, issues: Iterable[MergedIssue]) -> list[MergedIssue]:
        """Raise severity of issues that several providers agree on.

        Escalation always starts from ``base_severity``, so it only ever
        raises severity and applying it twice changes nothing.
        """
        escalated = []
        for issue in issues:
            severity = issue.base_severity
            for min_reporters, from_severity, to_severity in self.config.escalation_rules:
                if issue.reporter_count >= min_reporters and issue.base_severity == from_severity:
                    severity = to_severity
                    break
            escalated.append(
                replace(issue, severity=severity, escalated=severity != issue.base_severity)
            )
        return self.sort(escalated)

    @staticmethod
    def sort(issues: Iterable[MergedIssue]) -> list[MergedIssue]:
        """Most severe first, then most reporters, then location."""
        return sorted(
            issues,
            key=lambda i: (
                i.severity.rank,
                -i.reporter_count,
                i.file or "",
                i.line or 0,
                i.category,
                i.title,
            ),
        )

    @staticmethod
    def stats(issues: Iterable[MergedIssue]) -> IssueStats:
        """Count merged issues by severity and category."""
        issues = list(issues)
        by_severity = {s.value: 0 for s in Severity}
        for issue in issues:
            by_severity[issue.severity.value] += 1

        return IssueStats(
            total=len(issues),
            by_severity=by_severity,
            by_category=dict(sorted(Counter(i.category for i in issues).items())),
            escalated_count=sum(1 for i in issues if i.escalated),
            multi_reporter_count=sum(1 for i in issues if i.reporter_count > 1),
        )


class ReviewAggregator:
    """Combines provider reviews into a single AggregatedResult."""

    def __init__(
        self,
        threshold: float | None = None,
        consensus_config: ConsensusConfig | None = None,
        config: AggregatorConfig | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            threshold: Agreement threshold override
            consensus_config: Optional consensus configuration
            config: Optional issue aggregation configuration
        """
        self.consensus = ConsensusCalculator(threshold=threshold, config=consensus_config)
        self.issues = IssueAggregator(config)

    def aggregate(self, reviews: Iterable[Review]) -> AggregatedResult:
        """Merge a run's reviews into the final result.

        Algorithm:
        1. Compute the consensus verdict over all reviews
        2. Merge issues by (file, line window, category)
        3. Escalate issues that several providers reported
        4. Summarize issues and providers

        Args:
            reviews: Every review from the run, including failures

        Returns:
            Aggregated result; provider order never affects it
        """
        ordered = sorted(reviews, key=lambda r: r.provider)

        consensus = self.consensus.calculate(ordered)
        merged = self.issues.aggregate(ordered)
        stats = self.issues.stats(merged)
        providers = tuple(ProviderSummary.from_review(r) for r in ordered)

        combined_summary = "\n\n".join(
            r.summary.strip() for r in ordered if r.summary and r.summary.strip()
        )

        logger.info(
            f"Aggregated {len(ordered)} reviews: {consensus.verdict.value}, "
            f"{stats.total} issues ({stats.escalated_count} escalated)"
        )

        return AggregatedResult(
            consensus=consensus,
            issues=tuple(merged),
            issue_stats=stats,
            providers=providers,
            combined_summary=combined_summary,
            reviews=tuple(ordered),
        )
