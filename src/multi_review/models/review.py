"""Review result models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from multi_review.models.issues import Issue, MergedIssue, Severity


class Verdict(str, Enum):
    """A provider's judgment of a change.

    Voting verdicts are ordered most severe first. The remaining members are
    non-voting outcomes: they are kept for observability but never counted.
    """

    CRITICAL_VULNERABILITIES = "critical_vulnerabilities"
    NEEDS_REVIEW = "needs_review"
    PROVIDE_FEEDBACK = "provide_feedback"
    COMMENT_ONLY = "comment_only"
    APPROVE = "approve"

    ABSTAIN = "abstain"
    ERROR_TIMEOUT = "error_timeout"
    ERROR_NETWORK = "error_network"
    ERROR_AUTH = "error_auth"
    ERROR_SERVICE = "error_service"

    @property
    def is_voting(self) -> bool:
        return self in VOTING_VERDICTS

    @property
    def is_error(self) -> bool:
        return self.value.startswith("error_")

    @property
    def severity_rank(self) -> int:
        """Position in severity order; non-voting outcomes sort last."""
        if self in VOTING_VERDICTS:
            return VOTING_VERDICTS.index(self)
        return 99

    @classmethod
    def parse(cls, value: Any) -> "Verdict":
        """Parse a verdict string as returned by a model."""
        text = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
        if text in _VERDICT_ALIASES:
            return _VERDICT_ALIASES[text]
        try:
            return cls(text)
        except ValueError:
            return cls.ABSTAIN


VOTING_VERDICTS = [
    Verdict.CRITICAL_VULNERABILITIES,
    Verdict.NEEDS_REVIEW,
    Verdict.PROVIDE_FEEDBACK,
    Verdict.COMMENT_ONLY,
    Verdict.APPROVE,
]

_VERDICT_ALIASES = {
    "needs_work": Verdict.NEEDS_REVIEW,
    "request_changes": Verdict.NEEDS_REVIEW,
    "changes_requested": Verdict.NEEDS_REVIEW,
    "lgtm": Verdict.APPROVE,
    "approved": Verdict.APPROVE,
    "critical": Verdict.CRITICAL_VULNERABILITIES,
}


@dataclass(frozen=True)
class Review:
    """Complete review from a single provider attempt."""

    provider: str
    model: str
    verdict: Verdict
    confidence: float  # 0.0 - 1.0
    summary: str
    issues: tuple[Issue, ...] = ()
    error: str | None = None
    duration_ms: int = 0

    def __post_init__(self) -> None:
        """Validate review data."""
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be between 0.0 and 1.0, got {self.confidence}")

    @property
    def is_voting(self) -> bool:
        return self.verdict.is_voting

    @property
    def critical_count(self) -> int:
        """Number of critical issues."""
        return sum(1 for i in self.issues if i.severity == Severity.CRITICAL)

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "verdict": self.verdict.value,
            "confidence": self.confidence,
            "issues": [i.to_dict() for i in self.issues],
            "summary": self.summary,
            "error": self.error,
            "duration_ms": self.duration_ms,
        }


@dataclass(frozen=True)
class ConsensusResult:
    """Aggregate verdict over every review in a run."""

    verdict: Verdict
    confidence: float
    agreement: float
    voting_count: int
    abstain_count: int
    total_count: int
    verdict_counts: dict[str, int]
    no_consensus: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "verdict": self.verdict.value,
            "confidence": self.confidence,
            "agreement": self.agreement,
            "voting_count": self.voting_count,
            "abstain_count": self.abstain_count,
            "total_count": self.total_count,
            "verdict_counts": dict(self.verdict_counts),
            "no_consensus": self.no_consensus,
        }


@dataclass(frozen=True)
class IssueStats:
    """Summary statistics over merged issues."""

    total: int
    by_severity: dict[str, int]
    by_category: dict[str, int]
    escalated_count: int
    multi_reporter_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "by_severity": dict(self.by_severity),
            "by_category": dict(self.by_category),
            "escalated_count": self.escalated_count,
            "multi_reporter_count": self.multi_reporter_count,
        }


@dataclass(frozen=True)
class ProviderSummary:
    """Per-provider line in the aggregated result."""

    provider: str
    model: str
    verdict: Verdict
    confidence: float
    issue_count: int
    error: str | None
    duration_ms: int
    summary: str

    @classmethod
    def from_review(cls, review: Review) -> "ProviderSummary":
        return cls(
            provider=review.provider,
            model=review.model,
            verdict=review.verdict,
            confidence=review.confidence,
            issue_count=len(review.issues),
            error=review.error,
            duration_ms=review.duration_ms,
            summary=review.summary or "No summary provided",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "verdict": self.verdict.value,
            "confidence": self.confidence,
            "issue_count": self.issue_count,
            "error": self.error,
            "duration_ms": self.duration_ms,
            "summary": self.summary,
        }


@dataclass(frozen=True)
class AggregatedResult:
    """Final aggregated output of a review run."""

    consensus: ConsensusResult
    issues: tuple[MergedIssue, ...]
    issue_stats: IssueStats
    providers: tuple[ProviderSummary, ...]
    combined_summary: str

    # Original reviews, kept for transparency
    reviews: tuple[Review, ...] = field(default=(), compare=False)

    @property
    def failed_providers(self) -> list[str]:
        """Providers whose attempt ended in an error."""
        return [p.provider for p in self.providers if p.verdict.is_error]

    @property
    def has_blocking_verdict(self) -> bool:
        return self.consensus.verdict in (Verdict.CRITICAL_VULNERABILITIES, Verdict.NEEDS_REVIEW)

    def to_dict(self) -> dict[str, Any]:
        return {
            "consensus": self.consensus.to_dict(),
            "issues": [i.to_dict() for i in self.issues],
            "issue_stats": self.issue_stats.to_dict(),
            "providers": [p.to_dict() for p in self.providers],
            "combined_summary": self.combined_summary,
        }
