"""Data models for multi-provider code review."""

from multi_review.models.context import ReviewContext
from multi_review.models.issues import Issue, MergedIssue, Severity
from multi_review.models.review import (
    VOTING_VERDICTS,
    AggregatedResult,
    ConsensusResult,
    IssueStats,
    ProviderSummary,
    Review,
    Verdict,
)

__all__ = [
    "AggregatedResult",
    "ConsensusResult",
    "Issue",
    "IssueStats",
    "MergedIssue",
    "ProviderSummary",
    "Review",
    "ReviewContext",
    "Severity",
    "VOTING_VERDICTS",
    "Verdict",
]
