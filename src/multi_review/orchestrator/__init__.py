"""Orchestrator components for multi-provider code review."""

from multi_review.orchestrator.aggregator import IssueAggregator, ReviewAggregator
from multi_review.orchestrator.consensus import ConsensusCalculator
from multi_review.orchestrator.dispatcher import NoProvidersError, ParallelDispatcher
from multi_review.orchestrator.orchestrator import ReviewOrchestrator, run_review, truncate_diff

__all__ = [
    "ConsensusCalculator",
    "IssueAggregator",
    "NoProvidersError",
    "ParallelDispatcher",
    "ReviewAggregator",
    "ReviewOrchestrator",
    "run_review",
    "truncate_diff",
]
