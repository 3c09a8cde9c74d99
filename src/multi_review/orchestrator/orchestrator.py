"""Review orchestrator: the entry point that turns a diff into one result."""

import logging
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import httpx

from multi_review.config import Config, ConfigError, load_config, validate_config
from multi_review.models.context import ReviewContext
from multi_review.models.review import AggregatedResult
from multi_review.orchestrator.aggregator import ReviewAggregator
from multi_review.orchestrator.dispatcher import DispatcherConfig, ParallelDispatcher
from multi_review.providers.registry import ProviderRegistry, build_registry

logger = logging.getLogger(__name__)

_FILE_HEADER = re.compile(r"^diff --git ", re.MULTILINE)
_TRUNCATION_NOTICE_SIZE = 500


def truncate_diff(diff: str, max_chars: int) -> str:
    """Shorten an oversized diff, preferring to cut at a file boundary.

    Args:
        diff: Unified diff text
        max_chars: Size limit in characters

    Returns:
        The diff unchanged if it fits, otherwise a prefix plus a truncation notice
    """
    if len(diff) <= max_chars:
        return diff

    available = max(0, max_chars - _TRUNCATION_NOTICE_SIZE)
    file_count = len(_FILE_HEADER.findall(diff))
    truncated = diff[:available]

    # Cut before the last file header if that keeps at least half the budget
    boundaries = [m.start() for m in _FILE_HEADER.finditer(truncated)]
    if boundaries and boundaries[-1] > available // 2:
        truncated = truncated[: boundaries[-1]]

    return f"""{truncated}

... [TRUNCATED - Diff too large for API context]

=== TRUNCATION SUMMARY ===
Original size: {len(diff)} bytes
Truncated to: {len(truncated)} bytes
Total files changed: {file_count}
Files shown: Partial (first files in diff)

Note: This review covers only the first portion of the diff.
For complete review, consider reviewing in smaller batches by file.
"""


class ReviewOrchestrator:
    """Coordinates dispatch and aggregation for one review run at a time."""

    def __init__(self, registry: ProviderRegistry, config: Config | None = None) -> None:
        """Initialize the orchestrator.

        Args:
            registry: Providers available for review
            config: Application configuration (defaults if omitted)
        """
        self.registry = registry
        self.config = config or Config()
        self.dispatcher = ParallelDispatcher(
            registry,
            config=DispatcherConfig(timeout_seconds=self.config.dispatcher.timeout_seconds),
        )

    async def review(
        self,
        diff: str,
        context: ReviewContext | dict[str, Any] | None = None,
        providers: Iterable[str] | str | None = None,
        threshold: float | None = None,
    ) -> AggregatedResult:
        """Review a diff with every selected provider and aggregate the results.

        Args:
            diff: Unified diff to review
            context: PR context information
            providers: Optional explicit provider selection
            threshold: Optional agreement threshold override

        Returns:
            Aggregated result

        Raises:
            NoProvidersError: If no provider is selected or enabled
        """
        max_chars = self.config.dispatcher.max_diff_chars
        if len(diff) > max_chars:
            logger.warning(f"Diff size ({len(diff)} bytes) exceeds limit ({max_chars} bytes)")
            diff = truncate_diff(diff, max_chars)
            logger.info(f"Truncated diff to {len(diff)} bytes")

        aggregator = ReviewAggregator(
            threshold=threshold if threshold is not None else self.config.consensus.threshold
        )

        reviews = await self.dispatcher.dispatch(diff, context, providers)
        result = aggregator.aggregate(reviews)

        logger.info(
            f"Verdict: {result.consensus.verdict.value} "
            f"(agreement: {result.consensus.agreement:.0%})"
        )
        return result


async def run_review(
    diff: str,
    context: ReviewContext | dict[str, Any] | None = None,
    providers: Iterable[str] | str | None = None,
    threshold: float | None = None,
    config: Config | None = None,
    config_path: Path | None = None,
) -> AggregatedResult:
    """Load configuration, build providers, and run a single review.

    Raises:
        ConfigError: If the configuration is invalid
        NoProvidersError: If no provider is selected or enabled
    """
    config = config or load_config(config_path)
    errors = validate_config(config)
    if errors:
        raise ConfigError("; ".join(errors))

    async with httpx.AsyncClient(timeout=config.dispatcher.timeout_seconds) as client:
        registry = build_registry(config, client=client)
        orchestrator = ReviewOrchestrator(registry, config)
        return await orchestrator.review(diff, context, providers, threshold)
