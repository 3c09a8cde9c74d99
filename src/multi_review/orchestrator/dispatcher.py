"""Parallel dispatch of a review request to every selected provider."""

import asyncio
import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from multi_review.models.context import ReviewContext
from multi_review.models.review import Review, Verdict
from multi_review.providers.normalizer import classify_error, error_review
from multi_review.providers.registry import ProviderNotFoundError, ProviderRegistry

logger = logging.getLogger(__name__)


class NoProvidersError(Exception):
    """Raised when no provider is available to review, before any call is made."""

    pass


@dataclass
class DispatcherConfig:
    """Configuration for the dispatcher."""

    timeout_seconds: float = 120


class ParallelDispatcher:
    """Runs one review task per provider and waits for all of them.

    Each task has its own timeout. A slow or failing provider yields an error
    review for itself only; the join never short-circuits, so a late
    critical verdict still counts.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        timeout_seconds: float = 120,
        config: DispatcherConfig | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            registry: Provider registry to resolve names against
            timeout_seconds: Default per-provider timeout
            config: Optional full configuration (overrides other params)
        """
        self.registry = registry
        self.config = config or DispatcherConfig(timeout_seconds=timeout_seconds)

    def select(self, providers: Iterable[str] | str | None = None) -> list[str]:
        """Resolve the provider selection to an ordered list of names.

        Args:
            providers: Explicit names (list or comma-separated string), or
                None for every enabled provider

        Raises:
            NoProvidersError: If the selection is empty
        """
        if providers is None:
            names = sorted(self.registry.enabled())
        else:
            if isinstance(providers, str):
                providers = providers.split(",")
            names = list(dict.fromkeys(p.strip() for p in providers if p and p.strip()))

        if not names:
            raise NoProvidersError(
                "No providers available. Set at least one API key: "
                "ANTHROPIC_API_KEY, OPENAI_API_KEY, GEMINI_API_KEY or XAI_API_KEY"
            )
        return names

    async def dispatch(
        self,
        diff: str,
        context: ReviewContext | dict[str, Any] | None = None,
        providers: Iterable[str] | str | None = None,
    ) -> list[Review]:
        """Review the diff with every selected provider in parallel.

        Args:
            diff: Unified diff to review
            context: Review context information
            providers: Optional explicit provider selection

        Returns:
            One review per selected provider, in selection order

        Raises:
            NoProvidersError: If no provider is selected
        """
        names = self.select(providers)
        context = ReviewContext.coerce(context)

        logger.info(f"Starting review with {len(names)} providers: {', '.join(names)}")

        tasks = [
            asyncio.create_task(
                self._run_provider(name, diff, context),
                name=f"provider-{name}",
            )
            for name in names
        ]

        # Wait for every task; no single outcome cancels the others
        results = await asyncio.gather(*tasks, return_exceptions=True)

        reviews: list[Review] = []
        for name, result in zip(names, results):
            if isinstance(result, Review):
                reviews.append(result)
            else:
                message = f"{type(result).__name__}: {result}"
                logger.error(f"Provider {name} crashed: {message}")
                reviews.append(error_review(name, "unknown", message, classify_error(message)))

        voting = sum(1 for r in reviews if r.verdict.is_voting)
        logger.info(
            f"Review complete: {voting} voting, {len(reviews) - voting} abstained or failed"
        )
        return reviews

    async def _run_provider(self, name: str, diff: str, context: ReviewContext) -> Review:
        """Run a single provider with its timeout.

        Returns:
            The provider's review, or an error review on timeout or lookup failure
        """
        try:
            provider = self.registry.resolve(name)
        except ProviderNotFoundError as e:
            logger.warning(str(e))
            return error_review(
                name, "unknown", f"Provider not available: {name}", Verdict.ERROR_SERVICE
            )

        timeout = provider.timeout_seconds or self.config.timeout_seconds
        start_time = time.monotonic()

        try:
            return await asyncio.wait_for(provider.review(diff, context), timeout=timeout)
        except asyncio.TimeoutError:
            elapsed_ms = int((time.monotonic() - start_time) * 1000)
            logger.warning(f"Provider {name} timed out after {timeout}s")
            return error_review(
                name,
                provider.model,
                f"Provider timed out after {timeout}s",
                Verdict.ERROR_TIMEOUT,
                elapsed_ms,
            )
