"""Consensus calculation over a set of provider reviews."""

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

from multi_review.models.review import VOTING_VERDICTS, ConsensusResult, Review, Verdict

logger = logging.getLogger(__name__)

# Order in which verdicts are tested against the threshold. Approval needs a
# supermajority; the no-consensus fallback below runs the opposite way.
THRESHOLD_ORDER = [
    Verdict.APPROVE,
    Verdict.COMMENT_ONLY,
    Verdict.PROVIDE_FEEDBACK,
    Verdict.NEEDS_REVIEW,
]

FALLBACK_ORDER = [
    Verdict.NEEDS_REVIEW,
    Verdict.PROVIDE_FEEDBACK,
    Verdict.COMMENT_ONLY,
    Verdict.APPROVE,
]


@dataclass
class ConsensusConfig:
    """Configuration for consensus calculation."""

    threshold: float = 0.6


class ConsensusCalculator:
    """Reduces provider reviews to a single verdict.

    Rules, applied in order:

    1. No voting reviews: ``abstain`` with ``no_consensus``.
    2. Exactly one voting review: its verdict.
    3. Any ``critical_vulnerabilities`` vote wins outright.
    4. The first verdict in THRESHOLD_ORDER whose vote share reaches the
       threshold, unless another verdict has the same count.
    5. Otherwise ``no_consensus`` and the most severe verdict present.
    """

    def __init__(self, threshold: float | None = None, config: ConsensusConfig | None = None) -> None:
        self.config = config or ConsensusConfig()
        if threshold is not None:
            self.config = ConsensusConfig(threshold=threshold)
        if not 0.0 < self.config.threshold <= 1.0:
            raise ValueError(f"threshold must be in (0, 1], got {self.config.threshold}")

    @property
    def threshold(self) -> float:
        return self.config.threshold

    def calculate(self, reviews: Iterable[Review]) -> ConsensusResult:
        """Compute the consensus verdict for a set of reviews."""
        reviews = list(reviews)
        voting = [r for r in reviews if r.verdict.is_voting]
        abstain_count = len(reviews) - len(voting)

        counts = Counter(r.verdict for r in voting)
        verdict_counts = {v.value: counts.get(v, 0) for v in VOTING_VERDICTS}
        verdict_counts["abstain"] = abstain_count

        if not voting:
            return ConsensusResult(
                verdict=Verdict.ABSTAIN,
                confidence=0.0,
                agreement=0.0,
                voting_count=0,
                abstain_count=abstain_count,
                total_count=len(reviews),
                verdict_counts=verdict_counts,
                no_consensus=True,
            )

        verdict, no_consensus = self._decide(voting, counts)
        agreement = counts[verdict] / len(voting)
        confidence = sum(r.confidence for r in voting) / len(voting)

        logger.debug(
            f"Consensus: {verdict.value} ({agreement:.0%} of {len(voting)} votes, "
            f"no_consensus={no_consensus})"
        )

        return ConsensusResult(
            verdict=verdict,
            confidence=round(confidence, 4),
            agreement=round(agreement, 4),
            voting_count=len(voting),
            abstain_count=abstain_count,
            total_count=len(reviews),
            verdict_counts=verdict_counts,
            no_consensus=no_consensus,
        )

    def _decide(self, voting: list[Review], counts: Counter) -> tuple[Verdict, bool]:
        if len(voting) == 1:
            return voting[0].verdict, False

        # Security findings are never outvoted
        if counts[Verdict.CRITICAL_VULNERABILITIES]:
            return Verdict.CRITICAL_VULNERABILITIES, False

        for verdict in THRESHOLD_ORDER:
            count = counts[verdict]
            if count == 0 or count / len(voting) < self.threshold:
                continue
            tied = any(counts[other] == count for other in THRESHOLD_ORDER if other is not verdict)
            if not tied:
                return verdict, False

        for verdict in FALLBACK_ORDER:
            if counts[verdict]:
                return verdict, True

        raise AssertionError("voting reviews with no voting verdict")
