"""Tests for consensus calculation."""

import itertools

import pytest

from multi_review.models.review import Verdict


def _reviews(make_review, *verdicts, confidence=0.8):
    return [
        make_review(provider=f"p{i}", verdict=verdict, confidence=confidence)
        for i, verdict in enumerate(verdicts)
    ]


class TestConsensusCalculator:
    """Tests for ConsensusCalculator."""

    def test_no_voting_reviews_abstains(self, make_review):
        from multi_review.orchestrator.consensus import ConsensusCalculator

        reviews = _reviews(make_review, Verdict.ABSTAIN, Verdict.ERROR_TIMEOUT, confidence=0.0)
        result = ConsensusCalculator().calculate(reviews)

        assert result.verdict == Verdict.ABSTAIN
        assert result.no_consensus is True
        assert result.voting_count == 0
        assert result.abstain_count == 2
        assert result.total_count == 2
        assert result.agreement == 0.0

    def test_empty_input(self):
        from multi_review.orchestrator.consensus import ConsensusCalculator

        result = ConsensusCalculator().calculate([])

        assert result.verdict == Verdict.ABSTAIN
        assert result.total_count == 0

    def test_single_voter_wins(self, make_review):
        from multi_review.orchestrator.consensus import ConsensusCalculator

        reviews = _reviews(make_review, Verdict.COMMENT_ONLY, Verdict.ERROR_AUTH)
        result = ConsensusCalculator().calculate(reviews)

        assert result.verdict == Verdict.COMMENT_ONLY
        assert result.no_consensus is False
        assert result.agreement == 1.0
        assert result.voting_count == 1
        assert result.abstain_count == 1

    def test_critical_overrides_majority(self, make_review):
        from multi_review.orchestrator.consensus import ConsensusCalculator

        reviews = _reviews(
            make_review,
            Verdict.APPROVE,
            Verdict.APPROVE,
            Verdict.APPROVE,
            Verdict.CRITICAL_VULNERABILITIES,
        )
        result = ConsensusCalculator().calculate(reviews)

        assert result.verdict == Verdict.CRITICAL_VULNERABILITIES
        assert result.no_consensus is False
        assert result.agreement == 0.25

    def test_threshold_reached(self, make_review):
        from multi_review.orchestrator.consensus import ConsensusCalculator

        reviews = _reviews(make_review, Verdict.APPROVE, Verdict.APPROVE, Verdict.PROVIDE_FEEDBACK)
        result = ConsensusCalculator(threshold=0.6).calculate(reviews)

        assert result.verdict == Verdict.APPROVE
        assert result.no_consensus is False
        assert result.agreement == pytest.approx(0.6667)

    def test_below_threshold_falls_back_to_most_severe(self, make_review):
        from multi_review.orchestrator.consensus import ConsensusCalculator

        reviews = _reviews(
            make_review, Verdict.APPROVE, Verdict.COMMENT_ONLY, Verdict.PROVIDE_FEEDBACK
        )
        result = ConsensusCalculator(threshold=0.6).calculate(reviews)

        assert result.verdict == Verdict.PROVIDE_FEEDBACK
        assert result.no_consensus is True

    def test_even_split_is_no_consensus(self, make_review):
        from multi_review.orchestrator.consensus import ConsensusCalculator

        reviews = _reviews(make_review, Verdict.APPROVE, Verdict.NEEDS_REVIEW)
        result = ConsensusCalculator(threshold=0.5).calculate(reviews)

        assert result.verdict == Verdict.NEEDS_REVIEW
        assert result.no_consensus is True
        assert result.agreement == 0.5

    def test_abstentions_do_not_dilute_agreement(self, make_review):
        from multi_review.orchestrator.consensus import ConsensusCalculator

        reviews = _reviews(
            make_review,
            Verdict.APPROVE,
            Verdict.APPROVE,
            Verdict.ABSTAIN,
            Verdict.ERROR_NETWORK,
            Verdict.ERROR_SERVICE,
        )
        result = ConsensusCalculator(threshold=0.6).calculate(reviews)

        assert result.verdict == Verdict.APPROVE
        assert result.agreement == 1.0
        assert result.voting_count == 2
        assert result.abstain_count == 3

    def test_confidence_is_mean_of_voters(self, make_review):
        from multi_review.orchestrator.consensus import ConsensusCalculator

        reviews = [
            make_review(provider="a", verdict=Verdict.APPROVE, confidence=0.9),
            make_review(provider="b", verdict=Verdict.APPROVE, confidence=0.7),
            make_review(provider="c", verdict=Verdict.ABSTAIN, confidence=0.0),
        ]
        result = ConsensusCalculator().calculate(reviews)

        assert result.confidence == pytest.approx(0.8)

    def test_verdict_counts_cover_all_buckets(self, make_review):
        from multi_review.orchestrator.consensus import ConsensusCalculator

        reviews = _reviews(make_review, Verdict.APPROVE, Verdict.ERROR_AUTH)
        counts = ConsensusCalculator().calculate(reviews).verdict_counts

        assert counts == {
            "critical_vulnerabilities": 0,
            "needs_review": 0,
            "provide_feedback": 0,
            "comment_only": 0,
            "approve": 1,
            "abstain": 1,
        }

    @pytest.mark.parametrize("threshold", [0.0, -0.1, 1.01])
    def test_rejects_invalid_threshold(self, threshold):
        from multi_review.orchestrator.consensus import ConsensusCalculator

        with pytest.raises(ValueError):
            ConsensusCalculator(threshold=threshold)

    def test_order_independent(self, make_review):
        from multi_review.orchestrator.consensus import ConsensusCalculator

        reviews = _reviews(
            make_review,
            Verdict.APPROVE,
            Verdict.PROVIDE_FEEDBACK,
            Verdict.NEEDS_REVIEW,
            Verdict.ABSTAIN,
        )
        calculator = ConsensusCalculator()
        results = [calculator.calculate(list(p)) for p in itertools.permutations(reviews)]

        assert all(r == results[0] for r in results)

    def test_abstain_never_changes_winner(self, make_review):
        from multi_review.orchestrator.consensus import ConsensusCalculator

        base = _reviews(make_review, Verdict.APPROVE, Verdict.APPROVE, Verdict.COMMENT_ONLY)
        extra = make_review(provider="late", verdict=Verdict.ERROR_TIMEOUT, confidence=0.0)
        calculator = ConsensusCalculator()

        before = calculator.calculate(base)
        after = calculator.calculate(base + [extra])

        assert before.verdict == after.verdict
        assert before.agreement == after.agreement
        assert after.abstain_count == before.abstain_count + 1
