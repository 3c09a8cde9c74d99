"""Tests for result formatting."""

import json

import pytest

from multi_review.models.issues import Severity
from multi_review.models.review import Verdict


@pytest.fixture
def aggregated_result(make_review, make_issue):
    from multi_review.orchestrator.aggregator import ReviewAggregator

    reviews = [
        make_review(
            "anthropic",
            Verdict.NEEDS_REVIEW,
            confidence=0.876,
            issues=[
                make_issue("anthropic", severity=Severity.MAJOR, suggestion="Use params"),
                make_issue("anthropic", severity=Severity.SUGGESTION, line=80, category="style",
                           title="Long line"),
            ],
            summary="Injection risk in login.",
        ),
        make_review(
            "openai",
            Verdict.NEEDS_REVIEW,
            issues=[make_issue("openai", severity=Severity.MAJOR, line=12)],
            summary="Query built from user input.",
        ),
        make_review("xai", Verdict.ERROR_TIMEOUT, confidence=0.0, summary="Timeout: 120s"),
    ]
    return ReviewAggregator().aggregate(reviews)


class TestFormatMarkdown:
    """Tests for format_markdown."""

    def test_header_and_reviewers(self, aggregated_result):
        from multi_review.formatting import format_markdown

        md = format_markdown(aggregated_result)

        assert md.startswith("## Multi-Agent Code Review")
        assert "**Verdict:** :mag: Needs Review (100% agreement)" in md
        assert "- anthropic (anthropic-model): Needs Review (confidence: 0.87)" in md
        assert "- xai (xai-model): Timeout Error (confidence: 0.0)" in md

    def test_issues_are_collapsible(self, aggregated_result):
        from multi_review.formatting import format_markdown

        md = format_markdown(aggregated_result)

        assert md.count("<details>") == 3
        assert (
            "<summary><b>:red_circle: Critical: SQL Injection</b> "
            "(Reported by: anthropic, openai)</summary>"
        ) in md
        assert "**File:** `auth/login.py` (line 10)" in md
        assert "_Escalated from major: reported by 2 reviewers._" in md
        assert "**Suggestion:**\n```\nUse params\n```" in md
        assert ":white_circle: Suggestion: Long line" in md

    def test_individual_assessments(self, aggregated_result):
        from multi_review.formatting import format_markdown

        md = format_markdown(aggregated_result)

        assert "#### openai (openai-model)\n\nQuery built from user input." in md
        assert md.rstrip().endswith("*Generated by Multi-Agent Review System*")

    def test_no_issues(self, make_review):
        from multi_review.formatting import format_markdown
        from multi_review.orchestrator.aggregator import ReviewAggregator

        md = format_markdown(ReviewAggregator().aggregate([make_review()]))

        assert ":white_check_mark: Approved" in md
        assert "No issues found." in md


class TestFormatSummaryMarkdown:
    """Tests for format_summary_markdown."""

    def test_category_table(self, aggregated_result):
        from multi_review.formatting import format_summary_markdown

        md = format_summary_markdown(aggregated_result, files_changed=3, additions=20, deletions=4)

        assert "**Verdict:** :mag: Needs Review" in md
        assert "**Files Reviewed:** 3 files (+20, -4 lines)" in md
        assert "**Issues Found:** 1 critical, 0 major, 0 minor, 1 suggestions" in md
        assert "| security | 1 | 0 | 0 | 0 |" in md
        assert "| style | 0 | 0 | 0 | 1 |" in md


class TestFormatResultAsJson:
    """Tests for format_result_as_json."""

    def test_serializable(self, aggregated_result):
        from multi_review.formatting import format_result_as_json

        data = format_result_as_json(aggregated_result)
        decoded = json.loads(json.dumps(data))

        assert decoded["consensus"]["verdict"] == "needs_review"
        assert decoded["issue_stats"]["escalated_count"] == 1
        assert "reviews" not in decoded

    def test_include_reviews(self, aggregated_result):
        from multi_review.formatting import format_result_as_json

        data = format_result_as_json(aggregated_result, include_reviews=True)

        assert [r["provider"] for r in data["reviews"]] == ["anthropic", "openai", "xai"]
