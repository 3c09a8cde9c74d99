"""Pytest configuration and shared fixtures."""

import pytest

# Sample diffs for testing
SAMPLE_VULNERABLE_DIFF = """\
diff --git a/auth/login.py b/auth/login.py
index 1234567..abcdefg 100644
--- a/auth/login.py
+++ b/auth/login.py
@@ -10,6 +10,12 @@ def authenticate(username: str, password: str) -> bool:
     hashed = hash_password(password)
     return db.verify_user(username, hashed)
+
+def get_user(username: str) -> dict:
+    \"\"\"Fetch user by username.\"\"\"
+    query = f"SELECT * FROM users WHERE username = '{username}'"
+    return db.execute(query)
"""

SAMPLE_TWO_FILE_DIFF = """\
diff --git a/auth/login.py b/auth/login.py
index 1234567..abcdefg 100644
--- a/auth/login.py
+++ b/auth/login.py
@@ -10,6 +10,8 @@ def authenticate(username: str, password: str) -> bool:
     hashed = hash_password(password)
-    return db.verify_user(username, hashed)
+    result = db.verify_user(username, hashed)
+    return bool(result)
diff --git a/utils/processor.py b/utils/processor.py
index 1234567..abcdefg 100644
--- a/utils/processor.py
+++ b/utils/processor.py
@@ -5,6 +5,7 @@ def process_items(items: list) -> list:
     return [transform(item) for item in items]
+
"""

SQL_INJECTION_RESPONSE = """{
  "verdict": "critical_vulnerabilities",
  "confidence": 0.95,
  "issues": [
    {
      "severity": "critical",
      "category": "security",
      "file": "auth/login.py",
      "line": 15,
      "title": "SQL Injection",
      "description": "User input is interpolated into the query.",
      "suggestion": "Use a parameterized query."
    }
  ],
  "summary": "Found a SQL injection vulnerability."
}"""


@pytest.fixture
def sample_vulnerable_diff() -> str:
    """A diff with SQL injection vulnerability."""
    return SAMPLE_VULNERABLE_DIFF


@pytest.fixture
def sample_two_file_diff() -> str:
    """A harmless diff touching two files."""
    return SAMPLE_TWO_FILE_DIFF


@pytest.fixture
def sql_injection_response() -> str:
    """Well-formed provider output reporting one critical issue."""
    return SQL_INJECTION_RESPONSE


@pytest.fixture
def mock_review_context() -> dict:
    """Mock review context for testing."""
    return {
        "repo_name": "test-org/test-repo",
        "pr_title": "Add user authentication",
        "pr_description": "This PR adds basic user authentication.",
        "target_branch": "main",
        "file_count": 1,
        "platform": "github",
    }


@pytest.fixture
def make_review():
    """Factory for Review objects with sensible defaults."""
    from multi_review.models.review import Review, Verdict

    def _make(provider="anthropic", verdict=Verdict.APPROVE, confidence=0.9, issues=(), **kwargs):
        return Review(
            provider=provider,
            model=kwargs.pop("model", f"{provider}-model"),
            verdict=verdict,
            confidence=confidence,
            summary=kwargs.pop("summary", f"Review by {provider}"),
            issues=tuple(issues),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_issue():
    """Factory for Issue objects with sensible defaults."""
    from multi_review.models.issues import Issue, Severity

    def _make(provider="anthropic", severity=Severity.MINOR, **kwargs):
        return Issue(
            severity=severity,
            category=kwargs.pop("category", "security"),
            title=kwargs.pop("title", "SQL Injection"),
            description=kwargs.pop("description", f"Reported by {provider}"),
            provider=provider,
            provider_confidence=kwargs.pop("provider_confidence", 0.8),
            file=kwargs.pop("file", "auth/login.py"),
            line=kwargs.pop("line", 10),
            **kwargs,
        )

    return _make
