"""Issue models for code review results."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """Severity levels for issues, most severe first.

    - CRITICAL: Must fix before merge.
    - MAJOR: Should fix; a real correctness or maintainability problem.
    - MINOR: Worth fixing but not blocking.
    - SUGGESTION: Optional improvement.
    """

    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"
    SUGGESTION = "suggestion"

    @property
    def rank(self) -> int:
        """Position in severity order (0 = most severe)."""
        return _SEVERITY_ORDER.index(self)

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        """Parse a severity string; anything unrecognised is a suggestion."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.SUGGESTION


_SEVERITY_ORDER = list(Severity)


@dataclass(frozen=True)
class Issue:
    """A single issue as reported by one provider."""

    severity: Severity
    category: str
    title: str
    description: str
    provider: str
    provider_confidence: float
    file: str | None = None
    line: int | None = None
    suggestion: str | None = None

    @property
    def reported_by(self) -> tuple[str, ...]:
        return (self.provider,)

    @property
    def base_severity(self) -> Severity:
        return self.severity

    @property
    def confidence(self) -> float:
        return self.provider_confidence

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "category": self.category,
            "file": self.file,
            "line": self.line,
            "title": self.title,
            "description": self.description,
            "suggestion": self.suggestion,
        }


@dataclass(frozen=True)
class MergedIssue:
    """An issue merged from one or more providers' reports."""

    file: str | None
    line: int | None
    category: str
    base_severity: Severity  # Most severe in the group, before escalation
    severity: Severity
    title: str
    description: str
    suggestion: str | None
    reported_by: tuple[str, ...]
    confidence: float
    escalated: bool = False

    def __post_init__(self) -> None:
        """Validate merged issue data."""
        if not self.reported_by:
            raise ValueError("reported_by must not be empty")
        if self.severity.rank > self.base_severity.rank:
            raise ValueError(
                f"severity ({self.severity.value}) must not be below "
                f"base_severity ({self.base_severity.value})"
            )

    @property
    def reporter_count(self) -> int:
        """Number of distinct providers that reported this issue."""
        return len(self.reported_by)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "line": self.line,
            "category": self.category,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "suggestion": self.suggestion,
            "reported_by": list(self.reported_by),
            "reporter_count": self.reporter_count,
            "confidence": self.confidence,
            "escalated": self.escalated,
        }
