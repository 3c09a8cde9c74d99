"""Review context models."""

from dataclasses import dataclass, fields
from typing import Any


@dataclass(frozen=True)
class ReviewContext:
    """Context provided to providers for informed reviews."""

    repo_name: str = "unknown"
    pr_title: str = "Code Review"
    pr_description: str = ""
    target_branch: str = "main"
    file_count: int | str = "unknown"
    platform: str = "unknown"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ReviewContext":
        """Build a context from a loose dict, ignoring unknown keys and nulls."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known and v is not None})

    @classmethod
    def coerce(cls, context: "ReviewContext | dict[str, Any] | None") -> "ReviewContext":
        if isinstance(context, ReviewContext):
            return context
        return cls.from_dict(context)

    def to_prompt_context(self) -> str:
        """Format context for inclusion in provider prompts."""
        return f"""## Context
- Repository: {self.repo_name}
- PR Title: {self.pr_title}
- PR Description: {self.pr_description}
- Target Branch: {self.target_branch}
- Files Changed: {self.file_count}
"""
