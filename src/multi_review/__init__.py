"""Multi-provider code review with consensus voting."""

__version__ = "0.1.0"
