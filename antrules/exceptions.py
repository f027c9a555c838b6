"""
Exceptions raised by the package.

All of them inherit from :class:`AntRulesError` so callers can catch every
failure of a training run with a single ``except`` clause.
"""
from __future__ import annotations

from typing import Any
from typing import Optional


class AntRulesError(Exception):
    """Base exception of the package.

    Attributes:
        message: human-readable error description
        suggestion: optional hint on how to fix the problem
        details: additional context
    """

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message: str = message
        self.suggestion: Optional[str] = suggestion
        self.details: dict[str, Any] = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg: str = self.message
        if self.suggestion:
            msg += f"\n\nSuggestion: {self.suggestion}"
        return msg


class ConfigurationError(AntRulesError, ValueError):
    """Raised when the algorithm parameters are missing or invalid."""


class InvariantError(AntRulesError, RuntimeError):
    """Raised when a structural invariant of a graph, rule or tree is broken.

    This always indicates a programming error in the construction or pruning
    logic and is never recovered from.
    """


class SchedulerError(AntRulesError, RuntimeError):
    """Raised when a candidate construction task fails in the parallel
    scheduler. The original error is available as ``__cause__``."""
