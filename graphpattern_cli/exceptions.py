"""Exception hierarchy for graph pattern detection.

Adapter and configuration errors are surfaced to the caller unchanged.
Cancellation is raised inside detectors and absorbed by the service into a
partial result.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class GraphPatternError(Exception):
    """Base class for all graphpattern errors."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
        }


class AdapterError(GraphPatternError):
    """Raised when the graph snapshot cannot be acquired from an adapter."""


class ConfigurationError(GraphPatternError, ValueError):
    """Raised when a detection config is invalid."""


class DetectionCancelledError(GraphPatternError):
    """Raised inside a detector once its cancellation token is set."""

    def __init__(self, message: str = "Pattern detection cancelled", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
