"""Structured errors raised by the introspection engines.

Environmental failures (missing maps, absent frameworks, fetch errors) are
never raised; they degrade to "no answer". Only caller bugs surface here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class WebseeError(Exception):
    """Structured error with context for callers."""

    tool: str
    action: str
    reason: str
    suggestion: str
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.tool}] {self.action} failed: {self.reason}. Suggestion: {self.suggestion}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": True,
            "tool": self.tool,
            "action": self.action,
            "reason": self.reason,
            "suggestion": self.suggestion,
            "details": self.details,
        }


@dataclass
class NotInitializedError(WebseeError):
    """An engine operation was called before initialize(session)."""

    @classmethod
    def for_engine(cls, engine: str, action: str) -> NotInitializedError:
        return cls(
            tool=engine,
            action=action,
            reason=f"{engine} is not initialized",
            suggestion="Call initialize(session) with a live BrowserSession first",
        )
