"""Notification sink interface.

Resolution outcomes are published as discrete events; rendering them (toasts,
status bars, log lines) is the sink's concern.
"""

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


class ResolutionStatus(str, enum.Enum):
    """Outcome of a resolve-and-copy request."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"


@dataclass(frozen=True)
class ResolutionEvent:
    """A user-facing resolution outcome.

    Attributes:
        status: Overall outcome.
        message: Short summary suitable for a toast.
        diagnostics: Per-entry reports explaining partial failures.
    """

    status: ResolutionStatus
    message: str
    diagnostics: list[Any] = field(default_factory=list)


class BaseNotifier(ABC):
    """Receives resolution outcomes."""

    @abstractmethod
    def notify(self, event: ResolutionEvent) -> None:
        """Publish an event. Must not raise."""
