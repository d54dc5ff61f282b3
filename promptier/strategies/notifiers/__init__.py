"""Notification sink strategies."""

from promptier.strategies.notifiers.sinks import LoggingNotifier, RecordingNotifier

__all__ = [
    "LoggingNotifier",
    "RecordingNotifier",
]
