"""Notification sinks."""

import logging

from promptier.interfaces.notifier import BaseNotifier, ResolutionEvent, ResolutionStatus

logger = logging.getLogger(__name__)


class LoggingNotifier(BaseNotifier):
    """Writes resolution outcomes to the log."""

    def notify(self, event: ResolutionEvent) -> None:
        match event.status:
            case ResolutionStatus.SUCCESS:
                logger.info(event.message)
            case ResolutionStatus.PARTIAL:
                logger.warning(event.message)
                for diagnosis in event.diagnostics:
                    logger.warning(f"  {getattr(diagnosis, 'message', diagnosis)}")
            case ResolutionStatus.FAILURE:
                logger.error(event.message)


class RecordingNotifier(BaseNotifier):
    """Keeps every event; lets callers and tests inspect what was shown."""

    def __init__(self) -> None:
        self.events: list[ResolutionEvent] = []

    @property
    def last(self) -> ResolutionEvent | None:
        return self.events[-1] if self.events else None

    def notify(self, event: ResolutionEvent) -> None:
        self.events.append(event)
