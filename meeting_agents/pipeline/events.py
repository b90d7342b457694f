"""Lifecycle notifications. Observers only watch; the pipeline never depends on them."""
import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol

logger = logging.getLogger(__name__)

PROCESSING_COMPLETE = "processing:complete"
PROCESSING_FAILED = "processing:failed"


def stage_start(stage: str) -> str:
    return f"{stage}:start"


def stage_complete(stage: str) -> str:
    return f"{stage}:complete"


class PipelineObserver(Protocol):
    def notify(self, event: str, payload: Dict[str, Any]) -> None:
        ...


class LoggingObserver:
    """Default observer: one log line per lifecycle event."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logging.getLogger("meeting_agents.events")

    def notify(self, event: str, payload: Dict[str, Any]) -> None:
        details = " ".join(f"{k}={v}" for k, v in payload.items() if k != "job_id")
        self._log.info("[%s] %s %s", payload.get("job_id", "-"), event, details)


class EventPublisher:
    """Fans events out to observers. An observer that raises is logged and skipped."""

    def __init__(self, observers: Optional[Iterable[PipelineObserver]] = None):
        self._observers: List[PipelineObserver] = list(observers or [])

    def subscribe(self, observer: PipelineObserver) -> None:
        self._observers.append(observer)

    def publish(self, event: str, **payload: Any) -> None:
        for observer in list(self._observers):
            try:
                observer.notify(event, dict(payload))
            except Exception as e:
                logger.warning("Observer %s failed on %s: %s", type(observer).__name__, event, e)
