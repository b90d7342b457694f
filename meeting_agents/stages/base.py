"""
Shared pieces of the five pipeline stages: the StageResult envelope, the service_used marker and the
remote-then-local fallback combinator.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import BaseModel

logger = logging.getLogger(__name__)

TRANSCRIPTION = "transcription"
ANALYSIS = "analysis"
SUMMARY = "summary"
TRACKING = "tracking"
PLANNING = "planning"

STAGE_ORDER = (TRANSCRIPTION, ANALYSIS, SUMMARY, TRACKING, PLANNING)
FATAL_STAGES = frozenset({TRANSCRIPTION, ANALYSIS})


class ServiceUsed(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"
    ERROR_FALLBACK = "error-fallback"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _dump(payload: Any) -> Any:
    if hasattr(payload, "to_payload"):
        return payload.to_payload()
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    return payload


@dataclass
class StageResult:
    """
    Outcome of one stage attempt.

    success: whether a strategy produced the payload.
    payload: the stage output; on failure either a safe default (tracking, planning) or None.
    error: message when success is False.
    metadata: always has "timestamp" and "service_used" (None when nothing produced a payload).
    """

    success: bool
    payload: Any = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, payload: Any, service_used: ServiceUsed, **extra: Any) -> "StageResult":
        return cls(success=True, payload=payload, metadata=_metadata(service_used, extra))

    @classmethod
    def failed(
        cls,
        error: str,
        payload: Any = None,
        service_used: Optional[ServiceUsed] = None,
        **extra: Any,
    ) -> "StageResult":
        return cls(success=False, payload=payload, error=error, metadata=_metadata(service_used, extra))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "payload": _dump(self.payload),
            "error": self.error,
            "metadata": dict(self.metadata),
        }


def _metadata(service_used: Optional[ServiceUsed], extra: Dict[str, Any]) -> Dict[str, Any]:
    meta: Dict[str, Any] = {
        "timestamp": utc_now().isoformat(),
        "service_used": service_used.value if service_used else None,
    }
    meta.update(extra)
    return meta


async def remote_then_local(
    stage: str,
    remote_call: Optional[Callable[[], Any]],
    local_call: Callable[[], Any],
) -> Tuple[Any, ServiceUsed]:
    """
    Run remote_call in a worker thread; on any exception, or when remote_call is None, run local_call instead.
    Returns (payload, service_used) so the caller records which path actually produced the payload.
    Exceptions from local_call propagate to the stage, which turns them into a failed StageResult.
    """
    if remote_call is not None:
        try:
            payload = await asyncio.to_thread(remote_call)
            logger.info("%s: remote strategy succeeded", stage)
            return payload, ServiceUsed.REMOTE
        except Exception as e:
            logger.warning("%s: remote strategy failed (%s: %s); falling back to local", stage, type(e).__name__, e)
    else:
        logger.info("%s: remote service unavailable; using local strategy", stage)

    payload = await asyncio.to_thread(local_call)
    logger.info("%s: local strategy succeeded", stage)
    return payload, ServiceUsed.LOCAL
