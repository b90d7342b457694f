import logging
import time
from typing import Callable, Optional, Type, TypeVar, Tuple

T = TypeVar("T")

logger = logging.getLogger(__name__)


def with_retry(
    fn: Callable[[], T],
    *,
    retries: int = 1,
    backoff_seconds: float = 0.5,
    retry_on: Optional[Tuple[Type[BaseException], ...]] = (Exception,),
    label: str = "call",
) -> T:
    """Run fn() up to retries + 1 times with exponential backoff, re-raising the last error.
    Used by the remote AI service when a completion comes back as malformed JSON."""
    exc_types: Tuple[Type[BaseException], ...] = retry_on or (Exception,)

    for attempt in range(retries + 1):
        try:
            return fn()
        except exc_types as e:
            if attempt >= retries:
                raise
            sleep_s = backoff_seconds * (2 ** attempt)
            logger.warning(
                "%s failed (attempt %d/%d): %s; retrying in %.2fs",
                label,
                attempt + 1,
                retries + 1,
                e,
                sleep_s,
            )
            time.sleep(sleep_s)

    raise RuntimeError("unreachable")  # loop always returns or raises
