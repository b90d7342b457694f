"""Mapping from pipeline errors to HTTP errors. Clients never see stack traces or internal state."""
import logging

from fastapi import HTTPException

from meeting_agents.core.errors import InputError, InvalidTransitionError, NotFoundError

logger = logging.getLogger(__name__)


def as_http_500(e: Exception) -> HTTPException:
    """Log the traceback and return a generic 500."""
    logger.error("Unhandled error: %s", e, exc_info=e)
    return HTTPException(status_code=500, detail="Internal server error")


def as_http_error(e: Exception) -> HTTPException:
    """NotFoundError -> 404, InputError/InvalidTransitionError -> 400, anything else -> generic 500."""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (InputError, InvalidTransitionError)):
        return HTTPException(status_code=400, detail=str(e))
    return as_http_500(e)
