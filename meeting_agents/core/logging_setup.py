import logging

LOGGER_NAME = "meeting_agents"
_HANDLER_NAME = "meeting_agents_stream"


def _build_stream_handler(level: int) -> logging.StreamHandler:
    formatter = logging.Formatter("[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s", "%H:%M:%S")
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler.setLevel(level)
    handler.name = _HANDLER_NAME
    return handler


def configure_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Install a single stream handler on the package logger tree. Calling it again replaces the handler
    instead of stacking a second one, so reloads in dev servers do not duplicate lines."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers = [h for h in logger.handlers if h.name != _HANDLER_NAME]
    logger.addHandler(_build_stream_handler(level))
    logger.propagate = False
    return logger
