"""OpenAI client shared by the remote AI service (transcription and chat completions)."""
from typing import Any, Optional

from openai import OpenAI

from meeting_agents.core.config import Settings, settings as default_settings

_openai_client: Any = None


def build_openai_client(cfg: Settings) -> OpenAI:
    """Create a client with the bounded timeout and retry budget from settings. A hung remote call then only
    blocks the job that issued it."""
    return OpenAI(
        api_key=cfg.openai_api_key,
        timeout=cfg.remote_timeout_seconds,
        max_retries=cfg.remote_max_retries,
    )


def get_openai_client(cfg: Optional[Settings] = None) -> OpenAI:
    """Return the process-wide client for the default settings, or a fresh one for explicit settings."""
    global _openai_client
    if cfg is not None and cfg is not default_settings:
        return build_openai_client(cfg)
    if _openai_client is None:
        _openai_client = build_openai_client(default_settings)
    return _openai_client
