"""Remote AI capability: transcription plus structured analysis, summary and plan generation."""
import calendar
import json
import logging
import os
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, Optional

from openai import OpenAI

from meeting_agents.core.config import Settings, settings as default_settings
from meeting_agents.core.errors import BackendUnavailable, InputError, RemoteResponseError
from meeting_agents.core.openai_client import get_openai_client
from meeting_agents.models.transcript import Segment, SegmentedText
from meeting_agents.prompts.loader import render_prompts
from meeting_agents.utils.retry import with_retry

logger = logging.getLogger(__name__)


class RemoteAIService(ABC):
    """Opaque remote capability. Every operation either returns a result or raises BackendUnavailable
    (or a subclass); callers treat any failure as "unavailable" and move on to their local strategy."""

    @abstractmethod
    def is_available(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def transcribe(self, audio_path: str, language: Optional[str] = None) -> SegmentedText:
        raise NotImplementedError

    @abstractmethod
    def analyze(self, text: str) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def summarize(self, text: str) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def plan(self, text: str) -> Dict[str, Any]:
        raise NotImplementedError


def _parse_json_object(raw: str) -> Dict[str, Any]:
    """Parse a completion as a JSON object. Tolerates prose around the first {...} block; raises ValueError otherwise."""
    raw = (raw or "").strip()
    if not raw:
        raise ValueError("empty completion")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        start = raw.find("{")
        end = raw.rfind("}")
        if start == -1 or end <= start:
            raise
        data = json.loads(raw[start : end + 1])
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _end_of_month(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


class OpenAIService(RemoteAIService):
    """RemoteAIService backed by the OpenAI API: Whisper for audio, chat completions in JSON mode for text."""

    def __init__(self, cfg: Optional[Settings] = None, client: Optional[OpenAI] = None):
        self._settings = cfg or default_settings
        self._client = client

    def is_available(self) -> bool:
        return self._client is not None or self._settings.remote_configured()

    def _get_client(self) -> OpenAI:
        if not self.is_available():
            raise BackendUnavailable("OpenAI API key is not configured")
        if self._client is None:
            self._client = get_openai_client(self._settings)
        return self._client

    def transcribe(self, audio_path: str, language: Optional[str] = None) -> SegmentedText:
        if not os.path.isfile(audio_path):
            raise InputError(f"Audio file does not exist: {audio_path}")
        client = self._get_client()
        language = language or self._settings.language
        logger.info("Sending %s to %s (language=%s)", os.path.basename(audio_path), self._settings.transcription_model, language)
        try:
            with open(audio_path, "rb") as f:
                resp = client.audio.transcriptions.create(
                    file=f,
                    model=self._settings.transcription_model,
                    language=language,
                    response_format="verbose_json",
                )
        except Exception as e:
            raise BackendUnavailable(f"Remote transcription failed: {e}") from e

        text = (getattr(resp, "text", None) or "").strip()
        if not text:
            raise RemoteResponseError("Remote transcription returned no text")
        segments = []
        for seg in getattr(resp, "segments", None) or []:
            get = seg.get if isinstance(seg, dict) else lambda k, s=seg: getattr(s, k, None)
            segments.append(
                Segment(
                    text=(get("text") or "").strip(),
                    start=float(get("start") or 0.0),
                    end=float(get("end") or 0.0),
                )
            )
        return SegmentedText(content=text, segments=segments, language=getattr(resp, "language", None) or language)

    def _chat_json(self, component: str, text: str, max_tokens: int, **placeholders: str) -> Dict[str, Any]:
        client = self._get_client()
        prompts = render_prompts(component, self._settings.prompt_version, transcript=text, **placeholders)

        def _call() -> Dict[str, Any]:
            resp = client.chat.completions.create(
                model=self._settings.chat_model,
                messages=[
                    {"role": "system", "content": prompts["system"]},
                    {"role": "user", "content": prompts["user"]},
                ],
                temperature=0.3,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
            return _parse_json_object(resp.choices[0].message.content or "")

        try:
            return with_retry(
                _call,
                retries=self._settings.remote_json_retries,
                retry_on=(ValueError,),
                label=f"remote {component}",
            )
        except ValueError as e:
            raise RemoteResponseError(f"Remote {component} returned malformed JSON: {e}") from e
        except BackendUnavailable:
            raise
        except Exception as e:
            raise BackendUnavailable(f"Remote {component} failed: {e}") from e

    def analyze(self, text: str) -> Dict[str, Any]:
        return self._chat_json("analysis", text, max_tokens=1000)

    def summarize(self, text: str) -> Dict[str, Any]:
        return self._chat_json("summary", text, max_tokens=1000)

    def plan(self, text: str) -> Dict[str, Any]:
        today = date.today()
        return self._chat_json(
            "plan",
            text,
            max_tokens=1500,
            today=today.isoformat(),
            end_date=_end_of_month(today).isoformat(),
        )
