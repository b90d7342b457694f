"""Local speech recognition used when the remote transcription service is unavailable."""
from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from meeting_agents.core.config import Settings, settings as default_settings
from meeting_agents.core.errors import InputError, SpeechEngineError
from meeting_agents.models.transcript import Segment, SegmentedText

logger = logging.getLogger(__name__)


class LocalSpeechEngine(ABC):
    @abstractmethod
    def transcribe(self, audio_path: str, language: Optional[str] = None) -> SegmentedText:
        """Return the transcript of audio_path, or raise SpeechEngineError."""
        raise NotImplementedError


class FasterWhisperEngine(LocalSpeechEngine):
    """faster-whisper on CPU by default. The model is loaded on first use and then shared by every job."""

    def __init__(self, cfg: Optional[Settings] = None):
        self._settings = cfg or default_settings
        self._model: Any = None

    def _get_model(self) -> Any:
        if self._model is None:
            # tqdm progress bars in huggingface_hub downloads misbehave off the main thread
            os.environ.setdefault("HF_HUB_DISABLE_PROGRESS_BARS", "1")
            from faster_whisper import WhisperModel

            logger.info(
                "Loading whisper model: size=%s device=%s compute_type=%s",
                self._settings.whisper_model,
                self._settings.whisper_device,
                self._settings.whisper_compute_type,
            )
            self._model = WhisperModel(
                self._settings.whisper_model,
                device=self._settings.whisper_device,
                compute_type=self._settings.whisper_compute_type,
            )
        return self._model

    def transcribe(self, audio_path: str, language: Optional[str] = None) -> SegmentedText:
        if not os.path.exists(audio_path):
            raise InputError(f"Audio file not found: {audio_path}")
        language = language or self._settings.language
        try:
            model = self._get_model()
            segments_iter, info = model.transcribe(audio_path, language=language)
            segments: List[Segment] = [
                Segment(text=seg.text.strip(), start=float(seg.start), end=float(seg.end))
                for seg in segments_iter
            ]
        except Exception as e:
            logger.exception("Local transcription failed: %s", e)
            raise SpeechEngineError(f"Local transcription failed: {e}") from e

        result = SegmentedText(segments=segments, language=getattr(info, "language", None) or language)
        if not result.text.strip():
            raise SpeechEngineError("Local transcription produced no text")
        return result
