"""Stage 1: audio to timestamped text. Remote transcription first, then the local speech engine."""
import logging
from typing import Optional, Union

from meeting_agents.core.config import Settings, settings as default_settings
from meeting_agents.core.errors import BackendUnavailable, InputError, RemoteResponseError, SpeechEngineError
from meeting_agents.models.transcript import Segment, SegmentedText
from meeting_agents.services.audio import AudioResource
from meeting_agents.services.remote_ai import RemoteAIService
from meeting_agents.services.speech import LocalSpeechEngine
from meeting_agents.stages.base import TRANSCRIPTION, ServiceUsed, StageResult, remote_then_local

logger = logging.getLogger(__name__)

PLACEHOLDER_SENTENCES = (
    "This is a placeholder transcript because the speech engine failed.",
    "The recording could not be transcribed and should be reviewed manually.",
)


def placeholder_transcript(language: Optional[str] = None) -> SegmentedText:
    """Clearly marked stand-in transcript so later stages still receive non-empty input."""
    segments = [
        Segment(text=text, start=float(i * 5), end=float((i + 1) * 5)) for i, text in enumerate(PLACEHOLDER_SENTENCES)
    ]
    return SegmentedText(content=" ".join(PLACEHOLDER_SENTENCES), segments=segments, language=language, degraded=True)


class TranscriptionStage:
    def __init__(
        self,
        remote: Optional[RemoteAIService] = None,
        engine: Optional[LocalSpeechEngine] = None,
        cfg: Optional[Settings] = None,
    ):
        self.remote = remote
        self.engine = engine
        self.settings = cfg or default_settings

    def _check_input(self, resource: AudioResource) -> None:
        if not resource.exists():
            raise InputError(f"Audio file does not exist: {resource.path}")
        if resource.size() <= 0:
            raise InputError(f"Audio file is empty: {resource.path}")

    def _remote(self, path: str) -> SegmentedText:
        transcript = self.remote.transcribe(path, self.settings.language)
        if not transcript.text.strip():
            raise RemoteResponseError("Remote transcription returned no text")
        return transcript

    def _local(self, path: str) -> SegmentedText:
        if self.engine is None:
            raise BackendUnavailable("No local speech engine configured")
        try:
            return self.engine.transcribe(path, self.settings.language)
        except (SpeechEngineError, InputError):
            raise
        except Exception as e:
            raise SpeechEngineError(f"Local transcription failed: {e}") from e

    async def run(self, audio: Union[AudioResource, str]) -> StageResult:
        """
        Never raises: every outcome is a StageResult.
        - missing/empty audio: failure, no backend attempted
        - remote (when available) then local engine
        - local engine error: placeholder transcript marked degraded (service_used=error-fallback), or a failure
          when transcription_placeholder is off
        """
        resource = audio if isinstance(audio, AudioResource) else AudioResource(audio)
        try:
            self._check_input(resource)
        except InputError as e:
            logger.error("transcription: %s", e)
            return StageResult.failed(str(e))

        remote_call = None
        if self.remote is not None and self.remote.is_available():
            remote_call = lambda: self._remote(resource.path)  # noqa: E731

        try:
            transcript, service = await remote_then_local(TRANSCRIPTION, remote_call, lambda: self._local(resource.path))
        except SpeechEngineError as e:
            if not self.settings.transcription_placeholder:
                logger.error("transcription: local engine failed: %s", e)
                return StageResult.failed(str(e))
            logger.warning("transcription: local engine failed (%s); using placeholder transcript", e)
            return StageResult.ok(
                placeholder_transcript(self.settings.language),
                ServiceUsed.ERROR_FALLBACK,
                degraded=True,
                engine_error=str(e),
            )
        except Exception as e:
            logger.error("transcription: all strategies failed: %s", e)
            return StageResult.failed(f"Transcription failed: {e}")

        if not transcript.text.strip():
            return StageResult.failed("Transcription produced no text")
        return StageResult.ok(transcript, service, degraded=transcript.degraded)
