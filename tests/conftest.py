import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

# Ensure repo root is on sys.path so `import meeting_agents...` works in tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from meeting_agents.core.config import Settings
from meeting_agents.core.errors import BackendUnavailable, SpeechEngineError
from meeting_agents.models.transcript import Segment, SegmentedText
from meeting_agents.pipeline.orchestrator import PipelineOrchestrator
from meeting_agents.services.remote_ai import RemoteAIService
from meeting_agents.services.speech import LocalSpeechEngine
from meeting_agents.stages.analysis import AnalysisStage
from meeting_agents.stages.planning import PlanningStage
from meeting_agents.stages.summarization import SummarizationStage
from meeting_agents.stages.tracking import TrackingRegistry, TrackingStage
from meeting_agents.stages.transcription import TranscriptionStage

FIXED_NOW = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)

SAMPLE_TEXT = (
    "Good morning everyone. "
    "Our objective is to launch new product line this year. "
    "When is the launch date? "
    "The launch is planned for next month. "
    "Launch new product line website assigned to Maria. "
    "Send the budget proposal 15/03/2025. "
    "Thanks everyone, great meeting."
)


def fixed_clock() -> datetime:
    return FIXED_NOW


class FakeRemote(RemoteAIService):
    """Remote service double: each operation returns the configured value, or raises it when it is an exception."""

    def __init__(self, available: bool = True, **responses: Any):
        self.available = available
        self.responses = responses
        self.calls: List[str] = []

    def is_available(self) -> bool:
        return self.available

    def _answer(self, op: str) -> Any:
        self.calls.append(op)
        value = self.responses.get(op, BackendUnavailable(f"{op} not configured in fake"))
        if isinstance(value, BaseException):
            raise value
        return value

    def transcribe(self, audio_path: str, language: Optional[str] = None) -> SegmentedText:
        return self._answer("transcribe")

    def analyze(self, text: str) -> Dict[str, Any]:
        return self._answer("analyze")

    def summarize(self, text: str) -> Dict[str, Any]:
        return self._answer("summarize")

    def plan(self, text: str) -> Dict[str, Any]:
        return self._answer("plan")


class FakeSpeechEngine(LocalSpeechEngine):
    def __init__(self, text: str = SAMPLE_TEXT, error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls: List[Tuple[str, Optional[str]]] = []

    def transcribe(self, audio_path: str, language: Optional[str] = None) -> SegmentedText:
        self.calls.append((audio_path, language))
        if self.error is not None:
            raise self.error
        return SegmentedText(content=self.text, segments=[Segment(text=self.text, start=0.0, end=12.5)], language=language)


class StubClassifier:
    """Keyword rules standing in for the trained classifier."""

    def classify(self, sentence: str):
        s = sentence.lower()
        if s.endswith("?"):
            return "question", 0.95
        if "objective" in s or "goal" in s or "objetivo" in s:
            return "objective", 0.9
        if "maybe" in s:
            return "task", 0.5  # below the threshold
        if any(w in s for w in ("send", "assigned to", "enviar", "prepare", "review")):
            return "task", 0.85
        return None, 0.3


class RecordingObserver:
    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def notify(self, event: str, payload: Dict[str, Any]) -> None:
        self.events.append((event, payload))

    @property
    def names(self) -> List[str]:
        return [e for e, _ in self.events]


def make_orchestrator(
    cfg: Settings,
    remote: Optional[RemoteAIService] = None,
    engine: Optional[LocalSpeechEngine] = None,
    classifier: Any = None,
    observers: Optional[list] = None,
    **stages: Any,
) -> PipelineOrchestrator:
    return PipelineOrchestrator(
        transcription=stages.get("transcription") or TranscriptionStage(remote=remote, engine=engine, cfg=cfg),
        analysis=stages.get("analysis") or AnalysisStage(classifier=classifier or StubClassifier(), remote=remote, cfg=cfg),
        summarization=stages.get("summarization") or SummarizationStage(remote=remote, cfg=cfg),
        tracking=stages.get("tracking") or TrackingStage(registry=TrackingRegistry(), cfg=cfg),
        planning=stages.get("planning") or PlanningStage(remote=remote, cfg=cfg),
        observers=observers if observers is not None else [],
    )


@pytest.fixture
def cfg(tmp_path) -> Settings:
    return Settings(
        openai_api_key="",
        audio_storage_path=str(tmp_path / "audio"),
        data_root=str(tmp_path / "data"),
        transcription_placeholder=True,
    )


@pytest.fixture
def audio_file(tmp_path) -> str:
    path = tmp_path / "meeting.wav"
    path.write_bytes(b"RIFF\x24\x00\x00\x00WAVEfmt fake audio bytes")
    return str(path)


@pytest.fixture
def empty_audio(tmp_path) -> str:
    path = tmp_path / "empty.wav"
    path.write_bytes(b"")
    return str(path)


@pytest.fixture
def speech_error() -> SpeechEngineError:
    return SpeechEngineError("decoder crashed")
