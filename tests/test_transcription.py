import asyncio

from conftest import SAMPLE_TEXT, FakeRemote, FakeSpeechEngine
from meeting_agents.core.errors import BackendUnavailable
from meeting_agents.models.transcript import SegmentedText
from meeting_agents.stages.transcription import TranscriptionStage


def test_missing_audio_fails_without_touching_backends(cfg, tmp_path):
    remote = FakeRemote(available=True)
    engine = FakeSpeechEngine()
    result = asyncio.run(TranscriptionStage(remote, engine, cfg).run(str(tmp_path / "nope.wav")))
    assert result.success is False
    assert "does not exist" in result.error
    assert remote.calls == [] and engine.calls == []


def test_empty_audio_fails(cfg, empty_audio):
    engine = FakeSpeechEngine()
    result = asyncio.run(TranscriptionStage(None, engine, cfg).run(empty_audio))
    assert result.success is False
    assert "empty" in result.error
    assert engine.calls == []


def test_remote_transcription_wins_when_available(cfg, audio_file):
    remote = FakeRemote(transcribe=SegmentedText(content="Remote transcript text."))
    engine = FakeSpeechEngine()
    result = asyncio.run(TranscriptionStage(remote, engine, cfg).run(audio_file))
    assert result.success is True
    assert result.metadata["service_used"] == "remote"
    assert result.payload.text == "Remote transcript text."
    assert engine.calls == []


def test_remote_failure_falls_back_to_local_engine(cfg, audio_file):
    remote = FakeRemote(transcribe=BackendUnavailable("quota exceeded"))
    engine = FakeSpeechEngine()
    result = asyncio.run(TranscriptionStage(remote, engine, cfg).run(audio_file))
    assert result.success is True
    assert result.metadata["service_used"] == "local"
    assert result.payload.text == SAMPLE_TEXT
    assert engine.calls == [(audio_file, "es")]


def test_empty_remote_transcript_falls_back_to_local_engine(cfg, audio_file):
    remote = FakeRemote(transcribe=SegmentedText(content="   "))
    engine = FakeSpeechEngine()
    result = asyncio.run(TranscriptionStage(remote, engine, cfg).run(audio_file))
    assert result.success is True
    assert result.metadata["service_used"] == "local"
    assert result.payload.text == SAMPLE_TEXT
    assert remote.calls == ["transcribe"]
    assert len(engine.calls) == 1


def test_unavailable_remote_is_not_called(cfg, audio_file):
    remote = FakeRemote(available=False)
    result = asyncio.run(TranscriptionStage(remote, FakeSpeechEngine(), cfg).run(audio_file))
    assert result.metadata["service_used"] == "local"
    assert remote.calls == []


def test_engine_error_yields_marked_placeholder(cfg, audio_file, speech_error):
    stage = TranscriptionStage(None, FakeSpeechEngine(error=speech_error), cfg)
    result = asyncio.run(stage.run(audio_file))
    assert result.success is True
    assert result.metadata["service_used"] == "error-fallback"
    assert result.metadata["degraded"] is True
    assert result.payload.degraded is True
    assert len(result.payload.text) >= 10


def test_unexpected_engine_exception_is_wrapped(cfg, audio_file):
    stage = TranscriptionStage(None, FakeSpeechEngine(error=RuntimeError("segfault-ish")), cfg)
    result = asyncio.run(stage.run(audio_file))
    assert result.success is True
    assert result.metadata["service_used"] == "error-fallback"
    assert "segfault-ish" in result.metadata["engine_error"]


def test_engine_error_is_a_failure_when_placeholder_disabled(cfg, audio_file, speech_error):
    cfg = cfg.model_copy(update={"transcription_placeholder": False})
    stage = TranscriptionStage(None, FakeSpeechEngine(error=speech_error), cfg)
    result = asyncio.run(stage.run(audio_file))
    assert result.success is False
    assert "decoder crashed" in result.error
    assert result.payload is None


def test_no_backend_at_all_is_a_failure(cfg, audio_file):
    result = asyncio.run(TranscriptionStage(None, None, cfg).run(audio_file))
    assert result.success is False
    assert "No local speech engine" in result.error
