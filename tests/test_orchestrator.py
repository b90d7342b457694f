import asyncio
import json

import pytest

from conftest import FakeRemote, FakeSpeechEngine, RecordingObserver, make_orchestrator
from meeting_agents.core.errors import BackendUnavailable, InvalidTransitionError, NotFoundError
from meeting_agents.pipeline.jobs import InMemoryJobStore
from meeting_agents.stages.base import StageResult
from meeting_agents.stages.summarization import SummarizationStage


def _process(orch, audio):
    async def go():
        job = await orch.submit(audio)
        submitted = job.status
        still_processing = orch.get_job(job.job_id).status
        final = await orch.wait(job.job_id)
        return submitted, still_processing, final

    return asyncio.run(go())


def test_full_local_run_completes(cfg, audio_file):
    observer = RecordingObserver()
    orch = make_orchestrator(cfg, engine=FakeSpeechEngine(), observers=[observer])
    submitted, still_processing, job = _process(orch, audio_file)

    assert submitted == "processing"
    assert still_processing == "processing"
    assert job.status == "completed"
    assert job.error is None
    assert list(job.stages) == ["transcription", "analysis", "summary", "tracking", "planning"]
    assert all(r.success for r in job.stages.values())
    assert {r.metadata["service_used"] for r in job.stages.values()} == {"local"}

    tracking = job.stages["tracking"].payload
    plan = job.stages["planning"].payload
    assert len(plan.gantt_data.tasks) == len(tracking.tasks) == 2
    assert tracking.tasks[0].objective_id == tracking.objectives[0].id


def test_events_are_emitted_in_order(cfg, audio_file):
    observer = RecordingObserver()
    orch = make_orchestrator(cfg, engine=FakeSpeechEngine(), observers=[observer])
    _process(orch, audio_file)
    expected = []
    for stage in ("transcription", "analysis", "summary", "tracking", "planning"):
        expected += [f"{stage}:start", f"{stage}:complete"]
    assert observer.names == expected + ["processing:complete"]


def test_missing_audio_fails_the_job_after_transcription(cfg, tmp_path):
    observer = RecordingObserver()
    orch = make_orchestrator(cfg, engine=FakeSpeechEngine(), observers=[observer])
    _, _, job = _process(orch, str(tmp_path / "missing.wav"))
    assert job.status == "failed"
    assert list(job.stages) == ["transcription"]
    assert job.error.startswith("Transcription failed")
    assert observer.names[-1] == "processing:failed"


def test_analysis_failure_is_fatal(cfg, audio_file):
    orch = make_orchestrator(cfg, engine=FakeSpeechEngine(text="Hi."))
    _, _, job = _process(orch, audio_file)
    assert job.status == "failed"
    assert list(job.stages) == ["transcription", "analysis"]
    assert "Analysis failed" in job.error


def test_analysis_backends_unavailable_fail_the_job(cfg, audio_file):
    class BrokenClassifier:
        def classify(self, sentence):
            raise RuntimeError("intent model missing")

    observer = RecordingObserver()
    remote = FakeRemote(transcribe=BackendUnavailable("offline"), analyze=BackendUnavailable("offline"))
    orch = make_orchestrator(
        cfg,
        remote=remote,
        engine=FakeSpeechEngine(),
        classifier=BrokenClassifier(),
        observers=[observer],
    )
    _, _, job = _process(orch, audio_file)

    assert job.status == "failed"
    assert list(job.stages) == ["transcription", "analysis"]
    assert job.stages["transcription"].success is True
    assert job.stages["analysis"].success is False
    assert job.error.startswith("Analysis failed")
    assert "intent model missing" in job.error
    assert "analyze" in remote.calls
    assert observer.names[-1] == "processing:failed"
    assert observer.events[-1][1]["stage"] == "analysis"
    assert "summary:start" not in observer.names


def test_summary_failure_is_not_fatal(cfg, audio_file):
    class CrashingSummary(SummarizationStage):
        async def run(self, transcript, analysis=None):
            raise RuntimeError("summarizer crashed")

    orch = make_orchestrator(cfg, engine=FakeSpeechEngine(), summarization=CrashingSummary(None, cfg))
    _, _, job = _process(orch, audio_file)
    assert job.status == "completed"
    summary = job.stages["summary"]
    assert summary.success is False
    assert "summarizer crashed" in summary.error
    assert summary.payload is None
    assert job.stages["tracking"].success
    assert job.stages["planning"].success


def test_escaped_planning_exception_gets_contingency_payload(cfg, audio_file):
    orch = make_orchestrator(cfg, engine=FakeSpeechEngine())

    async def broken_run(*args, **kwargs):
        raise RuntimeError("planner crashed")

    orch.planning.run = broken_run
    _, _, job = _process(orch, audio_file)
    planning = job.stages["planning"]
    assert job.status == "completed"
    assert planning.success is False
    assert planning.metadata["service_used"] == "error-fallback"
    assert len(planning.payload.gantt_data.tasks) == 1


def test_failed_tracking_feeds_empty_lists_to_planning(cfg, audio_file):
    orch = make_orchestrator(cfg, engine=FakeSpeechEngine())

    def boom(analysis, meeting_id):
        raise RuntimeError("tracker down")

    orch.tracking.track = boom
    _, _, job = _process(orch, audio_file)
    assert job.stages["tracking"].success is False
    assert job.stages["tracking"].payload.tasks == []
    assert job.stages["planning"].payload.gantt_data.tasks == []


def test_placeholder_transcript_keeps_the_job_going(cfg, audio_file, speech_error):
    orch = make_orchestrator(cfg, engine=FakeSpeechEngine(error=speech_error))
    _, _, job = _process(orch, audio_file)
    assert job.status == "completed"
    assert job.stages["transcription"].metadata["degraded"] is True


def test_observer_subscribed_after_construction_sees_events(cfg, audio_file):
    orch = make_orchestrator(cfg, engine=FakeSpeechEngine())
    late = RecordingObserver()
    orch.events.subscribe(late)
    _process(orch, audio_file)
    assert late.names[0] == "transcription:start"
    assert late.names[-1] == "processing:complete"


def test_observer_errors_do_not_break_the_pipeline(cfg, audio_file):
    class Exploding:
        def notify(self, event, payload):
            raise ValueError("observer bug")

    orch = make_orchestrator(cfg, engine=FakeSpeechEngine(), observers=[Exploding()])
    _, _, job = _process(orch, audio_file)
    assert job.status == "completed"


def test_reads_are_idempotent(cfg, audio_file):
    orch = make_orchestrator(cfg, engine=FakeSpeechEngine())
    _, _, job = _process(orch, audio_file)
    first = json.dumps(orch.get_job(job.job_id).to_dict(), sort_keys=True)
    second = json.dumps(orch.get_job(job.job_id).to_dict(), sort_keys=True)
    assert first == second


def test_snapshots_cannot_mutate_the_store(cfg, audio_file):
    orch = make_orchestrator(cfg, engine=FakeSpeechEngine())
    _, _, job = _process(orch, audio_file)
    job.stages.clear()
    job.status = "processing"
    assert orch.get_job(job.job_id).status == "completed"
    assert len(orch.get_job(job.job_id).stages) == 5


def test_stage_accessors(cfg, audio_file):
    orch = make_orchestrator(cfg, engine=FakeSpeechEngine())
    _, _, job = _process(orch, audio_file)
    assert orch.get_transcription(job.job_id).success
    assert orch.get_analysis(job.job_id).success
    assert orch.get_summary(job.job_id).success
    assert orch.get_tracking(job.job_id).success
    assert orch.get_plan(job.job_id).success
    with pytest.raises(NotFoundError):
        orch.get_job("unknown")
    with pytest.raises(NotFoundError):
        orch.get_stage(job.job_id, "translation")


def test_list_jobs_and_tracking_passthrough(cfg, audio_file, tmp_path):
    second = tmp_path / "second.wav"
    second.write_bytes(b"more fake audio")
    orch = make_orchestrator(cfg, engine=FakeSpeechEngine())
    _process(orch, audio_file)
    _process(orch, str(second))
    assert len(orch.list_jobs()) == 2
    tasks = orch.list_tasks()
    assert len(tasks) == 4
    assert orch.update_task_status(tasks[0].id, "IN_PROGRESS").status.value == "IN_PROGRESS"
    assert len(orch.list_objectives()) == 2


def test_concurrent_jobs_do_not_interfere(cfg, audio_file):
    orch = make_orchestrator(cfg, engine=FakeSpeechEngine())

    async def go():
        jobs = [await orch.submit(audio_file) for _ in range(3)]
        return await asyncio.gather(*(orch.wait(j.job_id) for j in jobs))

    finished = asyncio.run(go())
    assert [j.status for j in finished] == ["completed"] * 3
    assert len({j.job_id for j in finished}) == 3


def test_job_store_status_is_monotonic():
    store = InMemoryJobStore()
    job = store.create("a.wav")
    store.record_stage(job.job_id, "transcription", StageResult.failed("boom"))
    store.finish(job.job_id, "failed", "boom")
    with pytest.raises(InvalidTransitionError):
        store.finish(job.job_id, "completed")
    with pytest.raises(InvalidTransitionError):
        store.record_stage(job.job_id, "analysis", StageResult.failed("late"))
    with pytest.raises(InvalidTransitionError):
        store.finish(store.create("b.wav").job_id, "processing")
    assert store.get(job.job_id).error == "boom"
