"""
Pipeline orchestrator: one background task per job running transcription -> analysis -> summary -> tracking ->
planning strictly in order.

Transcription and analysis failures end the job as failed. Summary, tracking and planning failures are recorded
on their stage and the job still completes.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from meeting_agents.core.config import Settings, settings as default_settings
from meeting_agents.core.errors import InvalidTransitionError, NotFoundError, StageFailure
from meeting_agents.models.entities import Objective, ObjectiveStatus, Task, TaskStatus
from meeting_agents.pipeline.events import (
    PROCESSING_COMPLETE,
    PROCESSING_FAILED,
    EventPublisher,
    LoggingObserver,
    PipelineObserver,
    stage_complete,
    stage_start,
)
from meeting_agents.pipeline.jobs import COMPLETED, FAILED, InMemoryJobStore, Job, JobStore
from meeting_agents.services.audio import AudioResource
from meeting_agents.stages.analysis import AnalysisStage
from meeting_agents.stages.base import (
    ANALYSIS,
    FATAL_STAGES,
    PLANNING,
    STAGE_ORDER,
    SUMMARY,
    TRACKING,
    TRANSCRIPTION,
    ServiceUsed,
    StageResult,
)
from meeting_agents.stages.planning import PlanningStage
from meeting_agents.stages.summarization import SummarizationStage
from meeting_agents.stages.tracking import JsonFileTrackingStorage, TrackingRegistry, TrackingStage
from meeting_agents.stages.transcription import TranscriptionStage

logger = logging.getLogger(__name__)

STAGE_LABELS = {
    TRANSCRIPTION: "Transcription",
    ANALYSIS: "Analysis",
    SUMMARY: "Summarization",
    TRACKING: "Tracking",
    PLANNING: "Planning",
}


class PipelineOrchestrator:
    def __init__(
        self,
        transcription: TranscriptionStage,
        analysis: AnalysisStage,
        summarization: SummarizationStage,
        tracking: TrackingStage,
        planning: PlanningStage,
        store: Optional[JobStore] = None,
        observers: Optional[Iterable[PipelineObserver]] = None,
    ):
        self.transcription = transcription
        self.analysis = analysis
        self.summarization = summarization
        self.tracking = tracking
        self.planning = planning
        self.store = store or InMemoryJobStore()
        self.events = EventPublisher(observers if observers is not None else [LoggingObserver()])
        self._tasks: Dict[str, "asyncio.Task[None]"] = {}

    # -------------------------
    # Public contract
    # -------------------------

    async def submit(self, audio: Union[AudioResource, str]) -> Job:
        """Create the job record and schedule its stages in the background. Returns the job in processing state."""
        path = audio.path if isinstance(audio, AudioResource) else str(audio)
        job = self.store.create(path)
        task = asyncio.create_task(self._process(job.job_id, path), name=f"meeting-job-{job.job_id}")
        self._tasks[job.job_id] = task
        task.add_done_callback(lambda _t, job_id=job.job_id: self._tasks.pop(job_id, None))
        logger.info("Job %s submitted for %s", job.job_id, path)
        return job

    def get_job(self, job_id: str) -> Job:
        return self.store.get(job_id)

    def list_jobs(self) -> List[Job]:
        return self.store.list()

    def get_stage(self, job_id: str, stage: str) -> Optional[StageResult]:
        """StageResult for a stage, or None while it is not yet available. Unknown job -> NotFoundError."""
        if stage not in STAGE_ORDER:
            raise NotFoundError("stage", stage)
        return self.get_job(job_id).stages.get(stage)

    def get_transcription(self, job_id: str) -> Optional[StageResult]:
        return self.get_stage(job_id, TRANSCRIPTION)

    def get_analysis(self, job_id: str) -> Optional[StageResult]:
        return self.get_stage(job_id, ANALYSIS)

    def get_summary(self, job_id: str) -> Optional[StageResult]:
        return self.get_stage(job_id, SUMMARY)

    def get_tracking(self, job_id: str) -> Optional[StageResult]:
        return self.get_stage(job_id, TRACKING)

    def get_plan(self, job_id: str) -> Optional[StageResult]:
        return self.get_stage(job_id, PLANNING)

    async def wait(self, job_id: str) -> Job:
        """Wait for a job's background task to finish and return its final snapshot."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        return self.get_job(job_id)

    # ---- tracking passthrough ----

    def list_tasks(self) -> List[Task]:
        return self.tracking.registry.list_tasks()

    def list_objectives(self) -> List[Objective]:
        return self.tracking.registry.list_objectives()

    def update_task_status(self, task_id: str, status: Union[str, TaskStatus]) -> Task:
        return self.tracking.registry.update_task_status(task_id, status)

    def update_objective_status(self, objective_id: str, status: Union[str, ObjectiveStatus]) -> Objective:
        return self.tracking.registry.update_objective_status(objective_id, status)

    # -------------------------
    # Background processing
    # -------------------------

    async def _run_stage(
        self,
        job_id: str,
        stage: str,
        call: Callable[[], Awaitable[StageResult]],
        default_payload: Optional[Callable[[], Any]] = None,
    ) -> StageResult:
        """Run one stage, turning any escaped exception into a failed StageResult, then record it.
        A failed fatal stage raises StageFailure after its result is recorded."""
        self.events.publish(stage_start(stage), job_id=job_id, stage=stage)
        try:
            result = await call()
        except Exception as e:
            logger.exception("Job %s: %s raised: %s", job_id, stage, e)
            payload = default_payload() if default_payload is not None else None
            result = StageResult.failed(
                f"{STAGE_LABELS[stage]} failed: {e}",
                payload=payload,
                service_used=ServiceUsed.ERROR_FALLBACK if payload is not None else None,
            )
        self.store.record_stage(job_id, stage, result)
        self.events.publish(
            stage_complete(stage),
            job_id=job_id,
            stage=stage,
            success=result.success,
            service_used=result.metadata.get("service_used"),
        )
        if not result.success:
            if stage in FATAL_STAGES:
                raise StageFailure(stage, f"{STAGE_LABELS[stage]} failed: {result.error}", fatal=True)
            logger.warning("Job %s: %s failed: %s", job_id, stage, result.error)
        return result

    def _fail(self, job_id: str, error: str, stage: Optional[str] = None) -> None:
        logger.error("Job %s failed: %s", job_id, error)
        self.store.finish(job_id, FAILED, error)
        self.events.publish(PROCESSING_FAILED, job_id=job_id, error=error, stage=stage)

    async def _process(self, job_id: str, audio_path: str) -> None:
        try:
            transcription = await self._run_stage(
                job_id, TRANSCRIPTION, lambda: self.transcription.run(audio_path)
            )
            transcript = transcription.payload

            analysis = await self._run_stage(job_id, ANALYSIS, lambda: self.analysis.run(transcript))
            analysis_result = analysis.payload

            await self._run_stage(job_id, SUMMARY, lambda: self.summarization.run(transcript, analysis_result))

            tracking = await self._run_stage(
                job_id,
                TRACKING,
                lambda: self.tracking.run(analysis_result, job_id),
                default_payload=lambda: self.tracking.empty_result(job_id),
            )
            objectives = tracking.payload.objectives if tracking.payload is not None else []
            tasks = tracking.payload.tasks if tracking.payload is not None else []

            plan_name = f"Action plan for meeting {job_id[:8]}"
            await self._run_stage(
                job_id,
                PLANNING,
                lambda: self.planning.run(objectives, tasks, raw_text=transcript.text, name=plan_name),
                default_payload=lambda: self.planning.contingency_plan(plan_name),
            )

            self.store.finish(job_id, COMPLETED)
            logger.info("Job %s completed", job_id)
            self.events.publish(PROCESSING_COMPLETE, job_id=job_id)
        except StageFailure as e:
            self._fail(job_id, str(e), stage=e.stage)
        except Exception as e:
            logger.exception("Job %s: unexpected error: %s", job_id, e)
            try:
                self._fail(job_id, f"Unexpected error: {e}")
            except InvalidTransitionError:
                logger.warning("Job %s was already finished when the error occurred", job_id)


def build_orchestrator(cfg: Optional[Settings] = None) -> PipelineOrchestrator:
    """Production wiring: OpenAI remote service, faster-whisper engine, scikit-learn intent classifier,
    in-memory job store, logging observer and, when enabled, JSON tracking storage."""
    from meeting_agents.nlp.intents import SklearnIntentClassifier
    from meeting_agents.services.remote_ai import OpenAIService
    from meeting_agents.services.speech import FasterWhisperEngine

    cfg = cfg or default_settings
    remote = OpenAIService(cfg)
    storage = JsonFileTrackingStorage(cfg.data_root) if cfg.persist_tracking else None
    return PipelineOrchestrator(
        transcription=TranscriptionStage(remote=remote, engine=FasterWhisperEngine(cfg), cfg=cfg),
        analysis=AnalysisStage(classifier=SklearnIntentClassifier(), remote=remote, cfg=cfg),
        summarization=SummarizationStage(remote=remote, cfg=cfg),
        tracking=TrackingStage(registry=TrackingRegistry(), storage=storage, cfg=cfg),
        planning=PlanningStage(remote=remote, cfg=cfg),
    )
