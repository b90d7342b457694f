import logging
import os
import uuid
from typing import List

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from meeting_agents.core.config import settings
from meeting_agents.core.errors import PipelineError
from meeting_agents.core.logging_setup import configure_logging
from meeting_agents.guardrails.errors import as_http_500, as_http_error
from meeting_agents.guardrails.rate_limit import SimpleRateLimiter
from meeting_agents.models.entities import Task
from meeting_agents.models.schemas import (
    GanttRequest,
    JobStatusResponse,
    JobSummary,
    LimitsResponse,
    ObjectiveStatusUpdate,
    StageResponse,
    TaskStatusUpdate,
    UploadResponse,
)
from meeting_agents.observability.middleware import RequestTimingMiddleware
from meeting_agents.pipeline.jobs import COMPLETED, PROCESSING
from meeting_agents.pipeline.orchestrator import build_orchestrator
from meeting_agents.report.docx_report import build_meeting_report
from meeting_agents.services.audio import ALLOWED_EXTENSIONS, save_upload
from meeting_agents.stages.base import ANALYSIS, PLANNING, SUMMARY, TRACKING, TRANSCRIPTION

configure_logging(os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)


# -------------------------
# App setup
# -------------------------

app = FastAPI(title="Meeting Agents")
app.add_middleware(RequestTimingMiddleware)

RATE_LIMIT_REQUESTS = 20
RATE_LIMIT_WINDOW_SECONDS = 60
rate_limiter = SimpleRateLimiter(max_requests=RATE_LIMIT_REQUESTS, window_seconds=RATE_LIMIT_WINDOW_SECONDS)

orchestrator = build_orchestrator(settings)

# URL segment -> stage name
STAGE_ROUTES = {
    "transcription": TRANSCRIPTION,
    "analysis": ANALYSIS,
    "summary": SUMMARY,
    "tracking": TRACKING,
    "plan": PLANNING,
}

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


# -------------------------
# Root
# -------------------------

@app.get("/")
def root():
    return {"app": "Meeting Agents", "docs": "/docs"}


@app.get("/health")
def health():
    """Liveness probe."""
    return {"status": "ok"}


@app.get("/limits", response_model=LimitsResponse)
def limits():
    """Upload and NLP limits, so clients can validate before uploading."""
    return LimitsResponse(
        max_upload_mb=settings.max_upload_mb,
        allowed_extensions=list(ALLOWED_EXTENSIONS),
        intent_threshold=settings.intent_threshold,
        key_topics=settings.key_topics,
        summary_sentences=settings.summary_sentences,
        rate_limit_requests=RATE_LIMIT_REQUESTS,
        rate_limit_window_seconds=RATE_LIMIT_WINDOW_SECONDS,
        remote_configured=settings.remote_configured(),
    )


# -------------------------
# Meetings
# -------------------------

@app.post("/meetings/upload", response_model=UploadResponse, status_code=202)
async def upload_meeting(request: Request, audio: UploadFile = File(...)):
    """Stores the recording and starts the pipeline in the background. Poll /meetings/{job_id}/status."""
    rate_limiter.check(request)

    content = await audio.read()
    try:
        path = save_upload(content, audio.filename or "", settings)
        job = await orchestrator.submit(path)
    except PipelineError as e:
        raise as_http_error(e)
    except Exception as e:
        raise as_http_500(e)
    return UploadResponse(job_id=job.job_id, status=job.status)


@app.get("/meetings", response_model=List[JobSummary])
def list_meetings():
    return [JobSummary(**job.summary()) for job in orchestrator.list_jobs()]


@app.get("/meetings/{job_id}")
def get_meeting(job_id: str):
    """Full job: status, error and every attempted stage with its payload."""
    try:
        return orchestrator.get_job(job_id).to_dict()
    except PipelineError as e:
        raise as_http_error(e)


@app.get("/meetings/{job_id}/status", response_model=JobStatusResponse)
def get_meeting_status(job_id: str):
    try:
        job = orchestrator.get_job(job_id)
    except PipelineError as e:
        raise as_http_error(e)
    return JobStatusResponse(
        job_id=job.job_id,
        status=job.status,
        error=job.error,
        completed_stages=[name for name, r in job.stages.items() if r.success],
        failed_stages=[name for name, r in job.stages.items() if not r.success],
    )


@app.get("/meetings/{job_id}/report")
def get_meeting_report(job_id: str):
    """Word report of a completed meeting. 409 while the job is processing or when it failed."""
    try:
        job = orchestrator.get_job(job_id)
    except PipelineError as e:
        raise as_http_error(e)
    if job.status != COMPLETED:
        raise HTTPException(status_code=409, detail=f"Report not available: job is {job.status}")
    try:
        content = build_meeting_report(job)
    except Exception as e:
        raise as_http_500(e)
    return Response(
        content=content,
        media_type=DOCX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="meeting_{job_id[:8]}.docx"'},
    )


@app.get("/meetings/{job_id}/{stage}", response_model=StageResponse)
def get_meeting_stage(job_id: str, stage: str):
    """One stage's result. 202 while the stage has not run yet, 404 when it will never run."""
    stage_name = STAGE_ROUTES.get(stage)
    if stage_name is None:
        raise HTTPException(status_code=404, detail=f"Unknown stage: {stage}")
    try:
        job = orchestrator.get_job(job_id)
    except PipelineError as e:
        raise as_http_error(e)

    result = job.stages.get(stage_name)
    if result is None:
        if job.status == PROCESSING:
            return JSONResponse(status_code=202, content={"status": PROCESSING, "stage": stage})
        raise HTTPException(status_code=404, detail=f"Stage {stage} was not run: {job.error or job.status}")
    return result.to_dict()


# -------------------------
# Tracking
# -------------------------

@app.get("/tasks")
def list_tasks():
    return [t.model_dump(mode="json") for t in orchestrator.list_tasks()]


@app.get("/objectives")
def list_objectives():
    return [o.model_dump(mode="json") for o in orchestrator.list_objectives()]


@app.patch("/tasks/{task_id}")
def update_task(task_id: str, req: TaskStatusUpdate):
    try:
        return orchestrator.update_task_status(task_id, req.status).model_dump(mode="json")
    except PipelineError as e:
        raise as_http_error(e)


@app.patch("/objectives/{objective_id}")
def update_objective(objective_id: str, req: ObjectiveStatusUpdate):
    try:
        return orchestrator.update_objective_status(objective_id, req.status).model_dump(mode="json")
    except PipelineError as e:
        raise as_http_error(e)


# -------------------------
# Gantt
# -------------------------

@app.post("/gantt")
def gantt(req: GanttRequest):
    """Gantt data (scheduled tasks + finish-to-start chain) for an ad-hoc task list."""
    tasks = [
        Task(
            id=t.id or str(uuid.uuid4()),
            text=t.text,
            status=t.status,
            assignee=t.assignee,
            due_date=t.due_date,
        )
        for t in req.tasks
    ]
    try:
        return orchestrator.planning.generate_gantt_chart(tasks, req.start_date).model_dump(mode="json")
    except PipelineError as e:
        raise as_http_error(e)
