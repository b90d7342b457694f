"""Request/response bodies of the HTTP API."""
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from meeting_agents.models.entities import UNASSIGNED, ObjectiveStatus, TaskStatus


class UploadResponse(BaseModel):
    """Response for POST /meetings/upload. Clients poll GET /meetings/{job_id}/status until it is no longer processing."""

    job_id: str
    status: str
    message: str = "Audio received; processing started"


class JobSummary(BaseModel):
    job_id: str
    audio_file: str
    status: str
    created_at: str
    error: Optional[str] = None
    stages: Dict[str, bool] = Field(default_factory=dict, description="Attempted stage -> success flag")


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    error: Optional[str] = None
    completed_stages: List[str] = Field(default_factory=list)
    failed_stages: List[str] = Field(default_factory=list)


class StageResponse(BaseModel):
    success: bool
    payload: Any = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class LimitsResponse(BaseModel):
    """Upload and NLP limits, so clients can validate before uploading."""

    max_upload_mb: int
    allowed_extensions: List[str]
    intent_threshold: float
    key_topics: int
    summary_sentences: int
    rate_limit_requests: int
    rate_limit_window_seconds: int
    remote_configured: bool


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class ObjectiveStatusUpdate(BaseModel):
    status: ObjectiveStatus


class GanttTaskInput(BaseModel):
    """Task as posted to /gantt; ids are generated when omitted."""

    id: Optional[str] = None
    text: str = Field(..., min_length=1)
    status: TaskStatus = TaskStatus.TODO
    assignee: str = UNASSIGNED
    due_date: Optional[date] = None


class GanttRequest(BaseModel):
    tasks: List[GanttTaskInput] = Field(default_factory=list)
    start_date: Optional[date] = None
