"""
Stage payload models: analysis, summary, tracked objectives/tasks and plans with Gantt data.
Remote responses are validated against these same models, so a schema mismatch is treated as a remote failure.
"""
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

UNASSIGNED = "unassigned"


class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    BLOCKED = "BLOCKED"


class ObjectiveStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class DependencyType(str, Enum):
    FINISH_TO_START = "finish_to_start"
    START_TO_START = "start_to_start"
    FINISH_TO_FINISH = "finish_to_finish"
    START_TO_FINISH = "start_to_finish"


# -------------------------
# Analysis
# -------------------------


class Statement(BaseModel):
    """A sentence classified as an objective or a task."""

    text: str = Field(..., min_length=1)
    confidence: Optional[float] = Field(None, ge=0, le=1)


class Question(BaseModel):
    text: str = Field(..., min_length=1)
    confidence: Optional[float] = Field(None, ge=0, le=1)
    answer: Optional[str] = None


class QAPair(BaseModel):
    question: str
    answer: str


class Topic(BaseModel):
    term: str
    score: float = 0.0


class Sentiment(BaseModel):
    score: float = Field(0.0, ge=-1, le=1)
    comparative: float = 0.0
    positive_count: int = Field(0, ge=0)
    negative_count: int = Field(0, ge=0)


class AnalysisResult(BaseModel):
    questions: List[Question] = Field(default_factory=list)
    answers: List[QAPair] = Field(default_factory=list)
    objectives: List[Statement] = Field(default_factory=list)
    tasks: List[Statement] = Field(default_factory=list)
    key_topics: List[Topic] = Field(default_factory=list)
    sentiment: Sentiment = Field(default_factory=Sentiment)


# -------------------------
# Summary
# -------------------------


class Summary(BaseModel):
    executive: str = ""
    key_points: List[str] = Field(default_factory=list)
    questions_and_answers: List[QAPair] = Field(default_factory=list)
    objectives: List[str] = Field(default_factory=list)


# -------------------------
# Tracking
# -------------------------


class Objective(BaseModel):
    id: str
    text: str
    status: ObjectiveStatus = ObjectiveStatus.PENDING
    related_tasks: List[str] = Field(default_factory=list, description="Task ids linked to this objective (no duplicates)")
    created_at: datetime
    updated_at: Optional[datetime] = None
    meeting_id: str


class Task(BaseModel):
    id: str
    text: str
    status: TaskStatus = TaskStatus.TODO
    assignee: str = UNASSIGNED
    due_date: Optional[date] = None
    objective_id: Optional[str] = Field(None, description="Objective whose related_tasks contains this task")
    meeting_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TrackingResult(BaseModel):
    meeting_id: str
    timestamp: datetime
    objectives: List[Objective] = Field(default_factory=list)
    tasks: List[Task] = Field(default_factory=list)


# -------------------------
# Planning
# -------------------------


class GanttTask(BaseModel):
    id: str
    text: str
    start_date: date
    end_date: date
    progress: float = Field(0.0, ge=0, le=1)
    assignee: str = UNASSIGNED


class Dependency(BaseModel):
    id: str
    source_task_id: str
    target_task_id: str
    type: DependencyType = DependencyType.FINISH_TO_START


class GanttData(BaseModel):
    tasks: List[GanttTask] = Field(default_factory=list)
    dependencies: List[Dependency] = Field(default_factory=list)


class PlanObjective(BaseModel):
    id: str
    text: str
    tasks: List[str] = Field(default_factory=list, description="Task ids bucketed under this objective")


class Plan(BaseModel):
    id: str
    name: str
    description: str = ""
    start_date: date
    end_date: date
    objectives: List[PlanObjective] = Field(default_factory=list)
    unassigned_tasks: List[Task] = Field(default_factory=list)
    gantt_data: GanttData = Field(default_factory=GanttData)
