"""
Stage 4: turn analysis objectives and tasks into tracked entities with ids, status, due dates, assignees and
objective links. Always local.

TrackingRegistry keeps every entity across jobs so statuses can be updated after the pipeline ran; job payloads
stay snapshots of what the stage produced.
"""
import asyncio
import calendar
import json
import logging
import os
import re
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Set, Union

from meeting_agents.core.config import Settings, settings as default_settings
from meeting_agents.core.errors import InvalidTransitionError, NotFoundError
from meeting_agents.models.entities import (
    UNASSIGNED,
    AnalysisResult,
    Objective,
    ObjectiveStatus,
    Task,
    TaskStatus,
    TrackingResult,
)
from meeting_agents.stages.base import TRACKING, ServiceUsed, StageResult, utc_now

logger = logging.getLogger(__name__)

_NEXT_WEEK = re.compile(r"\b(next week|pr[oó]xima semana)\b", re.IGNORECASE)
_NEXT_MONTH = re.compile(r"\b(next month|pr[oó]ximo mes)\b", re.IGNORECASE)
_EXPLICIT_DATE = re.compile(r"\b(\d{1,2})[/-](\d{1,2})(?:[/-](\d{2,4}))?\b")
_ASSIGNEE = re.compile(
    r"(?:asignado a|asignada a|assigned to|responsable:?)\s+([A-Za-zÁáÉéÍíÓóÚúÑñ\s]+?)(?:,|\.|$)",
    re.IGNORECASE,
)
_STRIP_CHARS = ".,;:!?¿¡()\"'"


def add_months(day: date, months: int) -> date:
    """Calendar month arithmetic, clamping to the last day of the target month (Jan 31 + 1 month = Feb 28/29)."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def infer_due_date(text: str, today: date, default_days: int = 14) -> date:
    """Relative phrases first, then an explicit DD/MM[/YY[YY]] date (current year when omitted), else today + default."""
    if _NEXT_WEEK.search(text):
        return today + timedelta(days=7)
    if _NEXT_MONTH.search(text):
        return add_months(today, 1)
    match = _EXPLICIT_DATE.search(text)
    if match:
        day_s, month_s, year_s = match.groups()
        year = today.year
        if year_s:
            year = int(year_s)
            if len(year_s) == 2:
                year += 2000
        try:
            return date(year, int(month_s), int(day_s))
        except ValueError:
            logger.debug("Ignoring invalid date %r in task text", match.group(0))
    return today + timedelta(days=default_days)


def infer_assignee(text: str) -> str:
    match = _ASSIGNEE.search(text)
    if match:
        name = " ".join(match.group(1).split())
        if name:
            return name
    return UNASSIGNED


def significant_words(text: str) -> Set[str]:
    words = (w.strip(_STRIP_CHARS) for w in text.lower().split())
    return {w for w in words if len(w) > 3}


def find_related_objective(task_text: str, objectives: List[Objective], min_shared: int = 2) -> Optional[Objective]:
    """First objective sharing at least min_shared distinct words longer than 3 characters with the task."""
    task_words = significant_words(task_text)
    for objective in objectives:
        if len(task_words & significant_words(objective.text)) >= min_shared:
            return objective
    return None


# -------------------------
# Persistence collaborator
# -------------------------


class TrackingStorage(ABC):
    @abstractmethod
    def save(self, meeting_id: str, data: dict) -> None:
        raise NotImplementedError


class JsonFileTrackingStorage(TrackingStorage):
    """Writes one JSON document per meeting under <data_root>/tracking/<meeting_id>.json."""

    def __init__(self, data_root: str):
        self.directory = os.path.join(data_root, "tracking")

    def path_for(self, meeting_id: str) -> str:
        return os.path.join(self.directory, f"{meeting_id}.json")

    def save(self, meeting_id: str, data: dict) -> None:
        os.makedirs(self.directory, exist_ok=True)
        with open(self.path_for(meeting_id), "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)


# -------------------------
# Registry
# -------------------------


class TrackingRegistry:
    """Thread-safe store of every objective and task minted by the tracking stage."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock
        self._lock = threading.Lock()
        self._objectives: Dict[str, Objective] = {}
        self._tasks: Dict[str, Task] = {}

    def register(self, objectives: List[Objective], tasks: List[Task]) -> None:
        with self._lock:
            for o in objectives:
                self._objectives[o.id] = o.model_copy(deep=True)
            for t in tasks:
                self._tasks[t.id] = t.model_copy(deep=True)

    def list_objectives(self) -> List[Objective]:
        with self._lock:
            return [o.model_copy(deep=True) for o in self._objectives.values()]

    def list_tasks(self) -> List[Task]:
        with self._lock:
            return [t.model_copy(deep=True) for t in self._tasks.values()]

    def get_task(self, task_id: str) -> Task:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise NotFoundError("task", task_id)
            return task.model_copy(deep=True)

    def get_objective(self, objective_id: str) -> Objective:
        with self._lock:
            objective = self._objectives.get(objective_id)
            if objective is None:
                raise NotFoundError("objective", objective_id)
            return objective.model_copy(deep=True)

    def update_task_status(self, task_id: str, status: Union[str, TaskStatus]) -> Task:
        try:
            new_status = TaskStatus(status)
        except ValueError:
            raise InvalidTransitionError(
                f"Invalid task status {status!r}. Allowed: {', '.join(s.value for s in TaskStatus)}"
            ) from None
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise NotFoundError("task", task_id)
            task.status = new_status
            task.updated_at = self._clock()
            logger.info("Task %s -> %s", task_id, new_status.value)
            return task.model_copy(deep=True)

    def update_objective_status(self, objective_id: str, status: Union[str, ObjectiveStatus]) -> Objective:
        try:
            new_status = ObjectiveStatus(status)
        except ValueError:
            raise InvalidTransitionError(
                f"Invalid objective status {status!r}. Allowed: {', '.join(s.value for s in ObjectiveStatus)}"
            ) from None
        with self._lock:
            objective = self._objectives.get(objective_id)
            if objective is None:
                raise NotFoundError("objective", objective_id)
            objective.status = new_status
            objective.updated_at = self._clock()
            logger.info("Objective %s -> %s", objective_id, new_status.value)
            return objective.model_copy(deep=True)


# -------------------------
# Stage
# -------------------------


class TrackingStage:
    def __init__(
        self,
        registry: Optional[TrackingRegistry] = None,
        storage: Optional[TrackingStorage] = None,
        cfg: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.registry = registry or TrackingRegistry(clock)
        self.storage = storage
        self.settings = cfg or default_settings
        self.clock = clock

    def track(self, analysis: Optional[AnalysisResult], meeting_id: str) -> TrackingResult:
        now = self.clock()
        today = now.date()
        analysis = analysis or AnalysisResult()

        objectives = [
            Objective(id=str(uuid.uuid4()), text=o.text, created_at=now, meeting_id=meeting_id)
            for o in analysis.objectives
        ]
        tasks: List[Task] = []
        for statement in analysis.tasks:
            task = Task(
                id=str(uuid.uuid4()),
                text=statement.text,
                assignee=infer_assignee(statement.text),
                due_date=infer_due_date(statement.text, today, self.settings.task_default_due_days),
                meeting_id=meeting_id,
                created_at=now,
            )
            objective = find_related_objective(task.text, objectives)
            if objective is not None:
                task.objective_id = objective.id
                if task.id not in objective.related_tasks:
                    objective.related_tasks.append(task.id)
            tasks.append(task)

        return TrackingResult(meeting_id=meeting_id, timestamp=now, objectives=objectives, tasks=tasks)

    def _persist(self, result: TrackingResult) -> None:
        if self.storage is None:
            return
        try:
            self.storage.save(result.meeting_id, result.model_dump(mode="json"))
        except Exception as e:
            logger.warning("tracking: could not persist meeting %s: %s", result.meeting_id, e)

    def empty_result(self, meeting_id: str) -> TrackingResult:
        return TrackingResult(meeting_id=meeting_id, timestamp=self.clock())

    async def run(self, analysis: Optional[AnalysisResult], meeting_id: str) -> StageResult:
        """Non-fatal stage. On failure the payload is an empty TrackingResult."""
        try:
            result = await asyncio.to_thread(self.track, analysis, meeting_id)
            self.registry.register(result.objectives, result.tasks)
        except Exception as e:
            logger.error("%s: failed for meeting %s: %s", TRACKING, meeting_id, e)
            return StageResult.failed(
                f"Tracking failed: {e}", payload=self.empty_result(meeting_id), service_used=ServiceUsed.ERROR_FALLBACK
            )
        self._persist(result)
        logger.info(
            "%s: %d objectives, %d tasks for meeting %s", TRACKING, len(result.objectives), len(result.tasks), meeting_id
        )
        return StageResult.ok(result, ServiceUsed.LOCAL)
