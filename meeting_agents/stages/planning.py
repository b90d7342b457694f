"""
Stage 5: action plan with Gantt data from tracked objectives and tasks.
The plan is generated remotely from the raw transcript when one is given and the remote service is available;
otherwise it is scheduled locally from the tracked entities.
"""
import logging
import threading
import uuid
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional

from meeting_agents.core.config import Settings, settings as default_settings
from meeting_agents.core.errors import InputError, NotFoundError, RemoteResponseError
from meeting_agents.models.entities import (
    Dependency,
    DependencyType,
    GanttData,
    GanttTask,
    Objective,
    Plan,
    PlanObjective,
    Task,
    TaskStatus,
)
from meeting_agents.services.remote_ai import RemoteAIService
from meeting_agents.stages.base import PLANNING, ServiceUsed, StageResult, remote_then_local, utc_now

logger = logging.getLogger(__name__)

TASK_DURATION_DAYS = 3
UNDATED_SLOT_DAYS = 2
CONTINGENCY_TASK_TEXT = "Review the action plan manually"

_PROGRESS = {TaskStatus.DONE: 1.0, TaskStatus.IN_PROGRESS: 0.5}


def task_progress(status: TaskStatus) -> float:
    return _PROGRESS.get(status, 0.0)


def build_gantt(tasks: List[Task], start_date: date) -> GanttData:
    """
    Schedule tasks by due date (undated tasks last, ties keep input order).
    Dated task: ends on its due date and starts 3 days earlier. Undated task at sorted position i: starts
    start_date + 2*i days and lasts 3 days. Each task depends finish-to-start on the one before it.
    """
    ordered = sorted(tasks, key=lambda t: (t.due_date is None, t.due_date or date.max))
    gantt_tasks: List[GanttTask] = []
    dependencies: List[Dependency] = []
    for i, task in enumerate(ordered):
        if task.due_date is not None:
            end = task.due_date
            start = end - timedelta(days=TASK_DURATION_DAYS)
        else:
            start = start_date + timedelta(days=i * UNDATED_SLOT_DAYS)
            end = start + timedelta(days=TASK_DURATION_DAYS)
        gantt_tasks.append(
            GanttTask(
                id=task.id,
                text=task.text,
                start_date=start,
                end_date=end,
                progress=task_progress(task.status),
                assignee=task.assignee,
            )
        )
        if i > 0:
            previous = ordered[i - 1]
            dependencies.append(
                Dependency(
                    id=f"{i}_{i - 1}",
                    source_task_id=previous.id,
                    target_task_id=task.id,
                    type=DependencyType.FINISH_TO_START,
                )
            )
    return GanttData(tasks=gantt_tasks, dependencies=dependencies)


def has_cycle(dependencies: List[Dependency]) -> bool:
    """Depth-first search over source -> target edges."""
    graph: Dict[str, List[str]] = {}
    for dep in dependencies:
        graph.setdefault(dep.source_task_id, []).append(dep.target_task_id)
    visiting, done = set(), set()

    def visit(node: str) -> bool:
        if node in done:
            return False
        if node in visiting:
            return True
        visiting.add(node)
        if any(visit(n) for n in graph.get(node, [])):
            return True
        visiting.discard(node)
        done.add(node)
        return False

    return any(visit(node) for node in list(graph))


class PlanningStage:
    def __init__(
        self,
        remote: Optional[RemoteAIService] = None,
        cfg: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.remote = remote
        self.settings = cfg or default_settings
        self.clock = clock
        self._plans: Dict[str, Plan] = {}
        self._lock = threading.Lock()

    # ---- registry ----

    def _store(self, plan: Plan) -> None:
        with self._lock:
            self._plans[plan.id] = plan.model_copy(deep=True)

    def get_plan(self, plan_id: str) -> Plan:
        with self._lock:
            plan = self._plans.get(plan_id)
            if plan is None:
                raise NotFoundError("plan", plan_id)
            return plan.model_copy(deep=True)

    def list_plans(self) -> List[Plan]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self._plans.values()]

    # ---- strategies ----

    def generate_gantt_chart(self, tasks: List[Task], start_date: Optional[date] = None) -> GanttData:
        """Gantt data for a bare task list, independent of a plan."""
        if not tasks:
            raise InputError("At least one task is required to build a Gantt chart")
        return build_gantt(tasks, start_date or self.clock().date())

    def _remote(self, raw_text: str) -> Plan:
        plan = Plan.model_validate(self.remote.plan(raw_text))
        if has_cycle(plan.gantt_data.dependencies):
            raise RemoteResponseError("Remote plan has cyclic dependencies")
        return plan.model_copy(update={"id": str(uuid.uuid4())})

    def plan_locally(self, objectives: List[Objective], tasks: List[Task], name: str = "Action plan") -> Plan:
        start = self.clock().date()
        due_dates = [t.due_date for t in tasks if t.due_date is not None]
        end = max(due_dates) if due_dates else start + timedelta(days=self.settings.plan_default_days)

        buckets: List[PlanObjective] = [PlanObjective(id=o.id, text=o.text) for o in objectives]
        unassigned: List[Task] = []
        for task in tasks:
            owner = next((i for i, o in enumerate(objectives) if task.id in o.related_tasks), None)
            if owner is None:
                unassigned.append(task)
            else:
                buckets[owner].tasks.append(task.id)

        return Plan(
            id=str(uuid.uuid4()),
            name=name,
            description=f"Plan built from {len(objectives)} objectives and {len(tasks)} tasks",
            start_date=start,
            end_date=end,
            objectives=buckets,
            unassigned_tasks=unassigned,
            gantt_data=build_gantt(tasks, start),
        )

    def contingency_plan(self, name: str = "Action plan") -> Plan:
        """Single review task spanning contingency_plan_days; used when planning fails."""
        start = self.clock().date()
        end = start + timedelta(days=self.settings.contingency_plan_days)
        task = Task(id=str(uuid.uuid4()), text=CONTINGENCY_TASK_TEXT, due_date=end, created_at=self.clock())
        gantt = GanttData(
            tasks=[GanttTask(id=task.id, text=task.text, start_date=start, end_date=end, assignee=task.assignee)]
        )
        return Plan(
            id=str(uuid.uuid4()),
            name=f"{name} (contingency)",
            description="Automatic planning failed; review the meeting outcomes manually.",
            start_date=start,
            end_date=end,
            unassigned_tasks=[task],
            gantt_data=gantt,
        )

    async def run(
        self,
        objectives: List[Objective],
        tasks: List[Task],
        raw_text: Optional[str] = None,
        name: str = "Action plan",
    ) -> StageResult:
        """Non-fatal stage. On failure the payload is the contingency plan (service_used=error-fallback)."""
        try:
            remote_call = None
            if raw_text and self.remote is not None and self.remote.is_available():
                remote_call = lambda: self._remote(raw_text)  # noqa: E731

            plan, service = await remote_then_local(
                PLANNING, remote_call, lambda: self.plan_locally(objectives, tasks, name)
            )
        except Exception as e:
            logger.error("planning: failed: %s; returning contingency plan", e)
            plan = self.contingency_plan(name)
            self._store(plan)
            return StageResult.failed(f"Planning failed: {e}", payload=plan, service_used=ServiceUsed.ERROR_FALLBACK)

        self._store(plan)
        logger.info("planning: plan %s with %d gantt tasks", plan.id, len(plan.gantt_data.tasks))
        return StageResult.ok(plan, service)
