"""
Plan/step state machine for multi-step tasks.

A Plan is an ordered list of Steps plus a pointer to the step currently
being worked on. PlanManager keeps several plans keyed by id and an active
plan used when callers omit the id.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

from ..exceptions import (
    InvalidStepTransition,
    PlanAlreadyExists,
    PlanNotFound,
    StepIndexOutOfRange,
    ValidationError,
)

logger = logging.getLogger(__name__)


class StepStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"


ALLOWED_TRANSITIONS: Dict[StepStatus, frozenset] = {
    StepStatus.NOT_STARTED: frozenset({StepStatus.IN_PROGRESS, StepStatus.COMPLETED, StepStatus.BLOCKED}),
    StepStatus.IN_PROGRESS: frozenset({StepStatus.COMPLETED, StepStatus.BLOCKED}),
    StepStatus.BLOCKED: frozenset({StepStatus.NOT_STARTED, StepStatus.COMPLETED}),
    StepStatus.COMPLETED: frozenset(),
}

STATUS_SYMBOLS = {
    StepStatus.NOT_STARTED: "[ ]",
    StepStatus.IN_PROGRESS: "[→]",
    StepStatus.COMPLETED: "[✓]",
    StepStatus.BLOCKED: "[!]",
}


@dataclass
class Step:
    description: str
    status: StepStatus = StepStatus.NOT_STARTED
    notes: str = ""

    def copy(self) -> "Step":
        return Step(self.description, self.status, self.notes)


@dataclass
class Plan:
    """One tracked plan. Mutations are serialized by the plan's own lock."""

    plan_id: str
    title: str = ""
    steps: List[Step] = field(default_factory=list)
    current_step_index: int = 0
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def init_plan(self, descriptions: Sequence[str]) -> bool:
        """Set the steps only if the plan is empty; returns whether it did."""
        with self._lock:
            if self.steps:
                logger.debug(f"Plan {self.plan_id}: init_plan ignored, plan already has {len(self.steps)} step(s)")
                return False
            self.steps = [Step(str(d)) for d in descriptions]
            self.current_step_index = 0
            return True

    def mark_step_done(self, index: int) -> None:
        with self._lock:
            self._check_index(index)
            self.steps[index].status = StepStatus.COMPLETED
            self._advance_pointer()

    def mark_step(self, index: int, status: StepStatus, notes: Optional[str] = None) -> Step:
        """Explicit status change, checked against ALLOWED_TRANSITIONS."""
        status = StepStatus(status)
        with self._lock:
            self._check_index(index)
            step = self.steps[index]
            if status != step.status:
                if status not in ALLOWED_TRANSITIONS[step.status]:
                    raise InvalidStepTransition(
                        f"Step {index} cannot move from {step.status.value} to {status.value}"
                    )
                if status == StepStatus.IN_PROGRESS:
                    busy = self._in_progress_index()
                    if busy is not None:
                        raise InvalidStepTransition(
                            f"Step {busy} is already in progress; finish or block it first"
                        )
                step.status = status
            if notes is not None:
                step.notes = notes
            if status == StepStatus.COMPLETED:
                self._advance_pointer()
            return step.copy()

    def insert_priority_step(self, description: str) -> int:
        """Insert a not_started step at the pointer so it is addressed next."""
        with self._lock:
            index = min(self.current_step_index, len(self.steps))
            self.steps.insert(index, Step(description))
            self.current_step_index = index
            return index

    def replace_steps(self, descriptions: Sequence[str]) -> None:
        """Swap in new step texts, keeping status and notes where the text is unchanged."""
        with self._lock:
            old = self.steps
            new_steps: List[Step] = []
            for i, desc in enumerate(descriptions):
                if i < len(old) and old[i].description == desc:
                    new_steps.append(old[i].copy())
                else:
                    new_steps.append(Step(desc))
            self.steps = new_steps
            self.current_step_index = min(self.current_step_index, max(len(new_steps) - 1, 0))
            self._advance_pointer()

    def get_current_step_index(self) -> int:
        with self._lock:
            return self.current_step_index

    def get_steps(self) -> List[Step]:
        with self._lock:
            return [s.copy() for s in self.steps]

    def progress(self) -> Dict[str, int]:
        with self._lock:
            counts = {status.value: 0 for status in StepStatus}
            for step in self.steps:
                counts[step.status.value] += 1
            counts["total"] = len(self.steps)
            return counts

    def format(self) -> str:
        with self._lock:
            header = f"Plan: {self.title} (ID: {self.plan_id})"
            lines = [header, "=" * len(header), ""]
            counts = self.progress()
            total = counts["total"]
            completed = counts[StepStatus.COMPLETED.value]
            pct = f"{completed / total * 100:.1f}%" if total else "0%"
            lines.append(f"Progress: {completed}/{total} steps completed ({pct})")
            lines.append(
                f"Status: {completed} completed, {counts[StepStatus.IN_PROGRESS.value]} in progress, "
                f"{counts[StepStatus.BLOCKED.value]} blocked, {counts[StepStatus.NOT_STARTED.value]} not started"
            )
            lines.append("")
            lines.append("Steps:")
            for i, step in enumerate(self.steps):
                lines.append(f"{i}. {STATUS_SYMBOLS[step.status]} {step.description}")
                if step.notes:
                    lines.append(f"   Notes: {step.notes}")
            return "\n".join(lines)

    def to_dict(self) -> Dict:
        with self._lock:
            return {
                "plan_id": self.plan_id,
                "title": self.title,
                "current_step_index": self.current_step_index,
                "steps": [
                    {"description": s.description, "status": s.status.value, "notes": s.notes}
                    for s in self.steps
                ],
            }

    def _check_index(self, index: int) -> None:
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(self.steps):
            raise StepIndexOutOfRange(
                f"Step index {index} out of range for plan '{self.plan_id}' with {len(self.steps)} step(s)"
            )

    def _in_progress_index(self) -> Optional[int]:
        for i, step in enumerate(self.steps):
            if step.status == StepStatus.IN_PROGRESS:
                return i
        return None

    def _advance_pointer(self) -> None:
        # Move to the first unfinished step; stay put once everything is done
        for i, step in enumerate(self.steps):
            if step.status != StepStatus.COMPLETED:
                self.current_step_index = i
                return


class PlanManager:
    """Plans keyed by id, plus the active plan used when no id is given."""

    def __init__(self):
        self._plans: Dict[str, Plan] = {}
        self._active_plan_id: Optional[str] = None
        self._lock = threading.Lock()
        self._turn_locks: Dict[str, asyncio.Lock] = {}

    @property
    def active_plan_id(self) -> Optional[str]:
        return self._active_plan_id

    def turn_lock(self, plan_id: str) -> asyncio.Lock:
        """The lock every flow on ``plan_id`` runs its turn under."""
        with self._lock:
            lock = self._turn_locks.get(plan_id)
            if lock is None:
                lock = self._turn_locks[plan_id] = asyncio.Lock()
            return lock

    def create_plan(self, plan_id: str, title: str, steps: Sequence[str]) -> Plan:
        if not plan_id:
            raise ValidationError("Parameter `plan_id` is required for command: create")
        if not title:
            raise ValidationError("Parameter `title` is required for command: create")
        if not steps or not all(isinstance(s, str) for s in steps):
            raise ValidationError("Parameter `steps` must be a non-empty list of strings for command: create")
        with self._lock:
            if plan_id in self._plans:
                raise PlanAlreadyExists(
                    f"A plan with ID '{plan_id}' already exists. Use 'update' to modify existing plans."
                )
            plan = Plan(plan_id=plan_id, title=title)
            plan.init_plan(steps)
            self._plans[plan_id] = plan
            self._active_plan_id = plan_id
        logger.info(f"Created plan {plan_id} with {len(steps)} step(s)")
        return plan

    def ensure_plan(self, plan_id: str, title: str = "") -> Plan:
        """Return the plan, creating an empty one if it does not exist yet."""
        with self._lock:
            plan = self._plans.get(plan_id)
            if plan is None:
                plan = Plan(plan_id=plan_id, title=title or plan_id)
                self._plans[plan_id] = plan
            if self._active_plan_id is None:
                self._active_plan_id = plan_id
            return plan

    def get_plan(self, plan_id: Optional[str] = None) -> Plan:
        with self._lock:
            if not plan_id:
                if not self._active_plan_id:
                    raise PlanNotFound("No active plan. Please specify a plan_id or set an active plan.")
                plan_id = self._active_plan_id
            plan = self._plans.get(plan_id)
        if plan is None:
            raise PlanNotFound(f"No plan found with ID: {plan_id}")
        return plan

    def update_plan(self, plan_id: str, title: Optional[str] = None, steps: Optional[Sequence[str]] = None) -> Plan:
        if not plan_id:
            raise ValidationError("Parameter `plan_id` is required for command: update")
        plan = self.get_plan(plan_id)
        if steps is not None and not all(isinstance(s, str) for s in steps):
            raise ValidationError("Parameter `steps` must be a list of strings for command: update")
        if title:
            plan.title = title
        if steps is not None:
            plan.replace_steps(steps)
        return plan

    def list_plans(self) -> List[Plan]:
        with self._lock:
            return list(self._plans.values())

    def delete_plan(self, plan_id: str) -> None:
        if not plan_id:
            raise ValidationError("Parameter `plan_id` is required for command: delete")
        with self._lock:
            if plan_id not in self._plans:
                raise PlanNotFound(f"No plan found with ID: {plan_id}")
            del self._plans[plan_id]
            if self._active_plan_id == plan_id:
                self._active_plan_id = None
        logger.info(f"Deleted plan {plan_id}")

    def set_active(self, plan_id: str) -> Plan:
        if not plan_id:
            raise ValidationError("Parameter `plan_id` is required for command: set_active")
        plan = self.get_plan(plan_id)
        with self._lock:
            self._active_plan_id = plan_id
        return plan

    def mark_step(
        self,
        plan_id: Optional[str],
        step_index: int,
        step_status: Optional[StepStatus] = None,
        step_notes: Optional[str] = None,
    ) -> Plan:
        plan = self.get_plan(plan_id)
        if step_status is None:
            # Notes-only edit keeps the current status
            current = plan.get_steps()
            if not 0 <= step_index < len(current):
                raise StepIndexOutOfRange(f"Invalid step_index: {step_index}. Valid indices range from 0 to {len(current) - 1}.")
            step_status = current[step_index].status
        plan.mark_step(step_index, step_status, step_notes)
        return plan
