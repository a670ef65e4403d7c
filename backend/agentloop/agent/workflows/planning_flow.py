"""
Planning flow: the orchestrator for one prompt

``execute`` makes sure the session's plan has steps, runs one worker turn
against the current step and reconciles the outcome into the plan. A failed
turn is never retried here: the step is blocked, a remediation step is
inserted in front of it and the failure comes back as a status string.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Protocol

from ..exceptions import OrchestrationFailure, PlanError
from ..session import ExecutionSession
from .plan_manager import Plan, PlanManager, StepStatus

logger = logging.getLogger(__name__)

DEFAULT_PLAN_ID = "default"


class TurnRunner(Protocol):
    async def run(self, request: Optional[str] = None) -> str:
        ...


def default_steps(prompt: str) -> List[str]:
    return [
        f"Analyze the request: {prompt}",
        "Produce a plan",
        "Execute the plan",
        "Verify the result",
    ]


class BaseFlow(ABC):
    """A flow turns one prompt into a final status string"""

    @abstractmethod
    async def execute(self, prompt: str) -> str:
        pass


class PlanningFlow(BaseFlow):
    """Plan-driven orchestration of worker turns"""

    def __init__(
        self,
        agent: TurnRunner,
        plan_manager: Optional[PlanManager] = None,
        session: Optional[ExecutionSession] = None,
        plan_id: str = DEFAULT_PLAN_ID,
        plan_title: Optional[str] = None,
    ):
        self.agent = agent
        self.plan_manager = plan_manager or PlanManager()
        self.session = session or getattr(agent, "session", None) or ExecutionSession()
        self.plan_id = plan_id
        self.plan_title = plan_title
        self.last_failure: Optional[OrchestrationFailure] = None

    async def execute(self, prompt: str) -> str:
        # Shared by every flow on this plan id, not just this instance
        turn_lock = self.plan_manager.turn_lock(self.plan_id)
        if turn_lock.locked():
            logger.warning(f"Rejected concurrent turn on plan {self.plan_id}")
            return f"Flow execution rejected: plan '{self.plan_id}' already has a turn in progress"

        async with turn_lock:
            return await self._execute_turn(prompt)

    async def _execute_turn(self, prompt: str) -> str:
        logger.info(f"Starting planning flow on plan {self.plan_id}")
        self.session.reset()
        plan = self.plan_manager.ensure_plan(self.plan_id, self.plan_title or prompt[:60])
        if plan.init_plan(default_steps(prompt)):
            logger.info(f"Initialized default plan {self.plan_id}")

        step_index = plan.get_current_step_index()
        self._begin_step(plan, step_index)

        try:
            result = await self.agent.run(prompt)
        except Exception as e:
            failure = OrchestrationFailure(f"{type(e).__name__}: {e}" if str(e) else type(e).__name__, step_index)
            return self._recover(plan, step_index, failure)

        try:
            plan.mark_step_done(step_index)
            logger.info(f"Plan {self.plan_id}: step {step_index} completed")
        except PlanError as e:
            # The worker may have rewritten the plan during the turn
            logger.warning(f"Plan {self.plan_id}: could not mark step {step_index} done: {e}")
        self.last_failure = None
        return f"Flow execution completed: step {step_index} done.\n\n{result}"

    def _begin_step(self, plan: Plan, index: int) -> None:
        steps = plan.get_steps()
        if not 0 <= index < len(steps):
            return
        try:
            if steps[index].status == StepStatus.BLOCKED:
                plan.mark_step(index, StepStatus.NOT_STARTED)
                steps[index].status = StepStatus.NOT_STARTED
            if steps[index].status == StepStatus.NOT_STARTED:
                plan.mark_step(index, StepStatus.IN_PROGRESS)
        except PlanError as e:
            logger.debug(f"Plan {self.plan_id}: leaving step {index} as is: {e}")

    def _recover(self, plan: Plan, index: int, failure: OrchestrationFailure) -> str:
        self.last_failure = failure
        logger.error(f"Flow execution failed on plan {self.plan_id}, step {index}: {failure}")
        # Recovery edits the plan object the turn started on, even if the
        # worker deleted or replaced it under this id meanwhile
        try:
            plan.mark_step(index, StepStatus.BLOCKED, notes=str(failure))
        except PlanError as e:
            logger.debug(f"Plan {self.plan_id}: could not block step {index}: {e}")
        inserted = plan.insert_priority_step(f"Handle execution exception: {failure}")
        logger.info(f"Plan {self.plan_id}: inserted recovery step at {inserted}")
        return f"Flow execution failed: {failure}"

    def get_plan_text(self) -> str:
        try:
            return self.plan_manager.get_plan(self.plan_id).format()
        except PlanError as e:
            return str(e)
