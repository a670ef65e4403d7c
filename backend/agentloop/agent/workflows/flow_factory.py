"""
Flow factory and flow types
"""

from enum import Enum
from typing import Any, Optional

from ..session import ExecutionSession
from .plan_manager import PlanManager
from .planning_flow import BaseFlow, PlanningFlow, TurnRunner


class FlowType(str, Enum):
    PLANNING = "planning"


class FlowFactory:
    """Creates flow instances by type"""

    @staticmethod
    def create_flow(
        flow_type: FlowType,
        agent: TurnRunner,
        plan_manager: Optional[PlanManager] = None,
        session: Optional[ExecutionSession] = None,
        **kwargs: Any,
    ) -> BaseFlow:
        try:
            flow_type = FlowType(flow_type)
        except ValueError:
            raise ValueError(f"Unsupported flow type: {flow_type}") from None

        if flow_type == FlowType.PLANNING:
            return PlanningFlow(agent, plan_manager=plan_manager, session=session, **kwargs)
        raise ValueError(f"Unsupported flow type: {flow_type}")
