from .plan_manager import Plan, PlanManager, Step, StepStatus
from .planning_flow import BaseFlow, PlanningFlow
from .flow_factory import FlowFactory, FlowType

__all__ = [
    "Plan",
    "PlanManager",
    "Step",
    "StepStatus",
    "BaseFlow",
    "PlanningFlow",
    "FlowFactory",
    "FlowType",
]
