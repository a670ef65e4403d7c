"""
Agent package: capability registry, plans, workers and flows
"""

from .exceptions import (
    AgentLoopError,
    CapabilityError,
    CapabilityNotFound,
    ExecutionError,
    OrchestrationFailure,
    PlanError,
    ServiceUnavailable,
    ValidationError,
)
from .session import ExecutionSession
from .memory import Memory
from .workflows import FlowFactory, FlowType, PlanManager, PlanningFlow, StepStatus
from .registry import CapabilityRegistry
from .core.runtime.tool_call_agent import ToolCallAgent

__all__ = [
    "AgentLoopError",
    "CapabilityError",
    "CapabilityNotFound",
    "ExecutionError",
    "OrchestrationFailure",
    "PlanError",
    "ServiceUnavailable",
    "ValidationError",
    "ExecutionSession",
    "Memory",
    "FlowFactory",
    "FlowType",
    "PlanManager",
    "PlanningFlow",
    "StepStatus",
    "CapabilityRegistry",
    "ToolCallAgent",
]
