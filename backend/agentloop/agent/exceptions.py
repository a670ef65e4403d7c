"""
Error taxonomy for the agent loop.

Capability-level errors carry a FailureKind so the dispatcher can fold them
into a CapabilityResult. Plan errors are raised by the plan state machine and
turned into failure results by the planning capability.
"""

from typing import Optional

from .core.runtime.models import FailureKind


class AgentLoopError(Exception):
    """Base exception for all agent loop errors."""


class CapabilityError(AgentLoopError):
    """Base class for errors that become a failed CapabilityResult."""

    kind: FailureKind = FailureKind.execution_error

    def __init__(self, message: str, service: Optional[str] = None, capability: Optional[str] = None):
        super().__init__(message)
        self.service = service
        self.capability = capability


class ValidationError(CapabilityError):
    """Capability arguments are missing or malformed."""

    kind = FailureKind.validation_error


class ExecutionError(CapabilityError):
    """The backend raised or the underlying process exited non-zero."""

    kind = FailureKind.execution_error


class ServiceUnavailable(CapabilityError):
    """The target service is unknown or failed its probe."""

    kind = FailureKind.service_unavailable


class CapabilityNotFound(CapabilityError):
    """The service is known but does not expose the capability."""

    kind = FailureKind.capability_not_found


class PlanError(AgentLoopError):
    """Base class for plan management errors.

    A plan error always means the request named a missing plan, a bad step
    or a disallowed transition, so it is reported as a validation failure.
    """

    kind: FailureKind = FailureKind.validation_error


class PlanNotFound(PlanError):
    pass


class PlanAlreadyExists(PlanError):
    pass


class StepIndexOutOfRange(PlanError, IndexError):
    pass


class InvalidStepTransition(PlanError):
    pass


class OrchestrationFailure(AgentLoopError):
    """A whole worker turn failed inside PlanningFlow.execute."""

    def __init__(self, message: str, step_index: Optional[int] = None):
        super().__init__(message)
        self.step_index = step_index
