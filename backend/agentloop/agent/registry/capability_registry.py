"""
Capability Registry for the agent loop

Maps service names to backends and dispatches capability calls. The
built-in ``system_tools`` service is always registered; remote services
come from configuration and are recorded even when their probe fails, so
callers can tell an unknown service from a known but unavailable one.

``call_tool`` never raises: every outcome is a CapabilityResult.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..core.runtime.models import CapabilityResult, FailureKind
from ..exceptions import CapabilityError, CapabilityNotFound, ServiceUnavailable
from ..session import ExecutionSession
from ..tools import build_system_tools
from ..workflows.plan_manager import PlanManager
from ...services.config_service import SUPPORTED_SERVICE_TYPES, ServiceConfig
from ...utils.logging import safe_repr
from .service_backends import (
    BuiltinServiceBackend,
    CapabilitySpec,
    HttpServiceBackend,
    ServiceBackend,
    StdioServiceBackend,
    UnavailableServiceBackend,
)

logger = logging.getLogger(__name__)

BUILTIN_SERVICE = "system_tools"
TOOL_NAME_SEPARATOR = "__"


@dataclass
class ServiceDescriptor:
    """Registry view of one service"""
    name: str
    available: bool
    capabilities: Dict[str, CapabilitySpec] = field(default_factory=dict)
    description: str = ""
    priority: int = 1
    builtin: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "available": self.available,
            "builtin": self.builtin,
            "priority": self.priority,
            "description": self.description,
            "capabilities": sorted(self.capabilities),
        }


def backend_from_config(config: ServiceConfig) -> ServiceBackend:
    """Create the backend for a configured service"""
    if config.type == "http":
        return HttpServiceBackend(
            config.name,
            config.url,
            description=config.description,
            priority=config.priority,
            timeout=config.timeout,
            headers=config.headers,
        )
    if config.type == "stdio":
        return StdioServiceBackend(
            config.name,
            config.command,
            args=config.args,
            env=config.env,
            description=config.description,
            priority=config.priority,
            timeout=config.timeout,
        )
    return UnavailableServiceBackend(
        config.name,
        f"unsupported service type '{config.type}' (supported: {', '.join(SUPPORTED_SERVICE_TYPES)})",
        priority=config.priority,
    )


class CapabilityRegistry:
    """
    Registry and dispatcher for capability services

    Provides service registration with availability probing, read-only
    queries over the registered services, and schema-validated dispatch.
    """

    def __init__(
        self,
        session: ExecutionSession,
        plan_manager: Optional[PlanManager] = None,
        workspace_root: Optional[str] = None,
        bash_timeout_ms: Optional[int] = None,
    ):
        self.session = session
        self.plan_manager = plan_manager or PlanManager()
        self.workspace_root = workspace_root
        self.bash_timeout_ms = bash_timeout_ms
        self._backends: Dict[str, ServiceBackend] = {}
        self._descriptors: Dict[str, ServiceDescriptor] = {}
        self._initialized = False
        self._closed = False

    async def initialize(
        self,
        configs: Iterable[ServiceConfig] = (),
        invalid_services: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Register the built-in service, then one backend per enabled config

        ``invalid_services`` maps configured names that failed validation to
        the reason; they are registered as unavailable.
        """
        if self._initialized:
            logger.debug("Capability registry already initialized")
            return
        self._initialized = True
        self._closed = False

        tools = build_system_tools(
            self.session,
            plan_manager=self.plan_manager,
            workspace_root=self.workspace_root,
            bash_timeout_ms=self.bash_timeout_ms,
        )
        await self.register_backend(BuiltinServiceBackend(BUILTIN_SERVICE, tools))

        for config in sorted(configs or (), key=lambda c: c.priority, reverse=True):
            if not config.enabled:
                logger.info(f"Skipping disabled service {config.name}")
                continue
            if config.name == BUILTIN_SERVICE:
                logger.warning(f"Service name '{BUILTIN_SERVICE}' is reserved; skipping configured entry")
                continue
            await self.register_backend(backend_from_config(config))

        for name, reason in (invalid_services or {}).items():
            if name == BUILTIN_SERVICE or name in self._descriptors:
                continue
            await self.register_backend(UnavailableServiceBackend(name, f"invalid configuration: {reason}"))

        available = [d.name for d in self._descriptors.values() if d.available]
        logger.info(f"Capability registry ready: {len(self._descriptors)} service(s), available: {available}")

    async def register_backend(self, backend: ServiceBackend) -> ServiceDescriptor:
        """Probe a backend and record it; an unreachable backend is kept as unavailable"""
        try:
            available = await backend.probe()
        except Exception as e:
            logger.warning(f"Probe for service {backend.name} raised: {e}")
            available = False

        descriptor = ServiceDescriptor(
            name=backend.name,
            available=bool(available),
            capabilities=backend.capabilities() if available else {},
            description=backend.description,
            priority=backend.priority,
            builtin=backend.builtin,
        )
        self._backends[backend.name] = backend
        self._descriptors[backend.name] = descriptor
        if not descriptor.available:
            logger.warning(f"Service {backend.name} registered but unavailable")
        return descriptor

    # Queries

    def get_service(self, name: str) -> Optional[ServiceDescriptor]:
        return self._descriptors.get(name)

    def get_all_services(self) -> List[ServiceDescriptor]:
        return list(self._descriptors.values())

    def get_available_services(self) -> List[ServiceDescriptor]:
        return [d for d in self._descriptors.values() if d.available]

    def is_service_available(self, name: str) -> bool:
        descriptor = self._descriptors.get(name)
        return bool(descriptor and descriptor.available)

    def get_all_available_tools(self) -> Dict[str, List[CapabilitySpec]]:
        return {
            d.name: list(d.capabilities.values())
            for d in self._descriptors.values()
            if d.available
        }

    def find_service_for(self, capability: str) -> Optional[str]:
        """Highest-priority available service exposing ``capability``"""
        candidates = [
            d for d in self._descriptors.values()
            if d.available and capability in d.capabilities
        ]
        if not candidates:
            return None
        candidates.sort(key=lambda d: (d.builtin, d.priority), reverse=True)
        return candidates[0].name

    def exposed_tool_name(self, service: str, capability: str) -> str:
        if service == BUILTIN_SERVICE:
            return capability
        return f"{service}{TOOL_NAME_SEPARATOR}{capability}"

    def resolve_tool_name(self, tool_name: str) -> Tuple[str, str]:
        """Map a model-facing tool name back to (service, capability)"""
        if TOOL_NAME_SEPARATOR in tool_name:
            service, capability = tool_name.split(TOOL_NAME_SEPARATOR, 1)
            if service in self._descriptors:
                return service, capability
        builtin = self._descriptors.get(BUILTIN_SERVICE)
        if builtin and tool_name in builtin.capabilities:
            return BUILTIN_SERVICE, tool_name
        service = self.find_service_for(tool_name)
        return (service or BUILTIN_SERVICE), tool_name

    def to_openai_tools(self) -> List[Dict[str, Any]]:
        tools = []
        for descriptor in self.get_available_services():
            for spec in descriptor.capabilities.values():
                tools.append(spec.to_openai_tool(self.exposed_tool_name(descriptor.name, spec.name)))
        return tools

    # Dispatch

    async def call_tool(self, service: str, capability: str, arguments: Optional[Dict[str, Any]] = None) -> CapabilityResult:
        """Dispatch one capability call and normalize the outcome"""
        try:
            backend, descriptor = self._resolve(service, capability)
            checked = backend.validate(capability, arguments if arguments is not None else {})
        except CapabilityError as e:
            logger.info(f"Rejected call {service}.{capability}: {e}")
            return CapabilityResult.from_exception(e)

        logger.info(f"Calling {service}.{capability} with {safe_repr(checked)}")
        try:
            result = await backend.invoke(capability, checked)
        except CapabilityError as e:
            logger.error(f"Capability {service}.{capability} failed: {e}")
            return CapabilityResult.from_exception(e)
        except Exception as e:
            logger.error(f"Capability {service}.{capability} raised {type(e).__name__}: {e}")
            return CapabilityResult.fail(
                f"{service}.{capability} raised {type(e).__name__}: {e}", FailureKind.execution_error
            )

        if result is None:
            return CapabilityResult.fail(f"{service}.{capability} returned no result", FailureKind.execution_error)
        if not result.success:
            return CapabilityResult.fail(
                result.error or f"{service}.{capability} failed", result.kind or FailureKind.execution_error
            )
        return CapabilityResult.ok(result.data)

    def _resolve(self, service: str, capability: str) -> Tuple[ServiceBackend, ServiceDescriptor]:
        descriptor = self._descriptors.get(service)
        if descriptor is None:
            raise ServiceUnavailable(f"Unknown service: {service}", service=service, capability=capability)
        if not descriptor.available or self._closed:
            raise ServiceUnavailable(f"Service {service} is unavailable", service=service, capability=capability)
        if capability not in descriptor.capabilities:
            raise CapabilityNotFound(
                f"Service {service} has no capability '{capability}'", service=service, capability=capability
            )
        return self._backends[service], descriptor

    async def shutdown(self) -> None:
        """Close every backend; safe to call more than once"""
        if self._closed:
            return
        self._closed = True
        for name, backend in self._backends.items():
            try:
                await backend.close()
            except Exception as e:
                logger.warning(f"Error closing service {name}: {e}")
        logger.info("Capability registry shut down")
