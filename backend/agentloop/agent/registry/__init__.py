from .capability_registry import (
    BUILTIN_SERVICE,
    CapabilityRegistry,
    ServiceDescriptor,
    backend_from_config,
)
from .service_backends import (
    BuiltinServiceBackend,
    CapabilitySpec,
    HttpServiceBackend,
    ServiceBackend,
    StdioServiceBackend,
)

__all__ = [
    "BUILTIN_SERVICE",
    "CapabilityRegistry",
    "ServiceDescriptor",
    "backend_from_config",
    "BuiltinServiceBackend",
    "CapabilitySpec",
    "HttpServiceBackend",
    "ServiceBackend",
    "StdioServiceBackend",
]
