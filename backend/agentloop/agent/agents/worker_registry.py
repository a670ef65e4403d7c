"""
Worker registry: named worker variants resolved to their classes
"""

import logging
from typing import Any, Dict, List, Optional, Type

from .base_worker import Worker
from .llm_worker import LLMWorker
from .scripted_worker import ScriptedWorker

logger = logging.getLogger(__name__)


class WorkerRegistry:
    """Maps variant names to Worker subclasses"""

    def __init__(self):
        self._workers: Dict[str, Type[Worker]] = {}

    def register(self, name: str, worker_cls: Type[Worker]) -> None:
        if not isinstance(worker_cls, type) or not issubclass(worker_cls, Worker):
            raise TypeError(f"{worker_cls!r} is not a Worker subclass")
        if name in self._workers:
            logger.debug(f"Replacing worker variant {name}")
        self._workers[name] = worker_cls

    def get(self, name: str) -> Optional[Type[Worker]]:
        return self._workers.get(name)

    def create(self, name: str, **kwargs: Any) -> Worker:
        worker_cls = self._workers.get(name)
        if worker_cls is None:
            raise KeyError(f"Unknown worker '{name}'. Available: {', '.join(self.names())}")
        return worker_cls(**kwargs)

    def names(self) -> List[str]:
        return sorted(self._workers)


# Global registry instance
_registry: Optional[WorkerRegistry] = None


def get_worker_registry() -> WorkerRegistry:
    """Get the global worker registry with the built-in variants"""
    global _registry
    if _registry is None:
        _registry = WorkerRegistry()
        _registry.register(LLMWorker.name, LLMWorker)
        _registry.register(ScriptedWorker.name, ScriptedWorker)
    return _registry
