"""
Worker variants
"""

from .base_worker import Action, Worker
from .llm_worker import LLMWorker
from .scripted_worker import ScriptedWorker
from .worker_registry import WorkerRegistry, get_worker_registry

__all__ = ["Action", "Worker", "LLMWorker", "ScriptedWorker", "WorkerRegistry", "get_worker_registry"]
