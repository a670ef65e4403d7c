"""
Conversation memory for agent sessions.

Append-only history with an at-most-once guarantee for tool results: a
message carrying a tool_call_id that was already applied is dropped.
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from ..core.runtime.models import Message

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_FLOOR = 5


class Memory:
    """Session-scoped, deduplicated message store."""

    def __init__(self, retention_floor: int = DEFAULT_RETENTION_FLOOR, max_messages: Optional[int] = None):
        if retention_floor < 0:
            raise ValueError("retention_floor must be non-negative")
        if max_messages is not None and max_messages < 1:
            raise ValueError("max_messages must be positive")
        self.retention_floor = retention_floor
        self.max_messages = max_messages
        self._messages: List[Message] = []
        self._applied_tool_call_ids: Set[str] = set()
        # Parallel tool results from one turn may race on the dedup check
        self._lock = threading.Lock()

    def add_message(self, message: Message) -> bool:
        """Append a message; returns False when it was dropped as a duplicate."""
        with self._lock:
            tool_call_id = message.tool_call_id
            if tool_call_id:
                if tool_call_id in self._applied_tool_call_ids:
                    logger.debug(f"Memory: dropping duplicate tool result {tool_call_id}")
                    return False
                self._applied_tool_call_ids.add(tool_call_id)
            self._messages.append(message)
            if self.max_messages is not None and len(self._messages) > self.max_messages:
                del self._messages[: len(self._messages) - self.max_messages]
            return True

    def add_messages(self, messages: Iterable[Message]) -> int:
        return sum(1 for m in messages if self.add_message(m))

    def clear(self) -> None:
        """Truncate to the retention floor and forget applied tool_call_ids."""
        with self._lock:
            if len(self._messages) > self.retention_floor:
                dropped = len(self._messages) - self.retention_floor
                self._messages = self._messages[dropped:] if self.retention_floor else []
                logger.info(f"Memory: cleared {dropped} message(s), kept {len(self._messages)}")
            self._applied_tool_call_ids.clear()

    def get_messages(self) -> Tuple[Message, ...]:
        with self._lock:
            return tuple(self._messages)

    def get_recent_messages(self, n: int) -> Tuple[Message, ...]:
        if n <= 0:
            return ()
        with self._lock:
            return tuple(self._messages[-n:])

    def has_tool_result(self, tool_call_id: str) -> bool:
        with self._lock:
            return tool_call_id in self._applied_tool_call_ids

    def to_dict_list(self) -> List[Dict[str, Any]]:
        return [m.to_dict() for m in self.get_messages()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)
