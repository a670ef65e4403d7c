from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Set

from .models import Message, Role

logger = logging.getLogger(__name__)


def ensure_tool_call_integrity(messages: Sequence[Message]) -> List[Message]:
    """Make a history acceptable to chat-completion providers.

    - Drops tool messages whose tool_call_id has no preceding assistant call
      (typical after memory truncation) and duplicate results
    - Strips assistant tool calls that never received a result; the message
      is kept only if it still has content

    Returns a new list; the input is not modified.
    """
    answered: Set[str] = {m.tool_call_id for m in messages if m.role == Role.tool and m.tool_call_id}

    safe: List[Message] = []
    offered: Set[str] = set()
    seen_results: Set[str] = set()
    for i, m in enumerate(messages):
        if m.role == Role.assistant and m.tool_calls:
            kept = tuple(tc for tc in m.tool_calls if tc.id in answered)
            if len(kept) != len(m.tool_calls):
                logger.warning(
                    f"Removing {len(m.tool_calls) - len(kept)} unanswered tool call(s) at position {i}"
                )
            if kept:
                offered.update(tc.id for tc in kept)
                m = Message(role=m.role, content=m.content, tool_calls=kept, name=m.name)
            elif m.content:
                m = Message.assistant(m.content)
            else:
                continue
            safe.append(m)
            continue

        if m.role == Role.tool:
            if not m.tool_call_id or m.tool_call_id not in offered:
                logger.warning(f"Removing orphan tool result at position {i}")
                continue
            if m.tool_call_id in seen_results:
                logger.warning(f"Removing duplicate tool result {m.tool_call_id}")
                continue
            seen_results.add(m.tool_call_id)
        safe.append(m)
    return safe


def build_request_messages(
    history: Sequence[Message],
    system_prompt: Optional[str] = None,
    next_step_prompt: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Provider-ready message dicts: system prompt first, sanitized history, optional nudge."""
    msgs: List[Dict[str, Any]] = []
    has_system = any(m.role == Role.system for m in history)
    if system_prompt and not has_system:
        msgs.append(Message.system(system_prompt).to_dict())
    msgs.extend(m.to_dict() for m in ensure_tool_call_integrity(history))
    if next_step_prompt:
        msgs.append(Message.user(next_step_prompt).to_dict())
    return msgs
