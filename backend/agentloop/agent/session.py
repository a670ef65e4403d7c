"""
Execution session: the termination controller for one orchestration run.

Created per run and handed to every component that observes or sets the
``executing`` flag, so separate sessions never interfere with each other.
"""

import logging
import uuid
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_TERMINATE_REASON = "no pending tasks or capability calls"


class ExecutionSession:
    """Holds the ``executing`` flag for one orchestration run."""

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id or str(uuid.uuid4())
        self._executing = False
        self.termination_reason: Optional[str] = None

    @property
    def executing(self) -> bool:
        return self._executing

    @property
    def terminated(self) -> bool:
        return self.termination_reason is not None

    def set_executing(self, flag: bool) -> None:
        self._executing = bool(flag)
        logger.debug(f"Session {self.session_id}: executing={self._executing}")

    def check_and_terminate(self, reason: str = DEFAULT_TERMINATE_REASON) -> bool:
        """Report whether the loop may stop because nothing is in flight."""
        if not self._executing:
            logger.info(f"Session {self.session_id}: auto-terminating ({reason})")
            return True
        return False

    def terminate(self, reason: str) -> str:
        self._executing = False
        self.termination_reason = reason
        logger.info(f"Session {self.session_id}: execution terminated: {reason}")
        return reason

    def reset(self) -> None:
        self._executing = False
        self.termination_reason = None
