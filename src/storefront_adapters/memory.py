import copy
import logging
import threading
from typing import Any, Dict

from .base import SyncAdapter, payload_key

logger = logging.getLogger(__name__)


class MemorySyncAdapter(SyncAdapter):
    """
    In-process adapter that stores payloads keyed by their content hash.

    Re-applying a payload is a no-op, which makes it a conforming
    (idempotent) adapter for local runs and tests.
    """

    def __init__(self, name: str = "memory"):
        self.name = name
        self.writes: Dict[str, Any] = {}
        self.applied = 0
        self._lock = threading.Lock()

    def execute(self, payload: Any) -> None:
        key = payload_key(payload)

        with self._lock:
            self.applied += 1
            if key in self.writes:
                logger.debug(f"{self.name}: payload {key[:12]} already applied")
                return

            self.writes[key] = copy.deepcopy(payload)

        logger.info(f"{self.name}: stored payload {key[:12]}")

    def snapshot(self) -> Dict[str, Any]:
        """Copy of the downstream state."""
        with self._lock:
            return copy.deepcopy(self.writes)
