import hashlib
import json
import logging
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)


class SyncAdapter(ABC):
    """
    Abstract base class for sync adapters.

    One adapter performs the downstream write for one job type. Jobs are
    delivered at least once, so execute() must be idempotent: running the
    same payload again must leave the downstream state unchanged.
    """

    @abstractmethod
    def execute(self, payload: Any) -> None:
        """
        Apply the job payload downstream.

        Args:
           payload (Any): The job data.

        Raises:
            Exception: any failure; the processor retries the job.
        """
        pass


class LoggingSyncAdapter(SyncAdapter):
    """
    Adapter that only logs. Used for job types with no downstream configured.
    """

    def __init__(self, name: str):
        self.name = name

    def execute(self, payload: Any) -> None:
        logger.info(f"{self.name}: Processing {payload}")


def payload_key(payload: Any) -> str:
    """Stable hash used as the idempotency key for a payload."""
    raw = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(raw.encode()).hexdigest()
