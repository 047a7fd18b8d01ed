import json
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .errors import JobDecodeError

DEFAULT_MAX_ATTEMPTS = 3


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class JobType(str, Enum):
    """
    Closed set of job types.

    The string values are persisted inside every queued job, so they must
    stay stable across releases.
    """

    PERSIST_GRAPH = "persist.memgraph"
    PERSIST_VECTOR = "persist.qdrant"
    PERSIST_ANALYTICS = "persist.analytics.memgraph"
    UPDATE_USER_PROFILE = "update.user_profile"
    GENERATE_RECOMMENDATIONS = "generate.recommendations"
    SYNC_CATALOGUE = "sync.woocommerce"
    CLEANUP_OLD_DATA = "cleanup.old_data"
    PROCESS_EVENT = "process_event"

    @classmethod
    def parse(cls, value: str) -> Optional["JobType"]:
        """Return the matching member, or None for a type we don't know."""
        try:
            return cls(value)
        except ValueError:
            return None


# Job types executed by a sync adapter. PROCESS_EVENT is handled by the
# processor itself.
ADAPTER_JOB_TYPES = frozenset(t for t in JobType if t is not JobType.PROCESS_EVENT)


@dataclass
class Job:
    """
    Represents a unit of side-effecting work.

    IMPORTANT:
    - data is completely opaque to the queue
    - type is kept as the raw string so jobs written by another version
      still decode
    """

    type: str
    data: Any

    id: str = field(default_factory=lambda: f"job_{uuid.uuid4().hex}")
    created_at: int = field(default_factory=now_ms)

    # Retry tracking
    attempts: int = 0
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    scheduled_for: Optional[int] = None

    def __post_init__(self):
        if isinstance(self.type, Enum):
            self.type = self.type.value

    def is_due(self, now: int) -> bool:
        return self.scheduled_for is None or self.scheduled_for <= now

    def to_dict(self) -> Dict[str, Any]:
        raw = {
            "id": self.id,
            "type": self.type,
            "data": self.data,
            "attempts": self.attempts,
            "maxAttempts": self.max_attempts,
            "createdAt": self.created_at,
        }
        if self.scheduled_for is not None:
            raw["scheduledFor"] = self.scheduled_for
        return raw

    def to_json(self) -> str:
        """Serialize job to JSON for Redis storage."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Job":
        if not isinstance(raw, dict) or not raw.get("id") or not raw.get("type"):
            raise JobDecodeError(f"Not a job: {raw!r}")

        try:
            return cls(
                id=str(raw["id"]),
                type=str(raw["type"]),
                data=raw.get("data"),
                attempts=int(raw.get("attempts", 0)),
                max_attempts=int(raw.get("maxAttempts", DEFAULT_MAX_ATTEMPTS)),
                created_at=int(raw.get("createdAt", 0)),
                scheduled_for=(
                    int(raw["scheduledFor"])
                    if raw.get("scheduledFor") is not None
                    else None
                ),
            )
        except (TypeError, ValueError) as e:
            raise JobDecodeError(f"Malformed job {raw.get('id')}: {e}") from e

    @classmethod
    def from_json(cls, raw: str) -> "Job":
        """Deserialize job from Redis JSON."""
        try:
            return cls.from_dict(json.loads(raw))
        except json.JSONDecodeError as e:
            raise JobDecodeError(f"Job is not valid JSON: {e}") from e
