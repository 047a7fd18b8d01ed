from enum import Enum


class QueueKeys(str, Enum):
    """
    Centralized Redis key names.

    This file is the single source of truth for all Redis structures.
    External tooling inspects these lists by name, so never rename them.
    """

    EVENTS = "events:queue"  # LIST → validated events awaiting translation
    JOBS = "jobs:queue"  # LIST → jobs ready to run now
    DELAYED = "jobs:delayed"  # LIST → jobs waiting for scheduledFor
    FAILED = "jobs:failed"  # LIST → dead letters, never retried automatically
