from .errors import EventValidationError, JobDecodeError, PipelineError
from .models import ADAPTER_JOB_TYPES, DEFAULT_MAX_ATTEMPTS, Job, JobType, now_ms
from .redis_keys import QueueKeys
from .store import QueueStore

__all__ = [
    "ADAPTER_JOB_TYPES",
    "DEFAULT_MAX_ATTEMPTS",
    "EventValidationError",
    "Job",
    "JobDecodeError",
    "JobType",
    "PipelineError",
    "QueueKeys",
    "QueueStore",
    "now_ms",
]
