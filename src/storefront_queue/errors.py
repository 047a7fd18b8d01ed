class PipelineError(Exception):
    """Base class for every error raised by the event pipeline."""


class EventValidationError(PipelineError):
    """An event is missing its id, type or timestamp."""


class JobDecodeError(PipelineError):
    """A queued item could not be decoded into a Job or Event."""
