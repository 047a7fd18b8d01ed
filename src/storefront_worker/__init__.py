from .processor import JobOutcome, JobProcessor
from .ticker import Ticker
from .translator import PRIORITY_HIGH, PRIORITY_NORMAL, JobSpec, translate

__all__ = [
    "JobOutcome",
    "JobProcessor",
    "JobSpec",
    "PRIORITY_HIGH",
    "PRIORITY_NORMAL",
    "Ticker",
    "translate",
]
