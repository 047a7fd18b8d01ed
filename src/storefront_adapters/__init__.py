from .base import LoggingSyncAdapter, SyncAdapter, payload_key
from .http import HttpSyncAdapter
from .memory import MemorySyncAdapter
from .registry import build_adapters

__all__ = [
    "HttpSyncAdapter",
    "LoggingSyncAdapter",
    "MemorySyncAdapter",
    "SyncAdapter",
    "build_adapters",
    "payload_key",
]
