from .logging_config import setup_logging
from .settings import connect_redis, get_setting, load_settings
from .wiring import build_bus, build_processor, build_store

__all__ = [
    "build_bus",
    "build_processor",
    "build_store",
    "connect_redis",
    "get_setting",
    "load_settings",
    "setup_logging",
]
