"""Load pipeline settings: defaults, then an optional YAML file, then environment."""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from dotenv import load_dotenv
from redis import Redis

_DEFAULTS: Dict[str, Any] = {
    "redis": {
        "url": None,
        "host": "localhost",
        "port": 6379,
        "password": None,
        "db": 0,
    },
    "processor": {
        "tick_interval": 5.0,
        "pop_timeout": 1.0,
        "retry_delay_ms": 30000,
        "max_attempts": 3,
    },
    "adapters": {
        "timeout": 30.0,
        "headers": {},
        # Per job type, e.g. "persist.memgraph": {"url": "http://graph-sync/jobs"}
    },
    "logging": {
        "level": "INFO",
        "file": None,
        "log_to_console": True,
        "max_bytes": 10485760,  # 10 MB
        "backup_count": 3,
    },
}

# env var -> (dotted setting path, converter)
_ENV_OVERRIDES = {
    "REDIS_URL": ("redis.url", str),
    "REDIS_HOST": ("redis.host", str),
    "REDIS_PORT": ("redis.port", int),
    "REDIS_PASSWORD": ("redis.password", str),
    "REDIS_DB": ("redis.db", int),
    "PIPELINE_LOG_LEVEL": ("logging.level", str),
    "PIPELINE_LOG_FILE": ("logging.file", str),
    "PIPELINE_TICK_INTERVAL": ("processor.tick_interval", float),
}


def _deep_merge(base: Dict[str, Any], overlay: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge overlay into base recursively. Mutates base."""
    for key, value in overlay.items():
        if value is None:
            continue
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _deep_copy_nested(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _deep_copy_nested(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_deep_copy_nested(x) for x in obj]
    return obj


def get_default_settings() -> Dict[str, Any]:
    return _deep_copy_nested(_DEFAULTS)


def get_setting(settings: Dict[str, Any], path: str, default: Any = None) -> Any:
    """Get a nested value by dot path (e.g. 'processor.tick_interval')."""
    current: Any = settings
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def _set_setting(settings: Dict[str, Any], path: str, value: Any) -> None:
    *parents, leaf = path.split(".")
    current = settings
    for part in parents:
        current = current.setdefault(part, {})
    current[leaf] = value


def load_settings(
    config_path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """
    Build the settings dict.

    Args:
        config_path: YAML file to merge over the defaults. Falls back to
            $PIPELINE_CONFIG; no file at all is fine.
        env: Environment to read overrides from. Defaults to os.environ
            after loading a .env file.

    Raises:
        ValueError: the config file is missing, unreadable or not a mapping,
            or an environment override has the wrong type.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    settings = get_default_settings()

    path_value = config_path or env.get("PIPELINE_CONFIG")
    if path_value:
        path = Path(path_value)
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise ValueError(f"Cannot load settings from {path}: {e}") from e

        if data is not None and not isinstance(data, dict):
            raise ValueError(f"Settings file {path} must contain a mapping")
        _deep_merge(settings, data or {})

    for name, (setting_path, convert) in _ENV_OVERRIDES.items():
        raw = env.get(name)
        if raw in (None, ""):
            continue
        try:
            _set_setting(settings, setting_path, convert(raw))
        except ValueError as e:
            raise ValueError(f"Invalid value for {name}: {raw!r}") from e

    return settings


def connect_redis(settings: Dict[str, Any]) -> Redis:
    """Redis client for the configured server. Responses are decoded to str."""
    cfg = settings.get("redis", {})

    if cfg.get("url"):
        return Redis.from_url(cfg["url"], decode_responses=True)

    return Redis(
        host=cfg.get("host", "localhost"),
        port=int(cfg.get("port", 6379)),
        password=cfg.get("password"),
        db=int(cfg.get("db", 0)),
        decode_responses=True,
    )
