import logging
from typing import Any, Dict

from storefront_queue import ADAPTER_JOB_TYPES, JobType

from .base import LoggingSyncAdapter, SyncAdapter
from .http import HttpSyncAdapter

logger = logging.getLogger(__name__)


def build_adapters(settings: Dict[str, Any]) -> Dict[JobType, SyncAdapter]:
    """
    Build one adapter per adapter-backed job type.

    A job type with `adapters.<job type>.url` configured gets an
    HttpSyncAdapter; every other type falls back to LoggingSyncAdapter.

    Args:
        settings (Dict[str, Any]): Loaded settings (see storefront_runtime.settings).
    """
    cfg = settings.get("adapters", {}) or {}
    timeout = float(cfg.get("timeout", 30.0))
    headers = cfg.get("headers") or {}

    adapters: Dict[JobType, SyncAdapter] = {}

    for job_type in sorted(ADAPTER_JOB_TYPES, key=lambda t: t.value):
        type_cfg = cfg.get(job_type.value) or {}
        url = type_cfg.get("url")

        if url:
            adapters[job_type] = HttpSyncAdapter(
                job_type.value,
                url,
                timeout=float(type_cfg.get("timeout", timeout)),
                headers=headers,
            )
            logger.info(f"Adapter for {job_type.value}: HTTP {url}")
        else:
            adapters[job_type] = LoggingSyncAdapter(job_type.value)
            logger.debug(f"Adapter for {job_type.value}: logging only")

    return adapters
