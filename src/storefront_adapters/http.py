import logging
from typing import Any, Dict, Optional

import httpx

from .base import SyncAdapter, payload_key

logger = logging.getLogger(__name__)


class HttpSyncAdapter(SyncAdapter):
    """
    Adapter that hands the payload to a downstream sync service over HTTP.

    Posts {"jobType": ..., "data": ...} with an Idempotency-Key header built
    from the payload, so the receiving service can ignore replays.
    """

    def __init__(
        self,
        job_type: str,
        url: str,
        timeout: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.job_type = getattr(job_type, "value", job_type)
        self.url = url
        self.timeout = timeout
        self.headers = dict(headers or {})
        self._client = client

    def execute(self, payload: Any) -> None:
        """
        Deliver the payload.

        Raises:
            httpx.RequestError: If the service can't be reached.
            httpx.HTTPStatusError: If the service answers with a non-2xx status.
        """
        key = payload_key(payload)
        headers = {**self.headers, "Idempotency-Key": key}
        body = {"jobType": self.job_type, "data": payload}

        logger.info(f"HttpSyncAdapter[{self.job_type}]: POST {self.url} ({key[:12]})")

        try:
            if self._client is not None:
                response = self._client.post(self.url, json=body, headers=headers)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(self.url, json=body, headers=headers)

            response.raise_for_status()

        except httpx.RequestError as e:
            logger.error(f"HttpSyncAdapter[{self.job_type}]: Network error posting to {self.url}: {e}")
            raise
        except httpx.HTTPStatusError as e:
            logger.error(
                f"HttpSyncAdapter[{self.job_type}]: HTTP error from {self.url}: {e.response.status_code}"
            )
            raise

        logger.info(
            f"HttpSyncAdapter[{self.job_type}]: Delivered to {self.url}. Status: {response.status_code}"
        )
