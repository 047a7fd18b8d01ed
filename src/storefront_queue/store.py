import logging
from typing import Dict, List, Optional, Union

from redis import Redis

from .redis_keys import QueueKeys

logger = logging.getLogger(__name__)

QueueName = Union[QueueKeys, str]


class QueueStore:
    """
    Redis-backed list store shared by the event bus and the job processor.

    Design rules:
    - Owns STATE, not LOGIC
    - Items are opaque serialized strings
    - Lists are FIFO: LPUSH at the head, (B)RPOP from the tail
    """

    # Remove one copy of an item from KEYS[1] and push it onto KEYS[2], only
    # if the removal actually happened. Two processors scanning the same
    # delayed list can therefore never both promote one job.
    _MOVE_LUA = """
    if redis.call("LREM", KEYS[1], 1, ARGV[1]) == 1 then
        redis.call("LPUSH", KEYS[2], ARGV[1])
        return 1
    end
    return 0
    """

    def __init__(self, redis_client: Redis):
        self.redis = redis_client
        self._move = self.redis.register_script(self._MOVE_LUA)

    # ------------------------------------------------------------------
    # WRITE
    # ------------------------------------------------------------------

    def push(self, queue: QueueName, item: str) -> int:
        """
        Append an item to the queue.

        Returns:
            The queue length after the push.
        """
        return self.redis.lpush(self._key(queue), item)

    def remove_one(self, queue: QueueName, item: str) -> bool:
        """Remove a single copy of item. Returns True if something was removed."""
        return bool(self.redis.lrem(self._key(queue), 1, item))

    def move(self, source: QueueName, target: QueueName, item: str) -> bool:
        """
        Atomically move one copy of item from source to target.

        Returns:
            True  -> item moved
            False -> item was no longer in source
        """
        moved = self._move(keys=[self._key(source), self._key(target)], args=[item])
        return bool(moved)

    # ------------------------------------------------------------------
    # READ
    # ------------------------------------------------------------------

    def pop(self, queue: QueueName, timeout: float = 1) -> Optional[str]:
        """
        Pop the oldest item, blocking up to timeout seconds.

        A timeout of 0 or less does a single non-blocking pop instead of
        BRPOP's "wait forever".
        """
        key = self._key(queue)

        if timeout <= 0:
            return self._decode(self.redis.rpop(key))

        # Servers before 6.0 only take whole seconds
        if float(timeout).is_integer():
            timeout = int(timeout)

        result = self.redis.brpop([key], timeout=timeout)
        if not result:
            return None

        _, raw = result
        return self._decode(raw)

    def scan_all(self, queue: QueueName) -> List[str]:
        """Return every item, oldest first."""
        raw_items = self.redis.lrange(self._key(queue), 0, -1)
        return [self._decode(raw) for raw in reversed(raw_items)]

    def length(self, queue: QueueName) -> int:
        return self.redis.llen(self._key(queue))

    # ------------------------------------------------------------------
    # STATS
    # ------------------------------------------------------------------

    def stats(self) -> Dict[str, int]:
        """Return current queue lengths."""
        pipe = self.redis.pipeline()
        for key in QueueKeys:
            pipe.llen(key.value)

        lengths = pipe.execute()

        return {key.value: length for key, length in zip(QueueKeys, lengths)}

    # ------------------------------------------------------------------
    # HELPERS
    # ------------------------------------------------------------------

    @staticmethod
    def _key(queue: QueueName) -> str:
        return queue.value if isinstance(queue, QueueKeys) else queue

    @staticmethod
    def _decode(raw) -> Optional[str]:
        if isinstance(raw, bytes):
            return raw.decode("utf-8")
        return raw
