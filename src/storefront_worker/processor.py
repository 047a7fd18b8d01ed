import logging
import signal
import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from redis.exceptions import RedisError

from storefront_adapters.base import SyncAdapter
from storefront_events.models import Event
from storefront_queue import (
    ADAPTER_JOB_TYPES,
    DEFAULT_MAX_ATTEMPTS,
    Job,
    JobDecodeError,
    JobType,
    QueueKeys,
    QueueStore,
    now_ms,
)

from .ticker import Ticker
from .translator import JobSpec, translate

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 5.0
DEFAULT_POP_TIMEOUT = 1.0
DEFAULT_RETRY_DELAY_MS = 30_000


class JobOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    RETRY_SCHEDULED = "retry_scheduled"
    DEAD_LETTERED = "dead_lettered"
    DROPPED = "dropped"


class JobProcessor:
    """
    Background processor for storefront events and jobs.

    Responsibilities:
    - Drain events:queue and fan each event out into jobs
    - Drain jobs:queue and run each job through its sync adapter
    - Promote due jobs from jobs:delayed
    - Retry failures with linear backoff, dead-letter them to jobs:failed

    Delivery is at-least-once. Adapters must be idempotent; this class never
    deduplicates.
    """

    def __init__(
        self,
        store: QueueStore,
        adapters: Mapping[Any, SyncAdapter],
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        pop_timeout: float = DEFAULT_POP_TIMEOUT,
        retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        translator: Callable[[Event], List[JobSpec]] = translate,
        clock: Callable[[], int] = now_ms,
    ):
        """
        Args:
            store (QueueStore): Shared Redis list store.
            adapters (Mapping): One SyncAdapter per adapter-backed JobType.
            tick_interval (float): Seconds between polling cycles.
            pop_timeout (float): Seconds each blocking pop may wait.
            retry_delay_ms (int): Backoff unit; retry n waits n * retry_delay_ms.
            max_attempts (int): Attempt budget for newly created jobs.
            translator (Callable): Event → JobSpec fan-out.
            clock (Callable): Epoch milliseconds; injectable for tests.

        Raises:
            ValueError: an adapter-backed job type has no adapter.
        """
        if max_attempts <= 0:
            raise ValueError(f"max_attempts must be positive, got {max_attempts}")

        self.store = store
        self.adapters: Dict[JobType, SyncAdapter] = {
            JobType(job_type): adapter for job_type, adapter in adapters.items()
        }
        missing = sorted(t.value for t in ADAPTER_JOB_TYPES - set(self.adapters))
        if missing:
            raise ValueError(f"No sync adapter registered for: {', '.join(missing)}")

        self.tick_interval = tick_interval
        self.pop_timeout = pop_timeout
        self.retry_delay_ms = retry_delay_ms
        self.max_attempts = max_attempts
        self.translator = translator
        self.clock = clock

        self._stop_requested = threading.Event()
        self._event_ticker = Ticker("event-loop", self.process_event_queue, tick_interval)
        self._job_ticker = Ticker("job-loop", self.process_job_queue, tick_interval)

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._event_ticker.running or self._job_ticker.running

    def start(self) -> None:
        """
        Start the event loop and the job loop. No-op if already running.

        After a stop() that timed out, waits for the old loops to finish
        their current cycle and starts fresh ones.
        """
        if self.running and not self._stop_requested.is_set():
            return

        self._stop_requested.clear()
        logger.info("Starting background job processor")
        self._event_ticker.start()
        self._job_ticker.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop both loops and wait for them.

        Items already popped finish executing first; nothing left in a queue
        is touched.
        """
        self._stop_requested.set()
        self._event_ticker.stop(timeout)
        self._job_ticker.stop(timeout)
        logger.info("Stopped background job processor")

    def run_forever(self, install_signal_handlers: bool = True) -> None:
        """Run until SIGINT/SIGTERM (or stop() from another thread)."""
        if install_signal_handlers:
            signal.signal(signal.SIGINT, self._signal_handler)
            signal.signal(signal.SIGTERM, self._signal_handler)

        self.start()
        try:
            while not self._stop_requested.wait(0.5):
                pass
        finally:
            self.stop()

    def _signal_handler(self, signum, frame):
        logger.info(f"Signal {signum} received. Stopping processor gracefully...")
        self._stop_requested.set()

    def tick(self) -> None:
        """One event cycle followed by one job cycle."""
        self.process_event_queue()
        self.process_job_queue()

    # ------------------------------------------------------------------
    # ENQUEUE
    # ------------------------------------------------------------------

    def enqueue(self, job_type: Any, data: Any, delay_ms: int = 0) -> Job:
        """
        Create a job and queue it.

        Jobs with a positive delay go to jobs:delayed, the rest to jobs:queue.
        """
        now = self.clock()
        job = Job(
            type=JobType(job_type),
            data=data,
            created_at=now,
            max_attempts=self.max_attempts,
            scheduled_for=now + delay_ms if delay_ms > 0 else None,
        )

        queue = QueueKeys.DELAYED if delay_ms > 0 else QueueKeys.JOBS
        self.store.push(queue, job.to_json())
        return job

    # ------------------------------------------------------------------
    # EVENT LOOP
    # ------------------------------------------------------------------

    def process_event_queue(self) -> int:
        """
        Drain events:queue into jobs.

        Returns:
            Number of events popped this cycle.
        """
        handled = 0

        try:
            while not self._stop_requested.is_set():
                raw = self.store.pop(QueueKeys.EVENTS, timeout=self.pop_timeout)
                if raw is None:
                    break

                handled += 1
                self._handle_raw_event(raw)
        except RedisError as e:
            logger.error(f"Error processing event queue: {e}")

        return handled

    def _handle_raw_event(self, raw: str) -> None:
        try:
            event = Event.from_json(raw)
        except JobDecodeError as e:
            logger.error(f"Dropping malformed event: {e}")
            return

        try:
            self.handle_event(event)
        except RedisError:
            raise
        except Exception as e:
            logger.error(f"Error handling event {event.type} ({event.id}): {e}", exc_info=True)

    def handle_event(self, event: Event) -> List[Job]:
        """Translate an event and enqueue every resulting job."""
        logger.info(f"Processing event: {event.type} ({event.id})")

        return [
            self.enqueue(spec.type, spec.data, spec.delay_ms)
            for spec in self.translator(event)
        ]

    # ------------------------------------------------------------------
    # JOB LOOP
    # ------------------------------------------------------------------

    def process_job_queue(self) -> int:
        """
        Drain jobs:queue, then promote due delayed jobs.

        Returns:
            Number of jobs popped this cycle.
        """
        executed = 0

        try:
            while not self._stop_requested.is_set():
                raw = self.store.pop(QueueKeys.JOBS, timeout=self.pop_timeout)
                if raw is None:
                    break

                executed += 1
                try:
                    job = Job.from_json(raw)
                except JobDecodeError as e:
                    logger.error(f"Dropping malformed job: {e}")
                    continue

                self.execute(job)

            if not self._stop_requested.is_set():
                self.promote_delayed_jobs()
        except RedisError as e:
            logger.error(f"Error processing job queue: {e}")

        return executed

    def promote_delayed_jobs(self, now: Optional[int] = None) -> int:
        """
        Move every due job from jobs:delayed to jobs:queue.

        Returns:
            Number of jobs this processor moved.
        """
        now = self.clock() if now is None else now
        promoted = 0

        for raw in self.store.scan_all(QueueKeys.DELAYED):
            try:
                job = Job.from_json(raw)
            except JobDecodeError as e:
                logger.error(f"Skipping malformed delayed job: {e}")
                continue

            if job.is_due(now) and self.store.move(QueueKeys.DELAYED, QueueKeys.JOBS, raw):
                promoted += 1

        if promoted:
            logger.info(f"Promoted {promoted} delayed job(s)")

        return promoted

    # ------------------------------------------------------------------
    # EXECUTION
    # ------------------------------------------------------------------

    def execute(self, job: Job) -> JobOutcome:
        """
        Run a single job and apply the retry state machine.

        Unknown job types are dropped with a warning: they come from another
        deployment, retrying won't help.
        """
        job_type = JobType.parse(job.type)
        if job_type is None:
            logger.warning(f"Unknown job type: {job.type} ({job.id}). Dropping.")
            return JobOutcome.DROPPED

        logger.info(f"Executing job: {job.type} ({job.id})")

        try:
            if job_type is JobType.PROCESS_EVENT:
                if not self._process_wrapped_event(job.data):
                    return JobOutcome.DROPPED
            else:
                self.adapters[job_type].execute(job.data)
        except Exception as e:
            logger.error(f"Job failed: {job.type} ({job.id}): {e}", exc_info=True)
            return self._handle_failure(job)

        logger.info(f"Job completed: {job.type} ({job.id})")
        return JobOutcome.SUCCEEDED

    def _process_wrapped_event(self, data: Any) -> bool:
        """Handle a PROCESS_EVENT payload: {"eventData": {...}, "priority": ...}."""
        event_data = data.get("eventData") if isinstance(data, dict) else None
        if not isinstance(event_data, dict):
            logger.warning(f"Invalid event data structure: {data!r}")
            return False

        self.handle_event(Event.from_dict(event_data))
        return True

    def _handle_failure(self, job: Job) -> JobOutcome:
        job.attempts += 1

        if job.attempts < job.max_attempts:
            delay = job.attempts * self.retry_delay_ms
            job.scheduled_for = self.clock() + delay
            self.store.push(QueueKeys.DELAYED, job.to_json())
            logger.warning(
                f"Job {job.id} scheduled for retry {job.attempts}/{job.max_attempts} "
                f"in {delay}ms"
            )
            return JobOutcome.RETRY_SCHEDULED

        self.store.push(QueueKeys.FAILED, job.to_json())
        logger.error(
            f"Job {job.id} ({job.type}) dead-lettered after {job.attempts} attempts"
        )
        return JobOutcome.DEAD_LETTERED

    # ------------------------------------------------------------------
    # OPERATIONS
    # ------------------------------------------------------------------

    def retry_dead_letters(self, limit: Optional[int] = None) -> int:
        """
        Replay dead-lettered jobs with a fresh attempt budget.

        Returns:
            Number of jobs moved back to jobs:queue.
        """
        moved = 0

        for raw in self.store.scan_all(QueueKeys.FAILED):
            if limit is not None and moved >= limit:
                break

            try:
                job = Job.from_json(raw)
            except JobDecodeError as e:
                logger.error(f"Skipping malformed dead letter: {e}")
                continue

            job.attempts = 0
            job.scheduled_for = None

            if self.store.remove_one(QueueKeys.FAILED, raw):
                self.store.push(QueueKeys.JOBS, job.to_json())
                moved += 1

        if moved:
            logger.info(f"Requeued {moved} dead-lettered job(s)")

        return moved

    def stats(self) -> Dict[str, int]:
        return self.store.stats()
