import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Ticker:
    """
    Runs a callable on a fixed interval in a background thread.

    - The first run happens immediately after start()
    - stop() sets the cancellation token and joins the thread, so whatever
      the callable is doing finishes before stop() returns
    - The callable should check `cancelled` between units of work
    """

    def __init__(self, name: str, func: Callable[[], object], interval: float):
        self.name = name
        self.func = func
        self.interval = interval
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            if not self._cancel.is_set():
                return
            # A stop() timed out: the old run exits after its current cycle
            self._thread.join()

        self._cancel.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._cancel.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning(f"Ticker {self.name} did not stop within {timeout}s")
                return
        self._thread = None

    def _run(self) -> None:
        logger.debug(f"Ticker {self.name} started (every {self.interval}s)")

        while not self._cancel.is_set():
            try:
                self.func()
            except Exception as e:
                # Keep ticking; the next cycle retries
                logger.error(f"Ticker {self.name} cycle failed: {e}", exc_info=True)

            self._cancel.wait(self.interval)

        logger.debug(f"Ticker {self.name} stopped")
