"""
Background expiry sweep for envcache

Optional extension: by default expiry is only checked when an entry is
read. An ExpirySweeper periodically calls Cache.sweep_expired() on a daemon
thread so expired entries do not linger in the backend.
"""

import threading
from typing import Optional

from loguru import logger

from envcache.cache.manager import Cache
from envcache.exceptions import CacheError


class ExpirySweeper:
    """
    Periodic expiry sweep.

    Usage:
    ```python
    sweeper = ExpirySweeper(cache, interval=60)
    sweeper.start()
    ...
    sweeper.stop()
    ```
    """

    def __init__(self, cache: Cache, interval: float = 60.0):
        if interval <= 0:
            raise ValueError("Sweep interval must be positive")
        self._cache = cache
        self.interval = interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.runs = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="envcache-sweeper", daemon=True
        )
        self._thread.start()
        logger.info(f"Expiry sweeper started (interval={self.interval}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Expiry sweeper stopped")

    def run_once(self) -> int:
        """Sweep now; backend failures are logged and retried next interval."""
        self.runs += 1
        try:
            return self._cache.sweep_expired()
        except CacheError as e:
            logger.warning(f"Expiry sweep failed: {e}")
            return 0

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self.run_once()
            except Exception:
                logger.exception("Expiry sweep crashed; retrying next interval")
