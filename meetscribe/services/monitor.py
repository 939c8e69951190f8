"""Background monitor that periodically checks a running session."""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class SessionMonitor:
    """Calls `callback` every `interval` seconds on a daemon thread until stopped."""

    def __init__(self, callback: Callable[[], None], interval: float = 30.0, name: str = "SessionMonitor"):
        if interval <= 0:
            raise ValueError(f"Monitor interval must be positive, got {interval}")
        self.callback = callback
        self.interval = interval
        self.name = name
        self.shutdown_event = threading.Event()
        self.thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            logger.warning(f"{self.name} already running")
            return
        self.shutdown_event.clear()
        self.thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self.thread.start()
        logger.debug(f"{self.name} started (interval={self.interval}s)")

    def stop(self, timeout: float = 2.0) -> None:
        self.shutdown_event.set()
        if self.thread and self.thread.is_alive() and self.thread is not threading.current_thread():
            self.thread.join(timeout=timeout)
        self.thread = None
        logger.debug(f"{self.name} stopped")

    def _run(self) -> None:
        while not self.shutdown_event.wait(self.interval):
            try:
                self.callback()
            except Exception as e:
                logger.error(f"{self.name} check failed: {e}", exc_info=True)
