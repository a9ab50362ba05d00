import logging
import threading
import time

logger = logging.getLogger(__name__)

class PeriodicTask:
    """
    Calls callback(now) every interval seconds on a background thread until
    cancel() is called.
    """

    def __init__(self, interval, callback, name="periodic-task", clock=time.time):
        """
        Initialize the task.

        Args:
            interval: Seconds between two calls
            callback: Callable receiving the current time
            name: Thread name, used in logs
            clock: Time source passed to the callback
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.callback = callback
        self.name = name
        self.clock = clock

        self._stopped = threading.Event()
        self.thread = None

    @property
    def running(self):
        return self.thread is not None and self.thread.is_alive() and not self._stopped.is_set()

    def start(self):
        """Start calling the callback, returns self so it can be kept as the cancel handle."""
        if self.running:
            return self
        self._stopped.clear()
        self.thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self.thread.start()
        logger.info(f"Started {self.name} every {self.interval}s")
        return self

    def cancel(self):
        self._stopped.set()
        if self.thread is not None and self.thread.is_alive() and self.thread is not threading.current_thread():
            self.thread.join(timeout=1.0)
        logger.info(f"Stopped {self.name}")

    def _run(self):
        while not self._stopped.wait(self.interval):
            try:
                self.callback(self.clock())
            except Exception:
                logger.exception(f"Error in {self.name}")
