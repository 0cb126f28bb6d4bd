import logging
import threading
from typing import Callable, Dict, List, Optional

from .models.news import TopicConfig

logger = logging.getLogger(__name__)

ONE_DAY_SECONDS = 24 * 60 * 60


class RepeatingTimer(threading.Thread):
    """Daemon thread calling `fn` every `interval` seconds until cancelled."""

    def __init__(self, interval: float, fn: Callable[[], object], name: Optional[str] = None):
        super().__init__(name=name, daemon=True)
        self.interval = interval
        self.fn = fn
        self._cancelled = threading.Event()

    def run(self) -> None:
        while not self._cancelled.wait(self.interval):
            try:
                self.fn()
            except Exception:
                logger.exception(f"Scheduled job {self.name} failed")

    def cancel(self) -> None:
        # An in-flight run is allowed to finish.
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()


class Scheduler:
    """
    One repeating timer per topic plus a daily purge timer.
    No retries here; a failed run just waits for its next tick.
    """

    def __init__(
        self,
        fetch_topic: Callable[[str], object],
        purge: Callable[[], object],
        *,
        purge_interval_seconds: float = ONE_DAY_SECONDS,
        timer_factory: Callable[..., RepeatingTimer] = RepeatingTimer,
    ):
        self.fetch_topic = fetch_topic
        self.purge = purge
        self.purge_interval_seconds = purge_interval_seconds
        self.timer_factory = timer_factory
        self._timers: Dict[str, RepeatingTimer] = {}
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return bool(self._timers)

    @property
    def timers(self) -> Dict[str, RepeatingTimer]:
        return dict(self._timers)

    def start(self, topics: List[TopicConfig], initial_fetch: Optional[Callable[[], object]] = None) -> None:
        """
        Install topic and purge timers, then run `initial_fetch` synchronously.
        Restarting replaces any timers already installed.
        """
        with self._lock:
            self._cancel_all()
            for topic in topics:
                timer = self.timer_factory(
                    topic.interval_minutes * 60,
                    lambda name=topic.name: self.fetch_topic(name),
                    name=f"fetch:{topic.name}",
                )
                self._timers[topic.name] = timer
                timer.start()
                logger.info(f"Scheduled news fetch for '{topic.name}' every {topic.interval_minutes} minutes")

            purge_timer = self.timer_factory(self.purge_interval_seconds, self.purge, name="purge")
            self._timers["__purge__"] = purge_timer
            purge_timer.start()

        if initial_fetch is not None:
            initial_fetch()

    def stop(self) -> None:
        """Cancel every timer. Safe to call more than once."""
        with self._lock:
            if self._timers:
                logger.info(f"Cancelling {len(self._timers)} scheduled jobs")
            self._cancel_all()

    def _cancel_all(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
