"""
Per-key trailing debounce for fire-and-forget persistence calls.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_DELAY_SECONDS = 1.0


class DebouncedScheduler:
    """
    Runs the latest job scheduled under a key once the key has been quiet
    for `delay` seconds.

    Each key owns at most one pending timer. Scheduling again under the same
    key cancels the pending timer before arming a new one, so a superseded
    value is never written. Different keys run independently, and a failing
    job is reported through `on_error` without affecting other keys.

    Args:
        delay: Quiet period in seconds
        timer_factory: Callable with the threading.Timer signature; tests
            inject a manual timer here
        on_error: Called with (key, exception) when a job raises
    """

    def __init__(
        self,
        delay: float = DEFAULT_DELAY_SECONDS,
        timer_factory: Callable = threading.Timer,
        on_error: Optional[Callable[[str, Exception], None]] = None,
    ):
        self.delay = delay
        self.timer_factory = timer_factory
        self.on_error = on_error
        self._lock = threading.Lock()
        self._pending: Dict[str, Tuple[object, Callable, tuple, int]] = {}
        self._generation = 0

    def schedule(self, key: str, job: Callable, *args) -> None:
        with self._lock:
            previous = self._pending.pop(key, None)
            if previous is not None:
                previous[0].cancel()

            self._generation += 1
            generation = self._generation
            timer = self.timer_factory(self.delay, self._fire, args=(key, generation))
            if hasattr(timer, "daemon"):
                timer.daemon = True
            self._pending[key] = (timer, job, args, generation)
            timer.start()

    def _fire(self, key: str, generation: int) -> None:
        with self._lock:
            entry = self._pending.get(key)
            # a timer that lost the race with cancel() must not run its successor
            if entry is None or entry[3] != generation:
                return
            del self._pending[key]
        _, job, args, _ = entry
        self._run(key, job, args)

    def _run(self, key: str, job: Callable, args: tuple) -> None:
        try:
            job(*args)
        except Exception as e:
            logger.warning("Debounced job %s failed: %s", key, e)
            if self.on_error:
                self.on_error(key, e)

    def cancel(self, key: str) -> bool:
        with self._lock:
            entry = self._pending.pop(key, None)
        if entry is None:
            return False
        entry[0].cancel()
        return True

    def take_prefix(self, prefix: str) -> List[Tuple[str, Callable, tuple]]:
        """
        Cancel every pending job whose key starts with prefix and hand the
        jobs back as (key, job, args) so the caller can reschedule them.
        """
        with self._lock:
            keys = [k for k in self._pending if k.startswith(prefix)]
            entries = [(k, self._pending.pop(k)) for k in keys]
        taken = []
        for key, (timer, job, args, _) in entries:
            timer.cancel()
            taken.append((key, job, args))
        return taken

    def cancel_prefix(self, prefix: str) -> int:
        return len(self.take_prefix(prefix))

    def pending_keys(self) -> List[str]:
        with self._lock:
            return sorted(self._pending.keys())

    def flush(self) -> None:
        """Run every pending job now instead of waiting for its timer."""
        with self._lock:
            entries = list(self._pending.items())
            self._pending.clear()
        for key, (timer, job, args, _) in entries:
            timer.cancel()
            self._run(key, job, args)

    def shutdown(self) -> None:
        """Cancel everything still pending."""
        self.cancel_prefix("")
