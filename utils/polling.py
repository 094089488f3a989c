import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_INTERVAL = 30.0


@dataclass
class PollingState(Generic[T]):
    data: Optional[T] = None
    loading: bool = False
    error: Optional[Exception] = None
    is_polling: bool = False
    last_updated: Optional[datetime] = None
    retry_count: int = 0


class Poller(Generic[T]):
    """
    Calls ``fn`` every ``interval`` seconds on a daemon thread.

    A failed call is retried after ``retry_delay`` seconds, at most
    ``max_retries`` consecutive times, before the normal interval resumes.
    """

    def __init__(self, fn: Callable[[], T], interval: float = DEFAULT_INTERVAL, immediate: bool = True,
                 retry_on_error: bool = True, max_retries: int = 3, retry_delay: float = 1.0,
                 on_success: Optional[Callable[[T], Any]] = None,
                 on_error: Optional[Callable[[Exception], Any]] = None):
        self.fn = fn
        self.interval = interval
        self.immediate = immediate
        self.retry_on_error = retry_on_error
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.on_success = on_success
        self.on_error = on_error

        self._state: PollingState[T] = PollingState(loading=immediate)
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> PollingState[T]:
        with self._lock:
            return replace(self._state)

    def _update(self, **changes) -> None:
        with self._lock:
            self._state = replace(self._state, **changes)

    def refresh(self) -> bool:
        """Run one poll in the calling thread. Returns True on success."""
        self._update(loading=True)
        try:
            result = self.fn()
        except Exception as e:
            with self._lock:
                self._state = replace(self._state, loading=False, error=e,
                                      retry_count=self._state.retry_count + 1)
            logger.warning(f"Polling call failed: {e}")
            self._notify(self.on_error, e)
            return False

        self._update(data=result, loading=False, error=None, last_updated=datetime.now(), retry_count=0)
        self._notify(self.on_success, result)
        return True

    def _notify(self, callback, value) -> None:
        if callback is None:
            return
        try:
            callback(value)
        except Exception:
            logger.exception("Polling callback raised")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._update(is_polling=True)
        self._thread = threading.Thread(target=self._run, name='poller', daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        self._update(is_polling=False)
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None

    def reset(self) -> None:
        self.stop()
        with self._lock:
            self._state = PollingState(loading=self.immediate)

    def _run(self) -> None:
        if self.immediate and self.state.data is None:
            self._poll_with_retries()
        while not self._stop_event.wait(self.interval):
            self._poll_with_retries()

    def _poll_with_retries(self) -> None:
        if self.refresh():
            return
        while (self.retry_on_error and self.state.retry_count <= self.max_retries
               and not self._stop_event.wait(self.retry_delay)):
            if self.refresh():
                return
