"""
Debounced, de-duplicated lookups with a stale response guard.

Each field (supplier name, a product line name) has a current request token.
New input invalidates the field's token, so a response that arrives for an
older input is dropped instead of applied.
"""
import itertools
import logging
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_DELAY = 0.4
DEFAULT_MIN_LENGTH = 2


@dataclass(frozen=True)
class RequestToken:
    field: str
    query: str
    serial: int


class RequestTracker:
    """Hands out request tokens and remembers which one is current per field"""

    def __init__(self):
        self._lock = threading.Lock()
        self._serials = itertools.count(1)
        self._current = {}

    def issue(self, field, query) -> RequestToken:
        with self._lock:
            token = RequestToken(field, query, next(self._serials))
            self._current[field] = token.serial
        return token

    def is_current(self, token) -> bool:
        with self._lock:
            return self._current.get(token.field) == token.serial

    def invalidate(self, field=None):
        with self._lock:
            if field is None:
                self._current.clear()
            else:
                self._current.pop(field, None)


class DebouncedLookup:
    """
    Run fetch(query) once input has been quiet for `delay` seconds.

    on_result(results) receives the list to show; on_error(message) receives a
    notice when the fetch fails, after which the field falls back to manual
    entry (an empty result list). Nothing here raises into the caller.
    """

    def __init__(self, fetch, delay=DEFAULT_DELAY, min_length=DEFAULT_MIN_LENGTH, on_result=None,
                 on_error=None, timer_factory=threading.Timer, tracker=None, field='lookup'):
        self.fetch = fetch
        self.delay = delay
        self.min_length = min_length
        self.on_result = on_result
        self.on_error = on_error
        self.timer_factory = timer_factory
        self.tracker = tracker or RequestTracker()
        self.field = field
        self.results = []
        self._timer = None
        self._last_query = None
        self._last_results = None

    @property
    def pending(self):
        return self._timer is not None

    def update(self, query):
        query = (query or '').strip()
        self._cancel_timer()
        self.tracker.invalidate(self.field)

        if len(query) < self.min_length:
            self._deliver([])
            return
        if query == self._last_query and self._last_results is not None:
            logger.debug(f"Reusing results for {self.field} query '{query}'")
            self._deliver(self._last_results)
            return

        token = self.tracker.issue(self.field, query)
        self._timer = self.timer_factory(self.delay, self._run, args=(token,))
        self._timer.start()

    def _run(self, token):
        try:
            results = list(self.fetch(token.query) or [])
        except Exception as e:
            if not self.tracker.is_current(token):
                logger.debug(f"Ignoring failure of stale {self.field} lookup '{token.query}'")
                return
            self._timer = None
            logger.warning(f"{self.field} lookup '{token.query}' failed: {e}")
            if self.on_error:
                self.on_error(f"Search unavailable, enter details manually ({e})")
            self._deliver([])
            return

        if not self.tracker.is_current(token):
            logger.debug(f"Discarding stale {self.field} results for '{token.query}'")
            return
        self._timer = None
        self._last_query = token.query
        self._last_results = results
        self._deliver(results)

    def _deliver(self, results):
        self.results = list(results)
        if self.on_result:
            self.on_result(self.results)

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def cancel(self):
        """Abandon the pending timer and any request already in flight"""
        self._cancel_timer()
        self.tracker.invalidate(self.field)
