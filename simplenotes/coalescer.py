from __future__ import annotations
import logging
import threading
from functools import partial
from typing import Callable, Iterable, Optional

from .config import DEFAULT_QUIET_PERIOD
from .models import Note

logger = logging.getLogger(__name__)

SaveFn = Callable[[tuple[Note, ...]], object]


class WriteCoalescer:
    """
    Debounce note snapshots into a single save after a quiet period.

    State is either idle (no timer) or pending (one armed timer plus the
    snapshot it will write). Rescheduling cancels the armed timer, so only the
    most recent snapshot is ever saved. Saves never overlap: ``flush`` waits
    for a save the timer thread has already started.
    """

    def __init__(
        self,
        save: SaveFn,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self._save = save
        self.quiet_period = quiet_period
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._save_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._snapshot: Optional[tuple[Note, ...]] = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self, notes: Iterable[Note]) -> None:
        snapshot = tuple(notes)
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            timer = self._timer_factory(self.quiet_period, partial(self._fire, self._generation))
            timer.daemon = True
            self._timer = timer
            self._snapshot = snapshot
        timer.start()

    def _fire(self, generation: int) -> None:
        with self._save_lock:
            with self._lock:
                # a cancelled timer can still wake up once; it must not write
                if generation != self._generation or self._timer is None:
                    return
                snapshot = self._take()
            self._save(snapshot)

    def _take(self) -> Optional[tuple[Note, ...]]:
        snapshot = self._snapshot
        self._timer = None
        self._snapshot = None
        return snapshot

    def flush(self) -> bool:
        """Save the pending snapshot now. Returns False when nothing was pending."""
        with self._save_lock:
            with self._lock:
                if self._timer is None:
                    return False
                self._timer.cancel()
                snapshot = self._take()
            logger.debug("Flushing pending note snapshot")
            self._save(snapshot)
            return True

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                logger.debug("Dropped pending note snapshot")
            self._take()

    def write_now(self, notes: Iterable[Note]):
        """Drop any pending snapshot and save ``notes`` immediately, after any in-flight save."""
        snapshot = tuple(notes)
        with self._save_lock:
            self.cancel()
            return self._save(snapshot)
