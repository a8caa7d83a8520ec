from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable


log = logging.getLogger(__name__)


def _start_thread(target: Callable[..., Any], *args: Any) -> None:
    threading.Thread(target=target, args=args, daemon=True).start()


class RoundTimer:
    """One cancellable countdown, ticking once per second.

    ``tick`` always runs while holding ``lock`` (the owning room's lock), and so
    does ``on_elapsed``. Every ``start`` bumps a generation counter; a runner
    that wakes up with a stale generation exits without touching anything.
    """

    interval = 1.0

    def __init__(
        self,
        lock: threading.RLock,
        spawn: Callable[..., Any] | None = None,
        sleep: Callable[[float], Any] | None = None,
        on_tick: Callable[[int], None] | None = None,
        on_error: Callable[[], None] | None = None,
    ) -> None:
        self._lock = lock
        self._spawn = spawn or _start_thread
        self._sleep = sleep or time.sleep
        self._on_tick = on_tick
        # Called from inside the except block, so it can log the traceback.
        self._on_error = on_error
        self._on_elapsed: Callable[[], None] | None = None
        self._generation = 0
        self.remaining = 0

    @property
    def running(self) -> bool:
        return self._on_elapsed is not None

    def start(self, duration_seconds: int, on_elapsed: Callable[[], None]) -> None:
        with self._lock:
            self.stop()
            self.remaining = max(0, int(duration_seconds))
            self._on_elapsed = on_elapsed
            generation = self._generation
        self._spawn(self._run, generation)

    def stop(self) -> None:
        with self._lock:
            if self._on_elapsed is None:
                return
            self._on_elapsed = None
            self._generation += 1

    def tick(self) -> None:
        with self._lock:
            if self._on_elapsed is None:
                return
            self.remaining = max(0, self.remaining - 1)
            if self._on_tick is not None:
                self._on_tick(self.remaining)
            if self.remaining > 0:
                return
            on_elapsed = self._on_elapsed
            self.stop()
            on_elapsed()

    def _run(self, generation: int) -> None:
        while True:
            self._sleep(self.interval)
            with self._lock:
                if generation != self._generation:
                    return
                try:
                    self.tick()
                except Exception:
                    self.stop()
                    if self._on_error is not None:
                        self._on_error()
                    else:
                        log.exception("Timer callback failed")
                    return
