"""Cancellation context shared between the scheduler and check threads.

Checks are synchronous and run in worker threads, so cancellation has to be
observable from any thread. A Context is a cancel flag with an optional
deadline; cancelling a parent cancels every child derived from it.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from .errors import ContextCancelled, DeadlineExceeded


class Context:
    """Thread-safe cancellation token with an optional deadline."""

    def __init__(self, parent: Context | None = None, timeout: float | None = None) -> None:
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._error: ContextCancelled | None = None
        self._callbacks: list[Callable[[], None]] = []
        self._children: set[Context] = set()
        self._parent = parent
        self._timer: threading.Timer | None = None

        deadline = time.monotonic() + max(timeout, 0.0) if timeout is not None else None
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline

        if parent is not None:
            parent._adopt(self)

        if self.deadline is not None and not self._done.is_set():
            self._timer = threading.Timer(self.deadline - time.monotonic(), self._expire)
            self._timer.daemon = True
            self._timer.start()

    def __enter__(self) -> Context:
        return self

    def __exit__(self, *exc: object) -> None:
        self.cancel()

    # ── Derivation ──────────────────────────────────────────────────────────

    def with_timeout(self, seconds: float) -> Context:
        """Derive a child that is cancelled after ``seconds`` or with this context."""
        return Context(parent=self, timeout=seconds)

    def child(self) -> Context:
        return Context(parent=self)

    def _adopt(self, child: Context) -> None:
        with self._lock:
            if not self._done.is_set():
                self._children.add(child)
                return
            error = self._error
        child.cancel(error)

    def _discard(self, child: Context) -> None:
        with self._lock:
            self._children.discard(child)

    # ── Cancellation ────────────────────────────────────────────────────────

    def cancel(self, error: ContextCancelled | None = None) -> None:
        """Cancel this context and all of its children. Idempotent."""
        with self._lock:
            if self._done.is_set():
                return
            self._error = error or ContextCancelled()
            self._done.set()
            callbacks, self._callbacks = self._callbacks, []
            children, self._children = self._children, set()
            timer, self._timer = self._timer, None

        if timer is not None:
            timer.cancel()
        for child in children:
            child.cancel(self._error)
        if self._parent is not None:
            self._parent._discard(self)
        for callback in callbacks:
            callback()

    def _expire(self) -> None:
        self.cancel(DeadlineExceeded())

    def add_done_callback(self, callback: Callable[[], None]) -> None:
        """Call ``callback`` once this context is done (immediately if it already is)."""
        with self._lock:
            if not self._done.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_done_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    # ── Inspection ──────────────────────────────────────────────────────────

    def done(self) -> bool:
        return self._done.is_set()

    def err(self) -> ContextCancelled | None:
        """Return the cancellation error, or None while the context is live."""
        with self._lock:
            return self._error

    def raise_if_done(self) -> None:
        error = self.err()
        if error is not None:
            raise type(error)(str(error))

    def remaining(self) -> float | None:
        """Seconds left until the deadline, or None if there is no deadline."""
        if self.deadline is None:
            return None
        return max(self.deadline - time.monotonic(), 0.0)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the context is done or ``timeout`` elapses.

        Returns True if the context is done.
        """
        return self._done.wait(timeout)
