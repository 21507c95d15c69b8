"""Timer handles for the game session.

``GameSession`` never touches real timers directly. It asks a scheduler for
one-shot (``call_later``) or repeating (``call_every``) callbacks and keeps
the returned :class:`ScheduledCall` so it can cancel them. Two schedulers are
provided:

* :class:`ManualScheduler` keeps a virtual millisecond clock that only moves
  when :meth:`ManualScheduler.advance` is called. Tests and headless runs use
  it to step through a session deterministically.
* :class:`TkScheduler` forwards to a Tk widget's ``after``/``after_cancel`` so
  the desktop front end runs the same session on the Tk event loop.
"""
from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

Callback = Callable[[], None]


class ScheduledCall:
    """Handle for a pending callback; cancelling twice is harmless."""

    def __init__(self, cancel_hook: Optional[Callable[["ScheduledCall"], None]] = None) -> None:
        self.active = True
        self._cancel_hook = cancel_hook

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._cancel_hook is not None:
            hook, self._cancel_hook = self._cancel_hook, None
            hook(self)


@dataclass(order=True)
class _PendingCall:
    due: int
    order: int
    callback: Callback = field(compare=False)
    handle: ScheduledCall = field(compare=False)
    interval: Optional[int] = field(default=None, compare=False)


class ManualScheduler:
    def __init__(self, start_ms: int = 0) -> None:
        self.now = int(start_ms)
        self._queue: List[_PendingCall] = []
        self._counter = 0

    def call_later(self, delay_ms: int, callback: Callback) -> ScheduledCall:
        return self._schedule(delay_ms, callback, interval=None)

    def call_every(self, interval_ms: int, callback: Callback) -> ScheduledCall:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be a positive integer")
        return self._schedule(interval_ms, callback, interval=interval_ms)

    def _schedule(self, delay_ms: int, callback: Callback, *, interval: Optional[int]) -> ScheduledCall:
        if delay_ms < 0:
            raise ValueError("delay_ms cannot be negative")
        self._counter += 1
        handle = ScheduledCall()
        heapq.heappush(
            self._queue,
            _PendingCall(self.now + int(delay_ms), self._counter, callback, handle, interval),
        )
        return handle

    def pending(self) -> int:
        """Number of live (not cancelled) scheduled calls."""

        return sum(1 for item in self._queue if item.handle.active)

    def next_due(self) -> Optional[int]:
        live = [item.due for item in self._queue if item.handle.active]
        return min(live) if live else None

    def advance(self, ms: int) -> int:
        """Move the clock forward by ``ms``, firing every call that falls due.

        Calls fire in due-time order; ties fire in scheduling order. Callbacks
        may schedule or cancel other calls, including ones due within the same
        window. Returns the number of callbacks that ran.
        """

        if ms < 0:
            raise ValueError("Cannot advance the clock backwards")
        target = self.now + int(ms)
        fired = 0
        while self._queue and self._queue[0].due <= target:
            item = heapq.heappop(self._queue)
            if not item.handle.active:
                continue
            self.now = item.due
            if item.interval is None:
                item.handle.active = False
            else:
                self._counter += 1
                item.due += item.interval
                item.order = self._counter
                heapq.heappush(self._queue, item)
            item.callback()
            fired += 1
        self.now = target
        return fired

    def run_until_idle(self, limit_ms: int = 600_000) -> int:
        """Fire pending calls until none remain or ``limit_ms`` elapses."""

        fired = 0
        deadline = self.now + limit_ms
        while True:
            due = self.next_due()
            if due is None or due > deadline:
                break
            fired += self.advance(due - self.now)
        return fired


class TkScheduler:
    def __init__(self, widget: Any) -> None:
        self.widget = widget

    def call_later(self, delay_ms: int, callback: Callback) -> ScheduledCall:
        after_id: List[Optional[str]] = [None]

        def fire() -> None:
            after_id[0] = None
            if handle.active:
                handle.active = False
                callback()

        def cancel(_: ScheduledCall) -> None:
            if after_id[0] is not None:
                self.widget.after_cancel(after_id[0])
                after_id[0] = None

        handle = ScheduledCall(cancel)
        after_id[0] = self.widget.after(int(delay_ms), fire)
        return handle

    def call_every(self, interval_ms: int, callback: Callback) -> ScheduledCall:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be a positive integer")
        after_id: List[Optional[str]] = [None]

        def fire() -> None:
            after_id[0] = None
            if not handle.active:
                return
            # Re-arm first so a callback that cancels the handle wins.
            after_id[0] = self.widget.after(int(interval_ms), fire)
            callback()

        def cancel(_: ScheduledCall) -> None:
            if after_id[0] is not None:
                self.widget.after_cancel(after_id[0])
                after_id[0] = None

        handle = ScheduledCall(cancel)
        after_id[0] = self.widget.after(int(interval_ms), fire)
        return handle
