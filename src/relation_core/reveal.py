"""Staggered reveal of default-view nodes.

When the viewer returns from an expanded peer to the default view, nodes are
exposed one at a time so the renderer's force layout can settle. The
scheduler only counts; the projector turns the count into a reveal budget.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_DELAY = 0.5
DEFAULT_PERIOD = 0.2


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerQueue(Protocol):
    """Cooperative timer queue. ``asyncio.AbstractEventLoop`` satisfies it."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


class RevealState(str, Enum):
    IDLE = "idle"
    WAITING = "waiting"
    REVEALING = "revealing"
    DONE = "done"
    CANCELLED = "cancelled"


class RevealScheduler:
    """Increments an exposed-node count on a fixed period.

    At most one timer is ever pending: ``start`` cancels the previous
    schedule, and ``cancel``/``close`` drop the pending timer so no callback
    fires after teardown.

    Example:
        >>> scheduler = RevealScheduler(timer=loop)
        >>> scheduler.start(5)
        >>> scheduler.exposed_count
        0
    """

    def __init__(
        self,
        timer: TimerQueue | None = None,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        period: float = DEFAULT_PERIOD,
        on_change: Callable[[int], None] | None = None,
    ):
        self._timer = timer
        self.initial_delay = initial_delay
        self.period = period
        self.on_change = on_change
        self._handle: TimerHandle | None = None
        self._generation = 0
        self.state = RevealState.IDLE
        self.exposed_count = 0
        self.total_count = 0

    @property
    def is_active(self) -> bool:
        return self.state in (RevealState.WAITING, RevealState.REVEALING)

    @property
    def budget(self) -> int | None:
        """Reveal budget for the projector; None when nothing is throttled."""
        if self.state in (RevealState.IDLE, RevealState.DONE):
            return None
        return self.exposed_count

    def start(self, total_count: int) -> None:
        """Begin a new reveal of ``total_count`` nodes.

        Raises:
            RuntimeError: No timer queue was given and no asyncio loop is
                running. The scheduler is reset first, so nothing stays hidden.
        """
        self.cancel()
        try:
            queue = self._timer_queue()
        except RuntimeError:
            self.reset()
            raise
        self._generation += 1
        self.total_count = max(total_count, 0)
        self.exposed_count = 0
        self.state = RevealState.WAITING
        self._handle = queue.call_later(self.initial_delay, self._tick, self._generation)
        logger.debug("Reveal started for %d node(s)", self.total_count)
        self._notify()

    def reset(self) -> None:
        """Drop any schedule and stop throttling; ``budget`` becomes None."""
        self.cancel()
        self.state = RevealState.IDLE
        self.exposed_count = 0
        self.total_count = 0

    def cancel(self) -> None:
        """Stop the schedule and freeze the count. Safe to call repeatedly."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self.is_active:
            self.state = RevealState.CANCELLED
            logger.debug("Reveal cancelled at %d/%d", self.exposed_count, self.total_count)

    def close(self) -> None:
        """Teardown: cancel and stop notifying."""
        self.cancel()
        self.on_change = None

    def _schedule(self, delay: float) -> None:
        generation = self._generation
        self._handle = self._timer_queue().call_later(delay, self._tick, generation)

    def _tick(self, generation: int) -> None:
        # A cancelled handle may still be dispatched by some timer queues.
        if generation != self._generation or not self.is_active:
            return
        self._handle = None

        if self.exposed_count >= self.total_count:
            self.state = RevealState.DONE
            self._notify()
            return

        self.state = RevealState.REVEALING
        self.exposed_count += 1
        if self.exposed_count >= self.total_count:
            self.state = RevealState.DONE
        self._notify()
        if self.state == RevealState.REVEALING:
            self._schedule(self.period)

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.exposed_count)

    def _timer_queue(self) -> TimerQueue:
        if self._timer is None:
            return asyncio.get_running_loop()
        return self._timer
