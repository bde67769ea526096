"""
tasks.py - Timer primitives for the AFK bot.

This module provides the scheduling pieces every bot module uses:
- IntervalTask: run a callback every N seconds until cancelled
- DelayedTask: run a callback once after a delay
- TaskGroup: a set of timers cancelled together on disconnect
- wait_for_condition: poll a predicate with a timeout
"""

import time
import logging
import threading
from typing import Callable, List, Optional
from enum import Enum, auto

logger = logging.getLogger(__name__)


class TaskStatus(Enum):
    """Status of a task execution."""
    PENDING = auto()
    RUNNING = auto()
    SUCCESS = auto()
    FAILED = auto()
    CANCELLED = auto()


class Task:
    """Base class for timer tasks."""

    def __init__(self, name: str):
        self.name = name
        self.status = TaskStatus.PENDING
        self.error: Optional[str] = None
        self._cancelled = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> 'Task':
        """Start the task on a daemon thread."""
        if self._thread is not None:
            return self
        self.status = TaskStatus.RUNNING
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        return self

    def _run(self) -> None:
        raise NotImplementedError

    def cancel(self) -> None:
        """Cancel the task. A callback already running is not interrupted."""
        if self.status in (TaskStatus.PENDING, TaskStatus.RUNNING):
            self.status = TaskStatus.CANCELLED
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def finished(self) -> bool:
        """True once the task can no longer fire."""
        if self.cancelled:
            return True
        return self._thread is not None and not self._thread.is_alive()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _invoke(self, fn: Callable[[], None]) -> bool:
        try:
            fn()
            return True
        except Exception as e:
            self.error = str(e)
            logger.error(f"Task {self.name} raised: {e}", exc_info=True)
            return False


class IntervalTask(Task):
    """
    Repeating timer.

    The first call happens one interval after start. Exceptions raised by
    the callback are logged and the timer keeps going.

    Usage:
        task = IntervalTask("chat", 60.0, send_next_message).start()
        ...
        task.cancel()
    """

    def __init__(self, name: str, interval: float, fn: Callable[[], None]):
        super().__init__(name)
        if interval <= 0:
            raise ValueError(f"Interval for {name} must be positive, got {interval}")
        self.interval = interval
        self.fn = fn
        self.runs = 0

    def _run(self) -> None:
        while not self._cancelled.wait(self.interval):
            self._invoke(self.fn)
            self.runs += 1


class DelayedTask(Task):
    """One-shot timer."""

    def __init__(self, name: str, delay: float, fn: Callable[[], None]):
        super().__init__(name)
        self.delay = delay
        self.fn = fn

    def _run(self) -> None:
        if self._cancelled.wait(self.delay):
            return
        if self._invoke(self.fn):
            self.status = TaskStatus.SUCCESS
        else:
            self.status = TaskStatus.FAILED


class TaskGroup:
    """
    Timers owned by one bot module.

    Finished one-shot timers are dropped as new timers are added, so a
    long-running group only holds timers that can still fire.

    Usage:
        group = TaskGroup("anti-afk")
        group.every("rotate", 5.0, rotate)
        group.cancel_all()
    """

    def __init__(self, name: str):
        self.name = name
        self.tasks: List[Task] = []
        self._lock = threading.Lock()

    def every(self, name: str, interval: float, fn: Callable[[], None]) -> IntervalTask:
        """Start a repeating timer owned by this group."""
        return self._add(IntervalTask(f"{self.name}:{name}", interval, fn))

    def after(self, name: str, delay: float, fn: Callable[[], None]) -> DelayedTask:
        """Start a one-shot timer owned by this group."""
        return self._add(DelayedTask(f"{self.name}:{name}", delay, fn))

    def _add(self, task: Task) -> Task:
        with self._lock:
            self._prune()
            self.tasks.append(task)
        task.start()
        return task

    def _prune(self) -> None:
        self.tasks = [task for task in self.tasks if not task.finished]

    def cancel_all(self) -> None:
        """Cancel every timer in the group."""
        with self._lock:
            tasks, self.tasks = self.tasks, []
        if tasks:
            logger.info(f"Cancelling {len(tasks)} {self.name} timer(s)")
        for task in tasks:
            task.cancel()

    def __len__(self) -> int:
        """Number of timers that can still fire."""
        with self._lock:
            self._prune()
            return len(self.tasks)


def wait_for_condition(
    condition: Callable[[], bool],
    timeout: float = 30.0,
    poll_interval: float = 0.5,
    cancel: Optional[threading.Event] = None
) -> TaskStatus:
    """
    Wait for a condition to become true.

    Args:
        condition: Predicate to poll
        timeout: Maximum time to wait in seconds
        poll_interval: Delay between checks
        cancel: Optional event that aborts the wait when set

    Returns:
        SUCCESS, FAILED on timeout, or CANCELLED
    """
    start_time = time.time()

    while time.time() - start_time < timeout:
        if cancel is not None and cancel.is_set():
            return TaskStatus.CANCELLED

        try:
            if condition():
                return TaskStatus.SUCCESS
        except Exception as e:
            logger.warning(f"Condition check error: {e}")

        if cancel is not None:
            if cancel.wait(poll_interval):
                return TaskStatus.CANCELLED
        else:
            time.sleep(poll_interval)

    return TaskStatus.FAILED
