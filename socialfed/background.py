"""
Bounded background work for fire-and-forget tasks such as push delivery.

The queue never blocks the caller: when the backlog is full a task is
dropped and logged. Coroutine functions are run to completion with
``asyncio.run`` inside the worker thread.
"""

import asyncio
import inspect
import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from socialfed.config import Config

logger = logging.getLogger(__name__)


class TaskQueue(Protocol):
    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> bool: ...


def _task_name(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__qualname__", None) or repr(fn)


def _run_task(fn: Callable[..., Any], args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
    if inspect.iscoroutinefunction(fn):
        return asyncio.run(fn(*args, **kwargs))
    result = fn(*args, **kwargs)
    if inspect.iscoroutine(result):
        return asyncio.run(result)
    return result


class BackgroundTaskQueue:
    """
    Worker pool with a cap on queued plus running tasks.

    Args:
        max_workers: Number of worker threads
        max_pending: Tasks accepted before submit() starts refusing
    """

    def __init__(self, max_workers: int = 4, max_pending: int = 1000) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="socialfed-bg"
        )
        self._max_pending = max_pending
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._pending = 0
        self._closed = False

    @classmethod
    def from_config(cls, config: "Config") -> "BackgroundTaskQueue":
        return cls(
            max_workers=config.background_workers,
            max_pending=config.background_max_pending,
        )

    @property
    def pending(self) -> int:
        """Tasks accepted and not yet finished."""
        with self._lock:
            return self._pending

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
        """
        Schedule fn(*args, **kwargs).

        Returns:
            False if the queue is shut down or the backlog is full
        """
        with self._lock:
            if self._closed:
                logger.warning(f"Background queue is shut down, dropping {_task_name(fn)}")
                return False
            if self._pending >= self._max_pending:
                logger.warning(
                    f"Background queue full ({self._max_pending} pending), "
                    f"dropping {_task_name(fn)}"
                )
                return False
            self._pending += 1

        try:
            self._executor.submit(self._run, fn, args, kwargs)
        except RuntimeError as e:
            self._task_done()
            logger.warning(f"Could not schedule {_task_name(fn)}: {e}")
            return False
        return True

    def _run(self, fn: Callable[..., Any], args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        try:
            _run_task(fn, args, kwargs)
        except Exception as e:
            logger.error(f"Background task {_task_name(fn)} failed: {e}")
        finally:
            self._task_done()

    def _task_done(self) -> None:
        with self._lock:
            self._pending -= 1
            if self._pending == 0:
                self._idle.notify_all()

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until every accepted task has finished. False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)


class InlineTaskQueue:
    """Runs tasks immediately in the calling thread, with the same error containment."""

    pending = 0

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
        try:
            _run_task(fn, args, kwargs)
        except Exception as e:
            logger.error(f"Inline task {_task_name(fn)} failed: {e}")
        return True

    def wait_idle(self, timeout: float | None = None) -> bool:
        return True

    def shutdown(self, wait: bool = True) -> None:
        pass
