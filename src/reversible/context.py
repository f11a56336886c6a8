"""Convenience API: reversible blocks without passing the executor around."""

from __future__ import annotations

import contextlib
import functools
import inspect
import logging
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, TypeVar, cast

from .executor import ReversibleExecutor
from .primitives.exceptions import NoActiveExecutorError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterator

logger = logging.getLogger("reversible.context")

T = TypeVar("T")
F = TypeVar("F", bound="Callable[..., Any]")

#: ContextVar tracking the executor of the innermost reversible block.
#: ``None`` means no block is active and :func:`to_undo` has nowhere to go.
_current_executor: ContextVar[ReversibleExecutor | None] = ContextVar(
    "current_reversible_executor", default=None
)


def get_current_executor() -> ReversibleExecutor | None:
    """Return the active executor (or *None* outside a reversible block)."""
    return _current_executor.get()


@contextlib.contextmanager
def reversible_scope(executor: ReversibleExecutor) -> Iterator[ReversibleExecutor]:
    """Make ``executor`` the current one for the duration of the ``with`` block.

    Scopes nest; leaving an inner scope makes the outer executor current
    again, whether the block returns or raises.
    """
    token = _current_executor.set(executor)
    try:
        yield executor
    finally:
        _current_executor.reset(token)


def reversibly(block: Callable[[], T], failure_warning: str | None = None) -> T:
    """
    Run ``block()`` under a fresh :class:`ReversibleExecutor`.

    Inside the block, :func:`to_undo` registers undo actions with that
    executor. The optional ``failure_warning`` is logged right before
    rollback if the block fails.

    Example:
        ```python
        def deploy() -> None:
            create_release_dir(path)
            to_undo(lambda: shutil.rmtree(path))
            switch_symlink(path)

        reversibly(deploy, "Deploy failed, removing release directory")
        ```
    """
    executor = ReversibleExecutor(failure_warning=failure_warning)

    def _run(rev: ReversibleExecutor) -> T:
        with reversible_scope(rev):
            return block()

    return executor.run_reversibly(_run)


async def areversibly(
    block: Callable[[], Awaitable[T]], failure_warning: str | None = None
) -> T:
    """Async counterpart of :func:`reversibly`."""
    executor = ReversibleExecutor(failure_warning=failure_warning)

    async def _run(rev: ReversibleExecutor) -> T:
        with reversible_scope(rev):
            return await block()

    return await executor.arun_reversibly(_run)


def to_undo(action: F) -> F:
    """Register ``action`` with the current reversible block.

    Returns ``action``, so it also works as a decorator::

        @to_undo
        def _remove_tmp() -> None:
            tmp.unlink()

    Raises:
        NoActiveExecutorError: If no reversible block is active.
    """
    executor = _current_executor.get()
    if executor is None:
        logger.debug("to_undo() called with no active reversible block")
        raise NoActiveExecutorError()
    return executor.add_undo(action)


def reversible(failure_warning: str | None = None) -> Callable[[F], F]:
    """Decorator running the wrapped function inside :func:`reversibly`.

    Works for both plain and ``async def`` functions.
    """

    def decorator(func: F) -> F:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                return await areversibly(
                    lambda: func(*args, **kwargs), failure_warning
                )

            return cast("F", async_wrapper)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return reversibly(lambda: func(*args, **kwargs), failure_warning)

        return cast("F", wrapper)

    return decorator
