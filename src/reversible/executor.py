"""ReversibleExecutor — run code with an undo stack that unwinds on failure."""

from __future__ import annotations

import asyncio
import contextlib
import functools
import inspect
import logging
import types
from typing import TYPE_CHECKING, Any, TypeVar

from .config import ExecutorSettings
from .interruption import AsyncSignalTranslator, SignalTranslator
from .primitives.exceptions import RollbackError
from .primitives.report import RollbackReport, UndoFailure

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterator

logger = logging.getLogger("reversible.executor")

T = TypeVar("T")
UndoAction = TypeVar("UndoAction", bound="Callable[[], Any]")


class _factorymethod:
    """Method that can also be called on the class.

    Accessed through an instance it behaves like a normal method. Called
    through the class it runs on a freshly constructed default instance,
    unless the first argument already is one (the usual unbound-call form).
    """

    def __init__(self, func: Callable[..., Any]) -> None:
        self._func = func
        functools.update_wrapper(self, func)

    def __get__(self, instance: Any, owner: type[Any]) -> Callable[..., Any]:
        if instance is not None:
            return types.MethodType(self._func, instance)
        func = self._func

        @functools.wraps(func)
        def call(*args: Any, **kwargs: Any) -> Any:
            if args and isinstance(args[0], owner):
                return func(*args, **kwargs)
            return func(owner(), *args, **kwargs)

        return call


class ReversibleExecutor:
    """
    Runs a block of code and undoes its side effects if it fails.

    Call :meth:`add_undo` right after each side effect with a zero-argument
    callable that reverses it. If the block passed to :meth:`run_reversibly`
    raises (or is interrupted by SIGINT/SIGTERM) while the executor is armed,
    the registered actions run in reverse order and a :class:`RollbackError`
    wrapping the original failure is raised.

    Example:
        ```python
        executor = ReversibleExecutor(failure_warning="Undoing actions...")

        def block(rev: ReversibleExecutor) -> None:
            path.write_text("draft")
            rev.add_undo(path.unlink)

            publish(path)  # may raise

            rev.clear_undo()  # point of no return
            rev.failure_warning = "Publish succeeded, cleanup failed"

            with rev.disarmed():
                best_effort_cleanup()

        executor.run_reversibly(block)

        # Or let the class build a default executor:
        ReversibleExecutor.run_reversibly(lambda rev: rev.add_undo(...))
        ```

    The executor is not thread-safe; use one per protected block. It may be
    reused for sequential blocks since every run starts with an empty stack.
    """

    def __init__(
        self,
        settings: ExecutorSettings | None = None,
        *,
        armed: bool | None = None,
        failure_warning: str | None = None,
    ) -> None:
        settings = settings or ExecutorSettings()
        self._undo_stack: list[Callable[[], Any]] = []
        self._armed = settings.armed if armed is None else armed
        self._failure_warning = (
            settings.failure_warning if failure_warning is None else failure_warning
        )
        self._translate_signals = settings.translate_signals
        self._signals = settings.resolved_signals()
        # Exceptions that escaped a disarmed() section during the current run.
        self._passthrough: list[BaseException] = []

    @classmethod
    def from_settings(cls, settings: ExecutorSettings) -> ReversibleExecutor:
        """Build an executor from explicit settings."""
        return cls(settings)

    # ══════════════════════════════════════════════════════════════════
    # Undo stack
    # ══════════════════════════════════════════════════════════════════

    def add_undo(self, action: UndoAction) -> UndoAction:
        """Push an undo action; returns it so this can be used as a decorator."""
        if not callable(action):
            raise TypeError(f"Undo action must be callable, got {action!r}")
        self._undo_stack.append(action)
        return action

    def pop_undo(self) -> Callable[[], Any] | None:
        """Remove and return the most recent undo action, or None if empty."""
        if not self._undo_stack:
            return None
        return self._undo_stack.pop()

    def clear_undo(self) -> None:
        """Drop every pending undo action without running it.

        Handy once a "point of no return" is reached inside the block.
        Unlike :meth:`disarm`, the existing stack is gone for good.
        """
        self._undo_stack.clear()

    def is_undo_empty(self) -> bool:
        return not self._undo_stack

    # ══════════════════════════════════════════════════════════════════
    # Arming
    # ══════════════════════════════════════════════════════════════════

    @property
    def armed(self) -> bool:
        """Whether a failing block triggers rollback.

        Checked when the failure is caught, not when undo actions are added.
        """
        return self._armed

    @armed.setter
    def armed(self, value: bool) -> None:
        self._armed = bool(value)

    def arm(self) -> None:
        self._armed = True

    def disarm(self) -> None:
        self._armed = False

    @contextlib.contextmanager
    def disarmed(self) -> Iterator[ReversibleExecutor]:
        """Disarm for the duration of a ``with`` block, then restore.

        The previous state is restored on every exit path. An exception that
        escapes the section is remembered, and if it reaches
        :meth:`run_reversibly` it propagates untouched, with no rollback.
        If the block catches it instead, later failures roll back as usual.
        """
        previous = self._armed
        self._armed = False
        try:
            yield self
        except Exception as exc:
            self._passthrough.append(exc)
            raise
        finally:
            self._armed = previous

    @property
    def failure_warning(self) -> str | None:
        """Message logged as a warning right before rollback starts."""
        return self._failure_warning

    @failure_warning.setter
    def failure_warning(self, value: str | None) -> None:
        self._failure_warning = value

    # ══════════════════════════════════════════════════════════════════
    # Protected execution
    # ══════════════════════════════════════════════════════════════════

    @_factorymethod
    def run_reversibly(self, block: Callable[[ReversibleExecutor], T]) -> T:
        """
        Execute ``block(self)``, rolling back its side effects on failure.

        The undo stack is cleared first. When disarmed at entry the block
        runs bare: no signal translation and no interception. Otherwise
        SIGINT/SIGTERM are translated into ``InterruptionError`` for the
        duration of the block, and a failure is handled according to the
        arming state at the moment it is caught:

        * disarmed: the original exception propagates unchanged;
        * armed: ``failure_warning`` is logged, :meth:`run_undo` unwinds
          the stack, and :class:`RollbackError` is raised from the original.

        Can be called on the class, in which case a default executor is
        created and passed to ``block``.

        Returns:
            Whatever ``block`` returns. Undo actions registered by a
            successful block stay on the stack for the caller.
        """
        self.clear_undo()
        self._passthrough.clear()

        if not self._armed:
            return block(self)

        try:
            with SignalTranslator(self._translated_signals()):
                return block(self)
        except Exception as exc:
            if not self._should_roll_back(exc):
                logger.debug("Block failed while disarmed, no rollback: %s", exc)
                raise
            self._warn_failure()
            logger.info("Block failed, rolling back: %s", exc)
            report = self.run_undo()
            raise RollbackError(exc, report) from exc

    @_factorymethod
    async def arun_reversibly(
        self, block: Callable[[ReversibleExecutor], Awaitable[T]]
    ) -> T:
        """Async counterpart of :meth:`run_reversibly`.

        Signals cancel the running task instead of raising in place; the
        cancellation is converted to ``InterruptionError`` and handled like
        any other failure. Cancellation from anywhere else is not intercepted.
        Undo actions may be coroutine functions.
        """
        self.clear_undo()
        self._passthrough.clear()

        if not self._armed:
            return await block(self)

        translator = AsyncSignalTranslator(self._translated_signals())
        try:
            try:
                with translator:
                    return await block(self)
            except asyncio.CancelledError:
                interruption = translator.interruption()
                if interruption is None:
                    raise
                raise interruption from None
        except Exception as exc:
            if not self._should_roll_back(exc):
                logger.debug("Block failed while disarmed, no rollback: %s", exc)
                raise
            self._warn_failure()
            logger.info("Block failed, rolling back: %s", exc)
            report = await self.arun_undo()
            raise RollbackError(exc, report) from exc

    # ══════════════════════════════════════════════════════════════════
    # Rollback
    # ══════════════════════════════════════════════════════════════════

    def run_undo(self) -> RollbackReport:
        """
        Pop and run every undo action, most recent first.

        A failing action is logged and recorded; the remaining actions
        still run. Safe to call on an empty stack, and outside
        :meth:`run_reversibly` when a successful block left actions behind.

        Returns:
            RollbackReport describing what ran and what failed.
        """
        executed = 0
        failures: list[UndoFailure] = []

        while self._undo_stack:
            action = self._undo_stack.pop()
            executed += 1
            try:
                action()
            except Exception as exc:  # noqa: BLE001
                logger.error("Exception during undo: %s", exc, exc_info=True)
                failures.append(UndoFailure(action=action, error=exc))

        return self._finish_rollback(executed, failures)

    async def arun_undo(self) -> RollbackReport:
        """Like :meth:`run_undo`, awaiting actions that return awaitables."""
        executed = 0
        failures: list[UndoFailure] = []

        while self._undo_stack:
            action = self._undo_stack.pop()
            executed += 1
            try:
                result = action()
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:  # noqa: BLE001
                logger.error("Exception during undo: %s", exc, exc_info=True)
                failures.append(UndoFailure(action=action, error=exc))

        return self._finish_rollback(executed, failures)

    # ── Internals ─────────────────────────────────────────────────────

    def _translated_signals(self) -> tuple[int, ...]:
        return self._signals if self._translate_signals else ()

    def _should_roll_back(self, exc: BaseException) -> bool:
        escaped = any(exc is passed for passed in self._passthrough)
        self._passthrough.clear()
        return self._armed and not escaped

    def _warn_failure(self) -> None:
        if self._failure_warning:
            logger.warning("%s", self._failure_warning)

    def _finish_rollback(
        self, executed: int, failures: list[UndoFailure]
    ) -> RollbackReport:
        if executed:
            logger.info(
                "Rollback finished: %d undo actions, %d failed",
                executed,
                len(failures),
                extra={"undo_count": executed, "failed_count": len(failures)},
            )
        return RollbackReport(executed=executed, failures=tuple(failures))
