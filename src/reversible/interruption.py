"""Scoped translation of SIGINT/SIGTERM into InterruptionError."""

from __future__ import annotations

import asyncio
import logging
import signal
import threading
from typing import TYPE_CHECKING, Any

from .primitives.exceptions import InterruptionError
from .primitives.signals import interruption_message

if TYPE_CHECKING:
    from collections.abc import Iterable
    from types import FrameType

logger = logging.getLogger("reversible.interruption")


def _raise_interruption(signum: int, _frame: FrameType | None) -> None:
    raise InterruptionError(signum, interruption_message(signum))


class SignalTranslator:
    """
    Context manager that turns the given signals into ``InterruptionError``.

    While active, delivery of one of the signals raises ``InterruptionError``
    in the main thread at the next bytecode boundary. The handlers that were
    in place before ``__enter__`` are restored by ``__exit__`` on every exit
    path.

    CPython only allows signal handlers to be installed from the main thread
    of the main interpreter. Elsewhere, or if installing a handler fails, the
    translator does nothing and ``installed`` stays False.

    Usage:
        ```python
        with SignalTranslator([signal.SIGINT, signal.SIGTERM]):
            long_running_side_effects()
        ```
    """

    def __init__(self, signals: Iterable[int]) -> None:
        self._signals = tuple(signals)
        self._previous: dict[int, Any] = {}

    @property
    def installed(self) -> bool:
        return bool(self._previous)

    def __enter__(self) -> SignalTranslator:
        if not self._signals:
            return self
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Signal translation skipped: not on the main thread")
            return self

        try:
            for signum in self._signals:
                # Recorded first so a signal landing mid-install is undone too.
                self._previous[signum] = signal.getsignal(signum)
                signal.signal(signum, _raise_interruption)
        except (OSError, ValueError) as exc:
            # The failing signal was never replaced.
            self._previous.pop(signum, None)
            self._restore()
            logger.debug("Signal translation skipped: %s", exc)
            return self
        except InterruptionError:
            self._restore()
            raise

        logger.debug(
            "Signal translation installed for %s",
            [signal.Signals(s).name for s in self._signals],
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self._restore()

    def _restore(self) -> None:
        if not self._previous:
            return
        # Our own handler stays live until every signal is reset, so an
        # interruption here is held back and re-raised at the end.
        pending: InterruptionError | None = None
        for signum, previous in list(self._previous.items()):
            # None means the old handler was not installed from Python.
            handler = signal.SIG_DFL if previous is None else previous
            while True:
                try:
                    signal.signal(signum, handler)
                except InterruptionError as exc:
                    if pending is None:
                        pending = exc
                else:
                    break
        self._previous.clear()
        logger.debug("Signal translation removed")
        if pending is not None:
            raise pending


class _LoopSignals:
    """Shared loop-level signal handlers for every active async translator.

    ``loop.add_signal_handler`` keeps one callback per signal, so concurrent
    reversible tasks on the same loop subscribe here instead of replacing
    each other's handlers. The handler is installed for the first subscriber
    and removed, with the previous handler restored, after the last one.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self.loop = loop
        self._previous: dict[int, Any] = {}
        self._subscribers: dict[int, list[AsyncSignalTranslator]] = {}

    def subscribe(self, signum: int, translator: AsyncSignalTranslator) -> None:
        subscribers = self._subscribers.get(signum)
        if not subscribers:
            previous = signal.getsignal(signum)
            self.loop.add_signal_handler(signum, self._dispatch, signum)
            self._previous[signum] = previous
            subscribers = self._subscribers[signum] = []
        subscribers.append(translator)

    def unsubscribe(self, signum: int, translator: AsyncSignalTranslator) -> None:
        subscribers = self._subscribers.get(signum, [])
        if translator in subscribers:
            subscribers.remove(translator)
        if subscribers or signum not in self._previous:
            return
        self._subscribers.pop(signum, None)
        previous = self._previous.pop(signum)
        self.loop.remove_signal_handler(signum)
        if previous is not None:
            signal.signal(signum, previous)

    @property
    def idle(self) -> bool:
        return not self._subscribers

    def _dispatch(self, signum: int) -> None:
        for translator in list(self._subscribers.get(signum, ())):
            translator._on_signal(signum)


_loop_signals: dict[asyncio.AbstractEventLoop, _LoopSignals] = {}


class AsyncSignalTranslator:
    """
    Event-loop flavour of :class:`SignalTranslator`.

    Raising from a signal handler inside a running event loop would surface
    the error in whatever callback happens to be executing, so instead the
    signals are observed through ``loop.add_signal_handler`` and cancel the
    task that entered the translator. The caller converts the resulting
    ``CancelledError`` via :meth:`interruption`.

    Every active translator on the loop is notified, so one Ctrl+C rolls
    back all reversible tasks that are running at the time.

    Falls back to doing nothing when the loop does not support signal
    handlers (Windows, or a loop running outside the main thread).
    """

    def __init__(self, signals: Iterable[int]) -> None:
        self._signals = tuple(signals)
        self._subscribed: list[int] = []
        self._shared: _LoopSignals | None = None
        self._task: asyncio.Task[Any] | None = None
        self.received: int | None = None

    @property
    def installed(self) -> bool:
        return bool(self._subscribed)

    def __enter__(self) -> AsyncSignalTranslator:
        if not self._signals:
            return self
        loop = asyncio.get_running_loop()
        self._task = asyncio.current_task()
        self._shared = _loop_signals.setdefault(loop, _LoopSignals(loop))

        try:
            for signum in self._signals:
                self._shared.subscribe(signum, self)
                self._subscribed.append(signum)
        except (NotImplementedError, RuntimeError) as exc:
            self._restore()
            logger.debug("Signal translation skipped: %s", exc)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self._restore()

    def _on_signal(self, signum: int) -> None:
        if self.received is None:
            self.received = signum
            logger.debug("Received %s, cancelling block", signal.Signals(signum).name)
            if self._task is not None:
                self._task.cancel()

    def interruption(self) -> InterruptionError | None:
        """The translated failure, if a signal cancelled the block.

        Also withdraws the cancellation request from the task, so the
        failure is handled like any other block failure instead of
        cancelling whatever the task awaits next.
        """
        if self.received is None:
            return None
        if self._task is not None and hasattr(self._task, "uncancel"):
            self._task.uncancel()
        return InterruptionError(self.received, interruption_message(self.received))

    def _restore(self) -> None:
        shared = self._shared
        if shared is None:
            return
        while self._subscribed:
            shared.unsubscribe(self._subscribed.pop(), self)
        if shared.idle and _loop_signals.get(shared.loop) is shared:
            del _loop_signals[shared.loop]
        self._shared = None
