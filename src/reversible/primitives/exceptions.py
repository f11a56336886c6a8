"""Exceptions for the reversible toolkit."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .report import RollbackReport


class ReversibleError(Exception):
    """Root exception for the entire reversible toolkit."""


class ConfigurationError(ReversibleError, ValueError):
    """Raised when executor settings are invalid."""


class InterruptionError(ReversibleError):
    """An interrupt or termination signal, translated into a failure.

    Raised inside a protected block while the executor is armed, so that the
    usual rollback logic applies to Ctrl+C and ``kill`` just like any other
    failure.
    """

    def __init__(self, signum: int, message: str) -> None:
        self.signum = signum
        super().__init__(message)


class RollbackError(ReversibleError):
    """The protected block failed while armed and the undo stack was run.

    Carries the original failure (also set as ``__cause__``) and the report
    of what rollback did. Callers catch this to tell "failed and rolled
    back" apart from failures that passed straight through.
    """

    def __init__(self, original: BaseException, report: RollbackReport) -> None:
        self.original = original
        self.report = report
        super().__init__(f"The exception that caused rollback was: {original}")


class NoActiveExecutorError(ReversibleError):
    """Raised when an undo action is registered outside any reversible scope."""

    def __init__(self) -> None:
        super().__init__(
            "to_undo() called outside of a reversible block. "
            "Wrap the calling code in reversibly() or @reversible."
        )
