"""Rollback outcome records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass(frozen=True)
class UndoFailure:
    """An undo action that raised while the stack was being unwound."""

    action: Callable[[], Any]
    error: Exception

    def __str__(self) -> str:
        name = getattr(self.action, "__qualname__", repr(self.action))
        return f"{name}: {type(self.error).__name__}: {self.error}"


@dataclass(frozen=True)
class RollbackReport:
    """Summary of one undo-stack replay.

    ``executed`` counts every action that was invoked, including the ones
    that failed.
    """

    executed: int = 0
    failures: tuple[UndoFailure, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        """True when every undo action completed without raising."""
        return not self.failures
