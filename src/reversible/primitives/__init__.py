"""Primitives: exceptions, rollback reports, signal names."""

from __future__ import annotations

from .exceptions import (
    ConfigurationError,
    InterruptionError,
    NoActiveExecutorError,
    ReversibleError,
    RollbackError,
)
from .report import RollbackReport, UndoFailure
from .signals import DEFAULT_INTERRUPT_SIGNALS, interruption_message, resolve_signal

__all__ = [
    "ConfigurationError",
    "DEFAULT_INTERRUPT_SIGNALS",
    "InterruptionError",
    "NoActiveExecutorError",
    "ReversibleError",
    "RollbackError",
    "RollbackReport",
    "UndoFailure",
    "interruption_message",
    "resolve_signal",
]
