"""reversible — run code with an undo stack that unwinds when it fails.

Side effects register their own undo actions; if the protected block raises
or is interrupted by SIGINT/SIGTERM, the actions run in reverse order before
the failure is re-raised.
"""

from __future__ import annotations

from .config import ExecutorSettings

# ── Convenience API ─────────────────────────────────────────────
from .context import (
    areversibly,
    get_current_executor,
    reversible,
    reversible_scope,
    reversibly,
    to_undo,
)

# ── Executor ────────────────────────────────────────────────────
from .executor import ReversibleExecutor
from .interruption import AsyncSignalTranslator, SignalTranslator

# ── Primitives ──────────────────────────────────────────────────
from .primitives import (
    ConfigurationError,
    InterruptionError,
    NoActiveExecutorError,
    ReversibleError,
    RollbackError,
    RollbackReport,
    UndoFailure,
)

__all__: list[str] = [
    # Executor
    "ExecutorSettings",
    "ReversibleExecutor",
    "RollbackReport",
    "UndoFailure",
    "SignalTranslator",
    "AsyncSignalTranslator",
    # Convenience API
    "areversibly",
    "get_current_executor",
    "reversible",
    "reversible_scope",
    "reversibly",
    "to_undo",
    # Primitives
    "ConfigurationError",
    "InterruptionError",
    "NoActiveExecutorError",
    "ReversibleError",
    "RollbackError",
]
