"""ExecutorSettings — immutable configuration for a ReversibleExecutor."""

from __future__ import annotations

import signal

from pydantic import BaseModel, ConfigDict, field_validator

from .primitives.signals import DEFAULT_INTERRUPT_SIGNALS, resolve_signal


class ExecutorSettings(BaseModel):
    """Default state for new executors.

    Settings are frozen; an executor copies them at construction time and
    from then on owns its own mutable ``armed`` flag and warning message.

    Example::

        settings = ExecutorSettings(
            failure_warning="Undoing partial deploy...",
            interrupt_signals=("SIGINT", "SIGTERM", "SIGHUP"),
        )
        executor = ReversibleExecutor.from_settings(settings)
    """

    model_config = ConfigDict(frozen=True)

    armed: bool = True
    failure_warning: str | None = None
    translate_signals: bool = True
    interrupt_signals: tuple[str, ...] = DEFAULT_INTERRUPT_SIGNALS

    @field_validator("interrupt_signals")
    @classmethod
    def _validate_signals(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        # Normalise to canonical names; ConfigurationError is a ValueError,
        # so pydantic reports it as a validation error.
        return tuple(resolve_signal(name).name for name in value)

    def resolved_signals(self) -> tuple[signal.Signals, ...]:
        """The configured signals as ``signal.Signals`` members."""
        return tuple(signal.Signals[name] for name in self.interrupt_signals)
