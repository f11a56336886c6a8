"""Signal names and the fixed failure messages they translate into."""

from __future__ import annotations

import signal

from .exceptions import ConfigurationError

DEFAULT_INTERRUPT_SIGNALS: tuple[str, ...] = ("SIGINT", "SIGTERM")

_MESSAGES: dict[str, str] = {
    "SIGINT": "interrupted",
    "SIGTERM": "terminated",
}

_UNCATCHABLE = frozenset({"SIGKILL", "SIGSTOP"})


def resolve_signal(name: str) -> signal.Signals:
    """Map a signal name (``"SIGINT"``, ``"int"``, ...) to ``signal.Signals``.

    Raises:
        ConfigurationError: If the platform has no signal of that name, or
            the signal cannot be caught.
    """
    normalized = name.strip().upper()
    if not normalized.startswith("SIG"):
        normalized = f"SIG{normalized}"
    try:
        resolved = signal.Signals[normalized]
    except KeyError:
        raise ConfigurationError(f"Unknown signal name: {name!r}") from None
    if resolved.name in _UNCATCHABLE:
        raise ConfigurationError(f"{resolved.name} cannot be caught")
    return resolved


def interruption_message(signum: int) -> str:
    """Fixed message for a translated signal."""
    try:
        name = signal.Signals(signum).name
    except ValueError:
        return f"received signal {signum}"
    return _MESSAGES.get(name, f"received {name}")
