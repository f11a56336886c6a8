from __future__ import annotations

import signal

import pydantic
import pytest

from reversible.config import ExecutorSettings
from reversible.primitives.exceptions import ConfigurationError
from reversible.primitives.signals import interruption_message, resolve_signal


def test_defaults() -> None:
    settings = ExecutorSettings()
    assert settings.armed is True
    assert settings.failure_warning is None
    assert settings.translate_signals is True
    assert settings.interrupt_signals == ("SIGINT", "SIGTERM")
    assert settings.resolved_signals() == (signal.SIGINT, signal.SIGTERM)


def test_signal_names_are_normalised() -> None:
    settings = ExecutorSettings(interrupt_signals=("int", " sigterm "))
    assert settings.interrupt_signals == ("SIGINT", "SIGTERM")


def test_unknown_signal_is_rejected() -> None:
    with pytest.raises(pydantic.ValidationError, match="Unknown signal name"):
        ExecutorSettings(interrupt_signals=("SIGNOPE",))


@pytest.mark.skipif(not hasattr(signal, "SIGKILL"), reason="POSIX signals required")
def test_uncatchable_signal_is_rejected() -> None:
    with pytest.raises(pydantic.ValidationError, match="cannot be caught"):
        ExecutorSettings(interrupt_signals=("SIGKILL",))


def test_settings_are_frozen() -> None:
    settings = ExecutorSettings()
    with pytest.raises(pydantic.ValidationError):
        settings.armed = False  # type: ignore[misc]


def test_resolve_signal() -> None:
    assert resolve_signal("SIGINT") is signal.SIGINT
    assert resolve_signal("term") is signal.SIGTERM
    with pytest.raises(ConfigurationError):
        resolve_signal("bogus")


def test_configuration_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        resolve_signal("bogus")


def test_interruption_messages() -> None:
    assert interruption_message(signal.SIGINT) == "interrupted"
    assert interruption_message(signal.SIGTERM) == "terminated"
    if hasattr(signal, "SIGHUP"):
        assert interruption_message(signal.SIGHUP) == "received SIGHUP"
    assert interruption_message(999) == "received signal 999"
