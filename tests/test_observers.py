"""Tests for the stepjax.observers module."""

import io
import logging

import jax.numpy as jnp
import pytest

from stepjax.observers import (
    DecimatedObserver,
    LoggingObserver,
    PrintObserver,
    SilentObserver,
)


class _Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, state, t):
        self.calls.append((state, float(t)))


class TestSilentObserver:
    def test_returns_none(self):
        assert SilentObserver()(jnp.array([1.0]), 0.0) is None


class TestDecimatedObserver:
    def test_every_third(self):
        """Only every third notification is forwarded."""
        inner = _Recorder()
        observer = DecimatedObserver(inner, every=3)
        assert observer.every == 3
        for i in range(7):
            observer(jnp.array([float(i)]), float(i))
        assert [t for _, t in inner.calls] == [2.0, 5.0]

    @pytest.mark.parametrize("every", [0, 1])
    def test_forward_all(self, every):
        """Decimation factors of 0 and 1 forward every notification."""
        inner = _Recorder()
        observer = DecimatedObserver(inner, every=every)
        for i in range(4):
            observer(jnp.array([0.0]), float(i))
        assert len(inner.calls) == 4

    def test_negative_raises(self):
        with pytest.raises(ValueError, match="non-negative"):
            DecimatedObserver(_Recorder(), every=-1)

    def test_composes_with_print(self):
        """Decimation wraps any observer by delegation."""
        out = io.StringIO()
        observer = DecimatedObserver(PrintObserver(out), every=2)
        for i in range(4):
            observer(jnp.array([1.0]), float(i))
        assert len(out.getvalue().splitlines()) == 2


class TestPrintObserver:
    def test_writes_time_then_state(self):
        out = io.StringIO()
        PrintObserver(out)(jnp.array([1.0, 2.0]), jnp.asarray(0.5))
        line = out.getvalue().strip()
        assert line.startswith("0.5 ")
        assert "1." in line and "2." in line

    def test_defaults_to_stdout(self, capsys):
        PrintObserver()(jnp.array([3.0]), 1.25)
        assert capsys.readouterr().out.startswith("1.25 ")


class TestLoggingObserver:
    def test_logs_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="stepjax.observers"):
            LoggingObserver()(jnp.array([1.0]), 2.0)
        assert len(caplog.records) == 1
        assert caplog.records[0].levelno == logging.DEBUG
        assert caplog.records[0].getMessage().startswith("2.0 ")

    def test_custom_logger_and_level(self, caplog):
        log = logging.getLogger("stepjax.tests.trajectory")
        with caplog.at_level(logging.INFO, logger="stepjax.tests.trajectory"):
            LoggingObserver(log, level=logging.INFO)(jnp.array([1.0]), 0.0)
        assert [r.name for r in caplog.records] == ["stepjax.tests.trajectory"]

    def test_disabled_level_emits_nothing(self, caplog):
        with caplog.at_level(logging.WARNING, logger="stepjax.observers"):
            LoggingObserver()(jnp.array([1.0]), 0.0)
        assert caplog.records == []
