"""Observers notified with ``(state, t)`` after integration steps.

Observers are for reporting only; nothing they do feeds back into the
integration. Variants compose by delegation:

- :class:`SilentObserver`: ignores every notification.
- :class:`DecimatedObserver`: forwards every N-th notification to another
  observer.
- :class:`PrintObserver`: writes ``"<t> <state>"`` lines to a stream.
- :class:`LoggingObserver`: emits the same line through :mod:`logging`.

Any callable with the :class:`Observer` signature may be used in their place.
"""

from __future__ import annotations

import logging
import sys
from typing import Protocol, TextIO

from jax import Array

logger = logging.getLogger(__name__)


class Observer(Protocol):
    """Receives the state and time after a step."""

    def __call__(self, state: Array, t: Array) -> None: ...


class SilentObserver:
    """Observer that does nothing."""

    def __call__(self, state: Array, t: Array) -> None:
        return None


class DecimatedObserver:
    """Forward only every ``every``-th notification to ``observer``.

    The first forwarded notification is the ``every``-th one. An ``every``
    of 0 or 1 forwards every notification.

    Args:
        observer: Observer receiving the forwarded notifications.
        every: Decimation factor.

    Raises:
        ValueError: If ``every`` is negative.
    """

    def __init__(self, observer: Observer, every: int = 1) -> None:
        if every < 0:
            raise ValueError(f"Decimation factor must be non-negative, got {every}")
        self._observer = observer
        self._every = int(every)
        self._count = 0

    @property
    def every(self) -> int:
        """Decimation factor."""
        return self._every

    def __call__(self, state: Array, t: Array) -> None:
        if self._every <= 1:
            self._observer(state, t)
            return
        self._count += 1
        if self._count == self._every:
            self._count = 0
            self._observer(state, t)


def _format_line(state: Array, t: Array) -> str:
    return f"{float(t)} {state}"


class PrintObserver:
    """Write ``"<t> <state>"`` for every notification.

    Args:
        stream: Text stream to write to. Defaults to ``sys.stdout`` at the
            time of each call.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def __call__(self, state: Array, t: Array) -> None:
        stream = self._stream if self._stream is not None else sys.stdout
        print(_format_line(state, t), file=stream)


class LoggingObserver:
    """Log ``"<t> <state>"`` for every notification.

    Args:
        log: Logger to use. Defaults to this module's logger.
        level: Logging level of the emitted records.
    """

    def __init__(self, log: logging.Logger | None = None, level: int = logging.DEBUG) -> None:
        self._logger = log if log is not None else logger
        self._level = level

    def __call__(self, state: Array, t: Array) -> None:
        if self._logger.isEnabledFor(self._level):
            self._logger.log(self._level, "%s", _format_line(state, t))
