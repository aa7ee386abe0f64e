"""Cancellation of a run from operator signals."""

import logging
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@contextmanager
def cancel_on_signals(
    event: threading.Event | None = None,
    signals: tuple[signal.Signals, ...] = DEFAULT_SIGNALS,
) -> Iterator[threading.Event]:
    """Set ``event`` when one of ``signals`` arrives, for the duration of the block.

    Previous handlers are restored on exit. Outside the main thread signal
    handlers cannot be installed; the event is then only set by the caller.
    """
    event = event or threading.Event()

    def _handler(signum: int, frame: Any) -> None:
        if not event.is_set():
            logger.info(f"Received {signal.Signals(signum).name}, cancelling run")
        event.set()

    previous: dict[signal.Signals, Any] = {}
    for sig in signals:
        try:
            previous[sig] = signal.signal(sig, _handler)
        except ValueError:
            logger.debug(f"Cannot install handler for {sig.name} outside the main thread")

    try:
        yield event
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
