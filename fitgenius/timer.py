"""Single-instance rest countdown between sets."""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Union

logger = logging.getLogger(__name__)

DEFAULT_REST_SECONDS = 60

_MINUTES_RE = re.compile(r"(\d+)\s*(?:min|m\b)")
_NUMBER_RE = re.compile(r"(\d+)")


def parse_rest_seconds(rest: Optional[str]) -> int:
    """Turn free text like '90s', '2 min' or '60-90 sec' into whole seconds."""
    if not rest:
        return DEFAULT_REST_SECONDS
    text = rest.lower()
    m = _MINUTES_RE.search(text)
    if m:
        return int(m.group(1)) * 60
    m = _NUMBER_RE.search(text)
    if m:
        return int(m.group(1))
    return DEFAULT_REST_SECONDS


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Running:
    remaining: int
    total: int
    label: str


@dataclass(frozen=True)
class Expired:
    label: str


TimerState = Union[Idle, Running, Expired]


class TickSource(Protocol):
    def start(self, callback: Callable[[], None]) -> None: ...

    def cancel(self) -> None: ...


class ThreadTicker:
    """Calls ``callback`` every ``interval`` seconds from a daemon thread until cancelled."""

    def __init__(self, interval: float = 1.0) -> None:
        self.interval = interval
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self, callback: Callable[[], None]) -> None:
        def run() -> None:
            while not self._stopped.wait(self.interval):
                callback()

        self._thread = threading.Thread(target=run, name="rest-timer", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        self._stopped.set()


class ManualTicker:
    """Tick source driven by hand, e.g. from tests or an external scheduler."""

    def __init__(self) -> None:
        self.callback: Optional[Callable[[], None]] = None
        self.cancelled = False

    def start(self, callback: Callable[[], None]) -> None:
        self.callback = callback

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            if self.cancelled or self.callback is None:
                return
            self.callback()


class RestTimer:
    def __init__(self, ticker_factory: Callable[[], TickSource] = ThreadTicker) -> None:
        self.ticker_factory = ticker_factory
        self._state: TimerState = Idle()
        self._ticker: Optional[TickSource] = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def state(self) -> TimerState:
        return self._state

    def _cancel_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    def start(self, rest_text: Optional[str], label: str) -> Running:
        seconds = parse_rest_seconds(rest_text)
        with self._lock:
            self._cancel_ticker()
            self._generation += 1
            generation = self._generation
            running = Running(remaining=seconds, total=seconds, label=label)
            self._state = running
            self._ticker = self.ticker_factory()
            self._ticker.start(lambda: self._on_tick(generation))
        logger.debug("Rest timer started: %s for %ss", label, seconds)
        return running

    def _on_tick(self, generation: int) -> None:
        with self._lock:
            # A tick from a superseded or stopped timer
            if generation != self._generation:
                return
            self._advance()

    def tick(self) -> TimerState:
        with self._lock:
            self._advance()
            return self._state

    def _advance(self) -> None:
        state = self._state
        if not isinstance(state, Running):
            return
        remaining = state.remaining - 1
        if remaining <= 0:
            self._state = Expired(label=state.label)
            self._cancel_ticker()
            logger.debug("Rest timer expired: %s", state.label)
        else:
            self._state = Running(remaining=remaining, total=state.total, label=state.label)

    def stop(self) -> None:
        with self._lock:
            self._generation += 1
            self._cancel_ticker()
            self._state = Idle()

    def close(self) -> None:
        self.stop()


def format_seconds(seconds: int) -> str:
    mins, secs = divmod(max(0, seconds), 60)
    return f"{mins}:{secs:02d}"
