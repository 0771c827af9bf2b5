"""
Circuit breaker for orders feed publishing.

While Redis is unreachable every write would otherwise spend its retry
budget before answering. After `failure_threshold` failed publishes the
breaker opens and publishes are dropped at once; after `recovery_timeout`
a few probe publishes are let through, and one success closes it again.
"""

from __future__ import annotations

import random
import threading
import time
from enum import Enum
from typing import Callable

from shared.config.settings import settings
from shared.config.logging import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class EventCircuitBreaker:
    """Three-state breaker. Thread-safe; REST handlers publish from worker threads too."""

    def __init__(
        self,
        failure_threshold: int | None = None,
        recovery_timeout: float | None = None,
        probe_limit: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold or settings.event_breaker_failure_threshold
        self.recovery_timeout = (
            settings.event_breaker_recovery_timeout if recovery_timeout is None else recovery_timeout
        )
        self.probe_limit = probe_limit
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at: float | None = None
        self._probes_in_flight = 0
        self._dropped = 0
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        logger.error(
            "Orders feed circuit breaker opened",
            consecutive_failures=self._consecutive_failures,
            recovery_timeout=self.recovery_timeout,
        )

    def can_execute(self) -> bool:
        with self._lock:
            if self._state == CircuitState.OPEN:
                if self._clock() - (self._opened_at or 0.0) < self.recovery_timeout:
                    self._dropped += 1
                    return False
                self._state = CircuitState.HALF_OPEN
                self._probes_in_flight = 0
                logger.info("Orders feed circuit breaker probing")

            if self._state == CircuitState.HALF_OPEN:
                if self._probes_in_flight >= self.probe_limit:
                    self._dropped += 1
                    return False
                self._probes_in_flight += 1
            return True

    def record_success(self) -> None:
        with self._lock:
            if self._state != CircuitState.CLOSED:
                logger.info("Orders feed circuit breaker closed")
            self._state = CircuitState.CLOSED
            self._consecutive_failures = 0
            self._opened_at = None

    def record_failure(self) -> None:
        with self._lock:
            self._consecutive_failures += 1
            if self._state == CircuitState.HALF_OPEN:
                self._open()
            elif self._state == CircuitState.CLOSED and self._consecutive_failures >= self.failure_threshold:
                self._open()

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "state": self._state.value,
                "consecutive_failures": self._consecutive_failures,
                "dropped": self._dropped,
            }


_event_circuit_breaker: EventCircuitBreaker | None = None
_breaker_lock = threading.Lock()


def get_event_circuit_breaker() -> EventCircuitBreaker:
    """Process-wide breaker shared by every publisher."""
    global _event_circuit_breaker
    if _event_circuit_breaker is None:
        with _breaker_lock:
            if _event_circuit_breaker is None:
                _event_circuit_breaker = EventCircuitBreaker()
    return _event_circuit_breaker


def calculate_retry_delay_with_jitter(attempt: int, base_delay: float = 0.5, max_delay: float = 10.0) -> float:
    """Random delay in [base_delay, base_delay * 2**attempt], the upper end capped at max_delay."""
    ceiling = min(base_delay * (2 ** attempt), max_delay)
    return random.uniform(base_delay, max(base_delay, ceiling))
