"""Process-lifetime cache for backend client handles."""

import threading
from collections.abc import Callable
from typing import Generic, TypeVar

from transcript_relay.logging import get_logger, phase_timer

logger = get_logger("server")

T = TypeVar("T")


class ConfigurationError(Exception):
    """Required backend settings are missing or invalid.

    Fatal and not retryable: the deployment must be fixed.
    """


class ConnectionCache(Generic[T]):
    """Lazily created, single-flight, never-closed client handle.

    The first get() runs the factory while holding a lock; concurrent
    callers wait for it and then share the same handle.

    Failures are shared the same way. A ConfigurationError is kept and
    re-raised on every later call without running the factory again.
    Any other error is handed to the callers that were already waiting
    on the failed attempt; callers arriving after it start a new attempt.
    """

    def __init__(self, factory: Callable[[], T], name: str = "backend") -> None:
        self._factory = factory
        self._name = name
        self._handle: T | None = None
        self._fatal: ConfigurationError | None = None
        self._last_error: Exception | None = None
        self._finished_attempts = 0
        self._lock = threading.Lock()
        self.connect_count = 0

    @property
    def is_connected(self) -> bool:
        return self._handle is not None

    def get(self, request_id: str = "") -> T:
        handle = self._handle
        if handle is not None:
            logger.debug("[%s] %s using cached client", request_id, self._name)
            return handle
        if self._fatal is not None:
            raise self._fatal

        seen_attempts = self._finished_attempts
        with self._lock:
            if self._handle is not None:
                logger.debug("[%s] %s using cached client", request_id, self._name)
                return self._handle
            if self._fatal is not None:
                raise self._fatal
            if self._finished_attempts != seen_attempts and self._last_error is not None:
                # An attempt failed while this caller was waiting
                raise self._last_error

            logger.info("[%s] %s creating new client", request_id, self._name)
            self.connect_count += 1
            try:
                with phase_timer(logger, f"{self._name} connect", request_id):
                    self._handle = self._factory()
            except ConfigurationError as e:
                self._fatal = e
                raise
            except Exception as e:
                self._last_error = e
                raise
            finally:
                self._finished_attempts += 1

            self._last_error = None
            return self._handle
