"""Tests for the process-lifetime connection cache."""

import logging
import threading
import time

import pytest

from transcript_relay.server.cache import ConfigurationError, ConnectionCache


class TestConnectionCache:
    """Tests for ConnectionCache."""

    def test_lazy_until_first_get(self) -> None:
        calls = []
        cache = ConnectionCache(lambda: calls.append(1) or object())

        assert cache.is_connected is False
        assert calls == []

    def test_reuses_handle(self) -> None:
        """N calls should run the factory once and return the same handle."""
        calls = []

        def factory() -> object:
            calls.append(1)
            return object()

        cache = ConnectionCache(factory)
        handles = [cache.get() for _ in range(5)]

        assert len(calls) == 1
        assert cache.connect_count == 1
        assert all(h is handles[0] for h in handles)
        assert cache.is_connected is True

    def test_concurrent_cold_start_is_single_flight(self) -> None:
        """Concurrent first calls should share one factory run."""
        calls = []
        barrier = threading.Barrier(8)

        def factory() -> object:
            calls.append(1)
            time.sleep(0.05)
            return object()

        cache = ConnectionCache(factory)
        results: list[object] = []

        def worker() -> None:
            barrier.wait()
            results.append(cache.get())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(calls) == 1
        assert len(results) == 8
        assert all(r is results[0] for r in results)

    def test_transient_failure_is_retried_later(self) -> None:
        """A non-configuration error should leave the cache empty for the next caller."""
        attempts = []

        def factory() -> object:
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("connection refused")
            return "client"

        cache = ConnectionCache(factory)

        with pytest.raises(RuntimeError):
            cache.get()
        assert cache.is_connected is False

        assert cache.get() == "client"
        assert len(attempts) == 2

    def test_configuration_error_is_sticky(self) -> None:
        """Misconfiguration should be reported without re-running setup."""
        attempts = []

        def factory() -> object:
            attempts.append(1)
            raise ConfigurationError("missing settings")

        cache = ConnectionCache(factory)

        for _ in range(3):
            with pytest.raises(ConfigurationError, match="missing settings"):
                cache.get()

        assert len(attempts) == 1
        assert cache.connect_count == 1

    @pytest.mark.parametrize("error", [ConfigurationError("missing settings"), RuntimeError("unreachable")])
    def test_concurrent_cold_start_failure_is_shared(self, error: Exception) -> None:
        """Callers queued behind a failed setup should get its error, not retry it."""
        calls = []
        barrier = threading.Barrier(8)

        def factory() -> object:
            calls.append(1)
            time.sleep(0.2)
            raise error

        cache = ConnectionCache(factory)
        errors: list[Exception] = []

        def worker() -> None:
            barrier.wait()
            try:
                cache.get()
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(calls) == 1
        assert len(errors) == 8
        assert all(e is error for e in errors)

    def test_connect_phase_is_timed(self, caplog: pytest.LogCaptureFixture) -> None:
        cache = ConnectionCache(lambda: object(), "Typesense")

        with caplog.at_level(logging.INFO, logger="transcript_relay.server"):
            cache.get("req42")
            cache.get("req43")

        assert caplog.text.count("TIMING Typesense connect:") == 1
        assert "[req42] TIMING Typesense connect:" in caplog.text
