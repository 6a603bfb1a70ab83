"""Shared fixtures for transcript-relay tests."""

import logging
from pathlib import Path

import pytest

from transcript_relay.config import ENV_OVERRIDES


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real environment settings and logger handlers out of tests."""
    for var in ENV_OVERRIDES:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("TRANSCRIPT_RELAY_LOG_DIR", str(tmp_path / "logs"))

    yield

    for name in ("hook", "server"):
        logger = logging.getLogger(f"transcript_relay.{name}")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
