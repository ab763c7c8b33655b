"""Shared fixtures for sumem tests."""

import pytest

from sumem.config import reset_settings_cache
from sumem.errors import ProcessEnumerationError
from sumem.models import ProcessRecord


class FakeSource:
    """In-memory process source returning a fixed snapshot."""

    def __init__(self, records: list[ProcessRecord] | None = None, error: str | None = None) -> None:
        self.records = list(records or [])
        self.error = error
        self.calls = 0

    def list_processes(self) -> list[ProcessRecord]:
        self.calls += 1
        if self.error is not None:
            raise ProcessEnumerationError(self.error)
        return list(self.records)


@pytest.fixture
def editor_records() -> list[ProcessRecord]:
    """A snapshot of an editor with helpers, plus unrelated processes."""
    return [
        ProcessRecord(pid=101, name="Code", command="/Applications/Code.app/Contents/MacOS/Code", memory_rss=300 * 1024**2),
        ProcessRecord(pid=102, name="node", command="/usr/bin/node server.js", memory_rss=80 * 1024**2),
        ProcessRecord(pid=103, name="Code Helper", command="/Applications/Code.app/Code Helper --type=utility", memory_rss=120 * 1024**2),
        ProcessRecord(pid=104, name="Code Helper (GPU)", command="/Applications/Code.app/Code Helper (GPU)", memory_rss=200 * 1024**2),
        ProcessRecord(pid=105, name="encoder", command="/usr/local/bin/encoder --fast", memory_rss=64 * 1024**2),
    ]


@pytest.fixture
def fake_source(editor_records) -> FakeSource:
    """FakeSource serving the editor snapshot."""
    return FakeSource(editor_records)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Run every test without SUMEM_* settings from the outer environment."""
    for name in ("SUMEM_SOURCE", "SUMEM_EXCLUDE", "SUMEM_POLL_RATE", "SUMEM_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()
