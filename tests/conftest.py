"""Shared fixtures and fake collaborators for the archiver tests.

The fakes stand in for ssh, rsync and imessage-exporter so no external
process is ever spawned.
"""

from __future__ import annotations

import os
from datetime import date
from typing import Callable, Dict, List, Optional

import pytest

from imessage_archiver.core.exceptions import ExportError, RemoteProbeError
from imessage_archiver.core.models import RemoteArchiveIndex, date_key

TODAY = date(2024, 6, 10)


def write_empty_export(dest: str) -> None:
    """What imessage-exporter leaves behind for a day with no messages."""
    os.makedirs(os.path.join(dest, "attachments"))
    with open(os.path.join(dest, "orphaned.html"), "w", encoding="utf-8") as f:
        f.write("<html><body></body></html>")


def write_real_export(dest: str, names=("+15555550100.txt", "Family.txt")) -> None:
    os.makedirs(os.path.join(dest, "attachments"), exist_ok=True)
    for name in names:
        with open(os.path.join(dest, name), "w", encoding="utf-8") as f:
            f.write("Jun 08, 2024 10:00:00 AM\nMe\nhello\n")


class FakeProbe:
    def __init__(self, archived=(), error: Optional[Exception] = None):
        self.archived = [date_key(d) if isinstance(d, date) else d for d in archived]
        self.error = error
        self.calls = 0

    def list_remote_archive_dates(self) -> RemoteArchiveIndex:
        self.calls += 1
        if self.error:
            raise self.error
        return RemoteArchiveIndex(self.archived)


class FakeExporter:
    """Writes export output chosen per start date."""

    def __init__(self, writers: Optional[Dict[date, Callable[[str], None]]] = None,
                 default: Callable[[str], None] = write_empty_export,
                 failures: Optional[Dict[date, Exception]] = None):
        self.writers = writers or {}
        self.default = default
        self.failures = failures or {}
        self.calls: List[tuple] = []

    def export(self, start: date, end: date, dest_dir: str) -> None:
        self.calls.append((start, end, dest_dir))
        if start in self.failures:
            raise self.failures[start]
        self.writers.get(start, self.default)(dest_dir)


class FakeSyncer:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: List[str] = []
        self.snapshots: List[List[str]] = []

    def sync(self, source_dir: str) -> None:
        self.calls.append(source_dir)
        day_dirs = []
        for root, dirs, files in os.walk(source_dir):
            depth = os.path.relpath(root, source_dir).count(os.sep)
            if root != source_dir and depth == 2:
                day_dirs.append(os.path.relpath(root, source_dir))
        self.snapshots.append(sorted(day_dirs))
        if self.error:
            raise self.error


@pytest.fixture
def today():
    return lambda: TODAY


@pytest.fixture
def probe_failure():
    return RemoteProbeError("ssh: connect to host nas port 22: Connection timed out")


@pytest.fixture
def export_failure():
    return ExportError("imessage-exporter failed with exit status 1", "boom")
