import asyncio
import threading

import pytest

from config.models import CacheConfig, Config, ProcessingConfig
from core.contracts.models import ChangeKind, FileChange


class FakeVersionControl:
    """In-memory stand-in for GitClient that records every call it receives."""

    def __init__(self, changes=None, valid=True, diffs=None, failures=None, list_error=None):
        self.changes = list(changes or [])
        self.valid = valid
        self.diffs = diffs or {}
        # {(operation, path): exception}
        self.failures = failures or {}
        self.list_error = list_error
        self.staged = []
        self.commits = []
        self.snapshots = []
        self.restored = []
        self._lock = threading.Lock()
        self._committing = 0
        self.overlapping_commits = False

    def _maybe_fail(self, operation, path):
        error = self.failures.get((operation, path))
        if error is not None:
            raise error

    def is_valid_repository(self, repo_path):
        return self.valid

    def list_changes(self, repo_path):
        if self.list_error is not None:
            raise self.list_error
        return list(self.changes)

    def diff(self, repo_path, file_path=None, staged=False):
        self._maybe_fail("diff", file_path)
        return self.diffs.get(file_path, f"+ change in {file_path}")

    def stage(self, repo_path, file_path):
        self._maybe_fail("stage", file_path)
        with self._lock:
            self.staged.append(file_path)

    def snapshot_index(self, repo_path):
        with self._lock:
            self.snapshots.append(list(self.staged))
            return f"tree-{len(self.snapshots) - 1}"

    def restore_index(self, repo_path, snapshot):
        with self._lock:
            self.staged = list(self.snapshots[int(snapshot.rsplit("-", 1)[1])])
            self.restored.append(snapshot)

    def commit(self, repo_path, message, paths=None):
        with self._lock:
            self._committing += 1
            if self._committing > 1:
                self.overlapping_commits = True
        try:
            for path in paths or []:
                self._maybe_fail("commit", path)
            with self._lock:
                self.commits.append((message, list(paths or [])))
                return f"{len(self.commits):040x}"
        finally:
            with self._lock:
                self._committing -= 1


class FakeGenerator:
    """Answers with canned messages, optionally after a delay or with a failure per path."""

    def __init__(self, messages=None, failures=None, delays=None):
        self.messages = messages or {}
        self.failures = failures or {}
        self.delays = delays or {}
        self.calls = []
        self.in_flight = 0
        self.peak = 0

    async def generate_message(self, model, file_path, diff_text, change_kind):
        self.calls.append((model, file_path, diff_text, change_kind))
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(file_path, 0))
            if file_path in self.failures:
                raise self.failures[file_path]
            return self.messages.get(file_path, f"Update {file_path}")
        finally:
            self.in_flight -= 1


def make_changes(*paths, kind=ChangeKind.MODIFIED):
    return [FileChange(path=path, kind=kind) for path in paths]


@pytest.fixture
def config():
    return Config(
        processing=ProcessingConfig(max_concurrent_files=3),
        cache=CacheConfig(enabled=False),
    )


@pytest.fixture
def three_changes():
    return make_changes("a.py", "b.py", "c.py")


@pytest.fixture
def fake_vcs(three_changes):
    return FakeVersionControl(changes=three_changes)


@pytest.fixture
def fake_generator():
    return FakeGenerator()
