"""
Shared pytest fixtures for GIN Sync tests.

Provides search configuration, HTTP mock transports and a fake annex
runner that keeps sidecar configuration in memory.
"""

import json
import threading
from typing import Callable, Dict, List, Optional

import httpx
import pytest

from gin_sync.annex.runner import AnnexRunner
from gin_sync.config import SearchConfig
from gin_sync.exceptions import AnnexCommandError
from gin_sync.search.cipher import decrypt_string

TEST_KEY = "0123456789abcdef0123456789abcdef"
TEST_INDEX_URL = "http://search.test/index"


class RecordingTransport:
    """Collects every request sent through an httpx.MockTransport."""

    def __init__(self, responder: Optional[Callable[[httpx.Request], httpx.Response]] = None):
        self.requests: List[httpx.Request] = []
        self._lock = threading.Lock()
        self._responder = responder or (lambda request: httpx.Response(200))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        return self._responder(request)

    def decoded_payloads(self, key: str = TEST_KEY) -> List[dict]:
        with self._lock:
            bodies = [r.content.decode("ascii") for r in self.requests]
        return [json.loads(decrypt_string(key.encode("utf-8"), b)) for b in bodies]

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))


class FakeAnnexRunner(AnnexRunner):
    """AnnexRunner that records commands and models the sidecar in memory.

    ``failures`` maps a command prefix (e.g. "annex sync") to the number of
    times it should fail before succeeding; -1 means always fail.
    """

    def __init__(self, failures: Optional[Dict[str, int]] = None):
        super().__init__(timeout=None)
        self.calls: List[List[str]] = []
        self.failures = dict(failures or {})
        self.initialized = False
        self.version: Optional[str] = None
        self.git_config: Dict[str, str] = {}

    def run(self, path, args):
        self.calls.append(list(args))
        command = " ".join(args)
        for prefix, remaining in self.failures.items():
            if command.startswith(prefix) and remaining != 0:
                if remaining > 0:
                    self.failures[prefix] = remaining - 1
                raise AnnexCommandError(f"'git {command}' failed", "simulated failure", returncode=1)

        if args[:2] == ["annex", "init"]:
            self.initialized = True
            self.version = args[2].split("=", 1)[1]
        elif args[:2] == ["annex", "upgrade"]:
            self.version = "7"
        elif args[0] == "config":
            self.git_config[args[1]] = args[2]
        elif args[:2] == ["annex", "uninit"]:
            self.initialized = False
        return "ok"

    def commands(self) -> List[str]:
        return [" ".join(c) for c in self.calls]


@pytest.fixture
def search_config() -> SearchConfig:
    return SearchConfig(index_url=TEST_INDEX_URL, key=TEST_KEY, timeout=5.0)


@pytest.fixture
def disabled_search_config() -> SearchConfig:
    return SearchConfig(index_url="", key=TEST_KEY)


@pytest.fixture
def recording_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture(autouse=True)
def clear_gin_sync_env(monkeypatch):
    monkeypatch.delenv("GIN_SYNC_INDEX_URL", raising=False)
    monkeypatch.delenv("GIN_SYNC_KEY", raising=False)


@pytest.fixture
def test_key() -> str:
    return TEST_KEY


@pytest.fixture
def make_transport():
    """Factory for RecordingTransport with a custom responder."""
    return RecordingTransport


@pytest.fixture
def make_fake_runner():
    """Factory for FakeAnnexRunner with optional simulated failures."""
    return FakeAnnexRunner
