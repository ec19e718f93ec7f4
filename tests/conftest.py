"""Shared fixtures for the co-parent client test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from coparent.auth import StaticTokenProvider
from coparent.communication import RestClient
from coparent.config import ClientConfig
from coparent.store import CoParentStore
from coparent.thunks import CoParentOperations


@pytest.fixture()
def tmp_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Override the config directory so tests never touch the real filesystem."""
    monkeypatch.setattr("coparent.config._config_dir", lambda: tmp_path)
    return tmp_path


@pytest.fixture()
def config(tmp_config_dir: Path) -> ClientConfig:
    return ClientConfig(server_url="http://testserver")


def _mock_client(config: ClientConfig, handler: Callable[[httpx.Request], httpx.Response]) -> RestClient:
    client = RestClient(config)
    # Inject mock transport
    client._client = httpx.AsyncClient(
        base_url=config.api_base,
        transport=httpx.MockTransport(handler),
    )
    return client


@pytest.fixture()
def mock_client(config: ClientConfig):
    """Factory: a RestClient whose HTTP traffic goes to *handler*."""
    return lambda handler: _mock_client(config, handler)


class FakeScheduler:
    """Drives delayed callbacks from simulated time."""

    def __init__(self) -> None:
        self.now = 0.0
        self._tasks: list[list[Any]] = []  # [due, callback, cancelled]

    def call_later(self, delay: float, callback: Callable[[], None]) -> "_FakeHandle":
        task = [self.now + delay, callback, False]
        self._tasks.append(task)
        return _FakeHandle(task)

    def advance(self, seconds: float) -> None:
        self.now += seconds
        live = [t for t in self._tasks if not t[2]]
        due = sorted((t for t in live if t[0] <= self.now), key=lambda t: t[0])
        self._tasks = [t for t in live if t[0] > self.now]
        for task in due:
            if not task[2]:
                task[1]()

    @property
    def pending(self) -> int:
        return sum(1 for t in self._tasks if not t[2])


class _FakeHandle:
    def __init__(self, task: list[Any]) -> None:
        self._task = task

    def cancel(self) -> None:
        self._task[2] = True


@pytest.fixture()
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture()
def store() -> CoParentStore:
    return CoParentStore()


@pytest.fixture()
def token_provider() -> StaticTokenProvider:
    return StaticTokenProvider("test-access-token")


@pytest.fixture()
def make_ops(config: ClientConfig, store: CoParentStore, token_provider: StaticTokenProvider):
    """Factory: CoParentOperations backed by a mock transport handler."""
    def factory(handler: Callable[[httpx.Request], httpx.Response], tokens=None) -> CoParentOperations:
        return CoParentOperations(_mock_client(config, handler), tokens or token_provider, store)

    return factory
