"""Shared fixtures for treesync tests."""
import asyncio
from pathlib import Path
from typing import Dict, List

import pytest

from treesync.errors import ErrorCode, StoreError


class FakeObjectStore:
    """
    In-memory IObjectStore.

    head_failures / put_failures map a key to a list of error codes raised
    on successive calls before the real behaviour kicks in. delays holds
    per-key latencies overriding the default delay.
    """

    def __init__(self, existing=None, delay: float = 0.0):
        self.objects: Dict[str, bytes] = {key: b"" for key in (existing or [])}
        self.head_failures: Dict[str, List[str]] = {}
        self.put_failures: Dict[str, List[str]] = {}
        self.head_calls: List[str] = []
        self.put_calls: List[str] = []
        self.delay = delay
        self.delays: Dict[str, float] = {}
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def calls(self) -> int:
        return len(self.head_calls) + len(self.put_calls)

    async def _enter(self, key: str):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(self.delays.get(key, self.delay))

    def _fail_if_scripted(self, failures: Dict[str, List[str]], key: str):
        scripted = failures.get(key)
        if scripted:
            code = scripted.pop(0)
            raise StoreError(code, f"simulated {code} for {key}")

    async def head_object(self, key: str):
        self.head_calls.append(key)
        await self._enter(key)
        try:
            self._fail_if_scripted(self.head_failures, key)
            if key not in self.objects:
                raise StoreError(ErrorCode.NOT_FOUND, f"{key} not found", status=404)
            return {"key": key, "size": len(self.objects[key])}
        finally:
            self.in_flight -= 1

    async def put_object(self, key: str, source):
        self.put_calls.append(key)
        await self._enter(key)
        try:
            self._fail_if_scripted(self.put_failures, key)
            if isinstance(source, (str, Path)):
                data = Path(source).read_bytes()
            else:
                data = source.read()
            self.objects[key] = data
            return {"key": key}
        finally:
            self.in_flight -= 1


@pytest.fixture
def store():
    return FakeObjectStore()


@pytest.fixture
def tree(tmp_path):
    """Local tree {a.txt, b/c.txt}."""
    root = tmp_path / "src"
    root.mkdir()
    (root / "a.txt").write_text("alpha")
    (root / "b").mkdir()
    (root / "b" / "c.txt").write_text("charlie")
    return root


@pytest.fixture
def ledger_path(tmp_path):
    return tmp_path / "state" / "ledger.json"


@pytest.fixture
def make_store():
    return FakeObjectStore


@pytest.fixture
def sleeps():
    """Recording replacement for asyncio.sleep."""
    recorded: List[float] = []

    async def fake_sleep(delay: float) -> None:
        recorded.append(delay)

    fake_sleep.calls = recorded
    return fake_sleep
