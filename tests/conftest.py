"""Shared fixtures — in-memory cache double and fake HTTP transport."""

from __future__ import annotations

import asyncio

import httpx
import pytest


class MemoryCache:
    """In-memory stand-in for ConditionalCache (tests only)."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.store: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.store.get(key)

    def set(self, key: str, validator: str) -> None:
        self.store[key] = validator

    def dump_all(self) -> dict[str, str]:
        return dict(self.store)


class FakeServer:
    """Routes requests by URL path to queued responses and records requests."""

    def __init__(self) -> None:
        self.routes: dict[str, list[httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, *responses: httpx.Response) -> None:
        self.routes.setdefault(path, []).extend(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get(request.url.path)
        if not queue:
            return httpx.Response(404)
        # The last queued response repeats once the queue is drained
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture()
def memory_cache():
    return MemoryCache()


@pytest.fixture()
def server():
    return FakeServer()


@pytest.fixture()
def sleeps(monkeypatch):
    """Replace asyncio.sleep with a recorder so backoff runs instantly."""
    delays: list[float] = []

    async def fake_sleep(delay, *args, **kwargs):
        delays.append(delay)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return delays
