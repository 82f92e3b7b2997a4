"""Shared test helpers: a recording MockTransport handler and payload builders."""

import json
from typing import Callable, List, Optional

import httpx
from redis.exceptions import ConnectionError as RedisConnectionError

from benedict_cafe.services.api_client import ApiClient

BASE_URL = "https://cafe.test/api"


class Recorder:
    """MockTransport handler that records requests and replays a callable."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]):
        self.respond = respond
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    @property
    def count(self) -> int:
        return len(self.requests)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def json_response(payload, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=payload)


def make_api(recorder: Recorder, token: Optional[str] = None) -> ApiClient:
    return ApiClient(BASE_URL, token=token, transport=httpx.MockTransport(recorder))


def sample_event(**overrides) -> dict:
    event = {
        "id": 7,
        "date": "2024-12-15T00:00:00.000Z",
        "month": None,
        "performer": "Анна Петрова",
        "time": "20:00",
        "type": "pianist",
        "is_highlighted": True,
        "description": "Вечер джаза",
        "location": "Мирабад",
        "is_active": True,
        "display_order": 1,
        "image_url": None,
    }
    event.update(overrides)
    return event


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis."""

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.closed = False

    async def get(self, key):
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys):
        for key in keys:
            self.data.pop(key, None)

    async def scan_iter(self, match):
        prefix = match.rstrip("*")
        for key in list(self.data):
            if key.startswith(prefix):
                yield key

    async def aclose(self):
        self.closed = True


class DownRedis(FakeRedis):
    """Every command fails the way an unreachable server does."""

    async def get(self, key):
        raise RedisConnectionError("Error 111 connecting to 127.0.0.1:6379. Connection refused.")

    async def setex(self, key, ttl, value):
        raise RedisConnectionError("Error 111 connecting to 127.0.0.1:6379. Connection refused.")

    async def delete(self, *keys):
        raise RedisConnectionError("Error 111 connecting to 127.0.0.1:6379. Connection refused.")

    async def scan_iter(self, match):
        raise RedisConnectionError("Error 111 connecting to 127.0.0.1:6379. Connection refused.")
        yield
