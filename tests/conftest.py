"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable
import hashlib
import io

import httpx
from PIL import Image
import pytest

from core.naming import normalize
from core.remote_path import derive_remote_url
from infrastructure.remote_client import ExistenceProber, RemoteStoreClient

PLACEHOLDER_BODY = b"generic placeholder image"
BASE_URL = "https://images.example.test/is/image/T"


class FakeStore:
    """In-memory remote store.

    Serves `bodies[url]` when configured and the placeholder body otherwise.
    URLs in `failing` raise a connection error; `statuses` overrides the
    response code.
    """

    def __init__(self) -> None:
        self.bodies: dict[str, bytes] = {}
        self.failing: set[str] = set()
        self.statuses: dict[str, int] = {}
        self.requests: list[str] = []
        self.on_request: Callable[[str], None] | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if self.on_request is not None:
            self.on_request(url)
        if url in self.failing:
            raise httpx.ConnectError("connection refused", request=request)
        status = self.statuses.get(url, 200)
        return httpx.Response(status, content=self.bodies.get(url, PLACEHOLDER_BODY))

    def client(self, retries: int = 0) -> RemoteStoreClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return RemoteStoreClient(client, timeout=5.0, retries=retries)


@pytest.fixture
def placeholder_hash() -> str:
    """MD5 of the body the fake store serves for unknown assets."""
    return hashlib.md5(PLACEHOLDER_BODY).hexdigest()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def prober(store: FakeStore, placeholder_hash: str) -> ExistenceProber:
    return ExistenceProber(store.client(), placeholder_hash, BASE_URL)


@pytest.fixture
def url_of() -> Callable[[str], str]:
    """Remote URL of a local filename under the test base URL."""

    def _url(name: str) -> str:
        url = derive_remote_url(normalize(name), BASE_URL)
        assert url is not None
        return url

    return _url


@pytest.fixture
def png_bytes() -> Callable[[Image.Image], bytes]:
    def _encode(image: Image.Image) -> bytes:
        buf = io.BytesIO()
        image.save(buf, format="PNG")
        return buf.getvalue()

    return _encode
