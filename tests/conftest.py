from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from core.config import Settings
from core.cortellis import CortellisService
from core.digest_auth import DigestAuthClient

DEFAULT_CHALLENGE = 'Digest realm="cortellis", nonce="abc123nonce", qop="auth", algorithm=MD5'


class FakeCortellis:
    """A Digest-protected stand-in for the Cortellis API.

    Requests without an Authorization header get a 401 challenge; the rest
    get `status` with `body` (a JSON-serialisable value or raw text).
    """

    def __init__(
        self,
        challenge: str | None = DEFAULT_CHALLENGE,
        status: int = 200,
        body: Any = None,
    ) -> None:
        self.challenge = challenge
        self.status = status
        self.body = {"totalResults": 1, "results": [{"id": "93910"}]} if body is None else body
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if "authorization" not in request.headers:
            headers = {"WWW-Authenticate": self.challenge} if self.challenge else {}
            return httpx.Response(401, headers=headers)
        if isinstance(self.body, str):
            return httpx.Response(self.status, text=self.body)
        return httpx.Response(self.status, content=json.dumps(self.body).encode())

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def authenticated_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if "authorization" in r.headers]


@pytest.fixture
def settings() -> Settings:
    return Settings(username="alice", password="s3cret")


@pytest.fixture
def fake_api() -> FakeCortellis:
    return FakeCortellis()


@pytest.fixture
def service(settings: Settings, fake_api: FakeCortellis) -> CortellisService:
    client = DigestAuthClient(settings, transport=fake_api.transport, cnonce_factory=lambda: "0a4f113b")
    return CortellisService(client, settings.base_url)
