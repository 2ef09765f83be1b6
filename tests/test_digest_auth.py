from __future__ import annotations

import asyncio
import hashlib
import re

import httpx
import pytest

from conftest import FakeCortellis
from core.config import Settings
from core.digest_auth import (
    DigestAuthClient,
    DigestChallenge,
    build_authorization_header,
    compute_digest_response,
    parse_challenge,
    request_uri,
)
from core.errors import AuthError, AuthErrorKind, UpstreamStatusError

URL = "https://api.cortellis.com/api-ws/ws/rs/drugs-v2/drug/93910?fmt=json"
URI = "/api-ws/ws/rs/drugs-v2/drug/93910?fmt=json"


def md5(text: str) -> str:
    return hashlib.md5(text.encode()).hexdigest()


def auth_fields(header: str) -> dict[str, str]:
    assert header.startswith("Digest ")
    return {k: (v1 or v2) for k, v1, v2 in re.findall(r'(\w+)=(?:"([^"]*)"|([^\s,]+))', header)}


def make_client(settings: Settings, api: FakeCortellis, cnonce: str = "0a4f113b") -> DigestAuthClient:
    return DigestAuthClient(settings, transport=api.transport, cnonce_factory=lambda: cnonce)


# --- challenge parsing -------------------------------------------------------

def test_parse_challenge_with_qop() -> None:
    challenge = parse_challenge('Digest realm="cortellis", nonce="n0nce", qop="auth", opaque="xyz"')
    assert challenge == DigestChallenge(realm="cortellis", nonce="n0nce", qop="auth", opaque="xyz")


def test_parse_challenge_prefers_auth_from_qop_list() -> None:
    challenge = parse_challenge('Digest qop="auth-int,auth", realm="r", nonce="n", stale=TRUE')
    assert challenge.qop == "auth"
    assert challenge.stale is True


def test_parse_challenge_without_qop() -> None:
    challenge = parse_challenge('Digest realm="r", nonce="n"')
    assert challenge.qop is None


@pytest.mark.parametrize(
    "header",
    ['Digest nonce="n", qop="auth"', 'Digest realm="r"', 'Basic realm="r"', "Digest"],
)
def test_parse_challenge_malformed(header: str) -> None:
    with pytest.raises(AuthError) as excinfo:
        parse_challenge(header)
    assert excinfo.value.kind is AuthErrorKind.CHALLENGE_MALFORMED


# --- hash derivation ---------------------------------------------------------

def test_response_with_qop() -> None:
    challenge = DigestChallenge(realm="cortellis", nonce="abc", qop="auth")
    expected = md5(f"{md5('alice:cortellis:s3cret')}:abc:00000001:c0ffee:auth:{md5('GET:' + URI)}")
    assert compute_digest_response("alice", "s3cret", challenge, "GET", URI, cnonce="c0ffee") == expected


def test_response_without_qop_uses_rfc2069_form() -> None:
    challenge = DigestChallenge(realm="cortellis", nonce="abc")
    expected = md5(f"{md5('alice:cortellis:s3cret')}:abc:{md5('GET:' + URI)}")
    assert compute_digest_response("alice", "s3cret", challenge, "GET", URI) == expected


def test_authorization_header_without_qop_omits_nc_and_cnonce() -> None:
    challenge = DigestChallenge(realm="r", nonce="n")
    header = build_authorization_header("alice", challenge, URI, "deadbeef")
    fields = auth_fields(header)
    assert "qop" not in fields and "nc" not in fields and "cnonce" not in fields
    assert fields["response"] == "deadbeef"
    assert "digest" not in fields


def test_request_uri_is_path_and_query() -> None:
    assert request_uri(URL) == URI
    assert request_uri("https://host/a/b") == "/a/b"


# --- full handshake ----------------------------------------------------------

def test_fetch_json_performs_two_phase_handshake(settings: Settings) -> None:
    api = FakeCortellis(body={"drugRecordOutput": {"id": "93910"}})
    data = asyncio.run(make_client(settings, api).fetch_json(URL))

    assert data == {"drugRecordOutput": {"id": "93910"}}
    first, second = api.requests
    assert "authorization" not in first.headers
    assert second.headers["accept"] == "application/json"

    fields = auth_fields(second.headers["authorization"])
    expected = md5(
        f"{md5('alice:cortellis:s3cret')}:abc123nonce:00000001:0a4f113b:auth:{md5('GET:' + URI)}"
    )
    assert fields["username"] == "alice"
    assert fields["uri"] == URI
    assert fields["qop"] == "auth"
    assert fields["nc"] == "00000001"
    assert fields["cnonce"] == "0a4f113b"
    assert fields["response"] == expected


def test_fetch_json_without_qop(settings: Settings) -> None:
    api = FakeCortellis(challenge='Digest realm="legacy", nonce="n1"')
    asyncio.run(make_client(settings, api).fetch_json(URL))

    fields = auth_fields(api.authenticated_requests[0].headers["authorization"])
    assert fields["response"] == md5(f"{md5('alice:legacy:s3cret')}:n1:{md5('GET:' + URI)}")
    assert "cnonce" not in fields


def test_password_never_sent(settings: Settings) -> None:
    api = FakeCortellis()
    asyncio.run(make_client(settings, api).fetch_json(URL))
    for request in api.requests:
        assert "s3cret" not in str(request.headers)
        assert "s3cret" not in str(request.url)


def test_missing_challenge_fails_without_second_request(settings: Settings) -> None:
    api = FakeCortellis(challenge=None)
    with pytest.raises(AuthError) as excinfo:
        asyncio.run(make_client(settings, api).fetch_json(URL))
    assert excinfo.value.kind is AuthErrorKind.CHALLENGE_MISSING
    assert len(api.requests) == 1


def test_malformed_challenge(settings: Settings) -> None:
    api = FakeCortellis(challenge='Digest qop="auth"')
    with pytest.raises(AuthError) as excinfo:
        asyncio.run(make_client(settings, api).fetch_json(URL))
    assert excinfo.value.kind is AuthErrorKind.CHALLENGE_MALFORMED
    assert len(api.requests) == 1


def test_non_2xx_after_auth_is_upstream_status_error(settings: Settings) -> None:
    api = FakeCortellis(status=403, body={"error": "forbidden"})
    with pytest.raises(UpstreamStatusError) as excinfo:
        asyncio.run(make_client(settings, api).fetch_json(URL))
    assert excinfo.value.status_code == 403
    assert excinfo.value.kind is AuthErrorKind.REQUEST_FAILED
    assert "403" in excinfo.value.message


def test_non_json_body_is_response_not_json(settings: Settings) -> None:
    api = FakeCortellis(body="<html>maintenance</html>")
    with pytest.raises(AuthError) as excinfo:
        asyncio.run(make_client(settings, api).fetch_json(URL))
    assert excinfo.value.kind is AuthErrorKind.RESPONSE_NOT_JSON


def test_empty_json_body_is_a_failure(settings: Settings) -> None:
    api = FakeCortellis(body={})
    with pytest.raises(AuthError) as excinfo:
        asyncio.run(make_client(settings, api).fetch_json(URL))
    assert excinfo.value.kind is AuthErrorKind.RESPONSE_NOT_JSON


def test_transport_error_is_request_failed(settings: Settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = DigestAuthClient(settings, transport=httpx.MockTransport(handler))
    with pytest.raises(AuthError) as excinfo:
        asyncio.run(client.fetch_json(URL))
    assert excinfo.value.kind is AuthErrorKind.REQUEST_FAILED
    assert not isinstance(excinfo.value, UpstreamStatusError)


def test_every_call_repeats_the_handshake(settings: Settings) -> None:
    api = FakeCortellis()
    client = DigestAuthClient(settings, transport=api.transport)

    async def run_both():
        return await asyncio.gather(client.fetch_json(URL), client.fetch_json(URL))

    asyncio.run(run_both())

    assert len(api.requests) == 4
    cnonces = {auth_fields(r.headers["authorization"])["cnonce"] for r in api.authenticated_requests}
    assert len(cnonces) == 2
