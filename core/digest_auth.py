# =============================================================================
# core/digest_auth.py  —  HTTP Digest Authentication Client
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Performs ONE authenticated request against the Cortellis API using
#   HTTP Digest (RFC 2617, with the RFC 2069 fallback when the server sends
#   no qop).  The password never crosses the wire; only an MD5 proof does.
#
# THE HANDSHAKE (per call, every call):
#
#   Unauthenticated ──GET url──▶ 401 + WWW-Authenticate: Digest realm=..,
#         │                                             nonce=.., qop=..
#         ▼
#   ChallengeReceived ── HA1 = MD5(user:realm:pass)
#         │              HA2 = MD5(method:uri)
#         │              response = MD5(HA1:nonce:nc:cnonce:qop:HA2)
#         ▼
#   Authenticated ──GET url + Authorization: Digest ...──▶ 200 + JSON
#         │
#         ▼
#       Done            (any failure → AuthError, no retry of the retry)
#
# NO NONCE CACHE:
#   Nothing survives between calls.  Two concurrent tool calls run two
#   completely independent handshakes.  nc is therefore always 00000001.
#
# TRANSPORT:
#   httpx.AsyncClient, one per call.  Tests pass an httpx.MockTransport.
# =============================================================================

import hashlib
import logging
import re
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from core.config import Settings
from core.errors import AuthError, AuthErrorKind, UpstreamStatusError

log = logging.getLogger(__name__)

NONCE_COUNT = "00000001"

_DIGEST_SCHEME = re.compile(r"\bdigest\s+", re.IGNORECASE)
_CHALLENGE_PARAM = re.compile(r'([\w-]+)\s*=\s*(?:"((?:[^"\\]|\\.)*)"|([^\s,]+))')


# -----------------------------------------------------------------------------
# DigestChallenge — what the server told us in WWW-Authenticate
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class DigestChallenge:
    realm: str
    nonce: str
    qop: Optional[str] = None
    stale: bool = False
    opaque: Optional[str] = None
    algorithm: Optional[str] = None


def parse_challenge(header: str) -> DigestChallenge:
    """Parse a WWW-Authenticate header into a DigestChallenge.

    When the server offers a qop list ("auth,auth-int"), "auth" is chosen.

    Raises:
        AuthError(CHALLENGE_MALFORMED): realm or nonce is missing.
    """
    scheme = _DIGEST_SCHEME.search(header)
    body = header[scheme.end():] if scheme else header

    params: dict[str, str] = {}
    for match in _CHALLENGE_PARAM.finditer(body):
        name = match.group(1).lower()
        value = match.group(2) if match.group(2) is not None else match.group(3)
        params.setdefault(name, value)

    realm = params.get("realm")
    nonce = params.get("nonce")
    if not realm or not nonce:
        raise AuthError(AuthErrorKind.CHALLENGE_MALFORMED, "Invalid WWW-Authenticate header")

    qop = None
    if params.get("qop"):
        offered = [token.strip() for token in params["qop"].split(",") if token.strip()]
        qop = "auth" if "auth" in offered else (offered[0] if offered else None)

    return DigestChallenge(
        realm=realm,
        nonce=nonce,
        qop=qop,
        stale=params.get("stale", "").lower() == "true",
        opaque=params.get("opaque"),
        algorithm=params.get("algorithm"),
    )


# -----------------------------------------------------------------------------
# Hash derivation
# -----------------------------------------------------------------------------
def _md5(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def compute_digest_response(
    username: str,
    password: str,
    challenge: DigestChallenge,
    method: str,
    uri: str,
    cnonce: Optional[str] = None,
    nc: str = NONCE_COUNT,
) -> str:
    """Compute the `response` field of the Authorization header.

    With qop:    MD5(HA1:nonce:nc:cnonce:qop:HA2)
    Without qop: MD5(HA1:nonce:HA2)   (RFC 2069)
    """
    ha1 = _md5(f"{username}:{challenge.realm}:{password}")
    ha2 = _md5(f"{method}:{uri}")
    if challenge.qop:
        if not cnonce:
            raise ValueError("cnonce is required when the challenge carries a qop")
        return _md5(f"{ha1}:{challenge.nonce}:{nc}:{cnonce}:{challenge.qop}:{ha2}")
    return _md5(f"{ha1}:{challenge.nonce}:{ha2}")


def build_authorization_header(
    username: str,
    challenge: DigestChallenge,
    uri: str,
    response: str,
    cnonce: Optional[str] = None,
    nc: str = NONCE_COUNT,
) -> str:
    parts = [
        f'username="{username}"',
        f'realm="{challenge.realm}"',
        f'nonce="{challenge.nonce}"',
        f'uri="{uri}"',
    ]
    if challenge.qop:
        parts += [f"qop={challenge.qop}", f"nc={nc}", f'cnonce="{cnonce}"']
    parts += [f'response="{response}"', "algorithm=MD5"]
    if challenge.opaque:
        parts.append(f'opaque="{challenge.opaque}"')
    return "Digest " + ", ".join(parts)


def request_uri(url: str) -> str:
    """The digest-uri: path plus query string, exactly as httpx sends it."""
    return httpx.URL(url).raw_path.decode("ascii")


def _new_cnonce() -> str:
    return secrets.token_hex(8)


# =============================================================================
# DigestAuthClient
# =============================================================================
class DigestAuthClient:
    """Stateless Digest-authenticated JSON fetcher.

    Args:
        settings: Credentials and timeout.
        transport: Optional httpx transport (tests use httpx.MockTransport).
        cnonce_factory: Optional client-nonce generator.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cnonce_factory: Optional[Callable[[], str]] = None,
    ):
        self._settings = settings
        self._transport = transport
        self._cnonce_factory = cnonce_factory or _new_cnonce

    def authorization_for(self, challenge: DigestChallenge, method: str, url: str) -> str:
        """Build the Authorization header value answering `challenge`."""
        uri = request_uri(url)
        cnonce = self._cnonce_factory() if challenge.qop else None
        response = compute_digest_response(
            self._settings.username,
            self._settings.password,
            challenge,
            method,
            uri,
            cnonce=cnonce,
        )
        return build_authorization_header(
            self._settings.username, challenge, uri, response, cnonce=cnonce
        )

    async def fetch_json(self, url: str, method: str = "GET") -> Any:
        """Run the full challenge/response cycle and return the parsed JSON.

        Raises:
            AuthError: CHALLENGE_MISSING, CHALLENGE_MALFORMED,
                REQUEST_FAILED (transport error) or RESPONSE_NOT_JSON.
            UpstreamStatusError: the authenticated retry was not 2xx.
        """
        method = method.upper()
        log.info("Making request to: %s", url)

        async with httpx.AsyncClient(
            timeout=self._settings.timeout_seconds,
            transport=self._transport,
        ) as client:
            # --- Step 1: unauthenticated request, never with credentials ---
            try:
                initial = await client.request(method, url)
            except httpx.HTTPError as exc:
                raise AuthError(AuthErrorKind.REQUEST_FAILED, f"API request failed: {exc}") from exc

            # --- Step 2: challenge ---
            header = initial.headers.get("www-authenticate")
            if not header:
                raise AuthError(
                    AuthErrorKind.CHALLENGE_MISSING, "No WWW-Authenticate header received"
                )
            challenge = parse_challenge(header)
            log.debug("Digest challenge: realm=%s qop=%s stale=%s",
                      challenge.realm, challenge.qop, challenge.stale)

            # --- Steps 3-4: answer the challenge ---
            try:
                response = await client.request(
                    method,
                    url,
                    headers={
                        "Authorization": self.authorization_for(challenge, method, url),
                        "Accept": "application/json",
                    },
                )
            except httpx.HTTPError as exc:
                raise AuthError(AuthErrorKind.REQUEST_FAILED, f"API request failed: {exc}") from exc

        log.info("Response status: %s", response.status_code)
        if not response.is_success:
            raise UpstreamStatusError(response.status_code)

        # --- Step 5: JSON ---
        try:
            data = response.json()
        except ValueError as exc:
            raise AuthError(
                AuthErrorKind.RESPONSE_NOT_JSON, f"Response body is not valid JSON: {exc}"
            ) from exc
        if not data:
            raise AuthError(AuthErrorKind.RESPONSE_NOT_JSON, "API returned an empty response body")
        return data
