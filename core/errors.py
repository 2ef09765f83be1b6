# =============================================================================
# core/errors.py  —  Error Taxonomy
# =============================================================================
#
# Every failure the core can produce is one of the classes below.  Each one
# carries a human-readable message AND a numeric code, so both collaborators
# (the MCP tool layer and the REST facade) can turn it into a structured
# error without guessing.
#
# The numeric codes follow JSON-RPC conventions (MCP is JSON-RPC underneath):
#   -32602  Invalid params      → ValidationError
#   -32603  Internal error      → AuthError / UpstreamStatusError
#   -32002  Server config error → ConfigurationError
#
# Nothing here retries.  An error aborts the whole operation.
# =============================================================================

from enum import Enum

INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
CONFIGURATION_ERROR = -32002


class CortellisError(Exception):
    """Base class for every error raised by the core."""

    code: int = INTERNAL_ERROR

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ConfigurationError(CortellisError):
    """Credentials or other start-up settings are missing.  Fatal."""

    code = CONFIGURATION_ERROR


class ValidationError(CortellisError):
    """A tool argument is missing, has the wrong type, or cannot be resolved.

    Raised before any network call is attempted.
    """

    code = INVALID_PARAMS


class AuthErrorKind(str, Enum):
    CHALLENGE_MISSING = "challenge_missing"
    CHALLENGE_MALFORMED = "challenge_malformed"
    REQUEST_FAILED = "request_failed"
    RESPONSE_NOT_JSON = "response_not_json"


class AuthError(CortellisError):
    """The Digest handshake or the authenticated request failed."""

    code = INTERNAL_ERROR

    def __init__(self, kind: AuthErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class UpstreamStatusError(AuthError):
    """The authenticated retry came back with a non-2xx status."""

    def __init__(self, status_code: int):
        super().__init__(
            AuthErrorKind.REQUEST_FAILED,
            f"Request failed with status code: {status_code}",
        )
        self.status_code = status_code
