# =============================================================================
# core/config.py  —  Process-wide Settings
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Builds ONE Settings object at start-up from the environment.  Everything
#   else (the digest client, the operations, the REST facade) receives that
#   object explicitly.  Nothing in core/ reads os.environ on its own.
#
# WHERE DO THE VALUES COME FROM?
#   main.py calls python-dotenv's load_dotenv() first, so a local .env file
#   works exactly like exported variables:
#
#     CORTELLIS_USERNAME   (required)
#     CORTELLIS_PASSWORD   (required)
#     USE_HTTP             "true" → serve the REST facade instead of MCP stdio
#     PORT                 REST facade port (default 3000)
#     CORTELLIS_BASE_URL   API root (default https://api.cortellis.com/api-ws/ws/rs)
#     CORTELLIS_TIMEOUT    transport timeout in seconds (default 30)
#
#   Missing credentials raise ConfigurationError — the process must not start.
# =============================================================================

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from core.errors import ConfigurationError

DEFAULT_BASE_URL = "https://api.cortellis.com/api-ws/ws/rs"
DEFAULT_PORT = 3000
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class Settings:
    """Credentials and transport options, fixed for the life of the process."""

    username: str
    password: str = field(repr=False)   # never printed, never logged
    use_http: bool = False
    port: int = DEFAULT_PORT
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Read settings from the environment (or any mapping, for tests).

        Raises:
            ConfigurationError: if a credential is missing or a number
                cannot be parsed.
        """
        env = os.environ if environ is None else environ

        username = env.get("CORTELLIS_USERNAME", "").strip()
        password = env.get("CORTELLIS_PASSWORD", "")
        if not username or not password:
            raise ConfigurationError(
                "CORTELLIS_USERNAME and CORTELLIS_PASSWORD environment variables must be set"
            )

        try:
            port = int(env.get("PORT") or DEFAULT_PORT)
            timeout = float(env.get("CORTELLIS_TIMEOUT") or DEFAULT_TIMEOUT_SECONDS)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc

        return cls(
            username=username,
            password=password,
            use_http=env.get("USE_HTTP", "false").strip().lower() == "true",
            port=port,
            base_url=(env.get("CORTELLIS_BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
            timeout_seconds=timeout,
        )
