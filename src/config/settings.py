"""
Centralized configuration: all settings in one place.
Loads from environment variables (and the project .env) with sensible defaults.
"""

from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse
import os
from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Load environment variables from the .env beside the project
load_dotenv(PROJECT_ROOT / ".env")

DEFAULT_AUTH_URL = "https://oauth2.sky.blackbaud.com/authorization"
DEFAULT_TOKEN_URL = "https://oauth2.sky.blackbaud.com/token"
DEFAULT_API_BASE_URL = "https://api.sky.blackbaud.com"
DEFAULT_PORT = 5173
DEFAULT_TOKENS_PATH = PROJECT_ROOT / "tokens.json"


class ConfigError(ValueError):
    """Raised when required settings are missing or malformed."""

    def __init__(self, missing: list[str] | None = None, message: str | None = None) -> None:
        self.missing = missing or []
        super().__init__(message or f"Missing env vars: {', '.join(self.missing)}. Check .env")


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(message=f"{name} must be an integer, got {raw!r}. Check .env") from None


@dataclass
class Config:
    """Central configuration for the RE NXT MCP server and its auth runner."""

    # OAuth application
    client_id: str | None
    client_secret: str | None
    redirect_uri: str | None

    # SKY API
    subscription_key: str | None

    # Local callback listener
    port: int

    # Token storage
    tokens_path: Path

    # Endpoints
    auth_url: str = DEFAULT_AUTH_URL
    token_url: str = DEFAULT_TOKEN_URL
    api_base_url: str = DEFAULT_API_BASE_URL

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables with sensible defaults."""
        return cls(
            client_id=os.getenv("BLACKBAUD_CLIENT_ID") or None,
            client_secret=os.getenv("BLACKBAUD_CLIENT_SECRET") or None,
            redirect_uri=os.getenv("BLACKBAUD_REDIRECT_URI") or None,
            subscription_key=os.getenv("BLACKBAUD_SUBSCRIPTION_KEY") or None,
            port=_int_from_env("PORT", DEFAULT_PORT),
            tokens_path=Path(os.getenv("RENXT_TOKENS_PATH") or DEFAULT_TOKENS_PATH),
            auth_url=os.getenv("BLACKBAUD_AUTH_URL", DEFAULT_AUTH_URL),
            token_url=os.getenv("BLACKBAUD_TOKEN_URL", DEFAULT_TOKEN_URL),
            api_base_url=os.getenv("BLACKBAUD_API_BASE_URL", DEFAULT_API_BASE_URL),
            log_level=os.getenv("RENXT_LOG_LEVEL", "INFO").upper(),
        )

    @property
    def callback_path(self) -> str:
        """Listener route taken from the redirect URI's path."""
        path = urlparse(self.redirect_uri or "").path
        return path or "/callback"

    def missing_auth_settings(self) -> list[str]:
        """Names of the variables the authorization flow needs but doesn't have."""
        required = {
            "BLACKBAUD_CLIENT_ID": self.client_id,
            "BLACKBAUD_CLIENT_SECRET": self.client_secret,
            "BLACKBAUD_REDIRECT_URI": self.redirect_uri,
        }
        return [name for name, value in required.items() if not value]

    def missing_gateway_settings(self) -> list[str]:
        """Names of the variables the MCP server needs but doesn't have."""
        required = {
            "BLACKBAUD_SUBSCRIPTION_KEY": self.subscription_key,
            "BLACKBAUD_CLIENT_ID": self.client_id,
            "BLACKBAUD_CLIENT_SECRET": self.client_secret,
        }
        return [name for name, value in required.items() if not value]

    def require_auth_settings(self) -> None:
        missing = self.missing_auth_settings()
        if missing:
            raise ConfigError(missing)

    def require_gateway_settings(self) -> None:
        missing = self.missing_gateway_settings()
        if missing:
            raise ConfigError(missing)

    def has_tokens(self) -> bool:
        """Check if the token file exists."""
        return self.tokens_path.exists()
