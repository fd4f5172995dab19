"""
Token file storage.

The token file holds the literal JSON body returned by the token endpoint
({access_token, refresh_token, expires_in, token_type, scope?}). Nothing is
normalized or computed locally; one record exists at a time and every save
overwrites it.
"""

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class TokenFileError(RuntimeError):
    """Raised when the token file is missing or unreadable."""


class TokenStore:
    """Reads and writes the single token record on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> dict:
        """Load the token record. Raises TokenFileError if absent or corrupt."""
        if not self.path.exists():
            raise TokenFileError(
                f"Missing token file at {self.path}. Run auth first: python -m src.oauth"
            )
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise TokenFileError(f"Failed to read/parse tokens: {e}") from e

        if not isinstance(data, dict):
            raise TokenFileError(
                f"Failed to read/parse tokens: expected a JSON object in {self.path}"
            )
        return data

    def save(self, tokens: dict) -> None:
        """Persist the token record pretty-printed, replacing whatever was there."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(tokens, indent=2), encoding="utf-8")
        # Tokens are credentials: owner read/write only
        os.chmod(self.path, 0o600)
        logger.info("Tokens saved to: %s", self.path)
