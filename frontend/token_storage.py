"""
Durable storage for the auth token: a single string slot that survives
restarts of the client.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_TOKEN_FILE = os.path.join("~", ".event_platform", "token")


class FileTokenStorage:
    """Keeps the raw token in a file readable only by the current user."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or os.getenv("EVENT_TOKEN_FILE", DEFAULT_TOKEN_FILE)).expanduser()

    def get(self) -> Optional[str]:
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return token or None

    def set(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(token, encoding="utf-8")
        self.path.chmod(0o600)

    def remove(self) -> None:
        self.path.unlink(missing_ok=True)


class MemoryTokenStorage:
    """Process-local slot, for tests and throwaway sessions."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def remove(self) -> None:
        self._token = None
