import json
import os
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

logger = logging.getLogger(__name__)

TOKEN_KEY = "access_token"


class CredentialStore(ABC):
    """Holds the bearer token. ``get()`` returning None means unauthenticated."""

    @abstractmethod
    def get(self) -> Optional[str]: ...

    @abstractmethod
    def set(self, token: str) -> None: ...

    @abstractmethod
    def clear(self) -> None: ...


class MemoryCredentialStore(CredentialStore):
    def __init__(self, token: Optional[str] = None):
        self._token = token or None

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str) -> None:
        if not token:
            raise ValueError("Refusing to store an empty token")
        self._token = token

    def clear(self) -> None:
        self._token = None


class FileCredentialStore(CredentialStore):
    """
    Keyed JSON file on disk, so a login survives process restarts.

    Other keys in the file are left alone; ``clear()`` only drops ours.
    """

    def __init__(self, path: str, key: str = TOKEN_KEY):
        self.path = os.path.expanduser(path)
        self.key = key

    def _read(self) -> Dict[str, str]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Credential file {self.path} unreadable, treating as empty: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        # Owner-only: the file holds a bearer token.
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def get(self) -> Optional[str]:
        token = self._read().get(self.key)
        if isinstance(token, str) and token:
            return token
        return None

    def set(self, token: str) -> None:
        if not token:
            raise ValueError("Refusing to store an empty token")
        data = self._read()
        data[self.key] = token
        self._write(data)

    def clear(self) -> None:
        data = self._read()
        if self.key not in data:
            return
        del data[self.key]
        self._write(data)
