"""
Durable session storage.

Keeps the credential and the serialized identity in a single JSON file so
that the pair is always written and removed together.
"""

import json
import os
from pathlib import Path
from typing import Optional

from loguru import logger

from ..errors import SEAPError
from .models import Identity, Session


TOKEN_KEY = "token"
USER_KEY = "user"


class StorageError(SEAPError):
    """Raised when the session file cannot be written."""


class CorruptSessionError(Exception):
    """Raised when the session file exists but cannot be parsed."""


class SessionStorage:
    """
    File-backed store for the two session entries.

    File layout:
        {"token": "<credential>", "user": "<identity serialized as JSON>"}
    """

    def __init__(self, path: Path):
        """
        Initialize storage.

        Args:
            path: Session file location (e.g. ~/.seap_session)
        """
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[Session]:
        """
        Read the persisted session.

        Returns:
            Session, or None if nothing is stored

        Raises:
            CorruptSessionError: If the file is unreadable, not JSON, or holds
                only one half of the pair
        """
        if not self.path.exists():
            return None

        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise CorruptSessionError(f"unreadable session file: {e}") from e

        if not isinstance(data, dict):
            raise CorruptSessionError("session file is not an object")

        token = data.get(TOKEN_KEY)
        user_str = data.get(USER_KEY)
        if not token and not user_str:
            return None
        if not isinstance(token, str) or not token or not isinstance(user_str, str):
            raise CorruptSessionError("session file holds an incomplete pair")

        try:
            identity = Identity.from_dict(json.loads(user_str))
        except ValueError as e:
            raise CorruptSessionError(f"stored user record is invalid: {e}") from e

        return Session(credential=token, identity=identity)

    def save(self, session: Session):
        """
        Persist the credential and identity as one atomic write.

        Raises:
            StorageError: If the file cannot be written
        """
        data = {
            TOKEN_KEY: session.credential,
            USER_KEY: json.dumps(session.identity.to_dict()),
        }
        tmp_path = self.path.with_name(self.path.name + ".tmp")

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)

            # Restricted permissions (600) from the first byte
            fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to save session: {e}")
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass
            raise StorageError(f"Failed to save session: {e}") from e

        logger.debug(f"Session saved to {self.path}")

    def clear(self):
        """Remove the stored session. Never raises."""
        try:
            self.path.unlink()
            logger.debug("Session file removed")
        except FileNotFoundError:
            pass
        except OSError as e:
            # Fall back to emptying the file so no credential survives
            logger.error(f"Failed to remove session file: {e}")
            try:
                with open(self.path, "w") as f:
                    json.dump({}, f)
            except OSError as e2:
                logger.error(f"Failed to empty session file: {e2}")
