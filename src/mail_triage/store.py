"""Session stores: best-effort persistence of the connected accounts."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from mail_triage.exceptions import SessionStoreError
from mail_triage.models import Account

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Loads and saves the account list across process restarts."""

    @abstractmethod
    def load(self) -> list[Account]:
        ...

    @abstractmethod
    def save(self, accounts: list[Account]) -> None:
        ...


class MemorySessionStore(SessionStore):
    def __init__(self, accounts: list[Account] | None = None):
        self._accounts = list(accounts or [])

    def load(self) -> list[Account]:
        return list(self._accounts)

    def save(self, accounts: list[Account]) -> None:
        self._accounts = list(accounts)


class JsonSessionStore(SessionStore):
    """Accounts as a JSON list in a single file. A missing file is an empty store."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> list[Account]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text())
            return [Account.from_dict(item) for item in data]
        except (json.JSONDecodeError, OSError, KeyError, TypeError, ValueError) as e:
            raise SessionStoreError(f"Failed to load accounts from {self.path}: {e}") from e

    def save(self, accounts: list[Account]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps([a.to_dict() for a in accounts], indent=2))
        except OSError as e:
            raise SessionStoreError(f"Failed to save accounts to {self.path}: {e}") from e
        logger.debug(f"Saved {len(accounts)} accounts to {self.path}")
