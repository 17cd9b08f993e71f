"""Connected mailbox accounts and the active selection."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterator

from mail_triage.exceptions import (
    AuthExpiredError,
    NoActiveAccountError,
    RegistryFullError,
    SessionStoreError,
    UnknownAccountError,
)
from mail_triage.models import Account, utcnow
from mail_triage.store import SessionStore

logger = logging.getLogger(__name__)

MAX_ACCOUNTS = 9


class AccountRegistry:
    """Holds id -> Account plus one active id.

    Every mutation is written to the session store when one is given;
    store failures are logged and never block the registry.

    Args:
        store: optional session store.
        max_accounts: cap on connected accounts.
        clock: returns "now" for expiry checks.
    """

    def __init__(
        self,
        store: SessionStore | None = None,
        max_accounts: int = MAX_ACCOUNTS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self.max_accounts = max_accounts
        self._clock = clock
        self._accounts: dict[str, Account] = {}
        self._active_id: str | None = None

    @classmethod
    def load(cls, store: SessionStore, **kwargs) -> AccountRegistry:
        """Restore accounts from a store. An unreadable store yields an empty registry."""
        registry = cls(store=store, **kwargs)
        try:
            accounts = store.load()
        except SessionStoreError as e:
            logger.warning(f"Starting with no accounts: {e}")
            accounts = []
        for account in accounts[:registry.max_accounts]:
            if registry.find_by_address(account.mailbox_address) is None:
                registry._accounts[account.id] = account
        if registry._accounts:
            registry._active_id = next(iter(registry._accounts))
        return registry

    def __len__(self) -> int:
        return len(self._accounts)

    def __iter__(self) -> Iterator[Account]:
        return iter(list(self._accounts.values()))

    def __contains__(self, account_id: str) -> bool:
        return account_id in self._accounts

    def get(self, account_id: str) -> Account:
        try:
            return self._accounts[account_id]
        except KeyError:
            raise UnknownAccountError(f"Unknown account '{account_id}'") from None

    def find_by_address(self, address: str) -> Account | None:
        wanted = address.strip().lower()
        for account in self._accounts.values():
            if account.mailbox_address.strip().lower() == wanted:
                return account
        return None

    def add(self, account: Account) -> Account:
        """Register an account; a known mailbox address keeps its existing entry."""
        existing = self.find_by_address(account.mailbox_address)
        if existing is not None:
            logger.info(f"Account {account.mailbox_address} already connected")
            return existing
        if len(self._accounts) >= self.max_accounts:
            raise RegistryFullError(
                f"Cannot add {account.mailbox_address}: "
                f"already holding the maximum of {self.max_accounts} accounts"
            )
        self._accounts[account.id] = account
        if self._active_id is None:
            self._active_id = account.id
        logger.info(f"Connected account {account.mailbox_address} ({len(self)}/{self.max_accounts})")
        self._persist()
        return account

    def remove(self, account_id: str) -> None:
        """Disconnect an account."""
        self.get(account_id)
        del self._accounts[account_id]
        if self._active_id == account_id:
            self._active_id = next(iter(self._accounts), None)
        logger.info(f"Disconnected account {account_id}")
        self._persist()

    def set_active(self, account_id: str) -> Account:
        account = self.get(account_id)
        self._active_id = account_id
        self._persist()
        return account

    def active_account(self) -> Account | None:
        if self._active_id is None:
            return None
        return self._accounts.get(self._active_id)

    def require_valid(self, account_id: str | None = None) -> Account:
        """The given (or active) account, if its credential is still usable."""
        if account_id is None:
            account = self.active_account()
            if account is None:
                raise NoActiveAccountError("No account is selected")
        else:
            account = self.get(account_id)
        if account.is_expired(self._clock()):
            raise AuthExpiredError(account.id)
        return account

    def update_credential(
        self, account_id: str, credential: str, expiry: datetime | None,
    ) -> Account:
        """Swap in a refreshed credential obtained by the OAuth collaborator."""
        current = self.get(account_id)
        updated = Account(
            id=current.id,
            mailbox_address=current.mailbox_address,
            credential=credential,
            credential_expiry=expiry,
        )
        self._accounts[account_id] = updated
        self._persist()
        return updated

    def _persist(self) -> None:
        if self._store is None:
            return
        try:
            self._store.save(list(self._accounts.values()))
        except SessionStoreError as e:
            logger.warning(f"Account list not persisted: {e}")
