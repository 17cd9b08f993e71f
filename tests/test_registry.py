"""Tests for the account registry."""

from datetime import datetime, timedelta, timezone

import pytest

from mail_triage.exceptions import (
    AuthExpiredError,
    NoActiveAccountError,
    RegistryFullError,
    SessionStoreError,
    UnknownAccountError,
)
from mail_triage.models import Account
from mail_triage.registry import MAX_ACCOUNTS, AccountRegistry
from mail_triage.store import MemorySessionStore

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _account(n, expiry=None):
    address = f"user{n}@example.com"
    return Account(id=address, mailbox_address=address, credential=f"tok{n}", credential_expiry=expiry)


def test_first_account_becomes_active():
    registry = AccountRegistry()
    assert registry.active_account() is None
    registry.add(_account(1))
    registry.add(_account(2))
    assert registry.active_account().id == "user1@example.com"


def test_tenth_account_rejected():
    registry = AccountRegistry()
    for n in range(MAX_ACCOUNTS):
        registry.add(_account(n))
    assert MAX_ACCOUNTS == 9
    with pytest.raises(RegistryFullError):
        registry.add(_account(99))
    assert len(registry) == 9


def test_duplicate_address_keeps_existing_entry():
    registry = AccountRegistry()
    original = registry.add(_account(1))
    duplicate = Account(
        id="other-id", mailbox_address="USER1@example.com", credential="new-token",
    )
    result = registry.add(duplicate)
    assert result is original
    assert len(registry) == 1
    assert registry.get("user1@example.com").credential == "tok1"


def test_duplicate_is_noop_even_when_full():
    registry = AccountRegistry(max_accounts=1)
    registry.add(_account(1))
    assert registry.add(_account(1)).id == "user1@example.com"


def test_set_active_unknown_fails():
    registry = AccountRegistry()
    registry.add(_account(1))
    with pytest.raises(UnknownAccountError):
        registry.set_active("nobody@example.com")
    assert registry.active_account().id == "user1@example.com"


def test_set_active_switches():
    registry = AccountRegistry()
    registry.add(_account(1))
    registry.add(_account(2))
    registry.set_active("user2@example.com")
    assert registry.active_account().id == "user2@example.com"


def test_require_valid_rejects_expired_credential():
    registry = AccountRegistry(clock=lambda: NOW)
    registry.add(_account(1, expiry=NOW - timedelta(seconds=1)))
    with pytest.raises(AuthExpiredError) as excinfo:
        registry.require_valid()
    assert excinfo.value.account_id == "user1@example.com"


def test_require_valid_accepts_live_credential():
    registry = AccountRegistry(clock=lambda: NOW)
    registry.add(_account(1, expiry=NOW + timedelta(minutes=5)))
    assert registry.require_valid().id == "user1@example.com"


def test_require_valid_without_active_account():
    with pytest.raises(NoActiveAccountError):
        AccountRegistry().require_valid()


def test_update_credential_revalidates():
    registry = AccountRegistry(clock=lambda: NOW)
    registry.add(_account(1, expiry=NOW - timedelta(hours=1)))
    registry.update_credential("user1@example.com", "fresh", NOW + timedelta(hours=1))
    assert registry.require_valid().credential == "fresh"


def test_remove_moves_active_selection():
    registry = AccountRegistry()
    registry.add(_account(1))
    registry.add(_account(2))
    registry.remove("user1@example.com")
    assert registry.active_account().id == "user2@example.com"
    registry.remove("user2@example.com")
    assert registry.active_account() is None


def test_mutations_are_persisted():
    store = MemorySessionStore()
    registry = AccountRegistry(store=store)
    registry.add(_account(1))
    registry.add(_account(2))
    assert [a.id for a in store.load()] == ["user1@example.com", "user2@example.com"]

    restored = AccountRegistry.load(store)
    assert len(restored) == 2
    assert restored.active_account().id == "user1@example.com"


def test_load_from_empty_store():
    registry = AccountRegistry.load(MemorySessionStore())
    assert len(registry) == 0
    assert registry.active_account() is None


class _BrokenStore(MemorySessionStore):
    def load(self):
        raise SessionStoreError("corrupt")

    def save(self, accounts):
        raise SessionStoreError("read-only")


def test_broken_store_does_not_block_registry():
    registry = AccountRegistry.load(_BrokenStore())
    registry.add(_account(1))
    assert registry.active_account().id == "user1@example.com"
