"""Shared fakes for the mailbox provider and draft generator."""

from datetime import datetime, timedelta, timezone

import pytest

from mail_triage.ledger import LearningLedger
from mail_triage.mailbox.base import MailboxProvider
from mail_triage.models import Account, GeneratedDraft, Message
from mail_triage.registry import AccountRegistry


class FakeProvider(MailboxProvider):
    """In-memory mailbox that records every call and can be told to fail."""

    def __init__(self, messages=None):
        self.messages = list(messages or [])
        self.calls = []
        self.fail = {}

    def _maybe_fail(self, op, key=None):
        err = self.fail.get((op, key)) or self.fail.get(op)
        if err is not None:
            raise err

    async def list_recent(self, account, filter):
        self.calls.append(("list_recent", account.id))
        self._maybe_fail("list_recent")
        return list(self.messages)

    async def get_detail(self, account, message_id):
        self.calls.append(("get_detail", message_id))
        self._maybe_fail("get_detail", message_id)
        return next(m for m in self.messages if m.id == message_id)

    async def create_draft(self, account, reply):
        self.calls.append(("create_draft", reply))
        self._maybe_fail("create_draft")
        return "draft-1"

    async def send(self, account, reply):
        self.calls.append(("send", reply))
        self._maybe_fail("send")
        return "sent-1"

    async def modify_labels(self, account, message_id, add=None, remove=None):
        self.calls.append(("modify_labels", message_id, tuple(remove or ())))
        self._maybe_fail("modify_labels", message_id)

    def count(self, op):
        return sum(1 for c in self.calls if c[0] == op)


class FakeGenerator:
    """Returns a fixed draft, or raises when ``error`` is set."""

    def __init__(self, text="Thanks, we will look into it.", error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def generate(self, message, account_context, attachments):
        self.calls.append((message.id, account_context.id, list(attachments)))
        if self.error is not None:
            raise self.error
        return GeneratedDraft(draft_text=self.text)


def make_message(
    msg_id="m1",
    subject="Hello",
    body="Just saying hi",
    sender="Alice <alice@example.com>",
    attachments=None,
    account_id="me@example.com",
):
    return Message(
        id=msg_id,
        thread_id=f"t-{msg_id}",
        sender=sender,
        subject=subject,
        body_excerpt=body[:500],
        body=body,
        attachments=list(attachments or []),
        account_id=account_id,
    )


@pytest.fixture
def account():
    return Account(
        id="me@example.com",
        mailbox_address="me@example.com",
        credential="token-abc",
        credential_expiry=datetime.now(timezone.utc) + timedelta(hours=1),
    )


@pytest.fixture
def registry(account):
    reg = AccountRegistry()
    reg.add(account)
    return reg


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def ledger():
    return LearningLedger()


@pytest.fixture
def message_factory():
    return make_message


