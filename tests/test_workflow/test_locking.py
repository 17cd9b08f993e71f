"""Writes to the same message never overlap at the mailbox."""

import asyncio

from mail_triage.inbox import Inbox
from mail_triage.locks import MessageLocks
from mail_triage.mailbox.base import MailboxProvider
from mail_triage.session import DraftWorkflow


class _SlowMailbox(MailboxProvider):
    """Logs when each write starts and finishes, pausing in between."""

    def __init__(self, messages, delay=0.05):
        self.messages = messages
        self.delay = delay
        self.events = []

    async def _write(self, name):
        self.events.append(f"{name}:start")
        await asyncio.sleep(self.delay)
        self.events.append(f"{name}:end")

    async def list_recent(self, account, filter):
        return list(self.messages)

    async def get_detail(self, account, message_id):
        return next(m for m in self.messages if m.id == message_id)

    async def create_draft(self, account, reply):
        await self._write(f"draft {reply.in_reply_to}")
        return "draft-1"

    async def send(self, account, reply):
        await self._write(f"send {reply.in_reply_to}")
        return "sent-1"

    async def modify_labels(self, account, message_id, add=None, remove=None):
        await self._write(f"archive {message_id}")


def _wire(registry, generator, ledger, messages):
    mailbox = _SlowMailbox(messages)
    locks = MessageLocks()
    inbox = Inbox(registry, mailbox, locks=locks)
    workflow = DraftWorkflow(registry, mailbox, generator, ledger, locks=locks)
    return mailbox, inbox, workflow


def test_archive_and_save_on_same_message_do_not_interleave(
    registry, generator, ledger, message_factory,
):
    mailbox, inbox, workflow = _wire(registry, generator, ledger, [message_factory("m1")])

    async def scenario():
        view = await inbox.load()
        await workflow.open(view.get("m1"))
        await asyncio.gather(inbox.archive(view, "m1"), workflow.save())

    asyncio.run(scenario())

    assert mailbox.events == [
        "archive m1:start", "archive m1:end", "draft m1:start", "draft m1:end",
    ]


def test_send_and_archive_on_same_message_do_not_interleave(
    registry, generator, ledger, message_factory,
):
    mailbox, inbox, workflow = _wire(registry, generator, ledger, [message_factory("m1")])

    async def scenario():
        view = await inbox.load()
        await workflow.open(view.get("m1"))
        await asyncio.gather(workflow.send(), inbox.archive(view, "m1"))

    asyncio.run(scenario())

    assert mailbox.events == [
        "send m1:start", "send m1:end",
        "archive m1:start", "archive m1:end",
        "archive m1:start", "archive m1:end",
    ]


def test_writes_to_different_messages_run_concurrently(
    registry, generator, ledger, message_factory,
):
    mailbox, inbox, workflow = _wire(
        registry, generator, ledger, [message_factory("m1"), message_factory("m2")],
    )

    async def scenario():
        view = await inbox.load()
        await workflow.open(view.get("m1"))
        await asyncio.gather(inbox.archive(view, "m2"), workflow.save())

    asyncio.run(scenario())

    assert mailbox.events.index("draft m1:start") < mailbox.events.index("archive m2:end")
