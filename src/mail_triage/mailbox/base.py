"""Abstract base class for mailbox providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from mail_triage.models import Account, Message, MessageFilter, OutgoingReply

INBOX_LABEL = "INBOX"


class MailboxProvider(ABC):
    """Async interface to a mail transport.

    Every method raises ``ProviderError`` on failure. Implementations must
    not retry writes.
    """

    @abstractmethod
    async def list_recent(self, account: Account, filter: MessageFilter) -> list[Message]:
        """Recent messages, with body excerpt and attachment metadata."""
        ...

    @abstractmethod
    async def get_detail(self, account: Account, message_id: str) -> Message:
        """A single message including its full body."""
        ...

    @abstractmethod
    async def create_draft(self, account: Account, reply: OutgoingReply) -> str:
        """Save a reply draft in the reply's thread. Returns the draft id."""
        ...

    @abstractmethod
    async def send(self, account: Account, reply: OutgoingReply) -> str:
        """Send a reply in its thread. Returns the sent message id."""
        ...

    @abstractmethod
    async def modify_labels(
        self,
        account: Account,
        message_id: str,
        add: list[str] | None = None,
        remove: list[str] | None = None,
    ) -> None:
        ...

    async def archive(self, account: Account, message_id: str) -> None:
        """Remove a message from the inbox without deleting it."""
        await self.modify_labels(account, message_id, remove=[INBOX_LABEL])
