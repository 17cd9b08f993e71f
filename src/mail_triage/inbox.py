"""Annotated inbox view for the active account, and archiving from it."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field

from mail_triage.categorizer.classifier import Classifier, RuleClassifier, classify_safely
from mail_triage.exceptions import ProviderError
from mail_triage.locks import MessageLocks
from mail_triage.mailbox.base import MailboxProvider
from mail_triage.models import Account, Message, MessageFilter
from mail_triage.registry import AccountRegistry

logger = logging.getLogger(__name__)


@dataclass
class InboxView:
    """Messages fetched for one account. Replaced wholesale on refresh."""

    account_id: str
    messages: list[Message] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.messages)

    def get(self, message_id: str) -> Message | None:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    def discard(self, message_id: str) -> None:
        self.messages = [m for m in self.messages if m.id != message_id]

    def counts_by_category(self) -> dict[str, int]:
        return dict(Counter(m.category.value for m in self.messages if m.category))


@dataclass
class BulkArchiveResult:
    archived: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return len(self.archived)

    @property
    def failure_count(self) -> int:
        return len(self.failed)


class Inbox:
    """Loads and annotates recent mail; archives single messages or a whole view.

    Args:
        registry: provides the active account.
        provider: mailbox to read from and archive in.
        classifier: annotates each message; failures fall back to a safe default.
        locks: per-message write locks, shared with the draft workflow.
        concurrency: parallel classifications while loading.
        archive_concurrency: parallel archives in ``archive_all``.
    """

    def __init__(
        self,
        registry: AccountRegistry,
        provider: MailboxProvider,
        classifier: Classifier | None = None,
        locks: MessageLocks | None = None,
        concurrency: int = 5,
        archive_concurrency: int = 3,
    ):
        self._registry = registry
        self._provider = provider
        self._classifier = classifier or RuleClassifier()
        self._locks = locks or MessageLocks()
        self.concurrency = concurrency
        self.archive_concurrency = archive_concurrency

    async def load(self, message_filter: MessageFilter | None = None) -> InboxView:
        """Fetch and annotate recent messages for the active account."""
        account = self._registry.require_valid()
        messages = await self._provider.list_recent(account, message_filter or MessageFilter())

        semaphore = asyncio.Semaphore(self.concurrency)

        async def annotate(message: Message) -> None:
            async with semaphore:
                message.annotate(await classify_safely(self._classifier, message))

        owned = []
        for message in messages:
            if message.account_id and message.account_id != account.id:
                logger.warning(f"Skipping {message.id}: fetched for another account")
                continue
            message.account_id = account.id
            owned.append(message)

        await asyncio.gather(*(annotate(m) for m in owned))
        logger.info(f"Loaded {len(owned)} messages for {account.mailbox_address}")
        return InboxView(account_id=account.id, messages=owned)

    async def archive(self, view: InboxView, message_id: str) -> None:
        """Archive one message and drop it from the view. Raises ``ProviderError``."""
        account = self._registry.require_valid(view.account_id)
        await self._archive_one(account, message_id)
        view.discard(message_id)

    async def archive_all(self, view: InboxView) -> BulkArchiveResult:
        """Archive every message in the view, tracking each outcome. No rollback."""
        account = self._registry.require_valid(view.account_id)
        result = BulkArchiveResult()
        semaphore = asyncio.Semaphore(self.archive_concurrency)

        async def archive(message_id: str) -> None:
            async with semaphore:
                try:
                    await self._archive_one(account, message_id)
                except ProviderError as e:
                    result.failed[message_id] = str(e)
                else:
                    result.archived.append(message_id)

        await asyncio.gather(*(archive(m.id) for m in list(view.messages)))
        for message_id in result.archived:
            view.discard(message_id)

        logger.info(
            f"Archived {result.success_count} messages, "
            f"{result.failure_count} failed for {account.mailbox_address}"
        )
        return result

    async def _archive_one(self, account: Account, message_id: str) -> None:
        async with self._locks.for_message(account.id, message_id):
            await self._provider.archive(account, message_id)
