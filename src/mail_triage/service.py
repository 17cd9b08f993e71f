"""Triage service: the public surface over registry, inbox, drafts and learning."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from mail_triage.categorizer.classifier import Classifier, RuleClassifier, classify_safely
from mail_triage.config import TriageSettings
from mail_triage.drafts.base import DraftGenerator
from mail_triage.drafts.templates import TemplateDraftGenerator
from mail_triage.inbox import Inbox
from mail_triage.ledger import AutoSendPolicy, LearningLedger, LedgerStore
from mail_triage.locks import MessageLocks
from mail_triage.mailbox.base import MailboxProvider
from mail_triage.models import (
    Account,
    AccountLearningStats,
    Annotation,
    GeneratedDraft,
    LearningRecord,
    Message,
    MessageFilter,
)
from mail_triage.registry import AccountRegistry
from mail_triage.session import DraftWorkflow
from mail_triage.store import SessionStore

logger = logging.getLogger(__name__)


class StatsEndpoint(ABC):
    """Externalized learning statistics."""

    @abstractmethod
    def get(self, account_id: str) -> AccountLearningStats | None:
        ...


@dataclass(frozen=True)
class AccountOverview:
    account: Account
    active: bool
    stats: AccountLearningStats


class TriageService:
    """Wires the components together from settings.

    Args:
        provider: mailbox provider.
        settings: tunables; defaults are used when omitted.
        generator: draft generator; canned templates by default.
        classifier: message classifier; the keyword rules by default.
        session_store: persistence for connected accounts.
        ledger_store: persistence for learning records.
        stats_endpoint: when given, stats are read from it instead of the ledger.
    """

    def __init__(
        self,
        provider: MailboxProvider,
        settings: TriageSettings | None = None,
        generator: DraftGenerator | None = None,
        classifier: Classifier | None = None,
        session_store: SessionStore | None = None,
        ledger_store: LedgerStore | None = None,
        stats_endpoint: StatsEndpoint | None = None,
    ):
        self.settings = settings or TriageSettings()
        self.provider = provider
        self.generator = generator or TemplateDraftGenerator()
        self.classifier = classifier or RuleClassifier()
        self.stats_endpoint = stats_endpoint

        if session_store is not None:
            self.registry = AccountRegistry.load(
                session_store, max_accounts=self.settings.max_accounts,
            )
        else:
            self.registry = AccountRegistry(max_accounts=self.settings.max_accounts)

        self.ledger = LearningLedger(
            store=ledger_store,
            policy=AutoSendPolicy(
                min_samples=self.settings.autosend_min_samples,
                min_avg_similarity=self.settings.autosend_min_similarity,
            ),
        )
        locks = MessageLocks()
        self.inbox = Inbox(
            self.registry,
            provider,
            classifier=self.classifier,
            locks=locks,
            concurrency=self.settings.fetch_concurrency,
            archive_concurrency=self.settings.archive_concurrency,
        )
        self.workflow = DraftWorkflow(
            self.registry, provider, self.generator, self.ledger, locks=locks,
        )

    @classmethod
    def for_gmail(
        cls,
        settings: TriageSettings | None = None,
        service_factory=None,
        llm_drafts: bool = False,
        **kwargs,
    ) -> TriageService:
        """A service over Gmail, with provider and LLM client built from settings.

        Args:
            settings: tunables; defaults are used when omitted.
            service_factory: builds a Gmail API resource for an account.
            llm_drafts: draft replies with Claude instead of canned templates.
            **kwargs: passed to the constructor (stores, classifier, stats endpoint).
        """
        from mail_triage.gmail.provider import GmailProvider, default_service_factory

        settings = settings or TriageSettings()
        provider = GmailProvider.from_settings(
            settings, service_factory=service_factory or default_service_factory,
        )
        if llm_drafts and "generator" not in kwargs:
            from mail_triage.drafts.llm import LLMDraftGenerator
            from mail_triage.llm.client import AsyncLLMClient

            kwargs["generator"] = LLMDraftGenerator(AsyncLLMClient.from_settings(settings))
        return cls(provider, settings=settings, **kwargs)

    def message_filter(self) -> MessageFilter:
        return MessageFilter(
            newer_than_days=self.settings.newer_than_days,
            include_unread=self.settings.include_unread,
            max_results=self.settings.list_max_results,
            detail_limit=self.settings.detail_limit,
        )

    async def categorize(self, message: Message) -> Annotation:
        return await classify_safely(self.classifier, message)

    async def generate_draft(self, message: Message) -> GeneratedDraft:
        account = self.registry.require_valid()
        return await self.generator.generate(message, account, list(message.attachments))

    def record_learning(self, record: LearningRecord) -> bool:
        return self.ledger.append(record)

    def get_stats(self, account_id: str) -> AccountLearningStats:
        """Learning stats for an account; zero stats if the endpoint has none."""
        if self.stats_endpoint is None:
            return self.ledger.stats_for(account_id)
        try:
            stats = self.stats_endpoint.get(account_id)
        except Exception as e:
            logger.warning(f"Stats endpoint unavailable for {account_id}: {e}")
            stats = None
        return stats or AccountLearningStats.empty(account_id)

    def overview(self) -> list[AccountOverview]:
        """Every connected account with its learning stats."""
        active = self.registry.active_account()
        return [
            AccountOverview(
                account=account,
                active=active is not None and account.id == active.id,
                stats=self.get_stats(account.id),
            )
            for account in self.registry
        ]

    @property
    def learned_count(self) -> int:
        return len(self.ledger)

    @property
    def saved_count(self) -> int:
        return self.workflow.saved_count
