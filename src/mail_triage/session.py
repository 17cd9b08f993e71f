"""Draft session state machine and the workflow that owns it.

A ``DraftWorkflow`` holds at most one live ``DraftSession``:

    closed -> generating -> editable -> saved | sent | cancelled

Opening another message cancels the live session without recording it.
Saving and sending record what the user did to the generated draft
before touching the mailbox. A send is final: if archiving the original
afterwards fails, that is reported on the outcome and the send stands.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

from mail_triage.drafts.base import DraftGenerator
from mail_triage.exceptions import GeneratorError, ProviderError, SessionStateError
from mail_triage.ledger import LearningLedger
from mail_triage.locks import MessageLocks
from mail_triage.mailbox.base import MailboxProvider
from mail_triage.models import (
    Account,
    DraftAction,
    LearningRecord,
    Message,
    OutgoingReply,
    utcnow,
)
from mail_triage.registry import AccountRegistry

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    CLOSED = "closed"
    GENERATING = "generating"
    EDITABLE = "editable"
    SAVED = "saved"
    SENT = "sent"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({
    SessionState.CLOSED, SessionState.SAVED, SessionState.SENT, SessionState.CANCELLED,
})


@dataclass
class DraftSession:
    message: Message
    account: Account
    created_at: datetime = field(default_factory=utcnow)
    state: SessionState = SessionState.GENERATING
    working_draft: str = ""
    _generated_draft: str | None = field(default=None, repr=False)
    _recorded: tuple[str, DraftAction] | None = field(default=None, repr=False)

    @property
    def generated_draft(self) -> str | None:
        return self._generated_draft

    @property
    def is_active(self) -> bool:
        return self.state not in TERMINAL_STATES

    def start_editing(self, draft_text: str) -> None:
        if self._generated_draft is not None:
            raise SessionStateError("Generated draft is already set")
        self._require(SessionState.GENERATING)
        self._generated_draft = draft_text
        self.working_draft = draft_text
        self.state = SessionState.EDITABLE

    def edit(self, text: str) -> None:
        self._require(SessionState.EDITABLE)
        self.working_draft = text

    def _require(self, state: SessionState) -> None:
        if self.state is not state:
            raise SessionStateError(
                f"Session for {self.message.id} is {self.state.value}, expected {state.value}"
            )


@dataclass(frozen=True)
class SaveOutcome:
    draft_id: str
    record: LearningRecord | None


@dataclass(frozen=True)
class SendOutcome:
    """Result of a send. ``partial`` means sent but still in the inbox."""

    sent_id: str
    record: LearningRecord | None
    archived: bool
    archive_error: str | None = None

    @property
    def partial(self) -> bool:
        return not self.archived


class DraftWorkflow:
    """Owns the single live draft session.

    Args:
        registry: source of the active account and credential checks.
        provider: mailbox the drafts and replies go to.
        generator: produces the initial draft.
        ledger: receives one learning record per save or send.
        locks: per-message write locks, shared with the inbox.
    """

    def __init__(
        self,
        registry: AccountRegistry,
        provider: MailboxProvider,
        generator: DraftGenerator,
        ledger: LearningLedger,
        locks: MessageLocks | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._registry = registry
        self._provider = provider
        self._generator = generator
        self._ledger = ledger
        self._locks = locks or MessageLocks()
        self._clock = clock
        self._session: DraftSession | None = None
        self.saved_count = 0
        self.sent_count = 0

    @property
    def session(self) -> DraftSession | None:
        return self._session

    def begin(self, message: Message) -> DraftSession:
        """Start a session for ``message``, cancelling any live one."""
        account = self._registry.require_valid()
        if message.account_id and message.account_id != account.id:
            raise SessionStateError(
                f"Message {message.id} belongs to {message.account_id}, "
                f"not the active account {account.id}"
            )
        if self._session is not None and self._session.is_active:
            logger.info(f"Discarding draft for {self._session.message.id}")
            self._session.state = SessionState.CANCELLED
        self._session = DraftSession(message=message, account=account, created_at=self._clock())
        return self._session

    async def generate(self, session: DraftSession) -> DraftSession:
        """Fill a generating session with the generator's draft."""
        try:
            result = await self._generator.generate(
                session.message, session.account, list(session.message.attachments),
            )
        except GeneratorError:
            self._close_failed(session)
            raise
        except Exception as e:
            self._close_failed(session)
            raise GeneratorError(f"Draft generation failed: {e}") from e

        if session is not self._session or session.state is not SessionState.GENERATING:
            logger.info(f"Dropping draft for superseded session {session.message.id}")
            return session

        session.start_editing(result.draft_text)
        return session

    async def open(self, message: Message) -> DraftSession:
        return await self.generate(self.begin(message))

    def edit(self, text: str) -> None:
        self._require_editable().edit(text)

    def cancel(self) -> None:
        session = self._session
        if session is None or not session.is_active:
            return
        session.state = SessionState.CANCELLED
        session.working_draft = ""
        self._session = None

    async def save(self) -> SaveOutcome:
        """Record the edit, then save the reply as a draft in the original thread."""
        session = self._require_editable()
        account = self._registry.require_valid(session.account.id)
        final = self._final_text(session)

        async with self._locks.for_message(account.id, session.message.id):
            record = self._record(session, account, final, DraftAction.SAVED)
            reply = OutgoingReply.to_message(session.message, final)
            draft_id = await self._provider.create_draft(account, reply)

        session.state = SessionState.SAVED
        self._session = None
        self.saved_count += 1
        return SaveOutcome(draft_id=draft_id, record=record)

    async def send(self) -> SendOutcome:
        """Record the edit, send the reply, then archive the original."""
        session = self._require_editable()
        account = self._registry.require_valid(session.account.id)
        final = self._final_text(session)

        async with self._locks.for_message(account.id, session.message.id):
            record = self._record(session, account, final, DraftAction.SENT)
            reply = OutgoingReply.to_message(session.message, final)
            sent_id = await self._provider.send(account, reply)

            session.state = SessionState.SENT
            self._session = None
            self.sent_count += 1

            try:
                await self._provider.archive(account, session.message.id)
            except ProviderError as e:
                logger.warning(f"Sent {session.message.id} but could not archive it: {e}")
                return SendOutcome(
                    sent_id=sent_id, record=record, archived=False, archive_error=str(e),
                )

        return SendOutcome(sent_id=sent_id, record=record, archived=True)

    def _require_editable(self) -> DraftSession:
        session = self._session
        if session is None:
            raise SessionStateError("No draft session is open")
        session._require(SessionState.EDITABLE)
        return session

    def _final_text(self, session: DraftSession) -> str:
        if not session.working_draft.strip():
            raise SessionStateError("Cannot save or send an empty draft")
        return session.working_draft

    def _record(
        self, session: DraftSession, account: Account, final: str, action: DraftAction,
    ) -> LearningRecord | None:
        # Retrying the same action with the same text after a mailbox failure
        # is not a new decision.
        if session._recorded == (final, action):
            return None
        record = self._ledger.record_edit(
            account, session.message, session.generated_draft or "", final, action,
        )
        session._recorded = (final, action)
        return record

    def _close_failed(self, session: DraftSession) -> None:
        logger.warning(f"Draft generation failed for {session.message.id}")
        if session.state is SessionState.GENERATING:
            session.state = SessionState.CLOSED
        if self._session is session:
            self._session = None
