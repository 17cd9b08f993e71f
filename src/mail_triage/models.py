"""Data models shared across mail-triage."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class Category(str, Enum):
    SEARCH_REQUEST = "search_request"
    REMOVAL_REQUEST = "removal_request"
    LEGAL_THREAT = "legal_threat"
    UNKNOWN = "unknown"


class Importance(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AutoAction(str, Enum):
    ARCHIVE = "archive"
    IMPORTANT = "important"
    HOLD = "hold"
    RESPOND = "respond"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Account:
    """One connected mailbox identity.

    ``credential`` is the bearer token handed to the mailbox provider.
    ``credential_expiry`` is an aware UTC datetime, or None for a
    credential without a known expiry.
    """

    id: str
    mailbox_address: str
    credential: str
    credential_expiry: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.credential_expiry is None:
            return False
        return (now or utcnow()) >= self.credential_expiry

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "mailbox_address": self.mailbox_address,
            "credential": self.credential,
            "credential_expiry": (
                self.credential_expiry.isoformat() if self.credential_expiry else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Account:
        expiry = data.get("credential_expiry")
        return cls(
            id=data["id"],
            mailbox_address=data["mailbox_address"],
            credential=data.get("credential", ""),
            credential_expiry=datetime.fromisoformat(expiry) if expiry else None,
        )


@dataclass(frozen=True)
class AttachmentInfo:
    """Attachment metadata. Content is never downloaded by the core."""

    filename: str
    mime_type: str
    size: int = 0
    attachment_id: str | None = None


@dataclass(frozen=True)
class Annotation:
    """Categorizer output for one message."""

    category: Category
    importance: Importance
    auto_action: AutoAction
    rule: str = "manual_review"
    reply_template: str | None = None

    @classmethod
    def fallback(cls) -> Annotation:
        """Safe default when classification is unavailable."""
        return cls(
            category=Category.UNKNOWN,
            importance=Importance.MEDIUM,
            auto_action=AutoAction.HOLD,
        )


@dataclass
class Message:
    """Read-only projection of a provider message.

    Only the annotation fields are written after fetch, by ``annotate``.
    """

    id: str
    thread_id: str
    sender: str
    subject: str
    received_at: datetime | None = None
    snippet: str = ""
    body_excerpt: str = ""
    body: str = ""
    attachments: list[AttachmentInfo] = field(default_factory=list)
    account_id: str = ""
    category: Category | None = None
    importance: Importance | None = None
    auto_action: AutoAction | None = None
    rule: str | None = None

    @property
    def has_attachments(self) -> bool:
        return bool(self.attachments)

    @property
    def text(self) -> str:
        """Subject and body, the text categorization rules are matched against."""
        return f"{self.subject} {self.body or self.body_excerpt}"

    def annotate(self, annotation: Annotation) -> None:
        self.category = annotation.category
        self.importance = annotation.importance
        self.auto_action = annotation.auto_action
        self.rule = annotation.rule


@dataclass(frozen=True)
class MessageFilter:
    """Which messages ``list_recent`` returns."""

    newer_than_days: int = 7
    include_unread: bool = True
    max_results: int = 50
    detail_limit: int = 20
    labels: tuple[str, ...] = ()


@dataclass(frozen=True)
class OutgoingReply:
    """A reply addressed into the original message's thread."""

    thread_id: str
    to: str
    subject: str
    body: str
    in_reply_to: str | None = None

    @classmethod
    def to_message(cls, message: Message, body: str) -> OutgoingReply:
        subject = message.subject or ""
        if not subject.lower().startswith("re:"):
            subject = f"Re: {subject}"
        return cls(
            thread_id=message.thread_id,
            to=message.sender,
            subject=subject,
            body=body,
            in_reply_to=message.id,
        )


@dataclass(frozen=True)
class GeneratedDraft:
    """What a draft generator returns."""

    draft_text: str
    category: Category = Category.UNKNOWN
    importance: Importance = Importance.MEDIUM
    model: str = ""


class DraftAction(str, Enum):
    SAVED = "saved"
    SENT = "sent"


@dataclass(frozen=True)
class LearningRecord:
    """One comparison between a generated draft and the user's final text."""

    timestamp: datetime
    account: str
    message_id: str
    sender: str
    subject: str
    original_body: str
    generated_draft: str
    final_draft: str
    category: Category | None
    importance: Importance | None
    edit_distance: int
    similarity: float
    exact_match: bool
    length_delta: int
    action: DraftAction = DraftAction.SAVED

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "account": self.account,
            "message_id": self.message_id,
            "sender": self.sender,
            "subject": self.subject,
            "original_body": self.original_body,
            "generated_draft": self.generated_draft,
            "final_draft": self.final_draft,
            "category": self.category.value if self.category else None,
            "importance": self.importance.value if self.importance else None,
            "edit_distance": self.edit_distance,
            "similarity": self.similarity,
            "exact_match": self.exact_match,
            "length_delta": self.length_delta,
            "action": self.action.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> LearningRecord:
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            account=data["account"],
            message_id=data["message_id"],
            sender=data.get("sender", ""),
            subject=data.get("subject", ""),
            original_body=data.get("original_body", ""),
            generated_draft=data["generated_draft"],
            final_draft=data["final_draft"],
            category=Category(data["category"]) if data.get("category") else None,
            importance=Importance(data["importance"]) if data.get("importance") else None,
            edit_distance=int(data["edit_distance"]),
            similarity=float(data["similarity"]),
            exact_match=bool(data["exact_match"]),
            length_delta=int(data["length_delta"]),
            action=DraftAction(data.get("action", DraftAction.SAVED.value)),
        )


@dataclass(frozen=True)
class AccountLearningStats:
    """Aggregates derived from one account's learning records."""

    account: str
    total_edits: int = 0
    avg_similarity_percent: float = 0.0
    ready_for_auto_send: bool = False
    exact_matches: int = 0
    avg_edit_distance: float = 0.0

    @classmethod
    def empty(cls, account: str) -> AccountLearningStats:
        return cls(account=account)
