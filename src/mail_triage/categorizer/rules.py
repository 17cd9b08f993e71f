"""Keyword rule chain that annotates a message.

Rules are evaluated in order and the first match wins, so order encodes
priority. Matching is a case-insensitive substring test over the subject
and body; no stemming.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from mail_triage.models import Annotation, AutoAction, Category, Importance, Message

SEARCH_REPLY = (
    "Thank you for contacting us.\n\n"
    "We don't provide research services. The information you're looking for "
    "can be found through a standard Google search.\n\n"
    "Best regards"
)

REMOVAL_REPLY = (
    "Thank you for your removal request.\n\n"
    "To process removals, we require official legal documentation. Please "
    "submit your request with supporting documents at [REMOVAL_LINK].\n\n"
    "Our legal team will review within 5-7 business days.\n\n"
    "Best regards"
)

EXPUNGEMENT_REPLY = (
    "Thank you for contacting us regarding your case.\n\n"
    "To process expungement or dismissal removals, please attach official "
    "court documents showing the case status change.\n\n"
    "Once we verify the documentation, we'll process the removal within "
    "24-48 hours.\n\n"
    "Best regards"
)

LEGAL_REPLY = (
    "We have received your communication and it has been logged.\n\n"
    "For legal matters, please direct all correspondence to: legal@[YOUR_DOMAIN]\n\n"
    "All communications are preserved and documented per standard legal procedures.\n\n"
    "Best regards"
)

MANUAL_REVIEW_REPLY = (
    "[MANUAL REVIEW NEEDED]\n\n"
    "This email requires personal attention. Please review and respond appropriately.\n\n"
    "Original message from: {sender}\n"
    "Subject: {subject}"
)


def contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(k in text for k in keywords)


@dataclass(frozen=True)
class Rule:
    """A predicate over (lowercased text, message) and the annotation it yields."""

    name: str
    matches: Callable[[str, Message], bool]
    category: Category
    importance: Importance
    auto_action: AutoAction
    reply_template: str

    def annotation(self) -> Annotation:
        return Annotation(
            category=self.category,
            importance=self.importance,
            auto_action=self.auto_action,
            rule=self.name,
            reply_template=self.reply_template,
        )

    def render(self, message: Message) -> str:
        return self.reply_template.format(sender=message.sender, subject=message.subject)


def _is_search_request(text: str, message: Message) -> bool:
    return "google" in text and contains_any(text, ("search", "find", "look up"))


def _is_unverified_removal(text: str, message: Message) -> bool:
    return "remove" in text and "attach" not in text and not message.has_attachments


def _is_documented_removal(text: str, message: Message) -> bool:
    return contains_any(text, ("expunge", "dismiss", "sealed"))


def _is_legal_threat(text: str, message: Message) -> bool:
    return contains_any(text, ("sue", "lawyer", "legal action", "attorney"))


RULES: tuple[Rule, ...] = (
    Rule(
        name="search_request",
        matches=_is_search_request,
        category=Category.SEARCH_REQUEST,
        importance=Importance.LOW,
        auto_action=AutoAction.RESPOND,
        reply_template=SEARCH_REPLY,
    ),
    Rule(
        name="removal_unverified",
        matches=_is_unverified_removal,
        category=Category.REMOVAL_REQUEST,
        importance=Importance.MEDIUM,
        auto_action=AutoAction.RESPOND,
        reply_template=REMOVAL_REPLY,
    ),
    Rule(
        name="removal_documented",
        matches=_is_documented_removal,
        category=Category.REMOVAL_REQUEST,
        importance=Importance.HIGH,
        auto_action=AutoAction.IMPORTANT,
        reply_template=EXPUNGEMENT_REPLY,
    ),
    Rule(
        name="legal_threat",
        matches=_is_legal_threat,
        category=Category.LEGAL_THREAT,
        importance=Importance.HIGH,
        auto_action=AutoAction.HOLD,
        reply_template=LEGAL_REPLY,
    ),
)

MANUAL_REVIEW = Rule(
    name="manual_review",
    matches=lambda text, message: True,
    category=Category.UNKNOWN,
    importance=Importance.MEDIUM,
    auto_action=AutoAction.HOLD,
    reply_template=MANUAL_REVIEW_REPLY,
)


def match_rule(message: Message, rules: tuple[Rule, ...] = RULES) -> Rule:
    """Return the first matching rule, or the manual-review default."""
    text = message.text.lower()
    for rule in rules:
        if rule.matches(text, message):
            return rule
    return MANUAL_REVIEW


def categorize(message: Message, rules: tuple[Rule, ...] = RULES) -> Annotation:
    """Annotate a message. Pure and deterministic."""
    return match_rule(message, rules).annotation()


def render_reply(message: Message, rules: tuple[Rule, ...] = RULES) -> str:
    """Canned reply for the rule the message matches."""
    return match_rule(message, rules).render(message)
