"""Pluggable classifiers and the fallback wrapper callers go through."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from mail_triage.categorizer.rules import categorize, match_rule
from mail_triage.exceptions import LLMError
from mail_triage.models import Annotation, AutoAction, Category, Importance, Message

logger = logging.getLogger(__name__)

CLASSIFY_PROMPT = """You triage email for a records-publishing website.

Classify the email into exactly one category:
- search_request: asks us to look up or search for information about someone
- removal_request: asks us to remove or take down a listing or record
- legal_threat: threatens legal action, mentions suing, a lawyer or attorney
- unknown: anything else

Choose importance (high, medium, low) and a suggested action
(archive, important, hold, respond). Legal threats are always high / hold.

Return STRICT JSON ONLY:
{"category": "...", "importance": "...", "auto_action": "..."}"""


class Classifier(ABC):
    """Interface for anything that can annotate a message."""

    @abstractmethod
    async def classify(self, message: Message) -> Annotation:
        ...


class RuleClassifier(Classifier):
    """The deterministic keyword rule chain."""

    async def classify(self, message: Message) -> Annotation:
        return categorize(message)


class LLMClassifier(Classifier):
    """Asks Claude for a category. Invalid or failed replies raise ``LLMError``.

    Args:
        client: an ``AsyncLLMClient``.
    """

    def __init__(self, client):
        self._client = client

    async def classify(self, message: Message) -> Annotation:
        content = (
            f"From: {message.sender}\n"
            f"Subject: {message.subject}\n"
            f"Attachments: {len(message.attachments)}\n\n"
            f"{message.body or message.body_excerpt}"
        )
        data = await self._client.generate_json(CLASSIFY_PROMPT, content, max_tokens=200)
        try:
            category = Category(data["category"])
            importance = Importance(data["importance"])
            auto_action = AutoAction(data["auto_action"])
        except (KeyError, ValueError) as e:
            raise LLMError(f"Unusable classification {data!r}: {e}") from e

        if category is Category.LEGAL_THREAT:
            importance, auto_action = Importance.HIGH, AutoAction.HOLD

        # The canned reply still comes from the rule the message would match.
        return Annotation(
            category=category,
            importance=importance,
            auto_action=auto_action,
            rule="llm",
            reply_template=match_rule(message).reply_template,
        )


async def classify_safely(classifier: Classifier, message: Message) -> Annotation:
    """Classify, falling back to ``unknown / medium / hold`` on any failure."""
    try:
        return await classifier.classify(message)
    except Exception as e:
        logger.warning(f"Classifier failed for message {message.id}, using fallback: {e}")
        return Annotation.fallback()
