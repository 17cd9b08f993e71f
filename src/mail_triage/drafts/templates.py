"""Canned-reply generator driven by the categorizer rules."""

from __future__ import annotations

from mail_triage.categorizer.rules import RULES, Rule, match_rule
from mail_triage.drafts.base import DraftGenerator
from mail_triage.models import Account, AttachmentInfo, GeneratedDraft, Message


class TemplateDraftGenerator(DraftGenerator):
    """Replies with the template of the first matching rule."""

    def __init__(self, rules: tuple[Rule, ...] = RULES):
        self.rules = rules

    async def generate(
        self,
        message: Message,
        account_context: Account,
        attachments: list[AttachmentInfo],
    ) -> GeneratedDraft:
        rule = match_rule(message, self.rules)
        return GeneratedDraft(
            draft_text=rule.render(message),
            category=rule.category,
            importance=rule.importance,
            model="template",
        )
