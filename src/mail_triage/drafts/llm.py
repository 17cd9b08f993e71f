"""Claude-backed reply generator."""

from __future__ import annotations

import logging

from mail_triage.categorizer.rules import match_rule
from mail_triage.drafts.base import DraftGenerator
from mail_triage.exceptions import GeneratorError, LLMError
from mail_triage.models import Account, AttachmentInfo, GeneratedDraft, Message

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You draft email replies on behalf of {mailbox}.

Write only the reply body: no subject line, no headers, no commentary.
Keep it short and polite. Never promise an action the reference reply
does not promise. If the email needs a human decision, say it has been
received and will be reviewed.

Reference reply for this kind of email:
---
{reference}
---"""


class LLMDraftGenerator(DraftGenerator):
    """Generates a reply with Claude, guided by the matching canned reply.

    Args:
        client: an ``AsyncLLMClient``.
        max_tokens: reply length cap.
    """

    def __init__(self, client, max_tokens: int = 800):
        self._client = client
        self.max_tokens = max_tokens

    async def generate(
        self,
        message: Message,
        account_context: Account,
        attachments: list[AttachmentInfo],
    ) -> GeneratedDraft:
        rule = match_rule(message)
        system = SYSTEM_PROMPT.format(
            mailbox=account_context.mailbox_address,
            reference=rule.render(message),
        )
        try:
            result = await self._client.generate(
                system, _render_message(message, attachments), max_tokens=self.max_tokens,
            )
        except LLMError as e:
            raise GeneratorError(f"Draft generation failed: {e}") from e

        text = result["text"].strip()
        if not text:
            raise GeneratorError("Draft generation returned an empty reply")

        logger.info(
            f"Generated draft for {message.id} "
            f"({result['input_tokens']} in / {result['output_tokens']} out)"
        )
        return GeneratedDraft(
            draft_text=text,
            category=rule.category,
            importance=rule.importance,
            model=result["model"],
        )


def _render_message(message: Message, attachments: list[AttachmentInfo]) -> str:
    lines = [
        f"From: {message.sender}",
        f"Subject: {message.subject}",
    ]
    if attachments:
        names = ", ".join(f"{a.filename} ({a.mime_type})" for a in attachments)
        lines.append(f"Attachments: {names}")
    lines.append("")
    lines.append(message.body or message.body_excerpt)
    return "\n".join(lines)
