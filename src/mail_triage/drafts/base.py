"""Abstract base class for draft generators."""

from __future__ import annotations

from abc import ABC, abstractmethod

from mail_triage.models import Account, AttachmentInfo, GeneratedDraft, Message


class DraftGenerator(ABC):
    """Produces the initial reply for a message.

    Implementations raise ``GeneratorError`` on failure and never return
    a fabricated draft.
    """

    @abstractmethod
    async def generate(
        self,
        message: Message,
        account_context: Account,
        attachments: list[AttachmentInfo],
    ) -> GeneratedDraft:
        ...
