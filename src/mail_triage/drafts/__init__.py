"""Reply draft generators."""

from mail_triage.drafts.base import DraftGenerator
from mail_triage.drafts.llm import LLMDraftGenerator
from mail_triage.drafts.templates import TemplateDraftGenerator

__all__ = ["DraftGenerator", "TemplateDraftGenerator", "LLMDraftGenerator"]
