"""mail-triage: categorize incoming mail, draft replies, learn from edits.

Provider-specific modules are imported explicitly:
    from mail_triage.gmail.provider import GmailProvider
    from mail_triage.drafts.llm import LLMDraftGenerator
"""

from mail_triage.categorizer import categorize
from mail_triage.config import TriageSettings
from mail_triage.ledger import AutoSendPolicy, LearningLedger
from mail_triage.models import (
    Account,
    AccountLearningStats,
    Annotation,
    AutoAction,
    Category,
    Importance,
    LearningRecord,
    Message,
)
from mail_triage.registry import AccountRegistry
from mail_triage.service import TriageService
from mail_triage.session import DraftSession, DraftWorkflow, SessionState
from mail_triage.similarity import edit_distance, similarity

__all__ = [
    "Account",
    "AccountLearningStats",
    "AccountRegistry",
    "Annotation",
    "AutoAction",
    "AutoSendPolicy",
    "Category",
    "DraftSession",
    "DraftWorkflow",
    "Importance",
    "LearningLedger",
    "LearningRecord",
    "Message",
    "SessionState",
    "TriageService",
    "TriageSettings",
    "categorize",
    "edit_distance",
    "similarity",
]
