"""Message categorization: keyword rule chain plus pluggable classifiers."""

from mail_triage.categorizer.classifier import (
    Classifier,
    LLMClassifier,
    RuleClassifier,
    classify_safely,
)
from mail_triage.categorizer.rules import RULES, Rule, categorize, match_rule, render_reply

__all__ = [
    "RULES",
    "Rule",
    "categorize",
    "match_rule",
    "render_reply",
    "Classifier",
    "RuleClassifier",
    "LLMClassifier",
    "classify_safely",
]
