"""Tunable settings. Components take primitives; this only gathers defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields

DEFAULT_LLM_MODEL = os.environ.get("DEFAULT_LLM_MODEL", "claude-haiku-4-5-20251001")

ENV_PREFIX = "MAIL_TRIAGE_"


@dataclass(frozen=True)
class TriageSettings:
    max_accounts: int = 9
    newer_than_days: int = 7
    include_unread: bool = True
    list_max_results: int = 50
    detail_limit: int = 20
    body_excerpt_length: int = 500
    autosend_min_samples: int = 20
    autosend_min_similarity: float = 0.95
    provider_timeout: float = 30.0
    fetch_concurrency: int = 5
    archive_concurrency: int = 3
    llm_model: str = DEFAULT_LLM_MODEL

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> TriageSettings:
        """Build settings, overriding defaults with ``MAIL_TRIAGE_<FIELD>`` variables."""
        env = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = env.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None:
                continue
            overrides[f.name] = _coerce(raw, type(getattr(cls, f.name)))
        return cls(**overrides)


def _coerce(raw: str, kind: type):
    if kind is bool:
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if kind is int:
        return int(raw)
    if kind is float:
        return float(raw)
    return raw
