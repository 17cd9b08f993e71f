"""Append-only learning ledger and per-account statistics.

Learning data is best-effort telemetry: a write is attempted once, the
outcome is logged, and a failure never blocks the save or send that
produced it.
"""

from __future__ import annotations

import logging
import math
import sqlite3
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from mail_triage.exceptions import LedgerWriteError
from mail_triage.models import (
    Account,
    AccountLearningStats,
    DraftAction,
    LearningRecord,
    Message,
    utcnow,
)
from mail_triage.similarity import compare

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AutoSendPolicy:
    """When an account's drafts are considered good enough to send unedited.

    ``window`` limits the similarity average to the most recent records;
    None averages over all of them.
    """

    min_samples: int = 20
    min_avg_similarity: float = 0.95
    window: int | None = None

    def is_ready(self, records: list[LearningRecord]) -> bool:
        if len(records) < self.min_samples:
            return False
        recent = records[-self.window:] if self.window else records
        mean = _mean([r.similarity for r in recent])
        return mean >= self.min_avg_similarity or math.isclose(mean, self.min_avg_similarity)


class LedgerStore(ABC):
    """Append-only persistence for learning records."""

    @abstractmethod
    def append(self, record: LearningRecord) -> None:
        """Persist one record. Raise ``LedgerWriteError`` on failure."""
        ...

    @abstractmethod
    def records(self, account: str | None = None) -> list[LearningRecord]:
        """Records in append order, optionally for one account."""
        ...


class MemoryLedgerStore(LedgerStore):
    def __init__(self):
        self._records: list[LearningRecord] = []

    def append(self, record: LearningRecord) -> None:
        self._records.append(record)

    def records(self, account: str | None = None) -> list[LearningRecord]:
        if account is None:
            return list(self._records)
        return [r for r in self._records if r.account == account]


class SQLiteLedgerStore(LedgerStore):
    """Records in a single SQLite table. There is no update or delete path."""

    _COLUMNS = (
        "timestamp", "account", "message_id", "sender", "subject",
        "original_body", "generated_draft", "final_draft", "category",
        "importance", "edit_distance", "similarity", "exact_match",
        "length_delta", "action",
    )

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._lock = threading.Lock()
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS learning_records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    account TEXT NOT NULL,
                    message_id TEXT NOT NULL,
                    sender TEXT,
                    subject TEXT,
                    original_body TEXT,
                    generated_draft TEXT NOT NULL,
                    final_draft TEXT NOT NULL,
                    category TEXT,
                    importance TEXT,
                    edit_distance INTEGER NOT NULL,
                    similarity REAL NOT NULL,
                    exact_match INTEGER NOT NULL,
                    length_delta INTEGER NOT NULL,
                    action TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_learning_account "
                "ON learning_records (account)"
            )
            conn.commit()
        finally:
            conn.close()

    def append(self, record: LearningRecord) -> None:
        row = record.to_dict()
        row["exact_match"] = int(row["exact_match"])
        placeholders = ", ".join("?" for _ in self._COLUMNS)
        sql = (
            f"INSERT INTO learning_records ({', '.join(self._COLUMNS)}) "
            f"VALUES ({placeholders})"
        )
        with self._lock:
            try:
                conn = self._connect()
                try:
                    conn.execute(sql, tuple(row[c] for c in self._COLUMNS))
                    conn.commit()
                finally:
                    conn.close()
            except sqlite3.Error as e:
                raise LedgerWriteError(f"Failed to write learning record: {e}") from e

    def records(self, account: str | None = None) -> list[LearningRecord]:
        conn = self._connect()
        try:
            if account is None:
                rows = conn.execute("SELECT * FROM learning_records ORDER BY id").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM learning_records WHERE account = ? ORDER BY id",
                    (account,),
                ).fetchall()
        finally:
            conn.close()
        return [LearningRecord.from_dict(dict(row)) for row in rows]


class LearningLedger:
    """Sole writer of learning records.

    Args:
        store: where records live. Defaults to memory.
        policy: readiness threshold for autonomous sending.
        clock: timestamp source for new records.
    """

    def __init__(
        self,
        store: LedgerStore | None = None,
        policy: AutoSendPolicy | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store or MemoryLedgerStore()
        self.policy = policy or AutoSendPolicy()
        self._clock = clock

    def __len__(self) -> int:
        return len(self._store.records())

    def append(self, record: LearningRecord) -> bool:
        """Attempt to persist once. Returns False (and logs) on failure."""
        try:
            self._store.append(record)
        except LedgerWriteError as e:
            logger.warning(f"Learning record for {record.message_id} dropped: {e}")
            return False
        logger.info(
            f"Learned from {record.action.value} draft for {record.message_id} "
            f"(similarity {record.similarity:.2f})"
        )
        return True

    def record_edit(
        self,
        account: Account,
        message: Message,
        generated_draft: str,
        final_draft: str,
        action: DraftAction,
    ) -> LearningRecord:
        """Score a final draft against the generated one and append the result."""
        comparison = compare(generated_draft, final_draft)
        record = LearningRecord(
            timestamp=self._clock(),
            account=account.id,
            message_id=message.id,
            sender=message.sender,
            subject=message.subject,
            original_body=message.body or message.body_excerpt,
            generated_draft=generated_draft,
            final_draft=final_draft,
            category=message.category,
            importance=message.importance,
            edit_distance=comparison.edit_distance,
            similarity=comparison.similarity,
            exact_match=comparison.exact_match,
            length_delta=comparison.length_delta,
            action=action,
        )
        self.append(record)
        return record

    def records_for(self, account: str) -> list[LearningRecord]:
        return self._store.records(account)

    def stats_for(self, account: str) -> AccountLearningStats:
        records = self.records_for(account)
        if not records:
            return AccountLearningStats.empty(account)
        return AccountLearningStats(
            account=account,
            total_edits=len(records),
            avg_similarity_percent=round(_mean([r.similarity for r in records]) * 100, 1),
            ready_for_auto_send=self.policy.is_ready(records),
            exact_matches=sum(1 for r in records if r.exact_match),
            avg_edit_distance=round(_mean([r.edit_distance for r in records]), 1),
        )


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0
