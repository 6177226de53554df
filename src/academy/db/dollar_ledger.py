"""Dollar reward ledger.

Every award is a row in dollar_transactions; the student's running total
in students.dollars is kept in step when the student exists.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path

import structlog

from academy.core.calendar import to_civil_date, week_start_sunday
from academy.core.rewards import TRANSACTION_TYPES, DollarTransaction
from academy.db.database import get_db

logger = structlog.get_logger(__name__)


class DollarLedger:
    """Award and query dollar transactions."""

    def __init__(self, db_path: Path | None = None, tz_name: str | None = None):
        self.db_path = db_path
        self.tz_name = tz_name

    def award(
        self,
        student_id: str,
        amount: int,
        reason: str,
        transaction_type: str = "study_completion",
        now: datetime | None = None,
    ) -> DollarTransaction:
        """Record a transaction and update the student's total.

        Raises:
            ValueError: If transaction_type is unknown.
        """
        if transaction_type not in TRANSACTION_TYPES:
            raise ValueError(f"Unknown transaction type '{transaction_type}'")

        created_at = (now or datetime.now(timezone.utc)).isoformat()

        with get_db(self.db_path) as conn:
            cursor = conn.execute(
                """
                INSERT INTO dollar_transactions (student_id, amount, description, transaction_type, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (student_id, amount, reason, transaction_type, created_at),
            )
            conn.execute(
                "UPDATE students SET dollars = dollars + ? WHERE student_id = ?",
                (amount, student_id),
            )
            transaction_id = cursor.lastrowid

        logger.info(
            "ledger.awarded",
            student_id=student_id,
            amount=amount,
            transaction_type=transaction_type,
        )
        return DollarTransaction(
            id=transaction_id,
            student_id=student_id,
            amount=amount,
            description=reason,
            transaction_type=transaction_type,
            created_at=created_at,
        )

    def transactions(self, student_id: str) -> list[DollarTransaction]:
        """All transactions of a student, oldest first."""
        with get_db(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM dollar_transactions WHERE student_id = ? ORDER BY created_at, id",
                (student_id,),
            ).fetchall()

        return [
            DollarTransaction(
                id=row["id"],
                student_id=row["student_id"],
                amount=row["amount"],
                description=row["description"],
                transaction_type=row["transaction_type"],
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def total(self, student_id: str) -> int:
        return sum(t.amount for t in self.transactions(student_id))

    def recent(self, student_id: str, limit: int = 5) -> list[DollarTransaction]:
        """Newest transactions first."""
        ordered = sorted(
            self.transactions(student_id),
            key=lambda t: (t.created_at, t.id),
            reverse=True,
        )
        return ordered[:limit]

    def weekly_total(self, student_id: str, today: date) -> int:
        """Dollars earned since Sunday of today's week (civil calendar)."""
        week_start = week_start_sunday(today)
        return sum(
            t.amount
            for t in self.transactions(student_id)
            if week_start <= to_civil_date(t.created_at, self.tz_name) <= today
        )
