"""Dollar reward rules.

Students earn "dollars" for finishing study activities. Amounts come from
RewardsConfig; the ledger itself lives in academy.db.dollar_ledger.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from academy.config.app_config import RewardsConfig

TransactionType = Literal["study_completion", "bonus", "manual"]
TRANSACTION_TYPES = ("study_completion", "bonus", "manual")


class RewardEvent(str, Enum):
    """Activities that earn a fixed reward."""

    PERFECT_SCORE = "perfect_score"
    TEST_COMPLETION = "test_completion"


@dataclass(frozen=True)
class DollarTransaction:
    """One ledger entry."""

    id: int
    student_id: str
    amount: int
    description: str
    transaction_type: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "student_id": self.student_id,
            "amount": self.amount,
            "description": self.description,
            "transaction_type": self.transaction_type,
            "created_at": self.created_at,
        }


def reward_amount(event: RewardEvent, rewards: RewardsConfig) -> int:
    """Dollar amount for an activity."""
    amounts = {
        RewardEvent.PERFECT_SCORE: rewards.perfect_score,
        RewardEvent.TEST_COMPLETION: rewards.dollar_per_completion,
    }
    return amounts[event]
