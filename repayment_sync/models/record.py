from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

"""Canonical repayment record and its status enum.

A CanonicalRecord is rebuilt from scratch on every sync; nothing here is
persisted or cached between runs.
"""

__all__ = [
    "RawRow",
    "RecordStatus",
    "CanonicalRecord",
    "Instalment",
    "id_placeholder",
    "name_placeholder",
]

RawRow = dict[str, str]


class RecordStatus(Enum):
    """Repayment urgency of a record.

    Values are the labels used in the source sheet.

    - COMPLETED: nothing left to repay
    - NORMAL: due date more than 7 days away
    - WARNING: due within 0..7 days
    - OVERDUE: due date already passed
    - UNDETERMINED: balance remains but no due date is known
    """
    COMPLETED = "완료"
    NORMAL = "정상"
    WARNING = "주의"
    OVERDUE = "연체"
    UNDETERMINED = "미정"

    @classmethod
    def from_label(cls, label: str) -> RecordStatus | None:
        """Map a sheet label ("연체") or member name ("overdue") to a member."""
        text = (label or "").strip()
        if not text:
            return None
        for member in cls:
            if text == member.value or text.upper() == member.name:
                return member
        return None


def id_placeholder(position: int) -> str:
    return f"record_{position}"


def name_placeholder(position: int) -> str:
    return f"대상자{position}"


@dataclass(frozen=True)
class Instalment:
    """One paid instalment column ("1회차", "2회차", ...) of a record."""
    round: int
    amount: float


@dataclass(frozen=True)
class CanonicalRecord:
    """Normalized repayment record.

    ``original`` keeps the source field-map for tracing and is left out of
    equality.
    """
    id: str
    borrower_name: str
    loan_amount: float
    remaining_amount: float
    repaid_amount: float
    loan_date: date | None
    repayment_date: date | None
    days_until_repayment: int | None
    status: RecordStatus
    note: str = ""
    instalments: tuple[Instalment, ...] = ()
    original: dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Canonical field-map form (accepted back by the normalizer)."""
        return {
            "id": self.id,
            "borrowerName": self.borrower_name,
            "loanAmount": self.loan_amount,
            "remainingAmount": self.remaining_amount,
            "repaidAmount": self.repaid_amount,
            "loanDate": self.loan_date.isoformat() if self.loan_date else None,
            "repaymentDate": self.repayment_date.isoformat() if self.repayment_date else None,
            "daysUntilRepayment": self.days_until_repayment,
            "status": self.status.value,
            "note": self.note,
            "rounds": [{"round": i.round, "amount": i.amount} for i in self.instalments],
            "original": self.original,
        }
