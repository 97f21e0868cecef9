from __future__ import annotations

from ..sources import PreNormalizedSource

"""Illustrative dataset shown when the sheet cannot be fetched.

Only used when fallback_to_sample is enabled; results built from it are
marked with source_kind="sample".
"""

__all__ = ["SAMPLE_ROWS", "sample_source"]

SAMPLE_ROWS: list[dict[str, object]] = [
    {
        "id": "1",
        "borrowerName": "김철수",
        "loanAmount": 5000000,
        "remainingAmount": 0,
        "repaidAmount": 5000000,
        "loanDate": "2022-01-15",
        "repaymentDate": "2024-01-15",
        "status": "완료",
        "note": "일시 상환",
    },
    {
        "id": "2",
        "borrowerName": "이영희",
        "loanAmount": 3000000,
        "remainingAmount": 1500000,
        "repaidAmount": 1500000,
        "loanDate": "2022-03-01",
        "repaymentDate": "2024-08-01",
        "status": "정상",
        "note": "2회 분할",
    },
    {
        "id": "3",
        "borrowerName": "박민수",
        "loanAmount": 2500000,
        "remainingAmount": 2500000,
        "repaidAmount": 0,
        "loanDate": "2023-06-10",
        "repaymentDate": None,
        "status": "미정",
        "note": "",
    },
]


def sample_source() -> PreNormalizedSource:
    # 호출마다 새 사본 (파이프라인은 입력을 공유하지 않음)
    return PreNormalizedSource(rows=[dict(row) for row in SAMPLE_ROWS], kind="sample")
