from __future__ import annotations

from collections.abc import Sequence

from ..models.statistics import SheetKpi
from .normalizer import to_number

"""Sheet KPI block.

Hand-kept sheets state their own totals above the record table, one label
cell followed by its value:

    환수요청금액,"116,177,722원"
    상환완료금액,"53,613,316원"
    환수율,46.15%

sheet_kpi() reads those preamble lines. Labels are matched by substring;
the value is the cell right after the first matching label.
"""

__all__ = [
    "REQUESTED_LABELS",
    "REPAID_LABELS",
    "RATE_LABELS",
    "sheet_kpi",
]

REQUESTED_LABELS = ("환수요청금액",)
REPAID_LABELS = ("상환중인", "상환완료")
RATE_LABELS = ("환수율",)


def _labelled_value(cells: Sequence[str], labels: Sequence[str]) -> float | None:
    for index, cell in enumerate(cells):
        if any(label in str(cell) for label in labels):
            if index + 1 < len(cells) and str(cells[index + 1]).strip():
                return to_number(cells[index + 1])
            return None
    return None


def sheet_kpi(preamble: Sequence[Sequence[str]]) -> SheetKpi | None:
    """Extract the KPI block from the lines above the header.

    A later line overrides an earlier one for the same label. A rate above 1
    is taken as a percentage (46.15 -> 0.4615). Returns None when no label
    is present.
    """
    requested = repaid = rate = None
    for cells in preamble:
        value = _labelled_value(cells, REQUESTED_LABELS)
        if value is not None:
            requested = value
        value = _labelled_value(cells, REPAID_LABELS)
        if value is not None:
            repaid = value
        value = _labelled_value(cells, RATE_LABELS)
        if value is not None:
            rate = value / 100 if value > 1 else value
    if requested is None and repaid is None and rate is None:
        return None
    return SheetKpi(total_requested=requested, total_repaid=repaid, repayment_rate=rate)
