# debtsentry/aged_debt/views.py
"""
View Policy

Each view selects the measures that are summed and emitted. The measure
used as the percentage base is looked up per (dimension, view) in an
explicit table.
"""

from dataclasses import dataclass
from typing import Tuple

from .exceptions import ValidationError
from .models import Dimension, View


@dataclass(frozen=True)
class Measure:
    field: str       # canonical record field
    row_key: str     # key on leaf rows
    total_key: str   # key on subtotal / grand total rows


OUTSTANDING = Measure('outstanding_amount', 'outstandingAmount', 'totalOutstandingAmount')
TOTAL_UNDUE = Measure('total_undue', 'totalUndue', 'totalUndue')
CURRENT_MONTH_UNPAID = Measure('current_month_unpaid', 'currentMonthUnpaid', 'totalCurrentMonthUnpaid')
TOTAL_UNPAID = Measure('total_unpaid', 'totalUnpaid', 'totalUnpaid')


@dataclass(frozen=True)
class ViewPolicy:
    view: View
    measures: Tuple[Measure, ...]

    @property
    def fields(self) -> Tuple[str, ...]:
        return tuple(m.field for m in self.measures)


VIEW_POLICIES = {
    View.AGED_DEBT: ViewPolicy(
        view=View.AGED_DEBT,
        measures=(OUTSTANDING,),
    ),
    View.TRADE_RECEIVABLE: ViewPolicy(
        view=View.TRADE_RECEIVABLE,
        measures=(TOTAL_UNDUE, CURRENT_MONTH_UNPAID, OUTSTANDING, TOTAL_UNPAID),
    ),
}

# Percentage base per dimension and view. Every entry is outstanding amount
# today; keep the table so a dimension can diverge without touching callers.
PERCENT_BASE_MEASURE = {
    (Dimension.STATION, View.AGED_DEBT): 'outstanding_amount',
    (Dimension.STATION, View.TRADE_RECEIVABLE): 'outstanding_amount',
    (Dimension.ACCOUNT_CLASS, View.AGED_DEBT): 'outstanding_amount',
    (Dimension.ACCOUNT_CLASS, View.TRADE_RECEIVABLE): 'outstanding_amount',
    (Dimension.ADID, View.AGED_DEBT): 'outstanding_amount',
    (Dimension.ADID, View.TRADE_RECEIVABLE): 'outstanding_amount',
    (Dimension.STAFF, View.AGED_DEBT): 'outstanding_amount',
    (Dimension.STAFF, View.TRADE_RECEIVABLE): 'outstanding_amount',
    (Dimension.SMER_SEGMENT, View.AGED_DEBT): 'outstanding_amount',
    (Dimension.SMER_SEGMENT, View.TRADE_RECEIVABLE): 'outstanding_amount',
}


def get_view_policy(view) -> ViewPolicy:
    try:
        return VIEW_POLICIES[View(view)]
    except (KeyError, ValueError) as e:
        raise ValidationError(f"Unknown view: {view!r}", field='view') from e


def percent_base(dimension: Dimension, view: View) -> str:
    try:
        return PERCENT_BASE_MEASURE[(Dimension(dimension), View(view))]
    except (KeyError, ValueError) as e:
        raise ValidationError(
            f"No percentage base for {dimension!r} / {view!r}", field='dimension'
        ) from e
