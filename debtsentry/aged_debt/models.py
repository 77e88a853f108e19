# debtsentry/aged_debt/models.py
"""
Value types shared by the aged debt engine.

Records and filter specs are frozen; aggregates are built fresh per request.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional


class View(str, Enum):
    AGED_DEBT = 'AgedDebt'
    TRADE_RECEIVABLE = 'TradeReceivable'


class Dimension(str, Enum):
    STATION = 'Station'
    ACCOUNT_CLASS = 'AccountClass'
    ADID = 'ADID'
    STAFF = 'Staff'
    SMER_SEGMENT = 'SmerSegment'


class AccountClassType(str, Enum):
    ALL = 'ALL'
    GOVERNMENT = 'GOVERNMENT'
    NON_GOVERNMENT = 'NON_GOVERNMENT'


class MitType(str, Enum):
    ALL = 'ALL'
    MIT = 'MIT'
    NON_MIT = 'NON_MIT'


class BalanceSign(str, Enum):
    POSITIVE = 'Positive'
    NEGATIVE = 'Negative'
    ZERO = 'Zero'


@dataclass(frozen=True)
class DebtRecord:
    """One decoded ledger row."""
    business_area: Optional[str] = None
    contract_account: Optional[str] = None
    contract_account_name: Optional[str] = None
    account_class: Optional[str] = None
    adid: Optional[str] = None
    account_status: Optional[str] = None
    staff_id: Optional[str] = None
    smer_segment: Optional[str] = None
    months_outstanding: Optional[float] = None
    outstanding_amount: float = 0.0
    total_undue: float = 0.0
    current_month_unpaid: float = 0.0
    total_unpaid: float = 0.0
    mit_amount: Optional[float] = None
    last_payment_date: Optional[str] = None
    last_payment_amount: Optional[float] = None

    def get(self, name: str, default=None):
        return getattr(self, name, default)


@dataclass(frozen=True)
class OutstandingRange:
    """Inclusive bounds on outstanding amount; None means unbounded."""
    min: Optional[float] = None
    max: Optional[float] = None


@dataclass(frozen=True)
class FilterSpec:
    account_class_type: AccountClassType = AccountClassType.ALL
    mit_type: MitType = MitType.ALL
    business_areas: FrozenSet[str] = frozenset()
    adids: FrozenSet[str] = frozenset()
    account_status: Optional[str] = None
    balance_sign: Optional[BalanceSign] = None
    account_class: Optional[str] = None
    aging_bucket: Optional[str] = None
    outstanding_range: Optional[OutstandingRange] = None
    smer_segments: FrozenSet[str] = frozenset()


@dataclass
class GroupAggregate:
    """Count, measure sums and share of the grand total for one group."""
    key: str
    count: int = 0
    measures: Dict[str, float] = field(default_factory=dict)
    percentage: str = "0.00"


@dataclass
class ParentGroup:
    """Parent-group node: its subtotal plus the ordered dimension leaves."""
    key: str
    label: str
    subtotal: GroupAggregate
    leaves: List[GroupAggregate] = field(default_factory=list)


@dataclass
class RollupResult:
    dimension: Dimension
    view: View
    groups: List[ParentGroup]
    grand_total: GroupAggregate

    @property
    def rows(self) -> List[GroupAggregate]:
        return [leaf for group in self.groups for leaf in group.leaves]

    @property
    def subtotals(self) -> List[GroupAggregate]:
        return [group.subtotal for group in self.groups]

    def is_empty(self) -> bool:
        return not self.groups


@dataclass
class Page:
    """One page of the detailed listing."""
    items: List[Dict]
    has_more: bool
    next_cursor: Optional[str]
    limit: int
