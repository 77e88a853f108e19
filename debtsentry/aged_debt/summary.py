# debtsentry/aged_debt/summary.py
"""
Dataset-wide summary figures for the dashboard header cards and the
status → SMER segment tree and the positive-balance driver tree. Each
streams the dataset once in batches.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Set, Tuple

import pandas as pd

from .constants import BLANK_SEGMENT_KEY, ID_FIELD, SMER_SEGMENT_ORDER
from .predicates import Predicate
from .queries import RowSource
from .response import to_builtin
from .rollup import format_percentage

logger = logging.getLogger(__name__)

UNKNOWN_STATUS = 'UNKNOWN'

_CARD_COLUMNS = (
    ID_FIELD, 'account_status', 'outstanding_amount', 'total_undue',
    'current_month_unpaid', 'mit_amount',
)


@dataclass
class _Bucket:
    amount: float = 0.0
    accounts: Set[str] = field(default_factory=set)

    def add(self, frame: pd.DataFrame, column: str) -> None:
        if frame.empty:
            return
        self.amount += float(frame[column].sum())
        self.accounts.update(a for a in frame[ID_FIELD] if isinstance(a, str) and a)


def _text(series: pd.Series, blank: str) -> pd.Series:
    text = series.where(series.notna(), '').astype(str).str.strip()
    return text.mask(text == '', blank)


def summary_cards(source: RowSource, predicate: Predicate = None) -> Dict[str, Any]:
    """
    Header card figures.

    Returns dict with:
    - byAccountStatus: record count, outstanding and % of records per status
    - tradeReceivable: undue and current-month unpaid totals with account counts
    - balanceType: positive / negative / zero balances and MIT
    """
    status_counts: Dict[str, int] = defaultdict(int)
    status_amounts: Dict[str, float] = defaultdict(float)
    total_records = 0

    all_accounts = _Bucket()
    undue = _Bucket()
    current_unpaid = _Bucket()
    positive, negative, zero, mit = _Bucket(), _Bucket(), _Bucket(), _Bucket()

    for df in source.scan_batches(predicate, _CARD_COLUMNS):
        total_records += len(df)
        status = _text(df['account_status'], UNKNOWN_STATUS)
        grouped = df.groupby(status)['outstanding_amount'].agg(['size', 'sum'])
        for name, row in grouped.iterrows():
            status_counts[name] += int(row['size'])
            status_amounts[name] += float(row['sum'])

        all_accounts.add(df, 'outstanding_amount')
        undue.add(df[df['total_undue'] != 0], 'total_undue')
        current_unpaid.add(df[df['current_month_unpaid'] != 0], 'current_month_unpaid')

        outstanding = df['outstanding_amount']
        positive.add(df[outstanding > 0], 'outstanding_amount')
        negative.add(df[outstanding < 0], 'outstanding_amount')
        zero.add(df[outstanding == 0], 'outstanding_amount')
        mit_amount = df['mit_amount'].fillna(0.0)
        mit.add(df.assign(mit_amount=mit_amount)[mit_amount != 0], 'mit_amount')

    statuses = sorted(status_counts, key=lambda s: (-status_amounts[s], s))
    total_amount = sum(status_amounts.values())
    by_status = [
        {
            'accountStatus': name,
            'numberOfAccounts': status_counts[name],
            'totalOutstandingAmount': to_builtin(status_amounts[name]),
            'percentOfAccounts': format_percentage(status_counts[name], total_records),
        }
        for name in statuses
    ]

    total_current_month = undue.amount + current_unpaid.amount
    logger.info(f"📊 Summary cards: {total_records:,} records, {len(statuses)} statuses")

    return {
        'byAccountStatus': {
            'items': by_status,
            'total': {
                'numberOfAccounts': total_records,
                'totalOutstandingAmount': to_builtin(total_amount),
                'percentOfAccounts': format_percentage(total_records, total_records),
            },
        },
        'tradeReceivable': {
            'numberOfAccounts': len(all_accounts.accounts),
            'totalOutstandingAmount': to_builtin(all_accounts.amount),
            'totalUndue': to_builtin(undue.amount),
            'numberOfAccountsUndue': len(undue.accounts),
            'currentMonthUnpaid': to_builtin(current_unpaid.amount),
            'numberOfAccountsCurrentMonthUnpaid': len(current_unpaid.accounts),
            'totalCurrentMonth': to_builtin(total_current_month),
            'totalTradeReceivable': to_builtin(all_accounts.amount + total_current_month),
        },
        'balanceType': {
            'positiveBalance': to_builtin(positive.amount),
            'numberOfAccountsPositive': len(positive.accounts),
            'negativeBalance': to_builtin(negative.amount),
            'numberOfAccountsNegative': len(negative.accounts),
            'zeroBalance': to_builtin(zero.amount),
            'numberOfAccountsZero': len(zero.accounts),
            'mitAmount': to_builtin(mit.amount),
            'numberOfAccountsMit': len(mit.accounts),
        },
    }


def status_segment_tree(source: RowSource, predicate: Predicate = None) -> Dict[str, Any]:
    """
    Root (total outstanding, distinct accounts) with one branch per account
    status; every branch lists all SMER segments in canonical order.
    """
    root = _Bucket()
    cells: Dict[str, Dict[str, _Bucket]] = defaultdict(lambda: defaultdict(_Bucket))

    columns = (ID_FIELD, 'account_status', 'smer_segment', 'outstanding_amount')
    for df in source.scan_batches(predicate, columns):
        root.add(df, 'outstanding_amount')
        frame = df.assign(
            _status=_text(df['account_status'], UNKNOWN_STATUS),
            _segment=_text(df['smer_segment'], BLANK_SEGMENT_KEY),
        )
        for (status, segment), part in frame.groupby(['_status', '_segment'], sort=False):
            cells[status][segment].add(part, 'outstanding_amount')

    branches = []
    for status in sorted(cells):
        segments = list(SMER_SEGMENT_ORDER)
        extras = sorted(s for s in cells[status] if s not in SMER_SEGMENT_ORDER)
        if extras:
            logger.warning(f"⚠️ Unknown SMER segments under {status}: {', '.join(extras)}")
        children = []
        for segment in segments + extras:
            bucket = cells[status].get(segment) or _Bucket()
            children.append({
                'name': segment,
                'value': to_builtin(bucket.amount),
                'numberOfAccounts': len(bucket.accounts),
            })
        branches.append({
            'name': status,
            'value': to_builtin(sum(c['value'] for c in children)),
            'numberOfAccounts': sum(c['numberOfAccounts'] for c in children),
            'children': children,
        })

    return {
        'root': {
            'name': 'Total Aged Debt',
            'value': to_builtin(root.amount),
            'numberOfAccounts': len(root.accounts),
        },
        'branches': branches,
    }


def _node(name: str, bucket: _Bucket, level: int, children=None) -> Dict[str, Any]:
    node = {
        'name': name,
        'value': to_builtin(bucket.amount),
        'numberOfAccounts': len(bucket.accounts),
        'level': level,
    }
    if children is not None:
        node['children'] = children
    return node


def driver_tree(source: RowSource, predicate: Predicate = None) -> Dict[str, Any]:
    """
    Positive-balance driver tree.

    Levels: positive balance root (1) → account status (2) → account
    class (3) → ADID (4), each with outstanding sum and distinct accounts
    over records with a positive balance. Nodes are ordered by name.
    MIT totals cover every record.
    """
    root = _Bucket()
    mit = _Bucket()
    statuses: Dict[str, _Bucket] = defaultdict(_Bucket)
    classes: Dict[Tuple[str, str], _Bucket] = defaultdict(_Bucket)
    adids: Dict[Tuple[str, str, str], _Bucket] = defaultdict(_Bucket)

    columns = (ID_FIELD, 'account_status', 'account_class', 'adid', 'outstanding_amount', 'mit_amount')
    for df in source.scan_batches(predicate, columns):
        mit_amount = df['mit_amount'].fillna(0.0)
        mit.amount += float(mit_amount.sum())
        mit.accounts.update(a for a in df.loc[mit_amount != 0, ID_FIELD] if isinstance(a, str) and a)

        positive = df[df['outstanding_amount'] > 0]
        if positive.empty:
            continue
        root.add(positive, 'outstanding_amount')
        frame = positive.assign(
            _status=_text(positive['account_status'], UNKNOWN_STATUS),
            _class=_text(positive['account_class'], UNKNOWN_STATUS),
            _adid=_text(positive['adid'], UNKNOWN_STATUS),
        )
        for (status, acc_class, adid), part in frame.groupby(['_status', '_class', '_adid'], sort=False):
            statuses[status].add(part, 'outstanding_amount')
            classes[status, acc_class].add(part, 'outstanding_amount')
            adids[status, acc_class, adid].add(part, 'outstanding_amount')

    status_nodes = []
    for status in sorted(statuses):
        class_nodes = []
        for acc_class in sorted(c for s, c in classes if s == status):
            adid_nodes = [
                _node(key[2], adids[key], 4)
                for key in sorted(k for k in adids if k[:2] == (status, acc_class))
            ]
            class_nodes.append(_node(acc_class, classes[status, acc_class], 3, adid_nodes))
        status_nodes.append(_node(status, statuses[status], 2, class_nodes))

    logger.info(f"📊 Driver tree: {len(root.accounts):,} positive-balance accounts, {len(statuses)} statuses")
    return {
        'root': _node('Positive Balance', root, 1, status_nodes),
        'mitAmount': to_builtin(mit.amount),
        'mitNumberOfAccounts': len(mit.accounts),
    }
