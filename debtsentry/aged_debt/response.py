# debtsentry/aged_debt/response.py
"""
Response Assembler: RollupResult → plain dict of builtin types.
"""

from decimal import Decimal
from typing import Any, Dict

import numpy as np

from .models import RollupResult
from .views import ViewPolicy


def to_builtin(value: Any) -> Any:
    """Coerce numpy / Decimal scalars to int or float."""
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, (np.integer, int)):
        return int(value)
    if isinstance(value, (np.floating, float, Decimal)):
        return float(value)
    return value


def assemble(result: RollupResult, policy: ViewPolicy) -> Dict[str, Any]:
    rows = []
    parent_totals = []

    for group in result.groups:
        for leaf in group.leaves:
            row = {
                'businessArea': group.key,
                'station': group.label,
                'dimensionValue': leaf.key,
                'numberOfAccounts': to_builtin(leaf.count),
            }
            for measure in policy.measures:
                row[measure.row_key] = to_builtin(leaf.measures.get(measure.field, 0.0))
            row['percentOfTotal'] = leaf.percentage
            rows.append(row)

        subtotal = {
            'businessArea': group.key,
            'station': group.label,
            'totalNumberOfAccounts': to_builtin(group.subtotal.count),
        }
        for measure in policy.measures:
            subtotal[measure.total_key] = to_builtin(group.subtotal.measures.get(measure.field, 0.0))
        subtotal['totalPercentOfTotal'] = group.subtotal.percentage
        parent_totals.append(subtotal)

    grand = {'totalNumberOfAccounts': to_builtin(result.grand_total.count)}
    for measure in policy.measures:
        grand[measure.total_key] = to_builtin(result.grand_total.measures.get(measure.field, 0.0))
    grand['totalPercentOfTotal'] = result.grand_total.percentage

    return {
        'rows': rows,
        'parentTotals': parent_totals,
        'grandTotal': grand,
    }
