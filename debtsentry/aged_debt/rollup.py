# debtsentry/aged_debt/rollup.py
"""
Rollup Composer

Turns aggregator leaves into the two-level tree

    grand total
      └── parent group (business area) subtotal
            └── dimension leaves

Subtotals are sums of their leaves and the grand total is the sum of the
subtotals, so the additive invariants hold by construction. Percentages are
shares of the grand total of the view's percentage base measure.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from .catalog import DimensionCatalog, DimensionSpec
from .constants import FULL_PERCENT, PERCENT_FORMAT, ZERO_PERCENT
from .models import (
    FilterSpec,
    GroupAggregate,
    ParentGroup,
    RollupResult,
    View,
)
from .views import ViewPolicy, percent_base

logger = logging.getLogger(__name__)


def format_percentage(part: float, total: float) -> str:
    """100 * part / total with two decimals; "0.00" for a zero total."""
    if total == 0:
        return ZERO_PERCENT
    return PERCENT_FORMAT.format(part / total * 100)


def _sum_aggregates(key: str, items: Sequence[GroupAggregate], measures: Sequence[str]) -> GroupAggregate:
    total = GroupAggregate(key=key, measures={name: 0.0 for name in measures})
    for item in items:
        total.count += item.count
        for name in measures:
            total.measures[name] += item.measures.get(name, 0.0)
    return total


def _by_percentage(base: str, denominator: float):
    # Descending percentage of total, then ascending key. With a zero total
    # every percentage is "0.00", so the raw base measure decides instead.
    if denominator == 0:
        return lambda agg: (-agg.measures.get(base, 0.0), agg.key)
    return lambda agg: (-float(agg.percentage), agg.key)


class RollupComposer:
    """
    Builds a RollupResult from aggregator output.

    Usage:
        composer = RollupComposer(catalog)
        result = composer.compose(leaves, dim_spec, policy, filter_spec)
    """

    def __init__(self, catalog: DimensionCatalog):
        self.catalog = catalog

    def compose(
        self,
        leaves: Dict[Tuple[str, str], GroupAggregate],
        spec: DimensionSpec,
        policy: ViewPolicy,
        filters: Optional[FilterSpec] = None,
    ) -> RollupResult:
        filters = filters or FilterSpec()
        view: View = policy.view
        measures = policy.fields
        base = percent_base(spec.dimension, view)
        taxonomy = self.catalog.taxonomy_for(spec, view, filters)

        by_parent: Dict[str, Dict[str, GroupAggregate]] = defaultdict(dict)
        for (parent, key), agg in leaves.items():
            by_parent[parent][key] = agg

        groups: List[ParentGroup] = []
        for parent, members in by_parent.items():
            ordered = self._order_leaves(members, taxonomy, measures)
            groups.append(ParentGroup(
                key=parent,
                label=self.catalog.station_name(parent),
                subtotal=_sum_aggregates(parent, ordered, measures),
                leaves=ordered,
            ))

        grand_total = _sum_aggregates('', [g.subtotal for g in groups], measures)
        denominator = grand_total.measures.get(base, 0.0)

        for group in groups:
            group.subtotal.percentage = format_percentage(group.subtotal.measures.get(base, 0.0), denominator)
            for leaf in group.leaves:
                leaf.percentage = format_percentage(leaf.measures.get(base, 0.0), denominator)
        grand_total.percentage = ZERO_PERCENT if denominator == 0 else FULL_PERCENT

        order = _by_percentage(base, denominator)
        if taxonomy is None:
            for group in groups:
                group.leaves.sort(key=order)
        groups.sort(key=lambda g: order(g.subtotal))

        logger.debug(
            f"Rollup {spec.dimension.value}/{view.value}: "
            f"{len(groups)} parent groups, {sum(len(g.leaves) for g in groups)} rows"
        )
        return RollupResult(
            dimension=spec.dimension,
            view=view,
            groups=groups,
            grand_total=grand_total,
        )

    @staticmethod
    def _order_leaves(
        members: Dict[str, GroupAggregate],
        taxonomy: Optional[Tuple[str, ...]],
        measures: Sequence[str],
    ) -> List[GroupAggregate]:
        if taxonomy is None:
            return list(members.values())

        ordered = [
            members.get(code) or GroupAggregate(key=code, measures={name: 0.0 for name in measures})
            for code in taxonomy
        ]
        # Codes outside the taxonomy still count toward the subtotal
        extras = sorted(code for code in members if code not in taxonomy)
        if extras:
            logger.warning(f"⚠️ Codes outside the canonical order: {', '.join(extras)}")
        ordered.extend(members[code] for code in extras)
        return ordered
