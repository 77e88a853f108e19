# debtsentry/aged_debt/data_processor.py
"""
Dimension Aggregator

Single pass over filtered, decoded batches. Each batch is grouped in pandas
by (parent key, dimension key); the per-group distinct account sets and
measure sums are folded into one dict that lives only as long as the
aggregator.

Usage:
    aggregator = DimensionAggregator(catalog.get(Dimension.ADID), policy.fields)
    for batch in source.scan_batches(predicate, aggregator.columns):
        aggregator.add_batch(batch)
    groups = aggregator.results()
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, Set, Tuple

import pandas as pd

from .catalog import DimensionSpec
from .constants import DEBUG_TIMING, ID_FIELD
from .models import GroupAggregate

logger = logging.getLogger(__name__)

GroupKey = Tuple[str, str]

_PARENT = '_parent'
_KEY = '_key'


@dataclass
class _Accumulator:
    accounts: Set[str] = field(default_factory=set)
    sums: Dict[str, float] = field(default_factory=dict)


def _key_series(df: pd.DataFrame, name: str) -> pd.Series:
    if name not in df.columns:
        return pd.Series('', index=df.index, dtype=object)
    column = df[name]
    return column.where(column.notna(), '').astype(str).str.strip()


class DimensionAggregator:
    """
    Accumulates distinct contract accounts and measure sums per
    (parent, dimension value).

    Attributes:
        spec: dimension being grouped
        measures: canonical measure fields to sum
    """

    def __init__(self, spec: DimensionSpec, measures: Iterable[str]):
        self.spec = spec
        self.measures = tuple(measures)
        self._groups: Dict[GroupKey, _Accumulator] = {}
        self._rows_seen = 0
        self._rows_dropped = 0
        self._elapsed = 0.0

    @property
    def columns(self) -> Tuple[str, ...]:
        """Fields a row source must project for this aggregation."""
        wanted = [self.spec.parent_field, self.spec.field, ID_FIELD, *self.measures]
        return tuple(dict.fromkeys(wanted))

    @property
    def rows_seen(self) -> int:
        return self._rows_seen

    def add_batch(self, df: pd.DataFrame) -> None:
        if df.empty:
            return
        start_time = time.perf_counter()

        keys = _key_series(df, self.spec.field)
        if self.spec.blank_key is None:
            valid = keys != ''
        else:
            keys = keys.mask(keys == '', self.spec.blank_key)
            valid = pd.Series(True, index=df.index)

        frame = pd.DataFrame({
            _PARENT: _key_series(df, self.spec.parent_field),
            _KEY: keys,
            ID_FIELD: df[ID_FIELD] if ID_FIELD in df.columns else None,
        }, index=df.index)
        for name in self.measures:
            frame[name] = df[name] if name in df.columns else 0.0
        frame = frame[valid]

        self._rows_seen += len(df)
        self._rows_dropped += len(df) - len(frame)
        if frame.empty:
            return

        grouped = frame.groupby([_PARENT, _KEY], sort=False)
        sums = grouped[list(self.measures)].sum()
        accounts = grouped[ID_FIELD].unique()

        for group_key, row in sums.iterrows():
            acc = self._groups.get(group_key)
            if acc is None:
                acc = self._groups[group_key] = _Accumulator(
                    sums={name: 0.0 for name in self.measures}
                )
            for name in self.measures:
                acc.sums[name] += float(row[name])
            acc.accounts.update(
                a for a in accounts.loc[group_key] if isinstance(a, str) and a
            )

        self._elapsed += time.perf_counter() - start_time

    def add_record(self, record) -> None:
        """Row-at-a-time path for callers holding DebtRecords."""
        key = (record.get(self.spec.field) or '').strip()
        if not key:
            if self.spec.blank_key is None:
                self._rows_seen += 1
                self._rows_dropped += 1
                return
            key = self.spec.blank_key
        parent = (record.get(self.spec.parent_field) or '').strip()

        self._rows_seen += 1
        acc = self._groups.setdefault(
            (parent, key), _Accumulator(sums={name: 0.0 for name in self.measures})
        )
        for name in self.measures:
            acc.sums[name] += float(record.get(name) or 0.0)
        account = record.get(ID_FIELD)
        if account:
            acc.accounts.add(account)

    def results(self) -> Dict[GroupKey, GroupAggregate]:
        """Finished leaves keyed by (parent, dimension value); percentages unset."""
        if DEBUG_TIMING:
            print(f"   📊 [DimensionAggregator:{self.spec.dimension.value}] "
                  f"{self._rows_seen:,} rows → {len(self._groups):,} groups in {self._elapsed:.3f}s")
        if self._rows_dropped:
            logger.debug(
                f"{self.spec.dimension.value}: {self._rows_dropped:,} rows without a "
                f"{self.spec.field} value skipped"
            )

        return {
            group_key: GroupAggregate(
                key=group_key[1],
                count=len(acc.accounts),
                measures=dict(acc.sums),
            )
            for group_key, acc in self._groups.items()
        }
