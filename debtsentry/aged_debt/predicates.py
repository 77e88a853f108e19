# debtsentry/aged_debt/predicates.py
"""
Predicate Builder

A FilterSpec becomes a small tree of frozen clause objects. Every clause can
be evaluated three ways:

    matches(record)   -> bool                   row at a time
    mask(df)          -> pd.Series[bool]        vectorised over a decoded batch
    to_sql(resolve)   -> sqlalchemy ColumnElement, bound parameters only

`resolve(field)` maps a canonical field name to a SQLAlchemy column
expression; the SQL row source supplies it.
"""

import math
import operator
from dataclasses import dataclass
from typing import Any, Callable, FrozenSet, Optional, Tuple

import pandas as pd
from sqlalchemy import and_, or_, true, false, func

from .constants import (
    AGING_BUCKETS,
    BLANKS_SENTINEL,
    GOVERNMENT_CLASSES,
    NON_GOVERNMENT_CLASSES,
)
from .models import AccountClassType, BalanceSign, FilterSpec, MitType

_OPERATORS = {
    '>': operator.gt,
    '>=': operator.ge,
    '<': operator.lt,
    '<=': operator.le,
    '==': operator.eq,
    '!=': operator.ne,
}


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def _value(record, field: str):
    if isinstance(record, dict):
        return record.get(field)
    return getattr(record, field, None)


def _number(value: Any) -> Optional[float]:
    if _is_missing(value):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _column(df: pd.DataFrame, field: str) -> pd.Series:
    if field in df.columns:
        return df[field]
    return pd.Series([None] * len(df), index=df.index, dtype=object)


def _numeric_column(df: pd.DataFrame, field: str) -> pd.Series:
    return pd.to_numeric(_column(df, field), errors='coerce')


class Predicate:
    """Base clause."""

    def matches(self, record) -> bool:
        raise NotImplementedError

    def mask(self, df: pd.DataFrame) -> pd.Series:
        raise NotImplementedError

    def to_sql(self, resolve: Callable[[str], Any]):
        raise NotImplementedError

    def fields(self) -> FrozenSet[str]:
        """Canonical fields the clause reads."""
        field = getattr(self, 'field', None)
        return frozenset([field]) if field else frozenset()

    def __and__(self, other: 'Predicate') -> 'Predicate':
        return conjoin(self, other)


@dataclass(frozen=True)
class Always(Predicate):
    def matches(self, record) -> bool:
        return True

    def fields(self) -> FrozenSet[str]:
        return frozenset()

    def mask(self, df: pd.DataFrame) -> pd.Series:
        return pd.Series(True, index=df.index)

    def to_sql(self, resolve):
        return true()


@dataclass(frozen=True)
class AllOf(Predicate):
    clauses: Tuple[Predicate, ...]

    def matches(self, record) -> bool:
        return all(c.matches(record) for c in self.clauses)

    def mask(self, df: pd.DataFrame) -> pd.Series:
        result = pd.Series(True, index=df.index)
        for clause in self.clauses:
            result &= clause.mask(df)
        return result

    def to_sql(self, resolve):
        return and_(*[c.to_sql(resolve) for c in self.clauses])

    def fields(self) -> FrozenSet[str]:
        return frozenset().union(*[c.fields() for c in self.clauses])


@dataclass(frozen=True)
class AnyOf(Predicate):
    clauses: Tuple[Predicate, ...]

    def matches(self, record) -> bool:
        return any(c.matches(record) for c in self.clauses)

    def mask(self, df: pd.DataFrame) -> pd.Series:
        result = pd.Series(False, index=df.index)
        for clause in self.clauses:
            result |= clause.mask(df)
        return result

    def to_sql(self, resolve):
        if not self.clauses:
            return false()
        return or_(*[c.to_sql(resolve) for c in self.clauses])

    def fields(self) -> FrozenSet[str]:
        return frozenset().union(*[c.fields() for c in self.clauses])


@dataclass(frozen=True)
class InSet(Predicate):
    field: str
    values: FrozenSet[str]

    def matches(self, record) -> bool:
        return _value(record, self.field) in self.values

    def mask(self, df: pd.DataFrame) -> pd.Series:
        return _column(df, self.field).isin(self.values)

    def to_sql(self, resolve):
        return resolve(self.field).in_(sorted(self.values))


@dataclass(frozen=True)
class Equals(Predicate):
    field: str
    value: str

    def matches(self, record) -> bool:
        return _value(record, self.field) == self.value

    def mask(self, df: pd.DataFrame) -> pd.Series:
        return (_column(df, self.field) == self.value).fillna(False).astype(bool)

    def to_sql(self, resolve):
        return resolve(self.field) == self.value


@dataclass(frozen=True)
class Compare(Predicate):
    """Numeric comparison; a missing value never matches."""
    field: str
    op: str
    value: float

    def matches(self, record) -> bool:
        number = _number(_value(record, self.field))
        if number is None:
            return False
        return _OPERATORS[self.op](number, self.value)

    def mask(self, df: pd.DataFrame) -> pd.Series:
        column = _numeric_column(df, self.field)
        return _OPERATORS[self.op](column, self.value) & column.notna()

    def to_sql(self, resolve):
        column = resolve(self.field)
        return and_(column.isnot(None), _OPERATORS[self.op](column, self.value))


@dataclass(frozen=True)
class Between(Predicate):
    """Inclusive range; a None bound is open."""
    field: str
    low: Optional[float] = None
    high: Optional[float] = None

    def matches(self, record) -> bool:
        number = _number(_value(record, self.field))
        if number is None:
            return False
        if self.low is not None and number < self.low:
            return False
        if self.high is not None and number > self.high:
            return False
        return True

    def mask(self, df: pd.DataFrame) -> pd.Series:
        column = _numeric_column(df, self.field)
        result = column.notna()
        if self.low is not None:
            result &= column >= self.low
        if self.high is not None:
            result &= column <= self.high
        return result

    def to_sql(self, resolve):
        column = resolve(self.field)
        parts = [column.isnot(None)]
        if self.low is not None:
            parts.append(column >= self.low)
        if self.high is not None:
            parts.append(column <= self.high)
        return and_(*parts)


@dataclass(frozen=True)
class InBracket(Predicate):
    """Half-open bracket [low, high); high None means open-ended."""
    field: str
    low: float
    high: Optional[float] = None

    def matches(self, record) -> bool:
        number = _number(_value(record, self.field))
        if number is None or number < self.low:
            return False
        return self.high is None or number < self.high

    def mask(self, df: pd.DataFrame) -> pd.Series:
        column = _numeric_column(df, self.field)
        result = column.notna() & (column >= self.low)
        if self.high is not None:
            result &= column < self.high
        return result

    def to_sql(self, resolve):
        column = resolve(self.field)
        parts = [column.isnot(None), column >= self.low]
        if self.high is not None:
            parts.append(column < self.high)
        return and_(*parts)


@dataclass(frozen=True)
class IsBlank(Predicate):
    """Value is missing or an empty string."""
    field: str

    def matches(self, record) -> bool:
        value = _value(record, self.field)
        return _is_missing(value) or (isinstance(value, str) and value.strip() == '')

    def mask(self, df: pd.DataFrame) -> pd.Series:
        column = _column(df, self.field)
        return column.isna() | (column.astype(str).str.strip() == '')

    def to_sql(self, resolve):
        column = resolve(self.field)
        return or_(column.is_(None), func.trim(column) == '')


@dataclass(frozen=True)
class ZeroOrAbsent(Predicate):
    field: str

    def matches(self, record) -> bool:
        number = _number(_value(record, self.field))
        return number is None or number == 0

    def mask(self, df: pd.DataFrame) -> pd.Series:
        column = _numeric_column(df, self.field)
        return column.isna() | (column == 0)

    def to_sql(self, resolve):
        column = resolve(self.field)
        return or_(column.is_(None), column == 0)


@dataclass(frozen=True)
class Not(Predicate):
    clause: Predicate

    def matches(self, record) -> bool:
        return not self.clause.matches(record)

    def mask(self, df: pd.DataFrame) -> pd.Series:
        return ~self.clause.mask(df)

    def to_sql(self, resolve):
        return ~self.clause.to_sql(resolve)

    def fields(self) -> FrozenSet[str]:
        return self.clause.fields()


def conjoin(*predicates: Predicate) -> Predicate:
    """AND predicates together, flattening nested AllOf and dropping Always."""
    clauses = []
    for predicate in predicates:
        if isinstance(predicate, Always):
            continue
        if isinstance(predicate, AllOf):
            clauses.extend(predicate.clauses)
        else:
            clauses.append(predicate)
    if not clauses:
        return Always()
    if len(clauses) == 1:
        return clauses[0]
    return AllOf(tuple(clauses))


# =============================================================================
# FILTER SPEC → PREDICATE
# =============================================================================

def _account_class_type_clause(kind: AccountClassType) -> Optional[Predicate]:
    if kind == AccountClassType.GOVERNMENT:
        return InSet('account_class', frozenset(GOVERNMENT_CLASSES))
    if kind == AccountClassType.NON_GOVERNMENT:
        return InSet('account_class', frozenset(NON_GOVERNMENT_CLASSES))
    return None


def _mit_clause(kind: MitType) -> Optional[Predicate]:
    if kind == MitType.MIT:
        return Compare('mit_amount', '!=', 0.0)
    if kind == MitType.NON_MIT:
        return ZeroOrAbsent('mit_amount')
    return None


def _balance_clause(sign: Optional[BalanceSign]) -> Optional[Predicate]:
    if sign == BalanceSign.POSITIVE:
        return Compare('outstanding_amount', '>', 0.0)
    if sign == BalanceSign.NEGATIVE:
        return Compare('outstanding_amount', '<', 0.0)
    if sign == BalanceSign.ZERO:
        return Compare('outstanding_amount', '==', 0.0)
    return None


def _smer_clause(segments: FrozenSet[str]) -> Optional[Predicate]:
    if not segments:
        return None
    codes = frozenset(s for s in segments if s != BLANKS_SENTINEL)
    options = []
    if codes:
        options.append(InSet('smer_segment', codes))
    if BLANKS_SENTINEL in segments:
        options.append(IsBlank('smer_segment'))
    if len(options) == 1:
        return options[0]
    return AnyOf(tuple(options))


def build_predicate(spec: FilterSpec) -> Predicate:
    """Translate a FilterSpec into one conjunctive predicate."""
    clauses = [
        _account_class_type_clause(spec.account_class_type),
        _mit_clause(spec.mit_type),
    ]

    if spec.business_areas:
        clauses.append(InSet('business_area', frozenset(spec.business_areas)))
    if spec.adids:
        clauses.append(InSet('adid', frozenset(spec.adids)))
    if spec.account_status:
        clauses.append(Equals('account_status', spec.account_status))

    clauses.append(_balance_clause(spec.balance_sign))

    if spec.account_class:
        clauses.append(Equals('account_class', spec.account_class))

    if spec.aging_bucket:
        low, high = AGING_BUCKETS[spec.aging_bucket]
        clauses.append(InBracket('months_outstanding', low, high))

    if spec.outstanding_range is not None:
        bounds = spec.outstanding_range
        clauses.append(Between('outstanding_amount', bounds.min, bounds.max))

    clauses.append(_smer_clause(spec.smer_segments))

    return conjoin(*[c for c in clauses if c is not None])
