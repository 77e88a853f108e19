# debtsentry/aged_debt/decoding.py
"""
Typed decoding at the row-source boundary.

Every row source hands raw frames (spreadsheet headers, strings, int64 or
Decimal values) to `decode_frame` once; downstream code only ever sees
canonical column names, plain Python strings and float64 measures.
"""

import logging
import math
from typing import Any, Dict, Iterable, Iterator, Optional

import numpy as np
import pandas as pd

from .constants import SOURCE_COLUMNS, TEXT_FIELDS, NUMERIC_FIELDS, ALL_FIELDS
from .exceptions import NumericCoercionError
from .models import DebtRecord

logger = logging.getLogger(__name__)

# Measures default to zero when missing; other numeric fields stay absent
ZERO_FILLED_FIELDS = (
    'outstanding_amount', 'total_undue', 'current_month_unpaid', 'total_unpaid',
)


def to_number(value: Any, field: str = 'value') -> float:
    """
    Strict scalar conversion.

    Raises:
        NumericCoercionError: value is present but not numeric
    """
    if value is None:
        raise NumericCoercionError(field, value)
    if isinstance(value, (bool, np.bool_)):
        raise NumericCoercionError(field, value)
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise NumericCoercionError(field, value) from e
    if math.isnan(number):
        raise NumericCoercionError(field, value)
    return number


def to_text(value: Any) -> Optional[str]:
    """Normalize a code cell: None for missing, no trailing '.0' on integral floats."""
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer():
            return str(int(value))
    if isinstance(value, (np.integer, int)) and not isinstance(value, bool):
        return str(int(value))
    if value is pd.NaT or (not isinstance(value, str) and pd.isna(value)):
        return None
    return str(value).strip()


def decode_frame(raw: pd.DataFrame, fields: Iterable[str] = ALL_FIELDS) -> pd.DataFrame:
    """
    Rename source headers and coerce types.

    Unreadable measure values become 0 (logged), they are never dropped,
    so the record still counts toward its group.
    """
    df = raw.rename(columns=SOURCE_COLUMNS)
    fields = list(fields)
    out = pd.DataFrame(index=df.index)

    for name in fields:
        if name not in df.columns:
            if name in ZERO_FILLED_FIELDS:
                out[name] = 0.0
            elif name in NUMERIC_FIELDS:
                out[name] = np.nan
            else:
                out[name] = None
            continue

        column = df[name]
        if name in NUMERIC_FIELDS:
            numeric = pd.to_numeric(column, errors='coerce').astype('float64')
            blank = column.isna() | (column.astype(str).str.strip() == '')
            bad = ~blank & numeric.isna()
            if bad.any():
                logger.warning(
                    f"⚠️ {int(bad.sum())} non-numeric value(s) in '{name}' read as 0"
                )
                numeric = numeric.mask(bad, 0.0)
            if name in ZERO_FILLED_FIELDS:
                numeric = numeric.fillna(0.0)
            out[name] = numeric
        else:
            out[name] = column.map(to_text).astype(object)

    return out.reset_index(drop=True)


def decode_record(row: Dict[str, Any]) -> DebtRecord:
    """Decode a single mapping (source or canonical keys) into a DebtRecord."""
    canonical = {SOURCE_COLUMNS.get(k, k): v for k, v in row.items()}
    values = {}
    for name in ALL_FIELDS:
        value = canonical.get(name)
        if name in TEXT_FIELDS:
            values[name] = to_text(value)
            continue
        if value is None or (isinstance(value, float) and math.isnan(value)):
            values[name] = 0.0 if name in ZERO_FILLED_FIELDS else None
            continue
        try:
            values[name] = to_number(value, name)
        except NumericCoercionError as e:
            logger.warning(f"⚠️ {e}; read as 0")
            values[name] = 0.0
    return DebtRecord(**values)


def iter_records(df: pd.DataFrame) -> Iterator[DebtRecord]:
    """Yield DebtRecords from an already decoded frame."""
    columns = [c for c in df.columns if c in ALL_FIELDS]
    for values in df[columns].itertuples(index=False, name=None):
        kwargs = {}
        for name, value in zip(columns, values):
            if name in NUMERIC_FIELDS:
                kwargs[name] = None if pd.isna(value) else float(value)
            else:
                kwargs[name] = value
        yield DebtRecord(**kwargs)
