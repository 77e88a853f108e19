# debtsentry/aged_debt/filters.py
"""
Request parsing and validation for Aged Debt queries.

VERSION: 1.0.0
- Accepts the dashboard's field names as well as the API names
  (viewType/TR, accClassType, accStatus, balanceType, totalOutstandingRange)
- Every problem is reported as ValidationError before any scan starts
- Non-numeric outstanding-range bounds switch the range clause off
"""

import logging
import math
import re
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

from .constants import AGING_BUCKETS, BLANKS_SENTINEL, BUSINESS_AREA_NAMES
from .decoding import to_text
from .exceptions import ValidationError
from .models import (
    AccountClassType,
    BalanceSign,
    Dimension,
    FilterSpec,
    MitType,
    OutstandingRange,
    View,
)

logger = logging.getLogger(__name__)

_ALL_VALUES = {'', 'all'}


def _norm(value: str) -> str:
    return value.replace('-', '').replace('_', '').replace(' ', '').lower()


_VIEW_ALIASES = {
    'ageddebt': View.AGED_DEBT,
    'tradereceivable': View.TRADE_RECEIVABLE,
    'tr': View.TRADE_RECEIVABLE,
}

_DIMENSION_ALIASES = {
    'station': Dimension.STATION,
    'businessarea': Dimension.STATION,
    'accountclass': Dimension.ACCOUNT_CLASS,
    'accclass': Dimension.ACCOUNT_CLASS,
    'adid': Dimension.ADID,
    'accountdefinition': Dimension.ADID,
    'staff': Dimension.STAFF,
    'staffid': Dimension.STAFF,
    'smersegment': Dimension.SMER_SEGMENT,
    'segment': Dimension.SMER_SEGMENT,
}

_BLANKS_ALIASES = {'blank', 'blanks'}

_NUMBER = r'[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?'
_RANGE_TEXT = re.compile(rf'^(?P<min>{_NUMBER})?\s*-\s*(?P<max>{_NUMBER})?$')


def _first(request: Dict, *keys: str) -> Any:
    for key in keys:
        if key in request and request[key] is not None:
            return request[key]
    return None


def _parse_enum(value: Any, enum_cls, field: str, default=None):
    if value is None:
        return default
    if isinstance(value, enum_cls):
        return value
    text = _norm(str(value))
    if text in _ALL_VALUES:
        return default
    for member in enum_cls:
        if _norm(member.value) == text or _norm(member.name) == text:
            return member
    raise ValidationError(f"Unknown {field}: {value!r}", field=field)


def _parse_codes(value: Any) -> FrozenSet[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        value = [value]
    codes = (to_text(v) for v in value)
    return frozenset(c for c in codes if c and c.lower() != 'all')


def _parse_optional_code(value: Any) -> Optional[str]:
    text = to_text(value)
    if text is None or text.lower() in _ALL_VALUES:
        return None
    return text


def _parse_bound(value: Any) -> Tuple[bool, Optional[float]]:
    """Returns (valid, number); blank bounds are valid and open."""
    if value is None or (isinstance(value, str) and value.strip() == ''):
        return True, None
    if isinstance(value, bool):
        return False, None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False, None
    if not math.isfinite(number):
        return False, None
    return True, number


def _parse_range(value: Any) -> Optional[OutstandingRange]:
    if value is None:
        return None

    if isinstance(value, str):
        text = value.strip()
        if text.lower() in _ALL_VALUES:
            return None
        if text.endswith('+'):
            value = {'min': text[:-1], 'max': None}
        else:
            match = _RANGE_TEXT.match(text)
            if match:
                value = match.groupdict()
            else:
                value = {'min': text, 'max': None}

    if not isinstance(value, dict):
        raise ValidationError(f"Outstanding range must be an object: {value!r}", field='outstandingRange')

    min_ok, low = _parse_bound(value.get('min'))
    max_ok, high = _parse_bound(value.get('max'))
    if not (min_ok and max_ok):
        logger.warning(f"Ignoring outstanding range with non-numeric bound: {value!r}")
        return None
    if low is None and high is None:
        return None
    if low is not None and high is not None and low > high:
        raise ValidationError(
            f"Outstanding range min ({low}) is greater than max ({high})",
            field='outstandingRange',
        )
    return OutstandingRange(min=low, max=high)


def _parse_smer_segments(value: Any) -> FrozenSet[str]:
    segments = set()
    for code in _parse_codes(value):
        segments.add(BLANKS_SENTINEL if code.lower() in _BLANKS_ALIASES else code)
    return frozenset(segments)


def _parse_aging_bucket(value: Any) -> Optional[str]:
    text = _parse_optional_code(value)
    if text is None:
        return None
    text = text.replace(' ', '')
    if text not in AGING_BUCKETS:
        raise ValidationError(f"Unknown aging bucket: {value!r}", field='agingBucket')
    return text


class AgedDebtFilters:
    """Parse and describe aged debt request filters."""

    @staticmethod
    def parse_view(value: Any) -> View:
        if isinstance(value, View):
            return value
        if value is None:
            return View.AGED_DEBT
        view = _VIEW_ALIASES.get(_norm(str(value)))
        if view is None:
            raise ValidationError(f"Unknown view: {value!r}", field='view')
        return view

    @staticmethod
    def parse_dimension(value: Any) -> Dimension:
        if isinstance(value, Dimension):
            return value
        dimension = _DIMENSION_ALIASES.get(_norm(str(value))) if value is not None else None
        if dimension is None:
            raise ValidationError(f"Unknown dimension: {value!r}", field='dimension')
        return dimension

    @staticmethod
    def parse_filters(request: Dict) -> FilterSpec:
        """
        Build a FilterSpec from a request body.

        Raises:
            ValidationError: unknown enum values or a min > max range
        """
        request = request or {}

        business_areas = _parse_codes(_first(request, 'businessAreas'))
        single_area = _parse_optional_code(_first(request, 'businessArea'))
        if single_area:
            business_areas = business_areas | {single_area}

        return FilterSpec(
            account_class_type=_parse_enum(
                _first(request, 'accountClassType', 'accClassType', 'governmentType'),
                AccountClassType, 'accountClassType', AccountClassType.ALL,
            ),
            mit_type=_parse_enum(
                _first(request, 'mitType', 'mitFilter'),
                MitType, 'mitType', MitType.ALL,
            ),
            business_areas=business_areas,
            adids=_parse_codes(_first(request, 'adids', 'accDefinitions')),
            account_status=_parse_optional_code(_first(request, 'accountStatus', 'accStatus')),
            balance_sign=_parse_enum(
                _first(request, 'balanceSign', 'balanceType'),
                BalanceSign, 'balanceSign', None,
            ),
            account_class=_parse_optional_code(_first(request, 'accountClass', 'accClass')),
            aging_bucket=_parse_aging_bucket(_first(request, 'agingBucket')),
            outstanding_range=_parse_range(
                _first(request, 'outstandingRange', 'totalOutstandingRange')
            ),
            smer_segments=_parse_smer_segments(_first(request, 'smerSegments')),
        )

    @staticmethod
    def parse_request(request: Dict) -> Tuple[str, View, FilterSpec]:
        """Split a full request into (datasetId, view, filters)."""
        request = request or {}
        dataset_id = _first(request, 'datasetId', 'filename')
        if not dataset_id:
            raise ValidationError("datasetId is required", field='datasetId')
        view = AgedDebtFilters.parse_view(_first(request, 'view', 'viewType'))
        return str(dataset_id), view, AgedDebtFilters.parse_filters(request)

    @staticmethod
    def get_filter_summary(spec: FilterSpec, area_names: Dict[str, str] = None) -> str:
        """Generate human-readable filter summary."""
        names = area_names or BUSINESS_AREA_NAMES
        parts = []

        if spec.business_areas:
            labels = sorted(names.get(code, code) for code in spec.business_areas)
            parts.append(", ".join(labels))
        else:
            parts.append("All business areas")

        if spec.account_class_type != AccountClassType.ALL:
            parts.append(spec.account_class_type.value.replace('_', '-').title())
        if spec.mit_type != MitType.ALL:
            parts.append(spec.mit_type.value.replace('_', '-'))
        if spec.account_class:
            parts.append(spec.account_class)
        if spec.adids:
            parts.append(f"ADID {', '.join(sorted(spec.adids))}")
        if spec.account_status:
            parts.append(spec.account_status)
        if spec.balance_sign:
            parts.append(f"{spec.balance_sign.value} balance")
        if spec.aging_bucket:
            parts.append(f"{spec.aging_bucket} months")
        if spec.outstanding_range:
            low = spec.outstanding_range.min
            high = spec.outstanding_range.max
            if high is None:
                parts.append(f"RM{low:,.2f}+")
            elif low is None:
                parts.append(f"≤ RM{high:,.2f}")
            else:
                parts.append(f"RM{low:,.2f} - RM{high:,.2f}")
        if spec.smer_segments:
            parts.append(", ".join(sorted(spec.smer_segments)))

        return " | ".join(parts)


def iter_active_filters(spec: FilterSpec) -> Iterable[str]:
    """Names of the FilterSpec fields that constrain the scan."""
    defaults = FilterSpec()
    for name in spec.__dataclass_fields__:
        if getattr(spec, name) != getattr(defaults, name):
            yield name
