# debtsentry/aged_debt/listing.py
"""
Detailed (unaggregated) listing with keyset pagination.

The cursor is the last item's sort key: (null flag, sort value, contract
account), base64-encoded JSON. Ascending pages continue with keys greater
than the cursor, descending pages with keys less than it. Only the best
limit + 1 candidates are kept while batches stream past, so memory stays
bounded whatever the dataset size.
"""

import base64
import binascii
import heapq
import json
import logging
import math
from typing import Any, Dict, Iterator, List, MutableMapping, Optional, Tuple

import pandas as pd

from debtsentry.config import config
from .catalog import DimensionCatalog
from .constants import FIELD_TO_SOURCE, ID_FIELD, NUMERIC_FIELDS, SOURCE_COLUMNS
from .exceptions import ValidationError
from .models import Page, View
from .predicates import Predicate
from .queries import RowSource
from .response import to_builtin
from .views import ViewPolicy

logger = logging.getLogger(__name__)

ASC = 'ASC'
DESC = 'DESC'

DEFAULT_SORT_FIELD = {
    View.TRADE_RECEIVABLE: 'outstanding_amount',
    View.AGED_DEBT: 'contract_account',
}

# Wire key → canonical field for descriptive columns
ITEM_FIELDS = {
    'contractAccount': 'contract_account',
    'contractAccountName': 'contract_account_name',
    'businessArea': 'business_area',
    'accountClass': 'account_class',
    'adid': 'adid',
    'accountStatus': 'account_status',
    'staffId': 'staff_id',
    'smerSegment': 'smer_segment',
    'monthsOutstanding': 'months_outstanding',
    'mitAmount': 'mit_amount',
    'lastPaymentDate': 'last_payment_date',
    'lastPaymentAmount': 'last_payment_amount',
}

SortKey = Tuple[int, Any, str]


def resolve_sort_field(value: Optional[str], view: View) -> str:
    """Accepts canonical names, wire keys (outstandingAmount) or sheet headers."""
    if not value:
        return DEFAULT_SORT_FIELD[view]
    if value in FIELD_TO_SOURCE:
        return value
    if value in SOURCE_COLUMNS:
        return SOURCE_COLUMNS[value]
    if value in ITEM_FIELDS:
        return ITEM_FIELDS[value]
    for field in NUMERIC_FIELDS:
        camel = ''.join(p.title() if i else p for i, p in enumerate(field.split('_')))
        if camel == value:
            return field
    raise ValidationError(f"Unknown sort field: {value!r}", field='sortField')


def resolve_limit(limit: Optional[int]) -> int:
    if limit is None:
        return config.get_app_setting("DEFAULT_PAGE_SIZE", 100)
    try:
        limit = int(limit)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid limit: {limit!r}", field='limit') from e
    if limit < 1:
        raise ValidationError(f"Limit must be positive: {limit}", field='limit')
    return min(limit, config.get_app_setting("MAX_PAGE_SIZE", 10000))


def encode_cursor(key: SortKey) -> str:
    payload = json.dumps(list(key), separators=(',', ':'))
    return base64.urlsafe_b64encode(payload.encode('utf-8')).decode('ascii')


def decode_cursor(cursor: str, numeric: bool = False) -> SortKey:
    try:
        flag, value, account = json.loads(base64.urlsafe_b64decode(cursor.encode('ascii')))
        return int(flag), float(value) if numeric else str(value), str(account)
    except (binascii.Error, ValueError, TypeError, UnicodeError) as e:
        raise ValidationError(f"Invalid cursor: {cursor!r}", field='cursor') from e


def scoped_cursor(state: MutableMapping, request: Dict[str, Any]) -> Optional[str]:
    """
    Cursor saved in a session mapping for this exact request. Any change to
    the request drops the saved cursor.
    """
    signature = json.dumps(request, sort_keys=True, default=str)
    if state.get('detail_request') != signature:
        state['detail_request'] = signature
        state.pop('detail_cursor', None)
    return state.get('detail_cursor')


def _sort_key(value: Any, account: Any, numeric: bool, descending: bool) -> SortKey:
    missing = value is None or (isinstance(value, float) and math.isnan(value))
    # Missing values sort after present ones in both directions
    flag = (0 if descending else 1) if missing else (1 if descending else 0)
    if missing:
        value = 0.0 if numeric else ''
    elif numeric:
        value = float(value)
    else:
        value = str(value)
    return flag, value, account or ''


class DetailedListing:
    """
    Cursor-paged listing of filtered ledger rows.

    Usage:
        listing = DetailedListing(source, policy, catalog)
        page = listing.page(predicate, limit=100)
        next_page = listing.page(predicate, cursor=page.next_cursor)
    """

    def __init__(self, source: RowSource, policy: ViewPolicy, catalog: DimensionCatalog):
        self.source = source
        self.policy = policy
        self.catalog = catalog

    @property
    def columns(self) -> Tuple[str, ...]:
        return tuple(dict.fromkeys([*ITEM_FIELDS.values(), *self.policy.fields]))

    def page(
        self,
        predicate: Predicate,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
        sort_field: Optional[str] = None,
        sort_direction: str = ASC,
    ) -> Page:
        limit = resolve_limit(limit)
        field = resolve_sort_field(sort_field, self.policy.view)
        direction = (sort_direction or ASC).upper()
        if direction not in (ASC, DESC):
            raise ValidationError(f"Invalid sort direction: {sort_direction!r}", field='sortDirection')
        descending = direction == DESC
        numeric = field in NUMERIC_FIELDS
        after = decode_cursor(cursor, numeric) if cursor else None

        columns = list(dict.fromkeys([*self.columns, field]))
        pick = heapq.nlargest if descending else heapq.nsmallest
        buffer: List[Tuple[SortKey, Dict]] = []

        for df in self.source.scan_batches(predicate, columns):
            candidates = []
            for row in df.to_dict('records'):
                key = _sort_key(row.get(field), row.get(ID_FIELD), numeric, descending)
                if after is not None and not (key < after if descending else key > after):
                    continue
                candidates.append((key, row))
            if candidates:
                buffer = pick(limit + 1, buffer + candidates, key=lambda item: item[0])

        has_more = len(buffer) > limit
        buffer = buffer[:limit]
        items = [self._item(row) for _, row in buffer]
        next_cursor = encode_cursor(buffer[-1][0]) if has_more and buffer else None

        logger.debug(f"Listing page: {len(items)} items, has_more={has_more}")
        return Page(items=items, has_more=has_more, next_cursor=next_cursor, limit=limit)

    def iter_pages(
        self,
        predicate: Predicate,
        limit: Optional[int] = None,
        sort_field: Optional[str] = None,
        sort_direction: str = ASC,
    ) -> Iterator[Page]:
        cursor = None
        while True:
            page = self.page(predicate, cursor, limit, sort_field, sort_direction)
            yield page
            if not page.has_more:
                return
            cursor = page.next_cursor

    def _item(self, row: Dict) -> Dict[str, Any]:
        item = {}
        for key, field in ITEM_FIELDS.items():
            value = row.get(field)
            if isinstance(value, float) and math.isnan(value):
                value = None
            item[key] = to_builtin(value)
        item['station'] = self.catalog.station_name(row.get('business_area'))
        for measure in self.policy.measures:
            item[measure.row_key] = to_builtin(row.get(measure.field, 0.0))
        return item


def page_to_dict(page: Page) -> Dict[str, Any]:
    return {
        'items': page.items,
        'pagination': {
            'hasMore': page.has_more,
            'nextCursor': page.next_cursor,
            'limit': page.limit,
        },
    }


def frame_from_pages(pages: Iterator[Page]) -> pd.DataFrame:
    """Collect every page into one DataFrame (for table display)."""
    return pd.DataFrame([item for page in pages for item in page.items])
