# debtsentry/aged_debt/catalog.py
"""
Dimension Catalog

Static description of every aggregation dimension: which field supplies the
group key, which field is the parent group, whether the dimension has a
canonical (view-dependent) order, and how leaves are sorted. The
business-area name lookup is injected so deployments can swap the table.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from .constants import (
    ACCOUNT_CLASS_ORDER_AGED_DEBT,
    ACCOUNT_CLASS_ORDER_TR,
    ADID_ORDER,
    BLANK_SEGMENT_KEY,
    BUSINESS_AREA_NAMES,
    GOVERNMENT_CLASSES,
    NON_GOVERNMENT_CLASSES,
    UNKNOWN_STATION,
)
from .exceptions import ValidationError
from .models import AccountClassType, Dimension, FilterSpec, View

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DimensionSpec:
    """
    How one dimension is keyed, parented and ordered.

    canonical_order: per-view fixed taxonomy; None means leaves sort by
        descending percentage of the grand total.
    blank_key: group label for null/empty values; None drops such records.
    """
    dimension: Dimension
    field: str
    parent_field: str = 'business_area'
    canonical_order: Optional[Mapping[View, Tuple[str, ...]]] = None
    blank_key: Optional[str] = None

    def order_for(self, view: View) -> Optional[Tuple[str, ...]]:
        if self.canonical_order is None:
            return None
        return self.canonical_order[view]


DEFAULT_DIMENSIONS = (
    DimensionSpec(
        dimension=Dimension.STATION,
        field='business_area',
        blank_key='',
    ),
    DimensionSpec(
        dimension=Dimension.ACCOUNT_CLASS,
        field='account_class',
        canonical_order=MappingProxyType({
            View.TRADE_RECEIVABLE: ACCOUNT_CLASS_ORDER_TR,
            View.AGED_DEBT: ACCOUNT_CLASS_ORDER_AGED_DEBT,
        }),
        blank_key='',
    ),
    DimensionSpec(
        dimension=Dimension.ADID,
        field='adid',
        canonical_order=MappingProxyType({
            View.TRADE_RECEIVABLE: ADID_ORDER,
            View.AGED_DEBT: ADID_ORDER,
        }),
        blank_key='',
    ),
    DimensionSpec(
        dimension=Dimension.STAFF,
        field='staff_id',
        blank_key=None,
    ),
    DimensionSpec(
        dimension=Dimension.SMER_SEGMENT,
        field='smer_segment',
        blank_key=BLANK_SEGMENT_KEY,
    ),
)


class DimensionCatalog:
    """
    Lookup for dimension specs and business-area names.

    Usage:
        catalog = DimensionCatalog()
        spec = catalog.get(Dimension.ADID)
        codes = catalog.taxonomy_for(spec, View.AGED_DEBT, filter_spec)
    """

    def __init__(
        self,
        business_area_names: Optional[Dict[str, str]] = None,
        dimensions: Tuple[DimensionSpec, ...] = DEFAULT_DIMENSIONS,
    ):
        names = business_area_names if business_area_names is not None else BUSINESS_AREA_NAMES
        self._area_names = MappingProxyType(dict(names))
        self._dimensions = MappingProxyType({d.dimension: d for d in dimensions})

    @property
    def business_area_names(self) -> Mapping[str, str]:
        return self._area_names

    def get(self, dimension: Dimension) -> DimensionSpec:
        try:
            return self._dimensions[Dimension(dimension)]
        except (KeyError, ValueError) as e:
            raise ValidationError(f"Unknown dimension: {dimension!r}", field='dimension') from e

    def station_name(self, code: Optional[str]) -> str:
        if not code:
            return UNKNOWN_STATION
        return self._area_names.get(code, UNKNOWN_STATION)

    def taxonomy_for(
        self,
        spec: DimensionSpec,
        view: View,
        filters: FilterSpec,
    ) -> Optional[Tuple[str, ...]]:
        """
        Canonical codes to list under every parent group, narrowed to the
        codes the filter can admit. None for data-driven dimensions.
        """
        order = spec.order_for(view)
        if order is None:
            return None

        if spec.dimension == Dimension.ACCOUNT_CLASS:
            if filters.account_class_type == AccountClassType.GOVERNMENT:
                order = tuple(c for c in order if c in GOVERNMENT_CLASSES)
            elif filters.account_class_type == AccountClassType.NON_GOVERNMENT:
                order = tuple(c for c in order if c in NON_GOVERNMENT_CLASSES)
            if filters.account_class:
                order = tuple(c for c in order if c == filters.account_class)

        elif spec.dimension == Dimension.ADID and filters.adids:
            order = tuple(c for c in order if c in filters.adids)

        return order


def default_catalog() -> DimensionCatalog:
    """Catalog wired with the configured business-area table."""
    from debtsentry.config import config

    names = config.load_business_area_names()
    if names:
        logger.info(f"Loaded {len(names)} business areas from file")
    return DimensionCatalog(business_area_names=names)
