# debtsentry/aged_debt/service.py
"""
Aged Debt service: request in, response dict out.

Validation (view, dimension, filters, dataset) happens before any row is
read. Each call builds its own aggregator, so calls never share state.

Usage:
    service = AgedDebtService()
    response = service.aggregate({'datasetId': 'ledger.parquet',
                                  'view': 'AgedDebt',
                                  'accountClassType': 'GOVERNMENT'},
                                 dimension='AccountClass')
"""

import logging
import time
from typing import Any, Dict, Iterator, Optional

from .catalog import DimensionCatalog, default_catalog
from .constants import DEBUG_TIMING
from .data_processor import DimensionAggregator
from .filters import AgedDebtFilters, iter_active_filters
from .listing import ASC, DetailedListing, page_to_dict
from .models import Dimension, FilterSpec, Page, RollupResult, View
from .predicates import build_predicate
from .queries import DatasetRegistry, RowSource
from .response import assemble
from .rollup import RollupComposer
from .summary import driver_tree, status_segment_tree, summary_cards
from .views import get_view_policy

logger = logging.getLogger(__name__)


class AgedDebtService:
    """Facade over the row sources, predicate builder and rollup pipeline."""

    def __init__(
        self,
        registry: Optional[DatasetRegistry] = None,
        catalog: Optional[DimensionCatalog] = None,
    ):
        self.registry = registry or DatasetRegistry.from_config()
        self.catalog = catalog or default_catalog()
        self.composer = RollupComposer(self.catalog)

    # =========================================================================
    # ROLLUP
    # =========================================================================

    def rollup(
        self,
        source: RowSource,
        dimension: Dimension,
        view: View,
        filters: FilterSpec,
    ) -> RollupResult:
        """Run one aggregation against an already resolved row source."""
        start_time = time.perf_counter()

        spec = self.catalog.get(dimension)
        policy = get_view_policy(view)
        predicate = build_predicate(filters)

        aggregator = DimensionAggregator(spec, policy.fields)
        for batch in source.scan_batches(predicate, aggregator.columns):
            aggregator.add_batch(batch)

        result = self.composer.compose(aggregator.results(), spec, policy, filters)

        elapsed = time.perf_counter() - start_time
        if DEBUG_TIMING:
            print(f"   📊 [rollup:{spec.dimension.value}/{policy.view.value}] "
                  f"{len(result.rows):,} rows in {elapsed:.3f}s")
        logger.info(
            f"Rollup {spec.dimension.value}/{policy.view.value} on {source.name}: "
            f"{aggregator.rows_seen:,} records → {len(result.rows)} rows "
            f"(filters: {', '.join(iter_active_filters(filters)) or 'none'}) in {elapsed:.3f}s"
        )
        return result

    def aggregate(self, request: Dict[str, Any], dimension) -> Dict[str, Any]:
        """
        Parse a request and return the assembled rollup.

        Raises:
            ValidationError: malformed request, unknown view or dimension
            DatasetNotFound: datasetId does not resolve
            StorageError: the row source failed mid-scan
        """
        dataset_id, view, filters = AgedDebtFilters.parse_request(request)
        dimension = AgedDebtFilters.parse_dimension(dimension)
        policy = get_view_policy(view)
        self.catalog.get(dimension)

        source = self.registry.resolve(dataset_id)
        result = self.rollup(source, dimension, view, filters)
        return assemble(result, policy)

    # =========================================================================
    # DETAILED LISTING
    # =========================================================================

    def _listing(self, request: Dict[str, Any]):
        dataset_id, view, filters = AgedDebtFilters.parse_request(request)
        source = self.registry.resolve(dataset_id)
        listing = DetailedListing(source, get_view_policy(view), self.catalog)
        return listing, build_predicate(filters)

    def list_detailed(
        self,
        request: Dict[str, Any],
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
        sort_field: Optional[str] = None,
        sort_direction: str = ASC,
    ) -> Dict[str, Any]:
        listing, predicate = self._listing(request)
        page = listing.page(predicate, cursor, limit, sort_field, sort_direction)
        return page_to_dict(page)

    def iter_pages(
        self,
        request: Dict[str, Any],
        limit: Optional[int] = None,
        sort_field: Optional[str] = None,
        sort_direction: str = ASC,
    ) -> Iterator[Page]:
        listing, predicate = self._listing(request)
        return listing.iter_pages(predicate, limit, sort_field, sort_direction)

    # =========================================================================
    # SUMMARIES (whole dataset, no filters)
    # =========================================================================

    def summary_cards(self, dataset_id: str) -> Dict[str, Any]:
        return summary_cards(self.registry.resolve(dataset_id))

    def status_segment_tree(self, dataset_id: str) -> Dict[str, Any]:
        return status_segment_tree(self.registry.resolve(dataset_id))

    def driver_tree(self, dataset_id: str) -> Dict[str, Any]:
        return driver_tree(self.registry.resolve(dataset_id))
