# debtsentry/aged_debt/__init__.py
"""
Aged Debt rollup engine.

Filters a debt ledger, groups it by one business dimension under its
business area and returns rows, per-area subtotals and a grand total with
percentage-of-total figures.
"""

from .catalog import DimensionCatalog, DimensionSpec
from .data_processor import DimensionAggregator
from .exceptions import (
    AgedDebtError,
    DatasetNotFound,
    NumericCoercionError,
    StorageError,
    ValidationError,
)
from .filters import AgedDebtFilters
from .models import (
    AccountClassType,
    BalanceSign,
    DebtRecord,
    Dimension,
    FilterSpec,
    MitType,
    OutstandingRange,
    RollupResult,
    View,
)
from .predicates import build_predicate
from .queries import DataFrameRowSource, DatasetRegistry, ParquetRowSource, SqlRowSource
from .response import assemble
from .rollup import RollupComposer
from .service import AgedDebtService
from .views import get_view_policy

__all__ = [
    'AgedDebtService',
    'AgedDebtFilters',
    'DimensionCatalog',
    'DimensionSpec',
    'DimensionAggregator',
    'RollupComposer',
    'build_predicate',
    'assemble',
    'get_view_policy',
    'DataFrameRowSource',
    'DatasetRegistry',
    'ParquetRowSource',
    'SqlRowSource',
    'AccountClassType',
    'BalanceSign',
    'DebtRecord',
    'Dimension',
    'FilterSpec',
    'MitType',
    'OutstandingRange',
    'RollupResult',
    'View',
    'AgedDebtError',
    'DatasetNotFound',
    'NumericCoercionError',
    'StorageError',
    'ValidationError',
]

__version__ = '1.0.0'
