# debtsentry/aged_debt/queries.py
"""
Row sources for the aged debt engine.

Every source honours one contract:

    scan_batches(predicate, columns) -> Iterator[pd.DataFrame]
    scan(predicate, columns)         -> Iterator[DebtRecord]

Batches are decoded once here (canonical names, float64 measures) and
already filtered by the predicate. Nothing is read beyond one batch ahead.

- ParquetRowSource: uploaded ledgers, read with pyarrow in record batches
- SqlRowSource: a SQL table; the predicate is compiled to the WHERE clause
- DataFrameRowSource: in-memory frames (tests, Streamlit session data)
"""

import logging
import time
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional, Sequence, Tuple

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq
from sqlalchemy import Float, MetaData, String, Table, cast, literal, select
from sqlalchemy.exc import SQLAlchemyError

from debtsentry.config import config
from debtsentry.db import get_connection, get_db_engine
from .constants import (
    ALL_FIELDS,
    DATASET_EXTENSIONS,
    DEBUG_TIMING,
    FIELD_TO_SOURCE,
    NUMERIC_FIELDS,
)
from .decoding import decode_frame, iter_records
from .exceptions import DatasetNotFound, StorageError
from .models import DebtRecord
from .predicates import Always, Predicate

logger = logging.getLogger(__name__)


def _batch_size(batch_size: Optional[int]) -> int:
    return batch_size or config.get_app_setting("SCAN_BATCH_SIZE", 50000)


def _projection(predicate: Predicate, columns: Optional[Sequence[str]]) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """(fields to read, fields to return)."""
    wanted = tuple(columns) if columns else ALL_FIELDS
    needed = tuple(dict.fromkeys([*wanted, *sorted(predicate.fields())]))
    return needed, wanted


def _physical_name(field: str, available) -> Optional[str]:
    """Stored column for a canonical field: sheet header first, then canonical."""
    source = FIELD_TO_SOURCE.get(field)
    if source in available:
        return source
    if field in available:
        return field
    return None


class RowSource:
    """Base row source; subclasses implement _read_batches."""

    name = 'rows'

    def scan_batches(
        self,
        predicate: Predicate = None,
        columns: Optional[Sequence[str]] = None,
    ) -> Iterator[pd.DataFrame]:
        predicate = predicate or Always()
        needed, wanted = _projection(predicate, columns)

        start_time = time.perf_counter()
        rows_read = rows_kept = 0
        for df in self._read_batches(predicate, needed):
            rows_read += len(df)
            df = df[predicate.mask(df)]
            if df.empty:
                continue
            rows_kept += len(df)
            yield df[list(wanted)].reset_index(drop=True)

        elapsed = time.perf_counter() - start_time
        if DEBUG_TIMING:
            print(f"   📊 [scan:{self.name}] {rows_read:,} read, {rows_kept:,} kept in {elapsed:.3f}s")
        logger.debug(f"Scanned {self.name}: {rows_read:,} rows read, {rows_kept:,} matched")

    def scan(
        self,
        predicate: Predicate = None,
        columns: Optional[Sequence[str]] = None,
    ) -> Iterator[DebtRecord]:
        for df in self.scan_batches(predicate, columns):
            yield from iter_records(df)

    def _read_batches(self, predicate: Predicate, fields: Tuple[str, ...]) -> Iterator[pd.DataFrame]:
        raise NotImplementedError


# =============================================================================
# PARQUET
# =============================================================================

class ParquetRowSource(RowSource):
    """Reads an uploaded ledger file with pyarrow, one record batch at a time."""

    def __init__(self, path, batch_size: int = None):
        self.path = Path(path)
        self.name = self.path.name
        self.batch_size = _batch_size(batch_size)

    def _read_batches(self, predicate, fields):
        try:
            parquet_file = pq.ParquetFile(self.path)
            available = set(parquet_file.schema_arrow.names)
            physical = [p for p in (_physical_name(f, available) for f in fields) if p]

            for batch in parquet_file.iter_batches(batch_size=self.batch_size, columns=physical):
                yield decode_frame(batch.to_pandas(), fields)
        except (OSError, pa.ArrowException) as e:
            logger.error(f"❌ Failed reading {self.path}: {e}")
            raise StorageError(f"Cannot read dataset {self.name}: {e}") from e


# =============================================================================
# SQL
# =============================================================================

class SqlRowSource(RowSource):
    """
    Reads a ledger table through SQLAlchemy.

    The predicate becomes the WHERE clause with bound parameters; the same
    predicate is applied again on the decoded batch, which is a no-op for
    rows the database already filtered.

    Usage:
        source = SqlRowSource(table='aged_debt_ledger')
        for batch in source.scan_batches(predicate, ['business_area', 'outstanding_amount']):
            ...
    """

    def __init__(self, engine=None, table: str = None, batch_size: int = None):
        self._engine = engine
        self.table_name = table or config.get_db_config().get("table")
        self.name = self.table_name
        self.batch_size = _batch_size(batch_size)
        self._table = None

    @property
    def engine(self):
        """Lazy load database engine."""
        if self._engine is None:
            self._engine = get_db_engine()
        return self._engine

    @property
    def table(self) -> Table:
        if self._table is None:
            self._table = Table(self.table_name, MetaData(), autoload_with=self.engine)
        return self._table

    def resolve(self, field: str):
        """Column expression for a canonical field; numeric fields cast to float."""
        name = _physical_name(field, self.table.c.keys())
        numeric = field in NUMERIC_FIELDS
        if name is None:
            return literal(None, type_=Float() if numeric else String())
        column = self.table.c[name]
        return cast(column, Float) if numeric else column

    def build_query(self, predicate: Predicate, fields: Iterable[str]):
        available = self.table.c.keys()
        columns = []
        for field in fields:
            name = _physical_name(field, available)
            if name is not None:
                columns.append(self.table.c[name])
        return select(*columns).where(predicate.to_sql(self.resolve))

    def _read_batches(self, predicate, fields):
        try:
            query = self.build_query(predicate, fields)
            logger.debug(f"Executing scan on {self.table_name}")
            with get_connection(self.engine) as conn:
                for chunk in pd.read_sql(query, conn, chunksize=self.batch_size):
                    yield decode_frame(chunk, fields)
        except SQLAlchemyError as e:
            logger.error(f"❌ Error scanning {self.table_name}: {e}")
            raise StorageError(f"Cannot read table {self.table_name}: {e}") from e


# =============================================================================
# IN-MEMORY
# =============================================================================

class DataFrameRowSource(RowSource):
    """Serves an in-memory frame with sheet headers or canonical columns."""

    def __init__(self, df: pd.DataFrame, name: str = 'dataframe', batch_size: int = None):
        self._raw = df
        self._decoded = None
        self.name = name
        self.batch_size = _batch_size(batch_size)

    def _read_batches(self, predicate, fields):
        if self._decoded is None:
            self._decoded = decode_frame(self._raw)
        for start in range(0, len(self._decoded), self.batch_size):
            yield self._decoded.iloc[start:start + self.batch_size][list(fields)]


# =============================================================================
# DATASET REGISTRY
# =============================================================================

class DatasetRegistry:
    """
    Resolves a datasetId to a row source.

    Files under the data directory are resolved by name (extension
    optional); other sources can be registered explicitly.
    """

    def __init__(self, data_dir=None, batch_size: int = None):
        self.data_dir = Path(data_dir or config.get_storage_config()['data_dir'])
        self.batch_size = batch_size
        self._registered: Dict[str, RowSource] = {}

    @classmethod
    def from_config(cls) -> 'DatasetRegistry':
        """Registry over DATA_DIR, plus the SQL table when DATABASE_URL is set."""
        registry = cls()
        db_config = config.get_db_config()
        if db_config.get('url'):
            registry.register(db_config['table'], SqlRowSource(table=db_config['table']))
        return registry

    def register(self, dataset_id: str, source: RowSource) -> None:
        self._registered[dataset_id] = source

    def list_datasets(self) -> Tuple[str, ...]:
        files = []
        if self.data_dir.is_dir():
            files = [p.name for p in self.data_dir.iterdir() if p.suffix in DATASET_EXTENSIONS]
        return tuple(sorted(set(files) | set(self._registered)))

    def resolve(self, dataset_id: str) -> RowSource:
        """
        Raises:
            DatasetNotFound: unknown id, or an id that is not a plain file name
        """
        if not dataset_id:
            raise DatasetNotFound(str(dataset_id))
        if dataset_id in self._registered:
            return self._registered[dataset_id]

        if Path(dataset_id).name != dataset_id or dataset_id in ('.', '..'):
            logger.warning(f"Rejected dataset id: {dataset_id!r}")
            raise DatasetNotFound(dataset_id)

        candidates = [dataset_id]
        if Path(dataset_id).suffix not in DATASET_EXTENSIONS:
            candidates += [dataset_id + ext for ext in DATASET_EXTENSIONS]

        for candidate in candidates:
            path = self.data_dir / candidate
            if path.is_file() and path.suffix in DATASET_EXTENSIONS:
                return ParquetRowSource(path, batch_size=self.batch_size)

        raise DatasetNotFound(dataset_id)
