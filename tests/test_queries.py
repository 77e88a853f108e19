"""
Tests for row sources and the dataset registry.
"""

import pandas as pd
import pytest
from sqlalchemy import create_engine

from debtsentry.aged_debt.constants import SOURCE_COLUMNS
from debtsentry.aged_debt.exceptions import DatasetNotFound, StorageError
from debtsentry.aged_debt.models import AccountClassType, DebtRecord, FilterSpec, MitType
from debtsentry.aged_debt.predicates import build_predicate
from debtsentry.aged_debt.queries import (
    DataFrameRowSource,
    DatasetRegistry,
    ParquetRowSource,
    SqlRowSource,
)


def _accounts(source, spec=None, columns=('contract_account',)):
    predicate = build_predicate(spec or FilterSpec())
    return sorted(
        account
        for batch in source.scan_batches(predicate, columns)
        for account in batch['contract_account']
    )


@pytest.fixture
def parquet_path(tmp_path, ledger_df):
    path = tmp_path / 'ledger.parquet'
    ledger_df.to_parquet(path, index=False)
    return path


@pytest.fixture
def sql_source(ledger_df):
    engine = create_engine('sqlite://')
    ledger_df.to_sql('aged_debt_ledger', engine, index=False)
    return SqlRowSource(engine=engine, table='aged_debt_ledger', batch_size=3)


class TestDataFrameRowSource:

    def test_batches_are_bounded_and_projected(self, ledger_source):
        batches = list(ledger_source.scan_batches(columns=['contract_account', 'outstanding_amount']))
        assert all(len(b) <= 2 for b in batches)
        assert all(list(b.columns) == ['contract_account', 'outstanding_amount'] for b in batches)
        assert sum(len(b) for b in batches) == 7

    def test_predicate_fields_need_not_be_projected(self, ledger_source):
        spec = FilterSpec(account_class_type=AccountClassType.GOVERNMENT)
        assert _accounts(ledger_source, spec) == ['CA002', 'CA003']

    def test_scan_yields_records(self, ledger_source):
        records = list(ledger_source.scan())
        assert len(records) == 7
        assert all(isinstance(r, DebtRecord) for r in records)


class TestParquetRowSource:

    def test_scan(self, parquet_path):
        source = ParquetRowSource(parquet_path, batch_size=3)
        assert _accounts(source) == ['CA001', 'CA002', 'CA003', 'CA004', 'CA005', 'CA006', 'CA007']

    def test_filtered_scan(self, parquet_path):
        source = ParquetRowSource(parquet_path, batch_size=2)
        assert _accounts(source, FilterSpec(mit_type=MitType.MIT)) == ['CA002', 'CA007']

    def test_canonical_column_names(self, tmp_path, ledger_df):
        path = tmp_path / 'canonical.parquet'
        ledger_df.rename(columns=SOURCE_COLUMNS).to_parquet(path, index=False)
        source = ParquetRowSource(path)
        spec = FilterSpec(account_class_type=AccountClassType.GOVERNMENT)
        assert _accounts(source, spec) == ['CA002', 'CA003']

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / 'broken.parquet'
        path.write_bytes(b'not a parquet file')
        with pytest.raises(StorageError) as exc:
            list(ParquetRowSource(path).scan_batches())
        assert exc.value.retryable is True


class TestSqlRowSource:

    def test_scan(self, sql_source):
        assert len(_accounts(sql_source)) == 7

    @pytest.mark.parametrize('spec,expected', [
        (FilterSpec(account_class_type=AccountClassType.GOVERNMENT), ['CA002', 'CA003']),
        (FilterSpec(mit_type=MitType.NON_MIT), ['CA001', 'CA003', 'CA004', 'CA005', 'CA006']),
        (FilterSpec(smer_segments=frozenset({'Blanks'})), ['CA002', 'CA005']),
        (FilterSpec(aging_bucket='>12'), ['CA003']),
        (FilterSpec(business_areas=frozenset({'6211'}), account_status='Active'), ['CA004', 'CA007']),
    ])
    def test_predicate_in_where_clause(self, sql_source, spec, expected):
        assert _accounts(sql_source, spec) == expected

    def test_query_uses_bound_parameters(self, sql_source):
        query = sql_source.build_query(
            build_predicate(FilterSpec(account_status="Active')--")),
            ['contract_account'],
        )
        compiled = query.compile()
        assert "Active')--" not in str(compiled)

    def test_missing_table(self, sql_source):
        source = SqlRowSource(engine=sql_source.engine, table='no_such_table')
        with pytest.raises(StorageError):
            list(source.scan_batches())


class TestDatasetRegistry:

    def test_resolves_files_with_or_without_extension(self, tmp_path, parquet_path):
        registry = DatasetRegistry(tmp_path)
        assert isinstance(registry.resolve('ledger.parquet'), ParquetRowSource)
        assert isinstance(registry.resolve('ledger'), ParquetRowSource)
        assert registry.list_datasets() == ('ledger.parquet',)

    @pytest.mark.parametrize('dataset_id', ['missing', '../ledger.parquet', '..', '', 'sub/ledger.parquet'])
    def test_unknown_or_unsafe_ids(self, tmp_path, parquet_path, dataset_id):
        with pytest.raises(DatasetNotFound):
            DatasetRegistry(tmp_path).resolve(dataset_id)

    def test_registered_sources(self, tmp_path, ledger_df):
        registry = DatasetRegistry(tmp_path)
        source = DataFrameRowSource(ledger_df)
        registry.register('memory', source)
        assert registry.resolve('memory') is source
        assert 'memory' in registry.list_datasets()

    def test_non_parquet_files_are_ignored(self, tmp_path):
        pd.DataFrame({'a': [1]}).to_csv(tmp_path / 'ledger.csv', index=False)
        with pytest.raises(DatasetNotFound):
            DatasetRegistry(tmp_path).resolve('ledger.csv')
