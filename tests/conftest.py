"""
Shared fixtures: a small ledger with sheet headers.

Hand-checked figures for `ledger_df` (outstanding amount):
    6210: CA001 500 + CA002 2000 + CA006 1200 = 3700 (3 accounts)
    6211: CA003 300 + CA004 -100 + CA007 400   = 600  (3 accounts)
    6212: CA005 0                              = 0    (1 account)
    grand total 4300, 7 accounts
"""

import pandas as pd
import pytest

from debtsentry.aged_debt.catalog import DimensionCatalog
from debtsentry.aged_debt.queries import DataFrameRowSource, DatasetRegistry
from debtsentry.aged_debt.service import AgedDebtService

COLUMNS = [
    'Buss Area', 'Contract Acc', 'Contract Account Name', 'Acc Class', 'ADID',
    'Acc Status', 'Staff ID', 'SMER Segment', 'No of Months Outstandings',
    'TTL O/S Amt', 'Total Undue', 'Cur.MthUnpaid', 'Total Unpaid', 'MIT Amt',
]

LEDGER_ROWS = [
    ('6210', 'CA001', 'Kedai Ali', 'LPCN', 'AG', 'Active', 'S01', 'MASR', 2, 500.0, 50.0, 20.0, 70.0, 0.0),
    ('6210', 'CA002', 'Pejabat Daerah', 'OPCG', 'CM', 'Active', 'S01', '', 5, 2000.0, 0.0, 100.0, 100.0, 150.0),
    ('6211', 'CA003', 'Sekolah Kebangsaan', 'LPCG', 'DM', 'Inactive', None, 'MICB', 13, 300.0, 10.0, 0.0, 10.0, None),
    ('6211', 'CA004', 'Bengkel Lim', 'OPCN', 'AG', 'Active', 'S02', 'MASR', 7, -100.0, 0.0, 0.0, 0.0, 0.0),
    ('6212', 'CA005', 'Rumah Kedai', 'OPCN', 'SL', 'Active', 'S03', None, 0, 0.0, 0.0, 0.0, 0.0, 0.0),
    ('6210', 'CA006', 'Kilang Papan', 'OPCN', 'AG', 'Inactive', 'S02', 'GNLA', 10, 1200.0, 30.0, 40.0, 70.0, 0.0),
    ('6211', 'CA007', 'Klinik Desa', 'LPCN', 'IN', 'Active', '', 'HRES', 3, 400.0, 5.0, 5.0, 10.0, 25.0),
]

WORKED_EXAMPLE_ROWS = [
    ('6210', 'WX001', 'A', 'LPCG', 'AG', 'Active', 'S01', 'MASR', 1, 1000.0, 0.0, 0.0, 0.0, 0.0),
    ('6210', 'WX002', 'B', 'OPCG', 'AG', 'Active', 'S01', 'MASR', 1, 2000.0, 0.0, 0.0, 0.0, 0.0),
    ('6210', 'WX003', 'C', 'LPCN', 'AG', 'Active', 'S01', 'MASR', 1, 500.0, 0.0, 0.0, 0.0, 0.0),
    ('6210', 'WX004', 'D', 'OPCN', 'AG', 'Active', 'S01', 'MASR', 1, 1500.0, 0.0, 0.0, 0.0, 0.0),
]


# Negative balances: 6210 = -200 (S01 -120, S02 -80), 6211 = -150 (S03);
# NG004 is the one positive account
NEGATIVE_ROWS = [
    ('6210', 'NG001', 'A', 'OPCN', 'AG', 'Active', 'S01', 'MASR', 4, -120.0, 0.0, 0.0, 0.0, 0.0),
    ('6210', 'NG002', 'B', 'OPCN', 'AG', 'Active', 'S02', 'MICB', 4, -80.0, 0.0, 0.0, 0.0, 0.0),
    ('6211', 'NG003', 'C', 'LPCN', 'CM', 'Active', 'S03', 'MASR', 2, -150.0, 0.0, 0.0, 0.0, 0.0),
    ('6211', 'NG004', 'D', 'LPCN', 'CM', 'Active', 'S03', 'MASR', 1, 900.0, 0.0, 0.0, 0.0, 0.0),
]


def make_ledger(rows) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=COLUMNS)


@pytest.fixture
def ledger_df():
    return make_ledger(LEDGER_ROWS)


@pytest.fixture
def worked_example_df():
    return make_ledger(WORKED_EXAMPLE_ROWS)


@pytest.fixture
def negative_ledger_df():
    return make_ledger(NEGATIVE_ROWS)


@pytest.fixture
def ledger_source(ledger_df):
    # Small batches so every test crosses batch boundaries
    return DataFrameRowSource(ledger_df, name='ledger', batch_size=2)


@pytest.fixture
def catalog():
    return DimensionCatalog()


@pytest.fixture
def registry(tmp_path, ledger_df, worked_example_df, negative_ledger_df):
    registry = DatasetRegistry(tmp_path, batch_size=2)
    registry.register('ledger', DataFrameRowSource(ledger_df, name='ledger', batch_size=2))
    registry.register('worked', DataFrameRowSource(worked_example_df, name='worked', batch_size=3))
    registry.register('negative', DataFrameRowSource(negative_ledger_df, name='negative', batch_size=2))
    return registry


@pytest.fixture
def service(registry, catalog):
    return AgedDebtService(registry=registry, catalog=catalog)
