# debtsentry/aged_debt/constants.py
"""
Constants for the Aged Debt rollup engine.

VERSION: 1.0.0
"""

import os as _os

# =============================================================================
# SOURCE SHEET COLUMNS → CANONICAL FIELD NAMES
# The uploaded ledger keeps the spreadsheet headers; everything past the row
# source works with the canonical names on the right.
# =============================================================================
SOURCE_COLUMNS = {
    'Buss Area': 'business_area',
    'Contract Acc': 'contract_account',
    'Contract Account Name': 'contract_account_name',
    'Acc Class': 'account_class',
    'ADID': 'adid',
    'Acc Status': 'account_status',
    'Staff ID': 'staff_id',
    'SMER Segment': 'smer_segment',
    'No of Months Outstandings': 'months_outstanding',
    'TTL O/S Amt': 'outstanding_amount',
    'Total Undue': 'total_undue',
    'Cur.MthUnpaid': 'current_month_unpaid',
    'Total Unpaid': 'total_unpaid',
    'MIT Amt': 'mit_amount',
    'Last PymtDate': 'last_payment_date',
    'Last Pymt Amt': 'last_payment_amount',
}

FIELD_TO_SOURCE = {field: source for source, field in SOURCE_COLUMNS.items()}

TEXT_FIELDS = (
    'business_area', 'contract_account', 'contract_account_name',
    'account_class', 'adid', 'account_status', 'staff_id', 'smer_segment',
    'last_payment_date',
)

NUMERIC_FIELDS = (
    'months_outstanding', 'outstanding_amount', 'total_undue',
    'current_month_unpaid', 'total_unpaid', 'mit_amount',
    'last_payment_amount',
)

ALL_FIELDS = TEXT_FIELDS + NUMERIC_FIELDS

# Natural identifier of a ledger record; counts are distinct over it
ID_FIELD = 'contract_account'

# =============================================================================
# TAXONOMIES
# =============================================================================
GOVERNMENT_CLASSES = ('LPCG', 'OPCG')
NON_GOVERNMENT_CLASSES = ('LPCN', 'OPCN')

# Account class order differs between the two views
ACCOUNT_CLASS_ORDER_TR = ('LPCN', 'OPCN', 'LPCG', 'OPCG')
ACCOUNT_CLASS_ORDER_AGED_DEBT = ('OPCN', 'LPCN', 'LPCG', 'OPCG')

ADID_ORDER = ('AG', 'CM', 'DM', 'IN', 'MN', 'SL')

SMER_SEGMENT_ORDER = ('MASR', 'MICB', 'GNLA', 'HRES', 'MEDB', 'SMLB', 'EMRB', 'BLANKS')

# Group label for a null/empty SMER segment
BLANK_SEGMENT_KEY = 'BLANKS'

# Filter sentinel that selects null/empty SMER segments
BLANKS_SENTINEL = 'Blanks'

# =============================================================================
# AGING BRACKETS on months outstanding: [low, high), None = open-ended
# =============================================================================
AGING_BUCKETS = {
    '0-3': (0, 3),
    '3-6': (3, 6),
    '6-9': (6, 9),
    '9-12': (9, 12),
    '>12': (12, None),
}

# =============================================================================
# BUSINESS AREAS (default lookup, overridable via BUSINESS_AREAS_FILE)
# =============================================================================
BUSINESS_AREA_NAMES = {
    '6210': 'TNB IPOH',
    '6211': 'TNB KAMPAR',
    '6212': 'TNB BIDOR',
    '6213': 'TNB TANJONG MALIM',
    '6218': 'TNB SERI ISKANDAR',
    '6219': 'TNB ULU KINTA',
    '6220': 'TNB TAIPING',
    '6221': 'TNB BATU GAJAH',
    '6222': 'TNB KUALA KANGSAR',
    '6223': 'TNB GERIK',
    '6224': 'TNB BAGAN SERAI',
    '6225': 'TNB SG. SIPUT',
    '6227': 'TNB SRI MANJUNG',
    '6250': 'TNB TELUK INTAN',
    '6252': 'TNB HUTAN MELINTANG',
}

UNKNOWN_STATION = 'Unknown'

# =============================================================================
# OUTPUT
# =============================================================================
PERCENT_FORMAT = "{:.2f}"
ZERO_PERCENT = "0.00"
FULL_PERCENT = "100.00"

# =============================================================================
# DATASETS
# =============================================================================
DATASET_EXTENSIONS = ('.parquet',)

# =============================================================================
# DEBUG SETTINGS
# Use environment variables to enable: AD_DEBUG_TIMING=true
# =============================================================================
DEBUG_TIMING = _os.getenv('AD_DEBUG_TIMING', 'false').lower() == 'true'
