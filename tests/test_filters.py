"""
Tests for request parsing.
"""

import pytest

from debtsentry.aged_debt.exceptions import ValidationError
from debtsentry.aged_debt.filters import AgedDebtFilters, iter_active_filters
from debtsentry.aged_debt.models import (
    AccountClassType,
    BalanceSign,
    Dimension,
    FilterSpec,
    MitType,
    OutstandingRange,
    View,
)


class TestParseFilters:
    """Request body → FilterSpec."""

    def test_empty_request_gives_default_spec(self):
        assert AgedDebtFilters.parse_filters({}) == FilterSpec()
        assert AgedDebtFilters.parse_filters(None) == FilterSpec()

    def test_api_names(self):
        spec = AgedDebtFilters.parse_filters({
            'accountClassType': 'GOVERNMENT',
            'mitType': 'NON_MIT',
            'businessAreas': ['6210', '6211'],
            'adids': ['AG'],
            'accountStatus': 'Active',
            'balanceSign': 'Positive',
            'accountClass': 'OPCG',
            'agingBucket': '>12',
            'outstandingRange': {'min': 100, 'max': 5000},
            'smerSegments': ['MASR', 'Blanks'],
        })
        assert spec.account_class_type == AccountClassType.GOVERNMENT
        assert spec.mit_type == MitType.NON_MIT
        assert spec.business_areas == frozenset({'6210', '6211'})
        assert spec.adids == frozenset({'AG'})
        assert spec.account_status == 'Active'
        assert spec.balance_sign == BalanceSign.POSITIVE
        assert spec.account_class == 'OPCG'
        assert spec.aging_bucket == '>12'
        assert spec.outstanding_range == OutstandingRange(min=100.0, max=5000.0)
        assert spec.smer_segments == frozenset({'MASR', 'Blanks'})

    def test_dashboard_aliases(self):
        spec = AgedDebtFilters.parse_filters({
            'accClassType': 'non-government',
            'accStatus': 'Inactive',
            'balanceType': 'negative',
            'totalOutstandingRange': {'min': 100001, 'max': None},
            'smerSegments': ['BLANK'],
        })
        assert spec.account_class_type == AccountClassType.NON_GOVERNMENT
        assert spec.account_status == 'Inactive'
        assert spec.balance_sign == BalanceSign.NEGATIVE
        assert spec.outstanding_range == OutstandingRange(min=100001.0, max=None)
        assert spec.smer_segments == frozenset({'Blanks'})

    def test_all_values_are_no_constraint(self):
        spec = AgedDebtFilters.parse_filters({
            'accountClassType': 'ALL',
            'mitType': 'all',
            'accountStatus': 'All',
            'adids': ['All'],
            'agingBucket': 'all',
        })
        assert spec == FilterSpec()

    def test_range_strings(self):
        assert AgedDebtFilters.parse_filters(
            {'outstandingRange': '100001+'}
        ).outstanding_range == OutstandingRange(min=100001.0)
        assert AgedDebtFilters.parse_filters(
            {'outstandingRange': '0-1000'}
        ).outstanding_range == OutstandingRange(min=0.0, max=1000.0)

    @pytest.mark.parametrize('text,expected', [
        ('-500-0', OutstandingRange(min=-500.0, max=0.0)),
        ('-1000--500', OutstandingRange(min=-1000.0, max=-500.0)),
        ('-500 - 250.5', OutstandingRange(min=-500.0, max=250.5)),
        ('-500+', OutstandingRange(min=-500.0)),
        ('100-', OutstandingRange(min=100.0)),
    ])
    def test_range_strings_with_negative_bounds(self, text, expected):
        assert AgedDebtFilters.parse_filters({'outstandingRange': text}).outstanding_range == expected

    def test_non_numeric_bound_disables_range(self):
        spec = AgedDebtFilters.parse_filters({'outstandingRange': {'min': 'abc', 'max': 10}})
        assert spec.outstanding_range is None

    @pytest.mark.parametrize('bound', ['nan', 'NaN', float('nan'), 'inf', float('-inf')])
    def test_non_finite_bound_disables_range(self, bound):
        spec = AgedDebtFilters.parse_filters({'outstandingRange': {'min': bound, 'max': None}})
        assert spec.outstanding_range is None
        spec = AgedDebtFilters.parse_filters({'outstandingRange': {'min': 0, 'max': bound}})
        assert spec.outstanding_range is None

    def test_min_greater_than_max(self):
        with pytest.raises(ValidationError) as exc:
            AgedDebtFilters.parse_filters({'outstandingRange': {'min': 500, 'max': 100}})
        assert exc.value.field == 'outstandingRange'

    @pytest.mark.parametrize('request_body', [
        {'mitType': 'SOMETIMES'},
        {'accountClassType': 'PRIVATE'},
        {'balanceSign': 'Imaginary'},
        {'agingBucket': '12-24'},
    ])
    def test_unknown_enum_values(self, request_body):
        with pytest.raises(ValidationError):
            AgedDebtFilters.parse_filters(request_body)

    def test_single_business_area(self):
        spec = AgedDebtFilters.parse_filters({'businessArea': '6250', 'businessAreas': ['6210']})
        assert spec.business_areas == frozenset({'6210', '6250'})

    def test_numeric_codes_are_text(self):
        spec = AgedDebtFilters.parse_filters({'businessAreas': [6210, 6211.0]})
        assert spec.business_areas == frozenset({'6210', '6211'})


class TestParseRequest:
    """View, dimension and dataset parsing."""

    @pytest.mark.parametrize('value,expected', [
        (None, View.AGED_DEBT),
        ('AgedDebt', View.AGED_DEBT),
        ('agedDebt', View.AGED_DEBT),
        ('TR', View.TRADE_RECEIVABLE),
        ('TradeReceivable', View.TRADE_RECEIVABLE),
    ])
    def test_parse_view(self, value, expected):
        assert AgedDebtFilters.parse_view(value) == expected

    def test_unknown_view(self):
        with pytest.raises(ValidationError):
            AgedDebtFilters.parse_view('Forecast')

    @pytest.mark.parametrize('value,expected', [
        ('Station', Dimension.STATION),
        ('AccountClass', Dimension.ACCOUNT_CLASS),
        ('ADID', Dimension.ADID),
        ('staff', Dimension.STAFF),
        ('SmerSegment', Dimension.SMER_SEGMENT),
    ])
    def test_parse_dimension(self, value, expected):
        assert AgedDebtFilters.parse_dimension(value) == expected

    def test_unknown_dimension(self):
        with pytest.raises(ValidationError):
            AgedDebtFilters.parse_dimension('Region')
        with pytest.raises(ValidationError):
            AgedDebtFilters.parse_dimension(None)

    def test_parse_request(self):
        dataset_id, view, spec = AgedDebtFilters.parse_request(
            {'filename': 'ledger.parquet', 'viewType': 'TR', 'mitType': 'MIT'}
        )
        assert dataset_id == 'ledger.parquet'
        assert view == View.TRADE_RECEIVABLE
        assert spec.mit_type == MitType.MIT

    def test_dataset_is_required(self):
        with pytest.raises(ValidationError) as exc:
            AgedDebtFilters.parse_request({'view': 'AgedDebt'})
        assert exc.value.field == 'datasetId'


class TestFilterSummary:
    """Human-readable descriptions."""

    def test_default_summary(self):
        assert AgedDebtFilters.get_filter_summary(FilterSpec()) == "All business areas"

    def test_summary_uses_station_names(self):
        spec = FilterSpec(
            business_areas=frozenset({'6210'}),
            balance_sign=BalanceSign.POSITIVE,
            outstanding_range=OutstandingRange(min=100001.0),
        )
        summary = AgedDebtFilters.get_filter_summary(spec)
        assert summary.startswith("TNB IPOH")
        assert "Positive balance" in summary
        assert "RM100,001.00+" in summary

    def test_active_filters(self):
        spec = FilterSpec(mit_type=MitType.MIT, adids=frozenset({'AG'}))
        assert set(iter_active_filters(spec)) == {'mit_type', 'adids'}
