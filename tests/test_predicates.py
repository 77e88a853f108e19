"""
Tests for the predicate builder.
"""

import pytest
from sqlalchemy import column

from debtsentry.aged_debt.decoding import decode_frame, iter_records
from debtsentry.aged_debt.models import (
    AccountClassType,
    BalanceSign,
    DebtRecord,
    FilterSpec,
    MitType,
    OutstandingRange,
)
from debtsentry.aged_debt.predicates import (
    AllOf,
    Always,
    AnyOf,
    Between,
    Equals,
    InBracket,
    InSet,
    IsBlank,
    Not,
    ZeroOrAbsent,
    build_predicate,
    conjoin,
)


def _accounts(df, spec):
    decoded = decode_frame(df)
    mask = build_predicate(spec).mask(decoded)
    return sorted(decoded.loc[mask, 'contract_account'])


class TestBuildPredicate:
    """FilterSpec → predicate selection on the sample ledger."""

    def test_empty_spec_matches_everything(self, ledger_df):
        assert isinstance(build_predicate(FilterSpec()), Always)
        assert len(_accounts(ledger_df, FilterSpec())) == 7

    def test_government(self, ledger_df):
        spec = FilterSpec(account_class_type=AccountClassType.GOVERNMENT)
        assert _accounts(ledger_df, spec) == ['CA002', 'CA003']

    def test_non_government(self, ledger_df):
        spec = FilterSpec(account_class_type=AccountClassType.NON_GOVERNMENT)
        assert _accounts(ledger_df, spec) == ['CA001', 'CA004', 'CA005', 'CA006', 'CA007']

    def test_mit_and_non_mit(self, ledger_df):
        assert _accounts(ledger_df, FilterSpec(mit_type=MitType.MIT)) == ['CA002', 'CA007']
        # CA003 has no MIT amount at all and still counts as non-MIT
        assert _accounts(ledger_df, FilterSpec(mit_type=MitType.NON_MIT)) == [
            'CA001', 'CA003', 'CA004', 'CA005', 'CA006'
        ]

    def test_balance_sign(self, ledger_df):
        assert _accounts(ledger_df, FilterSpec(balance_sign=BalanceSign.NEGATIVE)) == ['CA004']
        assert _accounts(ledger_df, FilterSpec(balance_sign=BalanceSign.ZERO)) == ['CA005']
        assert len(_accounts(ledger_df, FilterSpec(balance_sign=BalanceSign.POSITIVE))) == 5

    @pytest.mark.parametrize('bucket,expected', [
        ('0-3', ['CA001', 'CA005']),
        ('3-6', ['CA002', 'CA007']),
        ('6-9', ['CA004']),
        ('9-12', ['CA006']),
        ('>12', ['CA003']),
    ])
    def test_aging_buckets_are_half_open(self, ledger_df, bucket, expected):
        assert _accounts(ledger_df, FilterSpec(aging_bucket=bucket)) == expected

    def test_outstanding_range_is_inclusive(self, ledger_df):
        spec = FilterSpec(outstanding_range=OutstandingRange(min=300.0, max=1200.0))
        assert _accounts(ledger_df, spec) == ['CA001', 'CA003', 'CA006', 'CA007']

    def test_open_ended_range(self, ledger_df):
        spec = FilterSpec(outstanding_range=OutstandingRange(min=1000.0))
        assert _accounts(ledger_df, spec) == ['CA002', 'CA006']

    def test_blanks_sentinel_matches_null_and_empty_segments(self, ledger_df):
        assert _accounts(ledger_df, FilterSpec(smer_segments=frozenset({'Blanks'}))) == ['CA002', 'CA005']

    def test_segments_with_blanks(self, ledger_df):
        spec = FilterSpec(smer_segments=frozenset({'MASR', 'Blanks'}))
        assert _accounts(ledger_df, spec) == ['CA001', 'CA002', 'CA004', 'CA005']

    def test_conjunction(self, ledger_df):
        spec = FilterSpec(
            business_areas=frozenset({'6210'}),
            adids=frozenset({'AG'}),
            account_status='Inactive',
        )
        assert _accounts(ledger_df, spec) == ['CA006']

    def test_mask_and_matches_agree(self, ledger_df):
        """Row-level and vectorised evaluation select the same records."""
        specs = [
            FilterSpec(mit_type=MitType.NON_MIT),
            FilterSpec(smer_segments=frozenset({'MASR', 'Blanks'})),
            FilterSpec(account_class_type=AccountClassType.GOVERNMENT, aging_bucket='>12'),
            FilterSpec(outstanding_range=OutstandingRange(min=0.0, max=500.0)),
        ]
        decoded = decode_frame(ledger_df)
        records = list(iter_records(decoded))
        for spec in specs:
            predicate = build_predicate(spec)
            assert list(predicate.mask(decoded)) == [predicate.matches(r) for r in records]


class TestClauses:
    """Individual clause behaviour."""

    def test_absent_optional_field_never_raises(self):
        record = DebtRecord(contract_account='X')
        assert InSet('smer_segment', frozenset({'MASR'})).matches(record) is False
        assert IsBlank('smer_segment').matches(record) is True
        assert ZeroOrAbsent('mit_amount').matches(record) is True
        assert Between('months_outstanding', 0, 3).matches(record) is False
        assert InBracket('months_outstanding', 12, None).matches(record) is False

    def test_dict_records(self):
        assert Equals('adid', 'AG').matches({'adid': 'AG'})

    def test_not(self):
        clause = Not(Equals('adid', 'AG'))
        assert clause.matches({'adid': 'CM'})
        assert not clause.matches({'adid': 'AG'})

    def test_conjoin_flattens(self):
        a, b, c = Equals('adid', 'AG'), Equals('account_class', 'LPCN'), IsBlank('staff_id')
        combined = conjoin(a, Always(), conjoin(b, c))
        assert combined == AllOf((a, b, c))
        assert (a & b) == AllOf((a, b))
        assert isinstance(conjoin(), Always)

    def test_fields(self):
        predicate = AllOf((Equals('adid', 'AG'), AnyOf((IsBlank('smer_segment'),))))
        assert predicate.fields() == frozenset({'adid', 'smer_segment'})
        assert Always().fields() == frozenset()


class TestSqlCompilation:
    """Predicates compile to bound-parameter SQL."""

    def test_values_are_bound_not_spliced(self):
        expr = build_predicate(FilterSpec(account_status="O'Brien", business_areas=frozenset({'6210'})))
        compiled = expr.to_sql(column).compile()
        assert "O'Brien" not in str(compiled)
        assert "O'Brien" in compiled.params.values()

    def test_always_compiles_to_true(self):
        assert str(Always().to_sql(column).compile()) in ('true', '1')
