"""提前还款测试"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import math
import pytest
from core.calculator import calc_equal_payment
from core.credit_loans import ConsumerLoanAggregator
from core.mortgage import MortgageAggregator
from core.prepayment import (
    analyze_record_prepayment,
    calc_custom_payment,
    calc_prepayment_effect,
    calc_reduce_payment,
    calc_shorten_term,
    compare_prepayment_modes,
    solve_term,
)
from config.constants import PrepaymentMethod

PRINCIPAL = 800000
RATE = 3.45
MONTHS = 300
PREPAY = 200000


class TestSolveTerm:
    def test_inverse_of_annuity(self):
        payment = calc_equal_payment(PRINCIPAL, RATE, MONTHS)
        assert solve_term(PRINCIPAL, RATE, payment) == pytest.approx(MONTHS)

    def test_zero_rate(self):
        assert solve_term(120000, 0, 10000) == pytest.approx(12)

    def test_payment_below_interest(self):
        # 月息 2300，月供 2000 永远还不清
        assert solve_term(PRINCIPAL, RATE, 2000) is None


class TestReducePayment:
    def test_payment_reduced(self):
        effect = calc_reduce_payment(PRINCIPAL, RATE, MONTHS, PREPAY)
        assert effect.mode == "reduce_payment"
        assert effect.new_term_months == MONTHS  # 期数不变
        assert effect.months_saved == 0
        assert effect.new_monthly_payment_yuan == pytest.approx(
            calc_equal_payment(PRINCIPAL - PREPAY, RATE, MONTHS), abs=0.01)
        assert effect.new_monthly_payment_yuan < effect.original_monthly_payment_yuan
        assert effect.interest_saved_yuan > 0

    def test_fee_reduces_savings(self):
        no_fee = calc_reduce_payment(PRINCIPAL, RATE, MONTHS, PREPAY)
        with_fee = calc_reduce_payment(PRINCIPAL, RATE, MONTHS, PREPAY, fee_pct=1)
        assert with_fee.fee_yuan == 2000
        assert with_fee.interest_saved_yuan == pytest.approx(no_fee.interest_saved_yuan - 2000, abs=0.01)


class TestShortenTerm:
    def test_term_reduced(self):
        effect = calc_shorten_term(PRINCIPAL, RATE, MONTHS, PREPAY)
        # 月供不变，还了 20 万后期数缩短
        assert effect.mode == "shorten_term"
        assert effect.new_monthly_payment_yuan == effect.original_monthly_payment_yuan
        assert 0 < effect.new_term_months < MONTHS
        assert effect.new_term_months == math.ceil(
            solve_term(PRINCIPAL - PREPAY, RATE, calc_equal_payment(PRINCIPAL, RATE, MONTHS)))

    def test_saves_more_than_reduce_payment(self):
        shorten = calc_shorten_term(PRINCIPAL, RATE, MONTHS, PREPAY)
        reduce = calc_reduce_payment(PRINCIPAL, RATE, MONTHS, PREPAY)
        assert shorten.interest_saved_yuan > reduce.interest_saved_yuan

    def test_uses_given_monthly_payment(self):
        effect = calc_shorten_term(PRINCIPAL, RATE, MONTHS, PREPAY, monthly_payment=5000)
        assert effect.original_monthly_payment_yuan == 5000


class TestCustomPayment:
    def test_custom_payment(self):
        effect = calc_custom_payment(PRINCIPAL, RATE, MONTHS, PREPAY, 5000)
        assert effect.mode == "custom_payment"
        assert effect.new_monthly_payment_yuan == 5000
        assert effect.new_term_months < MONTHS

    def test_payment_too_low(self):
        # 剩余 60 万月息 1725，月供 1000 不可测算
        assert calc_custom_payment(PRINCIPAL, RATE, MONTHS, PREPAY, 1000) is None


class TestInvalidInputs:
    @pytest.mark.parametrize("prepay", [0, -100, PRINCIPAL, PRINCIPAL + 1])
    def test_prepay_out_of_range(self, prepay):
        assert calc_reduce_payment(PRINCIPAL, RATE, MONTHS, prepay) is None
        assert calc_shorten_term(PRINCIPAL, RATE, MONTHS, prepay) is None

    def test_non_finite(self):
        assert calc_reduce_payment(float("nan"), RATE, MONTHS, PREPAY) is None
        assert calc_reduce_payment(PRINCIPAL, RATE, 0, PREPAY) is None
        assert calc_reduce_payment(PRINCIPAL, RATE, MONTHS, PREPAY, fee_pct=-1) is None


class TestDispatch:
    def test_modes(self):
        for mode in (PrepaymentMethod.REDUCE_PAYMENT, "shorten_term"):
            assert calc_prepayment_effect(mode, PRINCIPAL, RATE, MONTHS, PREPAY) is not None

    def test_custom_requires_payment(self):
        assert calc_prepayment_effect("custom_payment", PRINCIPAL, RATE, MONTHS, PREPAY) is None
        assert calc_prepayment_effect(
            "custom_payment", PRINCIPAL, RATE, MONTHS, PREPAY, custom_payment=5000) is not None

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            calc_prepayment_effect("pay_all", PRINCIPAL, RATE, MONTHS, PREPAY)

    def test_compare(self):
        df = compare_prepayment_modes(PRINCIPAL, RATE, MONTHS, PREPAY)
        assert list(df["方式"]) == ["减少月供", "缩短年限"]
        assert df["可测算"].all()
        df = compare_prepayment_modes(PRINCIPAL, RATE, MONTHS, PREPAY, custom_payment=1000)
        assert len(df) == 3
        assert not df.iloc[2]["可测算"]


class TestRecordPrepayment:
    """从已录入的贷款记录测算"""

    def test_mortgage_record(self, commercial_mortgage, today):
        effect = analyze_record_prepayment(MortgageAggregator(), commercial_mortgage, 10, today=today)
        assert effect.prepay_amount_yuan == 100000
        assert effect.new_principal_yuan == 900000
        assert effect.original_term_months == 163

    def test_shorten_from_record(self, commercial_mortgage, today):
        effect = analyze_record_prepayment(
            MortgageAggregator(), commercial_mortgage, 10, mode="shorten_term", today=today)
        assert effect.new_term_months < 163

    def test_interest_first_not_supported(self, interest_first_loan, today):
        assert analyze_record_prepayment(ConsumerLoanAggregator(), interest_first_loan, 1, today=today) is None
