"""还款日历测试"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dataclasses import replace
from datetime import date
import pytest

from core.schedule_builder import (
    build_events,
    current_month_remaining,
    date_repayments,
    default_due_day,
    due_day_from,
    events_to_frame,
    monthly_calendar,
    next_month_total,
    occurrence_in_month,
)
from data_manager.schema import (
    ConfirmedDebt, ConsumerLoanRecord, CreditCardRecord, DebtPortfolioSummary, RepaymentEvent,
)


def _flat_debt(debt_id, debt_type, payment, months=12, name=""):
    return ConfirmedDebt(
        debt_id=debt_id, debt_type=debt_type, name=name,
        summary=DebtPortfolioSummary(count=1, amount_wan=10, monthly_payment_yuan=payment, remaining_months=months),
    )


def _debt_with_records(debt_id, debt_type, *records):
    return ConfirmedDebt(
        debt_id=debt_id, debt_type=debt_type, name="",
        summary=DebtPortfolioSummary(count=len(records)), records=tuple(records),
    )


class TestDueDay:
    def test_defaults(self):
        assert default_due_day("mortgage") == 20
        assert default_due_day("creditCard") == 5

    def test_from_first_parsable_date(self):
        assert due_day_from("consumerLoan", None, "bad", "2024-03-08") == 8
        assert due_day_from("consumerLoan", None) == 15


class TestBuildEvents:
    """还款事件生成"""

    def test_flat_summary_uses_default_due_day(self):
        events = build_events([_flat_debt("d1", "creditCard", 5000, months=1)], today=date(2026, 10, 1))
        assert len(events) == 1
        assert events[0].due_day == 5
        assert events[0].amount_yuan == 5000
        assert events[0].name == "信用卡"

    def test_flat_summary_without_payment_skipped(self):
        assert build_events([_flat_debt("d1", "consumerLoan", 0)]) == []
        assert build_events([_flat_debt("d2", "consumerLoan", 1000, months=0)]) == []

    def test_flat_mortgage_next_month(self):
        """房贷默认 20 日还款，9-25 看下月（10 月）"""
        today = date(2026, 9, 25)
        events = build_events([_flat_debt("d1", "mortgage", 7000, months=100, name="自住房")], today=today)
        assert events[0].due_day == 20
        assert next_month_total(events, today) == 7000
        assert current_month_remaining(events, today) == 0

    def test_mortgage_records_take_precedence(self, commercial_mortgage, today):
        debts = [_flat_debt("d1", "mortgage", 9999, months=100)]
        events = build_events(debts, [commercial_mortgage], today)
        assert len(events) == 1
        assert events[0].event_id == "m1"
        assert events[0].due_day == 15
        assert events[0].amount_yuan != 9999

    def test_confirmed_mortgage_with_records(self, commercial_mortgage, today):
        events = build_events([_debt_with_records("d1", "mortgage", commercial_mortgage)], today=today)
        assert [e.event_id for e in events] == ["m1"]

    def test_record_repayment_day(self, today):
        card = CreditCardRecord(id="cc1", name="招行", current_amount_yuan=5000, repayment_day=10)
        events = build_events([_debt_with_records("d1", "creditCard", card)], today=today)
        assert events[0].due_day == 10
        assert events[0].amount_yuan == 5000

    def test_incomplete_record_skipped(self, today):
        draft = ConsumerLoanRecord(id="c9", name="草稿")
        assert build_events([_debt_with_records("d1", "consumerLoan", draft)], today=today) == []


class TestInterestFirstEvents:
    """先息后本：每月付息 + 到期还本"""

    def test_events(self, interest_first_loan, today):
        events = build_events([_debt_with_records("d1", "consumerLoan", interest_first_loan)], today=today)
        assert len(events) == 2
        recurring, final = events
        assert recurring.amount_yuan == 310
        assert recurring.due_day == 15
        assert recurring.recurring_end_date == date(2026, 12, 15)
        assert final.event_id == "c1_final"
        assert final.name == "装修贷(本息)"
        assert final.one_time_date == date(2027, 1, 15)
        assert final.amount_yuan == 100310

    def test_next_month_interest_only(self, interest_first_loan, today):
        events = build_events([_debt_with_records("d1", "consumerLoan", interest_first_loan)], today=today)
        assert next_month_total(events, today) == 310

    def test_next_month_is_maturity(self, interest_first_loan):
        today = date(2026, 12, 20)
        events = build_events([_debt_with_records("d1", "consumerLoan", interest_first_loan)], today=today)
        assert next_month_total(events, today) == 100310

    def test_start_day_after_end_day(self, interest_first_loan):
        """15 日付息、10 日到期：12-15 仍要付息，到期只付 26 天利息"""
        record = replace(interest_first_loan, end_date="2027-01-10")
        today = date(2026, 11, 20)
        events = build_events([_debt_with_records("d1", "consumerLoan", record)], today=today)
        recurring, final = events
        assert recurring.amount_yuan == 300
        assert recurring.recurring_end_date == date(2026, 12, 15)
        assert final.amount_yuan == 100260
        assert list(monthly_calendar(events, 2026, 12, today)) == ["2026-12-15"]
        assert next_month_total(events, today) == 300
        assert next_month_total(events, date(2026, 12, 20)) == 100260

    def test_only_final_period_left(self, interest_first_loan):
        record = replace(interest_first_loan, end_date="2027-01-10")
        today = date(2026, 12, 20)
        events = build_events([_debt_with_records("d1", "consumerLoan", record)], today=today)
        assert [e.event_id for e in events] == ["c1_final"]
        assert events[0].amount_yuan == 100260


class TestLumpSumEvents:
    def test_single_event_at_maturity(self, today):
        record = ConsumerLoanRecord(
            id="c2", name="过桥", loan_amount_wan=10, start_date="2026-01-01", end_date="2027-01-01",
            annual_rate_pct=3.65, repayment_method="lump-sum",
        )
        events = build_events([_debt_with_records("d1", "consumerLoan", record)], today=today)
        assert len(events) == 1
        assert events[0].one_time_date == date(2027, 1, 1)
        assert events[0].amount_yuan == 103650
        assert next_month_total(events, today) == 0
        assert next_month_total(events, date(2026, 12, 5)) == 103650


class TestOccurrences:
    def test_clamped_to_month_end(self):
        event = RepaymentEvent("creditCard", "卡", 100, 31, "e1")
        assert occurrence_in_month(event, 2027, 2) == date(2027, 2, 28)
        assert occurrence_in_month(event, 2028, 2) == date(2028, 2, 29)

    def test_recurring_bounds(self):
        event = RepaymentEvent("consumerLoan", "贷", 100, 15, "e1",
                               recurring_start_date=date(2026, 10, 19), recurring_end_date=date(2026, 12, 15))
        assert occurrence_in_month(event, 2026, 10) is None
        assert occurrence_in_month(event, 2026, 11) == date(2026, 11, 15)
        assert occurrence_in_month(event, 2026, 12) == date(2026, 12, 15)
        assert occurrence_in_month(event, 2027, 1) is None

    def test_one_time(self):
        event = RepaymentEvent("privateLoan", "借", 100, 1, "e1", one_time_date=date(2027, 3, 1))
        assert occurrence_in_month(event, 2027, 3) == date(2027, 3, 1)
        assert occurrence_in_month(event, 2027, 4) is None

    def test_calendar_and_frame(self, today):
        events = [
            RepaymentEvent("mortgage", "房", 7000, 20, "e1"),
            RepaymentEvent("creditCard", "卡", 500, 5, "e2"),
            RepaymentEvent("consumerLoan", "贷", 300, 25, "e3"),
        ]
        cal = monthly_calendar(events, 2026, 10, today)
        assert list(cal) == ["2026-10-20", "2026-10-25"]
        assert current_month_remaining(events, today) == 7300
        assert [e.event_id for e in date_repayments(events, "2026-10-05")] == ["e2"]
        assert date_repayments(events, None) == []

        frame = events_to_frame(events, 2026, 10)
        assert list(frame["date"]) == ["2026-10-05", "2026-10-20", "2026-10-25"]
        assert frame["amount_yuan"].sum() == pytest.approx(7800)
