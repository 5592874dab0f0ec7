"""日期工具测试"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from datetime import date, datetime
import pytest
from utils.date_utils import (
    parse_date,
    add_months,
    due_date_in_month,
    remaining_months,
    remaining_months_simple,
    remaining_days,
    loan_term_months,
    end_date_from_term,
)

TODAY = date(2026, 10, 19)


class TestParseDate:
    @pytest.mark.parametrize("value,expected", [
        ("2024-03-15", date(2024, 3, 15)),
        ("2024-03", date(2024, 3, 1)),
        (date(2024, 3, 15), date(2024, 3, 15)),
        (datetime(2024, 3, 15, 10, 30), date(2024, 3, 15)),
        ("2024-03-15T08:00:00", date(2024, 3, 15)),
    ])
    def test_valid(self, value, expected):
        assert parse_date(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", "2024-13-01", float("nan"), 20240315])
    def test_invalid_returns_none(self, value):
        assert parse_date(value) is None


class TestMonthArithmetic:
    def test_add_months_month_end(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2024, 3, 31), -1) == date(2024, 2, 29)

    def test_due_date_clamped(self):
        assert due_date_in_month(2023, 2, 31) == date(2023, 2, 28)
        assert due_date_in_month(2024, 4, 15) == date(2024, 4, 15)

    def test_loan_term_months(self):
        assert loan_term_months("2020-05-15", "2040-05-15") == 240

    def test_end_date_from_term(self):
        assert end_date_from_term("2024-03-10", 3) == date(2027, 3, 10)
        assert end_date_from_term("2024-03-10", 0) is None
        assert end_date_from_term(None, 3) is None


class TestRemainingMonths:
    """剩余期数：从最近一个已到的还款日算起"""

    def test_from_last_due_day(self):
        # 最近还款日 2026-10-15，到 2040-05-15 共 163 期
        assert remaining_months("2020-05-15", "2040-05-15", TODAY) == 163

    def test_due_day_not_reached_this_month(self):
        # 本月 25 日未到，最近还款日为 2026-09-25
        assert remaining_months("2020-05-25", "2040-05-25", TODAY) == 164

    def test_month_end_due_day(self):
        assert remaining_months("2024-01-31", "2025-01-31", date(2024, 2, 29)) == 11

    def test_end_day_before_due_day(self):
        assert remaining_months("2024-01-20", "2025-01-10", date(2024, 3, 25)) == 9

    def test_not_started(self):
        assert remaining_months("2026-12-01", "2027-12-01", TODAY) == 12

    def test_matured(self):
        assert remaining_months("2020-01-01", "2025-01-01", TODAY) == 0

    @pytest.mark.parametrize("start,end", [
        (None, "2030-01-01"),
        ("2020-01-01", None),
        ("bad", "2030-01-01"),
        ("2030-01-01", "2020-01-01"),
    ])
    def test_invalid_is_zero(self, start, end):
        assert remaining_months(start, end, TODAY) == 0

    def test_simple(self):
        assert remaining_months_simple("2027-01-05", TODAY) == 3
        assert remaining_months_simple("2025-01-05", TODAY) == 0
        assert remaining_months_simple(None, TODAY) == 0


class TestRemainingDays:
    def test_future(self):
        assert remaining_days("2026-10-29", TODAY) == 10

    def test_past_clamped(self):
        assert remaining_days("2026-10-01", TODAY) == 0

    def test_invalid(self):
        assert remaining_days("not a date", TODAY) == 0
