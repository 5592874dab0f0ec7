"""按实际天数计息（ACT/360、ACT/365），用于先息后本"""
import logging
import math
from datetime import date
from typing import Optional

import pandas as pd

from config.constants import INTEREST_FIRST_SCHEDULE_COLUMNS, DayBasis
from config.settings import DEFAULT_DAY_BASIS
from core.calculator import normalize_rate
from utils.date_utils import add_months, due_date_in_month, parse_date

logger = logging.getLogger(__name__)


def actual_days(from_date, to_date) -> int:
    """两个日期之间的实际天数，无效日期返回 0"""
    start = parse_date(from_date)
    end = parse_date(to_date)
    if start is None or end is None:
        return 0
    return max(math.ceil((end - start).days), 0)


def daily_rate(annual_rate: float, day_basis: int = DEFAULT_DAY_BASIS) -> float:
    """日利率 = 年利率 / 计息基础天数"""
    return annual_rate / int(DayBasis(day_basis))


def interest_by_actual_days(
    principal: float,
    annual_rate: float,
    days: int,
    day_basis: int = DEFAULT_DAY_BASIS,
) -> float:
    """利息 = 本金 × 日利率 × 天数，任一输入 <=0 返回 0"""
    if principal is None or annual_rate is None or days is None:
        return 0.0
    if principal <= 0 or annual_rate <= 0 or days <= 0:
        return 0.0
    return principal * daily_rate(annual_rate, day_basis) * days


def interest_first_payment(
    principal_yuan: float,
    annual_rate,
    from_date,
    to_date,
    day_basis: int = DEFAULT_DAY_BASIS,
) -> float:
    """先息后本某一期利息（元）"""
    return interest_by_actual_days(
        principal_yuan, normalize_rate(annual_rate), actual_days(from_date, to_date), day_basis,
    )


def _next_due(period_start: date, repayment_day: int) -> date:
    month = add_months(date(period_start.year, period_start.month, 1), 1)
    due = due_date_in_month(month.year, month.month, repayment_day)
    if due <= period_start:
        month = add_months(month, 1)
        due = due_date_in_month(month.year, month.month, repayment_day)
    return due


def generate_interest_first_schedule(
    principal_yuan: float,
    annual_rate,
    start_date,
    end_date,
    repayment_day: Optional[int] = None,
    day_basis: int = DEFAULT_DAY_BASIS,
) -> pd.DataFrame:
    """先息后本还款计划

    每期从上一还款日计息到下一还款日（还款日默认取开始日期的日，月末对齐），
    最后一期截止到 end_date 并归还全部本金。日期无效或 end <= start 时返回空表。
    """
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None or end <= start or not principal_yuan or principal_yuan <= 0:
        logger.debug("先息后本计划输入不完整: start=%s end=%s", start_date, end_date)
        return pd.DataFrame(columns=INTEREST_FIRST_SCHEDULE_COLUMNS)

    day = repayment_day or start.day
    records = []
    period_start = start
    period = 1
    while period_start < end:
        due = _next_due(period_start, day)
        is_last = due >= end
        if is_last:
            due = end
        days = actual_days(period_start, due)
        interest = interest_first_payment(principal_yuan, annual_rate, period_start, due, day_basis)
        principal = principal_yuan if is_last else 0.0
        records.append({
            "period": period,
            "from_date": period_start.isoformat(),
            "to_date": due.isoformat(),
            "actual_days": days,
            "interest": round(interest, 2),
            "principal": round(principal, 2),
            "payment": round(interest + principal, 2),
            "is_last": is_last,
        })
        if is_last:
            break
        period_start = due
        period += 1

    return pd.DataFrame(records, columns=INTEREST_FIRST_SCHEDULE_COLUMNS)


def next_period_interest(
    principal_yuan: float,
    annual_rate,
    start_date,
    end_date,
    today: Optional[date] = None,
    repayment_day: Optional[int] = None,
    day_basis: int = DEFAULT_DAY_BASIS,
) -> Optional[float]:
    """包含 today 的那一期（第一期 to_date >= today）的利息，无可用计划返回 None"""
    today = today or date.today()
    schedule = generate_interest_first_schedule(
        principal_yuan, annual_rate, start_date, end_date, repayment_day, day_basis,
    )
    if schedule.empty:
        return None
    upcoming = schedule[schedule["to_date"] >= today.isoformat()]
    if upcoming.empty:
        return None
    return float(upcoming.iloc[0]["interest"])


def pending_interest_first_interest(
    principal_yuan: float,
    annual_rate,
    start_date,
    end_date,
    today: Optional[date] = None,
    repayment_day: Optional[int] = None,
    day_basis: int = DEFAULT_DAY_BASIS,
) -> float:
    """尚未到期各期（to_date >= today）的利息合计"""
    today = today or date.today()
    schedule = generate_interest_first_schedule(
        principal_yuan, annual_rate, start_date, end_date, repayment_day, day_basis,
    )
    if schedule.empty:
        return 0.0
    upcoming = schedule[schedule["to_date"] >= today.isoformat()]
    return float(upcoming["interest"].sum())
