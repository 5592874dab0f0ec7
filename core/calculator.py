"""核心计算：等额本息、等额本金、先息后本、一次性还本付息、IRR

所有公式接收小数利率（0.06 表示 6%），百分比形式（>=1）会先经 normalize_rate 换算。
公式本身不做四舍五入，金额汇总时再 round。输入不完整或非有限时返回 0，不抛异常。
"""
import math
from datetime import date
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import optimize

from config.constants import AMORTIZATION_SCHEDULE_COLUMNS, WAN, RepaymentMethod
from utils.date_utils import add_months, due_date_in_month


def to_float(value) -> Optional[float]:
    """数值转换：None / 空字符串 / NaN / 非数字一律返回 None"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def _valid(*values) -> bool:
    return all(v is not None and math.isfinite(v) for v in values)


def normalize_rate(rate) -> float:
    """利率统一为小数：>=1 视为百分比（3.5 -> 0.035）"""
    value = to_float(rate)
    if value is None or value < 0:
        return 0.0
    return value / 100 if value >= 1 else value


def wan_to_yuan(amount_wan) -> float:
    value = to_float(amount_wan)
    return value * WAN if value is not None else 0.0


def yuan_to_wan(amount_yuan) -> float:
    value = to_float(amount_yuan)
    return value / WAN if value is not None else 0.0


def private_loan_rate_pct(fen, li) -> float:
    """民间借贷 分/厘 转年化百分比：1 分 = 1%，1 厘 = 0.1%"""
    return (to_float(fen) or 0.0) + (to_float(li) or 0.0) / 10


def floating_rate_pct(lpr_pct, adjustment_bp) -> float:
    """LPR + 基点 -> 年化百分比"""
    return (to_float(lpr_pct) or 0.0) + (to_float(adjustment_bp) or 0.0) / 100


def calc_equal_payment(principal: float, annual_rate: float, term_months: int) -> float:
    """等额本息月供 M = P·r·(1+r)^n / ((1+r)^n - 1)，r 为月利率"""
    rate = normalize_rate(annual_rate)
    if not _valid(principal, term_months) or principal <= 0 or term_months <= 0:
        return 0.0
    if rate == 0:
        return principal / term_months
    r = rate / 12
    factor = (1 + r) ** term_months
    return principal * r * factor / (factor - 1)


def calc_equal_principal_first_period(principal: float, annual_rate: float, term_months: int) -> float:
    """等额本金首期月供 = P/n + P·r"""
    rate = normalize_rate(annual_rate)
    if not _valid(principal, term_months) or principal <= 0 or term_months <= 0:
        return 0.0
    return principal / term_months + principal * rate / 12


def calc_equal_principal_current(remaining_principal: float, annual_rate: float, remaining_months: int) -> float:
    """等额本金当期月供：用剩余本金 / 剩余期数代入首期公式"""
    return calc_equal_principal_first_period(remaining_principal, annual_rate, remaining_months)


def calc_interest_first(principal: float, annual_rate: float) -> float:
    """先息后本月息 = P·rate/12（按月近似，实际天数见 day_count）"""
    rate = normalize_rate(annual_rate)
    if not _valid(principal) or principal <= 0:
        return 0.0
    return principal * rate / 12


def calc_lump_sum_interest(principal: float, annual_rate: float, days: int) -> float:
    """一次性还本付息利息 = P·rate·days/365"""
    rate = normalize_rate(annual_rate)
    if not _valid(principal, days) or principal <= 0 or days <= 0:
        return 0.0
    return principal * rate * days / 365


def calc_total_interest(principal: float, annual_rate: float, term_months: int, method) -> float:
    """摊还类贷款剩余总利息"""
    if not _valid(principal, term_months) or principal <= 0 or term_months <= 0:
        return 0.0
    method = RepaymentMethod(method)
    if method == RepaymentMethod.EQUAL_PAYMENT:
        monthly = calc_equal_payment(principal, annual_rate, term_months)
        return max(monthly * term_months - principal, 0.0)
    if method == RepaymentMethod.EQUAL_PRINCIPAL:
        # Σ (P - i·P/n)·r = P·r·(n+1)/2
        return principal * normalize_rate(annual_rate) / 12 * (term_months + 1) / 2
    if method == RepaymentMethod.INTEREST_FIRST:
        return calc_interest_first(principal, annual_rate) * term_months
    return 0.0


def calc_monthly_payment(principal: float, annual_rate: float, term_months: int, method) -> float:
    """按还款方式分派月供；一次性还本付息没有月供"""
    method = RepaymentMethod(method)
    if method == RepaymentMethod.EQUAL_PAYMENT:
        return calc_equal_payment(principal, annual_rate, term_months)
    if method == RepaymentMethod.EQUAL_PRINCIPAL:
        return calc_equal_principal_current(principal, annual_rate, term_months)
    if method == RepaymentMethod.INTEREST_FIRST:
        return calc_interest_first(principal, annual_rate)
    return 0.0


def calc_remaining_interest(monthly_payment: float, remaining_months: int, principal: float) -> float:
    """剩余利息恒等式：月供 × 期数 - 本金，不足 0 取 0"""
    if not _valid(monthly_payment, remaining_months, principal):
        return 0.0
    return max(monthly_payment * remaining_months - principal, 0.0)


def generate_schedule(
    principal: float,
    annual_rate: float,
    term_months: int,
    repayment_method,
    start_date: date,
    repayment_day: Optional[int] = None,
) -> pd.DataFrame:
    """生成摊还计划表（仅内存，不落盘）"""
    method = RepaymentMethod(repayment_method)
    if not method.is_amortizing:
        raise ValueError(f"还款计划表仅支持等额本息/等额本金: {method.value}")
    if principal <= 0 or term_months <= 0:
        return pd.DataFrame(columns=AMORTIZATION_SCHEDULE_COLUMNS)

    r = normalize_rate(annual_rate) / 12
    day = repayment_day or start_date.day
    monthly_payment = calc_equal_payment(principal, annual_rate, term_months)
    base_principal = principal / term_months

    records = []
    remaining = principal
    cum_principal = 0.0
    cum_interest = 0.0
    for i in range(term_months):
        due_month = add_months(date(start_date.year, start_date.month, 1), i + 1)
        due = due_date_in_month(due_month.year, due_month.month, day)

        interest = remaining * r
        if method == RepaymentMethod.EQUAL_PAYMENT:
            prin = monthly_payment - interest
        else:
            prin = base_principal

        # 最后一期尾差调整
        if i == term_months - 1:
            prin = remaining
        payment = prin + interest

        remaining -= prin
        if remaining < 0.005:
            remaining = 0.0
        cum_principal += prin
        cum_interest += interest

        records.append({
            "period": i + 1,
            "due_date": due.strftime("%Y-%m-%d"),
            "monthly_payment": round(payment, 2),
            "principal": round(prin, 2),
            "interest": round(interest, 2),
            "remaining_principal": round(remaining, 2),
            "cumulative_principal": round(cum_principal, 2),
            "cumulative_interest": round(cum_interest, 2),
        })

    return pd.DataFrame(records, columns=AMORTIZATION_SCHEDULE_COLUMNS)


def calc_irr(principal: float, payments: Iterable[float]) -> float:
    """用 IRR 法反推真实年化率（%），无解返回 0"""
    cash_flows = np.array([-principal] + [float(p) for p in payments])
    if principal <= 0 or len(cash_flows) < 2:
        return 0.0
    periods = np.arange(len(cash_flows))

    def npv(rate):
        return float(np.sum(cash_flows / (1 + rate) ** periods))

    try:
        monthly_irr = optimize.brentq(npv, -0.5, 1.0)
    except (ValueError, RuntimeError):
        return 0.0
    annual_irr = (1 + monthly_irr) ** 12 - 1
    return round(annual_irr * 100, 4)


def calc_installment_irr(principal: float, installment: float, count: int) -> float:
    """车贷分期：每期固定金额，反推年化率"""
    if count <= 0 or installment <= 0:
        return 0.0
    return calc_irr(principal, [installment] * count)


def weighted_rate_pct(parts: Sequence[Tuple[float, float]]) -> float:
    """按金额加权的平均利率，parts 为 [(金额, 年化%)]"""
    total = sum(amount for amount, _ in parts if amount > 0)
    if total <= 0:
        return 0.0
    return sum(amount * rate for amount, rate in parts if amount > 0) / total
