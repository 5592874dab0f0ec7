"""提前还款测算：减少月供 / 缩短年限 / 自定义月供

只针对等额本息。剩余总利息统一用 月供 × 期数 - 本金 计算；
节省利息 = 原剩余利息 - 新剩余利息 - 手续费。输入无效时返回 None（不可测算）。
"""
import logging
import math
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional

import pandas as pd

from config.constants import PrepaymentMethod
from config.settings import AMOUNT_PRECISION
from core.calculator import calc_equal_payment, normalize_rate, wan_to_yuan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrepaymentEffect:
    mode: str
    prepay_amount_yuan: float
    new_principal_yuan: float
    original_monthly_payment_yuan: float
    new_monthly_payment_yuan: float
    original_term_months: int
    new_term_months: int
    original_interest_yuan: float
    new_interest_yuan: float
    fee_yuan: float
    interest_saved_yuan: float

    @property
    def months_saved(self) -> int:
        return self.original_term_months - self.new_term_months


def _finite(*values) -> bool:
    return all(v is not None and math.isfinite(v) for v in values)


def _check_inputs(principal, annual_rate, remaining_months, prepay_amount, fee_pct) -> bool:
    if not _finite(principal, annual_rate, remaining_months, prepay_amount, fee_pct):
        return False
    if principal <= 0 or remaining_months <= 0 or annual_rate < 0 or fee_pct < 0:
        return False
    # 提前还款额必须小于剩余本金，全部结清不属于测算范围
    return 0 < prepay_amount < principal


def solve_term(principal: float, annual_rate: float, monthly_payment: float) -> Optional[float]:
    """月供固定时还清本金所需期数 n = -ln(1 - P·r/M) / ln(1+r)，月供不足以覆盖利息时返回 None"""
    if not _finite(principal, monthly_payment) or principal <= 0 or monthly_payment <= 0:
        return None
    r = normalize_rate(annual_rate) / 12
    if r == 0:
        return principal / monthly_payment
    ratio = principal * r / monthly_payment
    if ratio >= 1:
        return None
    return -math.log(1 - ratio) / math.log(1 + r)


def _effect(mode, principal, prepay_amount, fee_pct, original_payment, original_term,
            new_payment, new_term, new_term_months) -> Optional[PrepaymentEffect]:
    new_principal = principal - prepay_amount
    original_interest = max(original_payment * original_term - principal, 0.0)
    new_interest = max(new_payment * new_term - new_principal, 0.0)
    fee = prepay_amount * fee_pct / 100
    saved = original_interest - new_interest - fee
    if not _finite(original_interest, new_interest, saved):
        return None
    return PrepaymentEffect(
        mode=mode,
        prepay_amount_yuan=round(prepay_amount, AMOUNT_PRECISION),
        new_principal_yuan=round(new_principal, AMOUNT_PRECISION),
        original_monthly_payment_yuan=round(original_payment, AMOUNT_PRECISION),
        new_monthly_payment_yuan=round(new_payment, AMOUNT_PRECISION),
        original_term_months=int(original_term),
        new_term_months=new_term_months,
        original_interest_yuan=round(original_interest, AMOUNT_PRECISION),
        new_interest_yuan=round(new_interest, AMOUNT_PRECISION),
        fee_yuan=round(fee, AMOUNT_PRECISION),
        interest_saved_yuan=round(saved, AMOUNT_PRECISION),
    )


def calc_reduce_payment(
    principal: float,
    annual_rate: float,
    remaining_months: int,
    prepay_amount: float,
    fee_pct: float = 0.0,
) -> Optional[PrepaymentEffect]:
    """减少月供：期数不变，用新本金重新计算月供"""
    if not _check_inputs(principal, annual_rate, remaining_months, prepay_amount, fee_pct):
        return None
    original_payment = calc_equal_payment(principal, annual_rate, remaining_months)
    new_payment = calc_equal_payment(principal - prepay_amount, annual_rate, remaining_months)
    return _effect(
        PrepaymentMethod.REDUCE_PAYMENT.value, principal, prepay_amount, fee_pct,
        original_payment, remaining_months, new_payment, remaining_months, remaining_months,
    )


def calc_custom_payment(
    principal: float,
    annual_rate: float,
    remaining_months: int,
    prepay_amount: float,
    new_monthly_payment: float,
    fee_pct: float = 0.0,
    monthly_payment: Optional[float] = None,
) -> Optional[PrepaymentEffect]:
    """自定义月供：按给定月供反推新的还款期数"""
    if not _check_inputs(principal, annual_rate, remaining_months, prepay_amount, fee_pct):
        return None
    original_payment = monthly_payment or calc_equal_payment(principal, annual_rate, remaining_months)
    new_term = solve_term(principal - prepay_amount, annual_rate, new_monthly_payment)
    if new_term is None:
        logger.debug("月供 %s 不足以覆盖利息，无法测算", new_monthly_payment)
        return None
    return _effect(
        PrepaymentMethod.CUSTOM_PAYMENT.value, principal, prepay_amount, fee_pct,
        original_payment, remaining_months, new_monthly_payment, new_term, math.ceil(new_term),
    )


def calc_shorten_term(
    principal: float,
    annual_rate: float,
    remaining_months: int,
    prepay_amount: float,
    fee_pct: float = 0.0,
    monthly_payment: Optional[float] = None,
) -> Optional[PrepaymentEffect]:
    """缩短年限：月供不变，反推新的还款期数"""
    if not _check_inputs(principal, annual_rate, remaining_months, prepay_amount, fee_pct):
        return None
    payment = monthly_payment or calc_equal_payment(principal, annual_rate, remaining_months)
    effect = calc_custom_payment(
        principal, annual_rate, remaining_months, prepay_amount, payment, fee_pct, payment,
    )
    if effect is None:
        return None
    return replace(effect, mode=PrepaymentMethod.SHORTEN_TERM.value)


def calc_prepayment_effect(
    mode,
    principal: float,
    annual_rate: float,
    remaining_months: int,
    prepay_amount: float,
    fee_pct: float = 0.0,
    monthly_payment: Optional[float] = None,
    custom_payment: Optional[float] = None,
) -> Optional[PrepaymentEffect]:
    """按提前还款方式分派"""
    try:
        mode = PrepaymentMethod(mode)
    except ValueError:
        raise ValueError(f"无效的提前还款方式: {mode}") from None

    if mode == PrepaymentMethod.REDUCE_PAYMENT:
        return calc_reduce_payment(principal, annual_rate, remaining_months, prepay_amount, fee_pct)
    if mode == PrepaymentMethod.SHORTEN_TERM:
        return calc_shorten_term(
            principal, annual_rate, remaining_months, prepay_amount, fee_pct, monthly_payment,
        )
    if custom_payment is None:
        return None
    return calc_custom_payment(
        principal, annual_rate, remaining_months, prepay_amount, custom_payment, fee_pct, monthly_payment,
    )


def compare_prepayment_modes(
    principal: float,
    annual_rate: float,
    remaining_months: int,
    prepay_amount: float,
    fee_pct: float = 0.0,
    monthly_payment: Optional[float] = None,
    custom_payment: Optional[float] = None,
) -> pd.DataFrame:
    """各种提前还款方式对比表"""
    rows = []
    for mode in PrepaymentMethod:
        if mode == PrepaymentMethod.CUSTOM_PAYMENT and custom_payment is None:
            continue
        effect = calc_prepayment_effect(
            mode, principal, annual_rate, remaining_months, prepay_amount,
            fee_pct, monthly_payment, custom_payment,
        )
        rows.append({
            "方式": mode.label,
            "可测算": effect is not None,
            "新月供": effect.new_monthly_payment_yuan if effect else None,
            "新期数": effect.new_term_months if effect else None,
            "缩短期数": effect.months_saved if effect else None,
            "手续费": effect.fee_yuan if effect else None,
            "节省利息": effect.interest_saved_yuan if effect else None,
        })
    return pd.DataFrame(rows)


def analyze_record_prepayment(
    aggregator,
    record,
    prepay_amount_wan: float,
    fee_pct: float = 0.0,
    mode=PrepaymentMethod.REDUCE_PAYMENT,
    custom_payment: Optional[float] = None,
    today: Optional[date] = None,
) -> Optional[PrepaymentEffect]:
    """对一条完整的等额本息记录做提前还款测算"""
    today = today or date.today()
    terms = aggregator.amortization_terms(record, today)
    if terms is None:
        logger.debug("记录 %s 不是完整的等额本息贷款，无法测算提前还款", getattr(record, "id", "?"))
        return None
    return calc_prepayment_effect(
        mode,
        terms.principal_yuan,
        terms.annual_rate,
        terms.remaining_months,
        wan_to_yuan(prepay_amount_wan),
        fee_pct,
        terms.monthly_payment_yuan,
        custom_payment,
    )
