"""确认债务与组合汇总"""
import logging
from datetime import date, datetime
from typing import Dict, Iterable, Optional, Sequence

import pandas as pd

from config.constants import DebtType
from config.settings import AMOUNT_PRECISION, DEFAULT_LPR_5Y, WAN_PRECISION
from core.aggregator import get_aggregator
from core.calculator import calc_remaining_interest, wan_to_yuan, yuan_to_wan
from data_manager.schema import ConfirmedDebt, DebtPortfolioSummary
from utils.id_generator import generate_debt_id

logger = logging.getLogger(__name__)


def confirm_debt(
    debt_type,
    records: Sequence,
    name: Optional[str] = None,
    debt_id: Optional[str] = None,
    today: Optional[date] = None,
    lpr_pct: float = DEFAULT_LPR_5Y,
) -> ConfirmedDebt:
    """把一组记录汇总为已确认债务；至少要有一条完整记录"""
    today = today or date.today()
    debt_type = DebtType(debt_type)
    aggregator = get_aggregator(debt_type, lpr_pct=lpr_pct)
    summary = aggregator.aggregate(records, today)
    if summary.count == 0:
        raise ValueError(f"{debt_type.label}没有完整的记录，无法确认")
    logger.info("确认%s %d 条，剩余本金 %.4f 万", debt_type.label, summary.count, summary.amount_wan)
    return ConfirmedDebt(
        debt_id=debt_id or generate_debt_id(),
        debt_type=debt_type.value,
        name=name or debt_type.label,
        summary=summary,
        records=tuple(records),
        confirmed_at=datetime.now().isoformat(timespec="seconds"),
    )


def reaggregate(
    debt: ConfirmedDebt,
    today: Optional[date] = None,
    lpr_pct: float = DEFAULT_LPR_5Y,
) -> DebtPortfolioSummary:
    """用保存的原始记录重新汇总（与保存时同一天应得到相同结果）"""
    if not debt.records:
        return debt.summary
    return get_aggregator(debt.debt_type, lpr_pct=lpr_pct).aggregate(debt.records, today)


def remaining_interest_wan(summary: DebtPortfolioSummary) -> float:
    """剩余利息；汇总里没有时按 月供 × 期数 - 本金 估算"""
    if summary.remaining_interest_wan:
        return summary.remaining_interest_wan
    estimate = calc_remaining_interest(
        summary.monthly_payment_yuan, summary.remaining_months, wan_to_yuan(summary.amount_wan),
    )
    return yuan_to_wan(estimate)


def summarize_portfolio(confirmed_debts: Iterable[ConfirmedDebt]) -> Dict[str, float]:
    """所有已确认债务的总览"""
    debts = list(confirmed_debts)
    return {
        "debt_count": len(debts),
        "record_count": sum(d.summary.count for d in debts),
        "total_amount_wan": round(sum(d.summary.amount_wan for d in debts), WAN_PRECISION),
        "monthly_payment_yuan": round(sum(d.summary.monthly_payment_yuan for d in debts), AMOUNT_PRECISION),
        "max_remaining_months": max((d.summary.remaining_months for d in debts), default=0),
        "remaining_interest_wan": round(sum(remaining_interest_wan(d.summary) for d in debts), WAN_PRECISION),
    }


def portfolio_frame(confirmed_debts: Iterable[ConfirmedDebt]) -> pd.DataFrame:
    """按债务类型列出汇总，便于 CLI 输出"""
    rows = []
    for debt in confirmed_debts:
        rows.append({
            "debt_id": debt.debt_id,
            "类型": DebtType(debt.debt_type).label,
            "名称": debt.name,
            "笔数": debt.summary.count,
            "剩余本金(万)": debt.summary.amount_wan,
            "月供(元)": debt.summary.monthly_payment_yuan,
            "剩余期数": debt.summary.remaining_months,
            "剩余利息(万)": round(remaining_interest_wan(debt.summary), WAN_PRECISION),
        })
    return pd.DataFrame(rows)
