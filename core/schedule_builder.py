"""还款日历：把已确认债务和房贷明细转换成按日期排列的还款事件"""
import logging
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from config.constants import REPAYMENT_EVENT_COLUMNS, WAN, DebtType, RepaymentMethod
from config.settings import AMOUNT_PRECISION, DEFAULT_DUE_DAYS, DEFAULT_LPR_5Y
from core.aggregator import LoanAggregator, get_aggregator, parse_method
from core.mortgage import MortgageAggregator
from data_manager.schema import ConfirmedDebt, MortgageRecord, RepaymentEvent
from utils.date_utils import add_months, due_date_in_month, parse_date

logger = logging.getLogger(__name__)


def default_due_day(debt_type) -> int:
    return DEFAULT_DUE_DAYS[DebtType(debt_type).value]


def due_day_from(debt_type, *candidates) -> int:
    """取第一个可解析日期的日作为还款日，都没有则用类型默认值"""
    for value in candidates:
        d = parse_date(value)
        if d is not None:
            return d.day
    return default_due_day(debt_type)


def _record_name(record, debt_type, index: int) -> str:
    name = getattr(record, "name", None) or getattr(record, "vehicle_name", None) \
        or getattr(record, "property_name", None)
    return name or f"{DebtType(debt_type).label}{index + 1}"


def _mortgage_events(records: Sequence[MortgageRecord], aggregator: MortgageAggregator, today: date):
    events = []
    for idx, record in enumerate(records):
        payment = aggregator.current_payment(record, today)
        if payment <= 0:
            continue
        tranches = aggregator.active_tranches(record)
        starts = [t.start_date for _, t in tranches]
        events.append(RepaymentEvent(
            debt_type=DebtType.MORTGAGE.value,
            name=_record_name(record, DebtType.MORTGAGE, idx),
            amount_yuan=round(payment, AMOUNT_PRECISION),
            due_day=due_day_from(DebtType.MORTGAGE, *starts),
            event_id=record.id,
        ))
    return events


def _record_events(debt_type: str, record, index: int, aggregator: LoanAggregator, today: date):
    """单条明细记录生成的还款事件"""
    if not aggregator.is_complete(record):
        return []
    name = _record_name(record, debt_type, index)
    start = getattr(record, "start_date", None)
    end = parse_date(getattr(record, "end_date", None))
    method = parse_method(getattr(record, "repayment_method", None))
    repayment_day = getattr(record, "repayment_day", None)
    due_day = int(repayment_day) if repayment_day else due_day_from(debt_type, start, end)
    sub_type = getattr(record, "loan_type", None)

    if method == RepaymentMethod.LUMP_SUM and end is not None:
        # 到期一次性归还本金和利息
        principal = aggregator.principal_wan(record) * WAN
        interest = aggregator.remaining_interest(record, today)
        return [RepaymentEvent(
            debt_type=debt_type, name=name,
            amount_yuan=round(principal + interest, AMOUNT_PRECISION),
            due_day=end.day, event_id=record.id, sub_type=sub_type, one_time_date=end,
        )]

    payment = aggregator.current_payment(record, today)
    if payment <= 0:
        return []

    if method == RepaymentMethod.INTEREST_FIRST and end is not None:
        # 每月付息到最后一个非到期还款日，到期日归还本金 + 最后一期利息
        recurring_end = add_months(end, -1)
        final_amount = aggregator.principal_wan(record) * WAN + payment
        schedule = aggregator.interest_first_schedule(record)
        if schedule is not None:
            final_amount = float(schedule.iloc[-1]["payment"])
            periods = schedule[~schedule["is_last"].astype(bool)]
            recurring_end = parse_date(periods.iloc[-1]["to_date"]) if not periods.empty else None
        final = RepaymentEvent(
            debt_type=debt_type, name=f"{name}(本息)",
            amount_yuan=round(final_amount, AMOUNT_PRECISION),
            due_day=end.day, event_id=f"{record.id}_final", sub_type=sub_type,
            one_time_date=end,
        )
        if recurring_end is None or recurring_end < today:
            return [final]
        return [
            RepaymentEvent(
                debt_type=debt_type, name=name,
                amount_yuan=round(payment, AMOUNT_PRECISION),
                due_day=due_day, event_id=record.id, sub_type=sub_type,
                recurring_start_date=today, recurring_end_date=recurring_end,
            ),
            final,
        ]

    return [RepaymentEvent(
        debt_type=debt_type, name=name,
        amount_yuan=round(payment, AMOUNT_PRECISION),
        due_day=due_day, event_id=record.id, sub_type=sub_type,
    )]


def build_events(
    confirmed_debts: Iterable[ConfirmedDebt],
    mortgage_records: Sequence[MortgageRecord] = (),
    today: Optional[date] = None,
    lpr_pct: float = DEFAULT_LPR_5Y,
) -> List[RepaymentEvent]:
    """生成还款事件

    有房贷明细时以明细为准，跳过已确认债务里的房贷汇总，避免重复计算。
    已确认债务带原始记录时逐条生成事件，否则按汇总月供生成一条，还款日取类型默认值。
    """
    today = today or date.today()
    events: List[RepaymentEvent] = []
    if mortgage_records:
        events.extend(_mortgage_events(mortgage_records, MortgageAggregator(lpr_pct=lpr_pct), today))

    for debt in confirmed_debts:
        debt_type = DebtType(debt.debt_type).value
        if debt_type == DebtType.MORTGAGE.value and mortgage_records:
            logger.debug("已有房贷明细，跳过房贷汇总 %s", debt.debt_id)
            continue

        if debt.records and debt_type == DebtType.MORTGAGE.value:
            events.extend(_mortgage_events(debt.records, MortgageAggregator(lpr_pct=lpr_pct), today))
            continue

        if debt.records:
            aggregator = get_aggregator(debt_type, lpr_pct=lpr_pct)
            for idx, record in enumerate(debt.records):
                try:
                    events.extend(_record_events(debt_type, record, idx, aggregator, today))
                except (TypeError, ValueError, ArithmeticError) as exc:
                    logger.warning("债务 %s 的记录 %s 无法生成还款事件: %s", debt.debt_id, record.id, exc)
            continue

        summary = debt.summary
        if summary.monthly_payment_yuan <= 0 or summary.remaining_months <= 0:
            continue
        events.append(RepaymentEvent(
            debt_type=debt_type,
            name=debt.name or DebtType(debt_type).label,
            amount_yuan=round(summary.monthly_payment_yuan, AMOUNT_PRECISION),
            due_day=default_due_day(debt_type),
            event_id=debt.debt_id,
        ))
    return events


def occurrence_in_month(event: RepaymentEvent, year: int, month: int) -> Optional[date]:
    """事件在某月的还款日期，不在该月或超出循环区间时返回 None"""
    if event.one_time_date is not None:
        one_time = parse_date(event.one_time_date)
        if one_time is not None and (one_time.year, one_time.month) == (year, month):
            return one_time
        return None

    due = due_date_in_month(year, month, event.due_day)
    start = parse_date(event.recurring_start_date)
    end = parse_date(event.recurring_end_date)
    if start is not None and due < start:
        return None
    if end is not None and due > end:
        return None
    return due


def monthly_calendar(
    events: Iterable[RepaymentEvent],
    year: int,
    month: int,
    today: Optional[date] = None,
) -> Dict[str, List[RepaymentEvent]]:
    """某月的还款日历，键为 'YYYY-MM-DD'，早于 today 的日期不计入"""
    today = today or date.today()
    calendar_map: Dict[str, List[RepaymentEvent]] = defaultdict(list)
    for event in events:
        due = occurrence_in_month(event, year, month)
        if due is None or due < today:
            continue
        calendar_map[due.isoformat()].append(event)
    return dict(sorted(calendar_map.items()))


def current_month_remaining(events: Iterable[RepaymentEvent], today: Optional[date] = None) -> float:
    """本月剩余待还：还款日 >= 今天的事件合计"""
    today = today or date.today()
    total = 0.0
    for event in events:
        due = occurrence_in_month(event, today.year, today.month)
        if due is not None and due >= today:
            total += event.amount_yuan
    return round(total, AMOUNT_PRECISION)


def next_month_total(events: Iterable[RepaymentEvent], today: Optional[date] = None) -> float:
    """下月应还合计：每月循环的事件全部计入，一次性事件只计下月到期的"""
    today = today or date.today()
    next_month = add_months(date(today.year, today.month, 1), 1)
    total = 0.0
    for event in events:
        if occurrence_in_month(event, next_month.year, next_month.month) is not None:
            total += event.amount_yuan
    return round(total, AMOUNT_PRECISION)


def date_repayments(events: Iterable[RepaymentEvent], target) -> List[RepaymentEvent]:
    """某一天到期的还款事件"""
    target_d = parse_date(target)
    if target_d is None:
        return []
    return [e for e in events if occurrence_in_month(e, target_d.year, target_d.month) == target_d]


def events_to_frame(events: Iterable[RepaymentEvent], year: int, month: int) -> pd.DataFrame:
    """某月的还款事件明细表（按日期排序）"""
    rows = []
    for event in events:
        due = occurrence_in_month(event, year, month)
        if due is None:
            continue
        rows.append({
            "date": due.isoformat(),
            "debt_type": event.debt_type,
            "name": event.name,
            "amount_yuan": event.amount_yuan,
            "due_day": event.due_day,
            "event_id": event.event_id,
        })
    df = pd.DataFrame(rows, columns=REPAYMENT_EVENT_COLUMNS)
    return df.sort_values("date", kind="stable").reset_index(drop=True)
