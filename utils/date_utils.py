"""日期工具：月份推算、剩余期数、剩余天数

所有函数对无法解析的日期一律返回 None / 0，不抛异常。
"""
import calendar
import math
from datetime import date, datetime
from typing import Optional

from dateutil.relativedelta import relativedelta


def parse_date(value) -> Optional[date]:
    """解析日期，支持 date / datetime / 'YYYY-MM-DD' / 'YYYY-MM'，失败返回 None"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        if len(text) == 7:
            # 车贷的 'YYYY-MM' 月份格式，按当月 1 日处理
            return date.fromisoformat(text + "-01")
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def add_months(d: date, months: int) -> date:
    """日期加 N 个月（月末自动对齐）"""
    return d + relativedelta(months=months)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def due_date_in_month(year: int, month: int, due_day: int) -> date:
    """某年某月的还款日，超过当月天数时取月末"""
    return date(year, month, min(max(due_day, 1), days_in_month(year, month)))


def last_due_date(start: date, today: date) -> date:
    """最近一个已到的还款日（以 start 的日为还款日）"""
    due = due_date_in_month(today.year, today.month, start.day)
    if due > today:
        prev = add_months(date(today.year, today.month, 1), -1)
        due = due_date_in_month(prev.year, prev.month, start.day)
    return due


def remaining_months(start, end, today: Optional[date] = None) -> int:
    """从最近一个已到还款日起算到 end 的剩余期数（月）"""
    start_d = parse_date(start)
    end_d = parse_date(end)
    if start_d is None or end_d is None or end_d <= start_d:
        return 0
    today = today or date.today()

    # 尚未开始还款时，从发放日起算
    anchor = start_d if today < start_d else last_due_date(start_d, today)
    months = (end_d.year - anchor.year) * 12 + (end_d.month - anchor.month)
    # 到期月的还款日还没到 end，则该月不算一期
    if end_d.day < due_date_in_month(end_d.year, end_d.month, start_d.day).day:
        months -= 1
    return max(months, 0)


def remaining_months_simple(end, today: Optional[date] = None) -> int:
    """没有开始日期时的兜底：自然月差"""
    end_d = parse_date(end)
    if end_d is None:
        return 0
    today = today or date.today()
    return max((end_d.year - today.year) * 12 + (end_d.month - today.month), 0)


def remaining_days(end, today: Optional[date] = None) -> int:
    """距离 end 的剩余天数（向上取整）"""
    end_d = parse_date(end)
    if end_d is None:
        return 0
    today = today or date.today()
    return max(math.ceil((end_d - today).days), 0)


def loan_term_months(start, end) -> int:
    """贷款总期数：开始与结束日期的自然月差"""
    start_d = parse_date(start)
    end_d = parse_date(end)
    if start_d is None or end_d is None:
        return 0
    return max((end_d.year - start_d.year) * 12 + (end_d.month - start_d.month), 0)


def end_date_from_term(start, term_years) -> Optional[date]:
    """由开始日期和贷款年限推算结束日期"""
    start_d = parse_date(start)
    if start_d is None or term_years is None or term_years <= 0:
        return None
    return start_d + relativedelta(months=int(round(term_years * 12)))
