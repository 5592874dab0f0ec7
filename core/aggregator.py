"""债务聚合：完整性判断、单条月供、按类型汇总

每种债务类型一个聚合器，共用 LoanAggregator 的计算流程；
子类只需给出完整性规则和 _terms（把记录映射为统一的本金/利率/日期/还款方式）。
"""
import dataclasses
import logging
from datetime import date
from typing import Iterable, NamedTuple, Optional

from config.constants import WAN, DebtType, RepaymentMethod
from config.settings import DEFAULT_DAY_BASIS, LUMP_SUM_DAY_BASIS, WAN_PRECISION, AMOUNT_PRECISION
from core.calculator import (
    calc_equal_payment,
    calc_interest_first,
    calc_monthly_payment,
    calc_total_interest,
    normalize_rate,
    to_float,
)
from core.day_count import (
    actual_days,
    generate_interest_first_schedule,
    interest_by_actual_days,
    next_period_interest,
    pending_interest_first_interest,
)
from data_manager.schema import AmortizationTerms, DebtPortfolioSummary
from utils.date_utils import end_date_from_term, parse_date, remaining_months, remaining_months_simple
from utils.id_generator import generate_record_id

logger = logging.getLogger(__name__)


class LoanTerms(NamedTuple):
    principal_yuan: float
    annual_rate: float  # 小数
    start_date: Optional[date]
    end_date: Optional[date]
    repayment_method: RepaymentMethod
    repayment_day: Optional[int] = None


def parse_method(value) -> Optional[RepaymentMethod]:
    """还款方式解析，未知值返回 None"""
    if not value:
        return None
    try:
        return RepaymentMethod(value)
    except ValueError:
        return None


def positive(value) -> bool:
    number = to_float(value)
    return number is not None and number > 0


def valid_range(start, end) -> bool:
    """两个日期都能解析且 end > start"""
    start_d = parse_date(start)
    end_d = parse_date(end)
    return start_d is not None and end_d is not None and end_d > start_d


def terms_remaining_months(terms: Optional[LoanTerms], today: date) -> int:
    if terms is None or terms.end_date is None:
        return 0
    if terms.start_date is None:
        return remaining_months_simple(terms.end_date, today)
    return remaining_months(terms.start_date, terms.end_date, today)


def terms_payment(terms: Optional[LoanTerms], today: date) -> float:
    """按还款方式计算当前月供（元）"""
    if terms is None:
        return 0.0
    method = terms.repayment_method
    if method == RepaymentMethod.INTEREST_FIRST:
        if terms.start_date is None:
            return calc_interest_first(terms.principal_yuan, terms.annual_rate)
        # 先息后本按实际天数计息，取包含今天的那一期
        interest = next_period_interest(
            terms.principal_yuan, terms.annual_rate, terms.start_date, terms.end_date,
            today, terms.repayment_day, DEFAULT_DAY_BASIS,
        )
        return interest or 0.0
    if method == RepaymentMethod.LUMP_SUM:
        return 0.0
    months = terms_remaining_months(terms, today)
    return calc_monthly_payment(terms.principal_yuan, terms.annual_rate, months, method)


def terms_interest(terms: Optional[LoanTerms], today: date) -> float:
    """剩余利息（元）"""
    if terms is None:
        return 0.0
    method = terms.repayment_method
    if method == RepaymentMethod.INTEREST_FIRST:
        if terms.start_date is None:
            months = terms_remaining_months(terms, today)
            return calc_interest_first(terms.principal_yuan, terms.annual_rate) * months
        return pending_interest_first_interest(
            terms.principal_yuan, terms.annual_rate, terms.start_date, terms.end_date,
            today, terms.repayment_day, DEFAULT_DAY_BASIS,
        )
    if method == RepaymentMethod.LUMP_SUM:
        days = actual_days(terms.start_date or today, terms.end_date)
        return interest_by_actual_days(terms.principal_yuan, terms.annual_rate, days, LUMP_SUM_DAY_BASIS)
    months = terms_remaining_months(terms, today)
    return calc_total_interest(terms.principal_yuan, terms.annual_rate, months, method)


def terms_to_amortization(terms: Optional[LoanTerms], today: date) -> Optional[AmortizationTerms]:
    if terms is None or terms.repayment_method != RepaymentMethod.EQUAL_PAYMENT:
        return None
    months = terms_remaining_months(terms, today)
    return AmortizationTerms(
        principal_yuan=terms.principal_yuan,
        annual_rate=terms.annual_rate,
        remaining_months=months,
        monthly_payment_yuan=calc_equal_payment(terms.principal_yuan, terms.annual_rate, months),
        repayment_method=terms.repayment_method.value,
    )


class LoanAggregator:
    debt_type: DebtType = None
    record_cls = None

    # ---- 子类实现 ----

    def is_complete(self, record) -> bool:
        raise NotImplementedError

    def _terms(self, record) -> Optional[LoanTerms]:
        raise NotImplementedError

    def principal_wan(self, record) -> float:
        """计入汇总的剩余本金（万）"""
        terms = self._terms(record)
        return terms.principal_yuan / WAN if terms else 0.0

    # ---- 通用计算 ----

    def remaining_months(self, record, today: Optional[date] = None) -> int:
        return terms_remaining_months(self._terms(record), today or date.today())

    def current_payment(self, record, today: Optional[date] = None) -> float:
        """当前月供（元），输入不全返回 0"""
        return terms_payment(self._terms(record), today or date.today())

    def remaining_interest(self, record, today: Optional[date] = None) -> float:
        """剩余利息（元）"""
        return terms_interest(self._terms(record), today or date.today())

    def amortization_terms(self, record, today: Optional[date] = None) -> Optional[AmortizationTerms]:
        """等额本息记录的提前还款参数；其他方式返回 None"""
        if not self.is_complete(record):
            return None
        return terms_to_amortization(self._terms(record), today or date.today())

    def interest_first_schedule(self, record):
        """先息后本记录的逐期计划（DataFrame）；非先息后本或缺开始日期时返回 None"""
        terms = self._terms(record)
        if terms is None or terms.repayment_method != RepaymentMethod.INTEREST_FIRST or terms.start_date is None:
            return None
        schedule = generate_interest_first_schedule(
            terms.principal_yuan, terms.annual_rate, terms.start_date, terms.end_date,
            terms.repayment_day, DEFAULT_DAY_BASIS,
        )
        return None if schedule.empty else schedule

    def aggregate(self, records: Iterable, today: Optional[date] = None) -> DebtPortfolioSummary:
        """汇总完整记录：本金、月供求和，剩余期数取最大"""
        today = today or date.today()
        count = 0
        amount_wan = 0.0
        payment = 0.0
        months = 0
        interest = 0.0
        for record in records:
            try:
                if not self.is_complete(record):
                    logger.debug("%s 记录 %s 不完整，跳过", self.debt_type.value, getattr(record, "id", "?"))
                    continue
                record_amount = self.principal_wan(record)
                record_payment = self.current_payment(record, today)
                record_months = self.remaining_months(record, today)
                record_interest = self.remaining_interest(record, today)
            except (TypeError, ValueError, ArithmeticError) as exc:
                logger.warning(
                    "%s 记录 %s 计算失败，已排除: %s",
                    self.debt_type.value, getattr(record, "id", "?"), exc,
                )
                continue
            count += 1
            amount_wan += record_amount
            payment += record_payment
            months = max(months, record_months)
            interest += record_interest

        return DebtPortfolioSummary(
            count=count,
            amount_wan=round(amount_wan, WAN_PRECISION),
            monthly_payment_yuan=round(payment, AMOUNT_PRECISION),
            remaining_months=months,
            remaining_interest_wan=round(interest / WAN, WAN_PRECISION),
        )

    # ---- 记录生命周期 ----

    def new_record(self, record_id: Optional[str] = None, today: Optional[date] = None):
        """新建空记录，开始日期默认今天"""
        today = today or date.today()
        record_id = record_id or generate_record_id(self.debt_type.value)
        names = {f.name for f in dataclasses.fields(self.record_cls)}
        if "start_date" in names:
            return self.record_cls(id=record_id, start_date=today)
        return self.record_cls(id=record_id)

    def update_record(self, record, **changes):
        return dataclasses.replace(record, **changes)


class TermLoanAggregator(LoanAggregator):
    """按本金/利率/起止日期/还款方式描述的普通贷款的共用规则"""

    def _rate(self, record) -> Optional[float]:
        rate = to_float(record.annual_rate_pct)
        return normalize_rate(rate) if rate is not None and rate > 0 else None

    def _end_date(self, record) -> Optional[date]:
        end = parse_date(record.end_date)
        if end is None and getattr(record, "loan_term_years", None):
            # 只填了贷款年限时，由开始日期推算到期日
            end = end_date_from_term(record.start_date, to_float(record.loan_term_years))
        return end

    def _principal_yuan(self, record) -> Optional[float]:
        method = parse_method(record.repayment_method)
        remaining = to_float(getattr(record, "remaining_principal_wan", None))
        amount = to_float(record.loan_amount_wan)
        if method is not None and method.is_amortizing:
            value = remaining
        else:
            value = remaining if remaining is not None and remaining > 0 else amount
        return value * WAN if value is not None and value > 0 else None

    def _terms(self, record) -> Optional[LoanTerms]:
        method = parse_method(record.repayment_method)
        principal = self._principal_yuan(record)
        rate = self._rate(record)
        end = self._end_date(record)
        if method is None or principal is None or rate is None or end is None:
            return None
        return LoanTerms(principal, rate, parse_date(record.start_date), end, method)

    def is_complete(self, record) -> bool:
        method = parse_method(record.repayment_method)
        if method is None or self._rate(record) is None:
            return False
        end = self._end_date(record)
        start = parse_date(record.start_date)
        if end is None:
            return False
        if start is not None and end <= start:
            return False
        if method == RepaymentMethod.INTEREST_FIRST:
            return positive(record.loan_amount_wan)
        if method == RepaymentMethod.LUMP_SUM:
            return start is not None and positive(record.loan_amount_wan)
        # 等额本息 / 等额本金
        remaining = to_float(getattr(record, "remaining_principal_wan", None))
        amount = to_float(record.loan_amount_wan)
        if start is None or remaining is None or remaining <= 0:
            return False
        return amount is None or remaining <= amount


def get_aggregator(debt_type, lpr_pct: Optional[float] = None) -> LoanAggregator:
    """按债务类型取聚合器；lpr_pct 只用于房贷浮动利率"""
    from core.car_loan import CarLoanAggregator
    from core.credit_card import CreditCardAggregator
    from core.credit_loans import BusinessLoanAggregator, ConsumerLoanAggregator, PrivateLoanAggregator
    from core.mortgage import MortgageAggregator

    registry = {
        DebtType.MORTGAGE.value: MortgageAggregator,
        DebtType.CAR_LOAN.value: CarLoanAggregator,
        DebtType.CONSUMER_LOAN.value: ConsumerLoanAggregator,
        DebtType.BUSINESS_LOAN.value: BusinessLoanAggregator,
        DebtType.PRIVATE_LOAN.value: PrivateLoanAggregator,
        DebtType.CREDIT_CARD.value: CreditCardAggregator,
    }
    try:
        key = DebtType(debt_type).value
    except ValueError:
        raise ValueError(f"未知的债务类型: {debt_type}") from None
    if key == DebtType.MORTGAGE.value and lpr_pct is not None:
        return MortgageAggregator(lpr_pct=lpr_pct)
    return registry[key]()
