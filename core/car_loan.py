"""车贷：厂商分期 / 银行贷款"""
import logging
from datetime import date
from typing import Optional

from config.constants import WAN, CarLoanType, DebtType
from core.aggregator import LoanAggregator, LoanTerms, parse_method, positive, valid_range
from core.calculator import calc_installment_irr, normalize_rate, to_float
from data_manager.schema import CarLoanRecord
from utils.date_utils import parse_date

logger = logging.getLogger(__name__)


def _is_installment(record: CarLoanRecord) -> bool:
    return record.loan_type == CarLoanType.INSTALLMENT.value


class CarLoanAggregator(LoanAggregator):
    debt_type = DebtType.CAR_LOAN
    record_cls = CarLoanRecord

    def is_complete(self, record: CarLoanRecord) -> bool:
        if not (record.vehicle_name or "").strip():
            return False
        if _is_installment(record):
            return positive(record.installment_amount_yuan) and positive(record.remaining_installments)
        if record.loan_type != CarLoanType.BANK_LOAN.value:
            return False
        if not (positive(record.principal_wan) and positive(record.remaining_principal_wan)):
            return False
        if to_float(record.remaining_principal_wan) > to_float(record.principal_wan):
            return False
        return (
            valid_range(record.start_date, record.end_date)
            and parse_method(record.repayment_method) is not None
            and positive(record.annual_rate_pct)
        )

    def _terms(self, record: CarLoanRecord) -> Optional[LoanTerms]:
        if _is_installment(record):
            return None
        method = parse_method(record.repayment_method)
        remaining = to_float(record.remaining_principal_wan)
        rate = to_float(record.annual_rate_pct)
        end = parse_date(record.end_date)
        if method is None or remaining is None or remaining <= 0 or rate is None or end is None:
            return None
        return LoanTerms(
            remaining * WAN, normalize_rate(rate), parse_date(record.start_date), end, method,
        )

    def _installments(self, record: CarLoanRecord):
        installment = to_float(record.installment_amount_yuan) or 0.0
        count = int(to_float(record.remaining_installments) or 0)
        return installment, max(count, 0)

    def principal_wan(self, record: CarLoanRecord) -> float:
        if _is_installment(record):
            # 分期：剩余待还 = 每期金额 × 剩余期数
            installment, count = self._installments(record)
            return installment * count / WAN
        return super().principal_wan(record)

    def current_payment(self, record: CarLoanRecord, today: Optional[date] = None) -> float:
        if _is_installment(record):
            installment, count = self._installments(record)
            return installment if count > 0 else 0.0
        return super().current_payment(record, today)

    def remaining_months(self, record: CarLoanRecord, today: Optional[date] = None) -> int:
        if _is_installment(record):
            return self._installments(record)[1]
        return super().remaining_months(record, today)

    def remaining_interest(self, record: CarLoanRecord, today: Optional[date] = None) -> float:
        if _is_installment(record):
            # 分期金额已含利息
            return 0.0
        return super().remaining_interest(record, today)

    def implied_rate_pct(self, record: CarLoanRecord) -> float:
        """分期的实际年化利率（IRR），需要填写融资本金"""
        if not _is_installment(record):
            return to_float(record.annual_rate_pct) or 0.0
        financed = to_float(record.remaining_principal_wan) or to_float(record.principal_wan)
        if not financed or financed <= 0:
            return 0.0
        installment, count = self._installments(record)
        return calc_installment_irr(financed * WAN, installment, count)
