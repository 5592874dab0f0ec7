"""消费贷、经营贷、民间借贷"""
import logging
from typing import Optional

from config.constants import WAN, DebtType, RepaymentMethod
from core.aggregator import TermLoanAggregator, parse_method
from core.calculator import private_loan_rate_pct, to_float
from data_manager.schema import BusinessLoanRecord, ConsumerLoanRecord, PrivateLoanRecord
from utils.date_utils import parse_date

logger = logging.getLogger(__name__)


class ConsumerLoanAggregator(TermLoanAggregator):
    debt_type = DebtType.CONSUMER_LOAN
    record_cls = ConsumerLoanRecord


class BusinessLoanAggregator(TermLoanAggregator):
    debt_type = DebtType.BUSINESS_LOAN
    record_cls = BusinessLoanRecord


class PrivateLoanAggregator(TermLoanAggregator):
    """民间借贷：利率用 分/厘 表示，没有剩余本金字段，本金即借款金额"""
    debt_type = DebtType.PRIVATE_LOAN
    record_cls = PrivateLoanRecord

    def _rate(self, record) -> Optional[float]:
        pct = private_loan_rate_pct(record.rate_fen, record.rate_li)
        return pct / 100 if pct > 0 else None

    def _principal_yuan(self, record) -> Optional[float]:
        amount = to_float(record.loan_amount_wan)
        return amount * WAN if amount is not None and amount > 0 else None

    def is_complete(self, record) -> bool:
        if parse_method(record.repayment_method) is None:
            return False
        if self._principal_yuan(record) is None or self._rate(record) is None:
            return False
        end = parse_date(record.end_date)
        if end is None:
            return False
        start = parse_date(record.start_date)
        if start is not None and end <= start:
            return False
        if parse_method(record.repayment_method) == RepaymentMethod.LUMP_SUM:
            return start is not None
        return True
