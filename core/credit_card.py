"""信用卡：当期账单 + 未出账单"""
import logging
from datetime import date
from typing import Optional

from config.constants import WAN, DebtType
from core.aggregator import LoanAggregator, LoanTerms
from core.calculator import to_float
from data_manager.schema import CreditCardRecord

logger = logging.getLogger(__name__)


class CreditCardAggregator(LoanAggregator):
    debt_type = DebtType.CREDIT_CARD
    record_cls = CreditCardRecord

    def is_complete(self, record: CreditCardRecord) -> bool:
        if not (record.name or "").strip():
            return False
        current = to_float(record.current_amount_yuan) or 0.0
        unbilled = to_float(record.unbilled_amount_yuan) or 0.0
        return current >= 0 and unbilled >= 0 and current + unbilled > 0

    def _terms(self, record: CreditCardRecord) -> Optional[LoanTerms]:
        return None

    def principal_wan(self, record: CreditCardRecord) -> float:
        current = to_float(record.current_amount_yuan) or 0.0
        unbilled = to_float(record.unbilled_amount_yuan) or 0.0
        return (current + unbilled) / WAN

    def current_payment(self, record: CreditCardRecord, today: Optional[date] = None) -> float:
        """本期应还 = 当期账单金额"""
        current = to_float(record.current_amount_yuan) or 0.0
        return max(current, 0.0)

    def remaining_months(self, record: CreditCardRecord, today: Optional[date] = None) -> int:
        return 1 if self.current_payment(record, today) > 0 else 0

    def remaining_interest(self, record: CreditCardRecord, today: Optional[date] = None) -> float:
        return 0.0
