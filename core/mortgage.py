"""房贷：商业贷款 / 公积金贷款 / 组合贷款

组合贷两部分各自判断完整性、各自计算月供后相加，剩余期数取较长的一笔。
"""
import dataclasses
import logging
from datetime import date
from typing import List, Optional, Tuple

from config.constants import WAN, DebtType, MortgageLoanType
from config.settings import DEFAULT_LPR_5Y
from core.aggregator import (
    LoanAggregator,
    LoanTerms,
    parse_method,
    positive,
    terms_interest,
    terms_payment,
    terms_remaining_months,
    terms_to_amortization,
    valid_range,
)
from core.calculator import floating_rate_pct, normalize_rate, to_float, weighted_rate_pct
from data_manager.schema import AmortizationTerms, FixedRate, FloatingRate, MortgageRecord, MortgageTranche
from utils.date_utils import parse_date

logger = logging.getLogger(__name__)

COMMERCIAL = "commercial"
PROVIDENT = "provident"

# 商贷这几个字段修改时同步到公积金部分
MIRRORED_FIELDS = ("start_date", "end_date", "repayment_method")


class MortgageAggregator(LoanAggregator):
    debt_type = DebtType.MORTGAGE
    record_cls = MortgageRecord

    def __init__(self, lpr_pct: float = DEFAULT_LPR_5Y):
        self.lpr_pct = lpr_pct

    # ---- 单笔（商贷/公积金） ----

    def rate_pct(self, tranche: MortgageTranche) -> Optional[float]:
        """年化利率(%)：固定利率直接取值，浮动利率 = LPR + 基点/100"""
        rate = tranche.rate
        if isinstance(rate, FixedRate):
            percent = to_float(rate.percent)
            return percent if percent is not None and percent > 0 else None
        if isinstance(rate, FloatingRate):
            bp = to_float(rate.adjustment_bp)
            if bp is None:
                return None
            percent = floating_rate_pct(self.lpr_pct, bp)
            return percent if percent > 0 else None
        return None

    def tranche_complete(self, tranche: MortgageTranche) -> bool:
        if not positive(tranche.remaining_principal_wan):
            return False
        principal = to_float(tranche.principal_wan)
        if principal is not None and to_float(tranche.remaining_principal_wan) > principal:
            return False
        return (
            valid_range(tranche.start_date, tranche.end_date)
            and parse_method(tranche.repayment_method) is not None
            and self.rate_pct(tranche) is not None
        )

    def tranche_terms(self, tranche: MortgageTranche) -> Optional[LoanTerms]:
        if not self.tranche_complete(tranche):
            return None
        return LoanTerms(
            to_float(tranche.remaining_principal_wan) * WAN,
            normalize_rate(self.rate_pct(tranche)),
            parse_date(tranche.start_date),
            parse_date(tranche.end_date),
            parse_method(tranche.repayment_method),
        )

    def active_tranches(self, record: MortgageRecord) -> List[Tuple[str, MortgageTranche]]:
        """按贷款类型返回参与计算的部分"""
        if record.loan_type == MortgageLoanType.COMMERCIAL.value:
            return [(COMMERCIAL, record.commercial)]
        if record.loan_type == MortgageLoanType.PROVIDENT.value:
            return [(PROVIDENT, record.provident)]
        if record.loan_type == MortgageLoanType.COMBINATION.value:
            return [(COMMERCIAL, record.commercial), (PROVIDENT, record.provident)]
        return []

    def _complete_terms(self, record: MortgageRecord) -> List[LoanTerms]:
        terms = [self.tranche_terms(t) for _, t in self.active_tranches(record)]
        return [t for t in terms if t is not None]

    # ---- 聚合器接口 ----

    def is_complete(self, record: MortgageRecord) -> bool:
        if not (record.property_name or "").strip():
            return False
        tranches = self.active_tranches(record)
        return bool(tranches) and all(self.tranche_complete(t) for _, t in tranches)

    def _terms(self, record: MortgageRecord) -> Optional[LoanTerms]:
        terms = self._complete_terms(record)
        return terms[0] if len(terms) == 1 else None

    def principal_wan(self, record: MortgageRecord) -> float:
        return sum(t.principal_yuan for t in self._complete_terms(record)) / WAN

    def current_payment(self, record: MortgageRecord, today: Optional[date] = None) -> float:
        today = today or date.today()
        return sum(terms_payment(t, today) for t in self._complete_terms(record))

    def remaining_months(self, record: MortgageRecord, today: Optional[date] = None) -> int:
        today = today or date.today()
        return max((terms_remaining_months(t, today) for t in self._complete_terms(record)), default=0)

    def remaining_interest(self, record: MortgageRecord, today: Optional[date] = None) -> float:
        today = today or date.today()
        return sum(terms_interest(t, today) for t in self._complete_terms(record))

    def amortization_terms(
        self,
        record: MortgageRecord,
        today: Optional[date] = None,
        tranche: Optional[str] = None,
    ) -> Optional[AmortizationTerms]:
        """提前还款参数；组合贷默认取商贷部分"""
        if not self.is_complete(record):
            return None
        tranches = dict(self.active_tranches(record))
        name = tranche or (PROVIDENT if record.loan_type == MortgageLoanType.PROVIDENT.value else COMMERCIAL)
        if name not in tranches:
            return None
        return terms_to_amortization(self.tranche_terms(tranches[name]), today or date.today())

    def weighted_rate_pct(self, record: MortgageRecord) -> float:
        """组合贷按剩余本金加权的平均利率(%)"""
        parts = []
        for _, tranche in self.active_tranches(record):
            percent = self.rate_pct(tranche)
            amount = to_float(tranche.remaining_principal_wan)
            if percent is not None and amount:
                parts.append((amount, percent))
        return weighted_rate_pct(parts)

    # ---- 编辑 ----

    def new_record(self, record_id: Optional[str] = None, today: Optional[date] = None) -> MortgageRecord:
        today = today or date.today()
        record = super().new_record(record_id, today)
        return dataclasses.replace(
            record,
            commercial=MortgageTranche(start_date=today),
            provident=MortgageTranche(start_date=today),
        )

    def update_tranche(self, record: MortgageRecord, tranche: str, field: str, value) -> MortgageRecord:
        """修改某一部分的字段

        修改商贷的起止日期或还款方式时，若公积金部分该字段为空或仍等于商贷旧值，
        则一并同步；公积金已单独改过的值保留不动。只在这次编辑时触发，加载记录时不同步。
        """
        if tranche not in (COMMERCIAL, PROVIDENT):
            raise ValueError(f"未知的贷款部分: {tranche}")
        current = getattr(record, tranche)
        old_value = getattr(current, field)
        changes = {tranche: dataclasses.replace(current, **{field: value})}

        if tranche == COMMERCIAL and field in MIRRORED_FIELDS:
            provident_value = getattr(record.provident, field)
            if provident_value in (None, "") or provident_value == old_value:
                changes[PROVIDENT] = dataclasses.replace(record.provident, **{field: value})
                logger.debug("同步商贷字段 %s 到公积金部分: %s", field, value)

        return dataclasses.replace(record, **changes)
