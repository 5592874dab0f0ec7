"""债务记录、汇总、还款事件等值对象及其序列化

记录均为不可变 dataclass，编辑通过 dataclasses.replace 产生新记录。
日期字段可以是 date 或 ISO 字符串，使用时再解析。
"""
import json
from dataclasses import dataclass, field, fields, asdict
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from config.constants import DebtType, RateType


@dataclass(frozen=True)
class FixedRate:
    percent: Optional[float] = None


@dataclass(frozen=True)
class FloatingRate:
    """浮动利率：LPR + 基点"""
    adjustment_bp: Optional[float] = None


Rate = Union[FixedRate, FloatingRate]


@dataclass(frozen=True)
class MortgageTranche:
    principal_wan: Optional[float] = None
    remaining_principal_wan: Optional[float] = None
    start_date: Any = None
    end_date: Any = None
    repayment_method: Optional[str] = None
    rate: Optional[Rate] = None


@dataclass(frozen=True)
class MortgageRecord:
    id: str
    property_name: str = ""
    loan_type: Optional[str] = None  # commercial / provident / combination
    commercial: MortgageTranche = field(default_factory=MortgageTranche)
    provident: MortgageTranche = field(default_factory=MortgageTranche)


@dataclass(frozen=True)
class CarLoanRecord:
    id: str
    vehicle_name: str = ""
    loan_type: Optional[str] = None  # installment / bankLoan
    # 分期
    installment_amount_yuan: Optional[float] = None
    remaining_installments: Optional[int] = None
    repayment_day: Optional[int] = None
    # 银行贷款
    principal_wan: Optional[float] = None
    remaining_principal_wan: Optional[float] = None
    start_date: Any = None
    end_date: Any = None
    annual_rate_pct: Optional[float] = None
    repayment_method: Optional[str] = None


@dataclass(frozen=True)
class TermLoanRecord:
    id: str
    name: str = ""
    loan_amount_wan: Optional[float] = None
    remaining_principal_wan: Optional[float] = None
    start_date: Any = None
    end_date: Any = None
    loan_term_years: Optional[float] = None
    annual_rate_pct: Optional[float] = None
    repayment_method: Optional[str] = None


@dataclass(frozen=True)
class ConsumerLoanRecord(TermLoanRecord):
    pass


@dataclass(frozen=True)
class BusinessLoanRecord(TermLoanRecord):
    pass


@dataclass(frozen=True)
class PrivateLoanRecord:
    id: str
    name: str = ""
    loan_amount_wan: Optional[float] = None
    start_date: Any = None
    end_date: Any = None
    rate_fen: Optional[float] = None
    rate_li: Optional[float] = None
    repayment_method: Optional[str] = None


@dataclass(frozen=True)
class CreditCardRecord:
    id: str
    name: str = ""
    current_amount_yuan: Optional[float] = None
    unbilled_amount_yuan: Optional[float] = None
    repayment_day: Optional[int] = None


RECORD_TYPES = {
    DebtType.MORTGAGE.value: MortgageRecord,
    DebtType.CAR_LOAN.value: CarLoanRecord,
    DebtType.CONSUMER_LOAN.value: ConsumerLoanRecord,
    DebtType.BUSINESS_LOAN.value: BusinessLoanRecord,
    DebtType.PRIVATE_LOAN.value: PrivateLoanRecord,
    DebtType.CREDIT_CARD.value: CreditCardRecord,
}


@dataclass(frozen=True)
class DebtPortfolioSummary:
    count: int = 0
    amount_wan: float = 0.0
    monthly_payment_yuan: float = 0.0
    remaining_months: int = 0
    remaining_interest_wan: float = 0.0


@dataclass(frozen=True)
class AmortizationTerms:
    """提前还款测算所需的摊还参数"""
    principal_yuan: float
    annual_rate: float  # 小数
    remaining_months: int
    monthly_payment_yuan: float
    repayment_method: str


@dataclass(frozen=True)
class RepaymentEvent:
    debt_type: str
    name: str
    amount_yuan: float
    due_day: int
    event_id: str
    sub_type: Optional[str] = None
    one_time_date: Optional[date] = None
    recurring_start_date: Optional[date] = None
    recurring_end_date: Optional[date] = None


# ---- 序列化 ----

def rate_to_dict(rate: Optional[Rate]) -> Optional[dict]:
    if isinstance(rate, FixedRate):
        return {"type": RateType.FIXED.value, "percent": rate.percent}
    if isinstance(rate, FloatingRate):
        return {"type": RateType.FLOATING.value, "adjustment_bp": rate.adjustment_bp}
    return None


def rate_from_dict(data: Optional[dict]) -> Optional[Rate]:
    if not data:
        return None
    if data.get("type") == RateType.FLOATING.value:
        return FloatingRate(adjustment_bp=data.get("adjustment_bp"))
    if data.get("type") == RateType.FIXED.value:
        return FixedRate(percent=data.get("percent"))
    raise ValueError(f"未知的利率类型: {data.get('type')}")


def _plain(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def record_to_dict(record) -> Dict[str, Any]:
    """记录转可 JSON 序列化的 dict（日期为 ISO 字符串，利率带 type 标记）"""
    result = {}
    for f in fields(record):
        value = getattr(record, f.name)
        if isinstance(value, MortgageTranche):
            result[f.name] = record_to_dict(value)
        elif f.name == "rate":
            result[f.name] = rate_to_dict(value)
        else:
            result[f.name] = _plain(value)
    return result


def _from_dict(cls, data: Dict[str, Any]):
    known = {f.name for f in fields(cls)}
    kwargs = {k: v for k, v in data.items() if k in known}
    if "rate" in kwargs and isinstance(kwargs["rate"], dict):
        kwargs["rate"] = rate_from_dict(kwargs["rate"])
    for tranche in ("commercial", "provident"):
        if tranche in kwargs and isinstance(kwargs[tranche], dict):
            kwargs[tranche] = _from_dict(MortgageTranche, kwargs[tranche])
    return cls(**kwargs)


def record_from_dict(debt_type, data: Dict[str, Any]):
    """按债务类型还原记录"""
    cls = RECORD_TYPES.get(DebtType(debt_type).value)
    return _from_dict(cls, data)


@dataclass(frozen=True)
class ConfirmedDebt:
    """已确认的债务：汇总 + 原始记录（供再次编辑）"""
    debt_id: str
    debt_type: str
    name: str
    summary: DebtPortfolioSummary
    records: Tuple = ()
    confirmed_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """展平为 Excel 行"""
        row = {
            "debt_id": self.debt_id,
            "debt_type": _plain(self.debt_type),
            "name": self.name,
        }
        row.update(asdict(self.summary))
        row["records_json"] = json.dumps(
            [record_to_dict(r) for r in self.records], ensure_ascii=False,
        )
        row["confirmed_at"] = self.confirmed_at
        return row

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfirmedDebt":
        debt_type = DebtType(data["debt_type"]).value
        summary = DebtPortfolioSummary(
            count=int(data.get("count") or 0),
            amount_wan=float(data.get("amount_wan") or 0.0),
            monthly_payment_yuan=float(data.get("monthly_payment_yuan") or 0.0),
            remaining_months=int(data.get("remaining_months") or 0),
            remaining_interest_wan=float(data.get("remaining_interest_wan") or 0.0),
        )
        raw = data.get("records_json")
        items = json.loads(raw) if isinstance(raw, str) and raw else []
        return cls(
            debt_id=str(data["debt_id"]),
            debt_type=debt_type,
            name=str(data.get("name") or ""),
            summary=summary,
            records=tuple(record_from_dict(debt_type, item) for item in items),
            confirmed_at=data.get("confirmed_at"),
        )
