from enum import Enum, IntEnum

# 1 万 = 10000 元
WAN = 10000


class DebtType(str, Enum):
    MORTGAGE = "mortgage"
    CAR_LOAN = "carLoan"
    CONSUMER_LOAN = "consumerLoan"
    BUSINESS_LOAN = "businessLoan"
    PRIVATE_LOAN = "privateLoan"
    CREDIT_CARD = "creditCard"

    @property
    def label(self) -> str:
        return {
            "mortgage": "房贷",
            "carLoan": "车贷",
            "consumerLoan": "消费贷",
            "businessLoan": "经营贷",
            "privateLoan": "民间贷",
            "creditCard": "信用卡",
        }[self.value]


class RepaymentMethod(str, Enum):
    EQUAL_PAYMENT = "equal-payment"  # 等额本息
    EQUAL_PRINCIPAL = "equal-principal"  # 等额本金
    INTEREST_FIRST = "interest-first"  # 先息后本
    LUMP_SUM = "lump-sum"  # 一次性还本付息

    @property
    def label(self) -> str:
        return {
            "equal-payment": "等额本息",
            "equal-principal": "等额本金",
            "interest-first": "先息后本",
            "lump-sum": "一次性还本付息",
        }[self.value]

    @property
    def is_amortizing(self) -> bool:
        return self in (RepaymentMethod.EQUAL_PAYMENT, RepaymentMethod.EQUAL_PRINCIPAL)


class MortgageLoanType(str, Enum):
    COMMERCIAL = "commercial"
    PROVIDENT = "provident"
    COMBINATION = "combination"

    @property
    def label(self) -> str:
        return {
            "commercial": "商业贷款",
            "provident": "公积金贷款",
            "combination": "组合贷款",
        }[self.value]


class CarLoanType(str, Enum):
    INSTALLMENT = "installment"
    BANK_LOAN = "bankLoan"

    @property
    def label(self) -> str:
        return {
            "installment": "分期",
            "bankLoan": "银行贷款",
        }[self.value]


class RateType(str, Enum):
    FIXED = "fixed"
    FLOATING = "floating"

    @property
    def label(self) -> str:
        return {
            "fixed": "固定利率",
            "floating": "浮动利率(LPR+基点)",
        }[self.value]


class DayBasis(IntEnum):
    ACT_360 = 360
    ACT_365 = 365


class PrepaymentMethod(str, Enum):
    REDUCE_PAYMENT = "reduce_payment"  # 减少月供
    SHORTEN_TERM = "shorten_term"  # 缩短年限
    CUSTOM_PAYMENT = "custom_payment"  # 自定义月供

    @property
    def label(self) -> str:
        return {
            "reduce_payment": "减少月供",
            "shorten_term": "缩短年限",
            "custom_payment": "自定义月供",
        }[self.value]


# Sheet 名称
SHEET_CONFIRMED_DEBTS = "已确认债务"
SHEET_MORTGAGE_RECORDS = "房贷明细"
SHEET_CONFIG = "系统配置"

# 列定义
CONFIRMED_DEBTS_COLUMNS = [
    "debt_id", "debt_type", "name", "count", "amount_wan",
    "monthly_payment_yuan", "remaining_months", "remaining_interest_wan",
    "records_json", "confirmed_at",
]

MORTGAGE_RECORDS_COLUMNS = ["record_id", "property_name", "loan_type", "record_json"]

AMORTIZATION_SCHEDULE_COLUMNS = [
    "period", "due_date", "monthly_payment", "principal", "interest",
    "remaining_principal", "cumulative_principal", "cumulative_interest",
]

INTEREST_FIRST_SCHEDULE_COLUMNS = [
    "period", "from_date", "to_date", "actual_days",
    "interest", "principal", "payment", "is_last",
]

REPAYMENT_EVENT_COLUMNS = [
    "date", "debt_type", "name", "amount_yuan", "due_day", "event_id",
]

CONFIG_COLUMNS = ["key", "value", "description", "updated_at"]
