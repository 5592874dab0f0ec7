from typing import Tuple

from config.constants import CarLoanType, DebtType, MortgageLoanType, PrepaymentMethod, RepaymentMethod
from core.calculator import private_loan_rate_pct, to_float
from data_manager.schema import (
    RECORD_TYPES, CarLoanRecord, CreditCardRecord, MortgageRecord, MortgageTranche, PrivateLoanRecord,
    TermLoanRecord,
)
from utils.date_utils import parse_date


def validate_prepayment(
    amount: float,
    remaining_principal: float,
    method: str,
    fee_pct: float = 0.0,
) -> Tuple[bool, str]:
    """校验提前还款输入"""
    if amount is None or amount <= 0:
        return False, "提前还款金额必须大于0"

    if remaining_principal is None or amount >= remaining_principal:
        return False, "提前还款金额必须小于剩余本金（如需全额还清请使用结清功能）"

    if method not in [e.value for e in PrepaymentMethod]:
        return False, f"无效的提前还款方式: {method}"

    if fee_pct is None or not 0 <= fee_pct < 100:
        return False, "手续费比例必须在0-100%之间"

    return True, ""


def _check_dates(start, end) -> Tuple[bool, str]:
    start_d = parse_date(start)
    end_d = parse_date(end)
    if end is not None and end != "" and end_d is None:
        return False, f"无法识别的到期日期: {end}"
    if start is not None and start != "" and start_d is None:
        return False, f"无法识别的开始日期: {start}"
    if start_d and end_d and end_d <= start_d:
        return False, "到期日期必须晚于开始日期"
    return True, ""


def _check_method(method) -> Tuple[bool, str]:
    if method and method not in [e.value for e in RepaymentMethod]:
        return False, f"无效的还款方式: {method}"
    return True, ""


def _check_remaining(principal, remaining) -> Tuple[bool, str]:
    principal = to_float(principal)
    remaining = to_float(remaining)
    if remaining is not None and remaining < 0:
        return False, "剩余本金不能为负数"
    if principal is not None and remaining is not None and remaining > principal:
        return False, "剩余本金不能大于贷款本金"
    return True, ""


def _validate_tranche(label: str, tranche: MortgageTranche) -> Tuple[bool, str]:
    for ok, msg in (
        _check_remaining(tranche.principal_wan, tranche.remaining_principal_wan),
        _check_dates(tranche.start_date, tranche.end_date),
        _check_method(tranche.repayment_method),
    ):
        if not ok:
            return False, f"{label}: {msg}"
    return True, ""


def validate_loan_record(debt_type, record) -> Tuple[bool, str]:
    """校验已填写字段是否自相矛盾（不要求填写完整），返回 (是否合法, 错误信息)"""
    try:
        debt_type = DebtType(debt_type)
    except ValueError:
        return False, f"无效的债务类型: {debt_type}"
    if not isinstance(record, RECORD_TYPES[debt_type.value]):
        return False, f"{debt_type.label}记录类型不匹配: {type(record).__name__}"

    if isinstance(record, MortgageRecord):
        if record.loan_type and record.loan_type not in [e.value for e in MortgageLoanType]:
            return False, f"无效的房贷类型: {record.loan_type}"
        for label, tranche in (("商业贷款", record.commercial), ("公积金贷款", record.provident)):
            ok, msg = _validate_tranche(label, tranche)
            if not ok:
                return False, msg
        return True, ""

    if isinstance(record, CarLoanRecord):
        if record.loan_type and record.loan_type not in [e.value for e in CarLoanType]:
            return False, f"无效的车贷类型: {record.loan_type}"
        day = to_float(record.repayment_day)
        if day is not None and not 1 <= day <= 31:
            return False, "还款日必须在1-31之间"
        checks = (
            _check_remaining(record.principal_wan, record.remaining_principal_wan),
            _check_dates(record.start_date, record.end_date),
            _check_method(record.repayment_method),
        )
    elif isinstance(record, TermLoanRecord):
        rate = to_float(record.annual_rate_pct)
        if rate is not None and (rate < 0 or rate > 36):
            return False, "年利率必须在0-36%之间"
        checks = (
            _check_remaining(record.loan_amount_wan, record.remaining_principal_wan),
            _check_dates(record.start_date, record.end_date),
            _check_method(record.repayment_method),
        )
    elif isinstance(record, PrivateLoanRecord):
        fen = to_float(record.rate_fen)
        li = to_float(record.rate_li)
        if (fen is not None and fen < 0) or (li is not None and li < 0):
            return False, "分/厘不能为负数"
        if private_loan_rate_pct(fen, li) > 36:
            return False, "民间借贷年化利率不能超过36%"
        checks = (
            _check_dates(record.start_date, record.end_date),
            _check_method(record.repayment_method),
        )
    elif isinstance(record, CreditCardRecord):
        for value in (record.current_amount_yuan, record.unbilled_amount_yuan):
            amount = to_float(value)
            if amount is not None and amount < 0:
                return False, "账单金额不能为负数"
        day = to_float(record.repayment_day)
        if day is not None and not 1 <= day <= 31:
            return False, "还款日必须在1-31之间"
        return True, ""

    for ok, msg in checks:
        if not ok:
            return False, msg
    return True, ""
