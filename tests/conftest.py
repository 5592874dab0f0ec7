import sys
import pytest
from datetime import date
from pathlib import Path

# 确保项目根目录在 sys.path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from data_manager.schema import (
    ConsumerLoanRecord, FixedRate, MortgageRecord, MortgageTranche,
)


@pytest.fixture
def today():
    return date(2026, 10, 19)


@pytest.fixture
def commercial_tranche():
    """100 万商贷，3.5%，20 年等额本息"""
    return MortgageTranche(
        principal_wan=100, remaining_principal_wan=100,
        start_date="2020-05-15", end_date="2040-05-15",
        repayment_method="equal-payment", rate=FixedRate(3.5),
    )


@pytest.fixture
def commercial_mortgage(commercial_tranche):
    return MortgageRecord(
        id="m1", property_name="滨江花园", loan_type="commercial",
        commercial=commercial_tranche,
    )


@pytest.fixture
def interest_first_loan():
    """10 万消费贷，3.6%，先息后本，每月 15 日付息"""
    return ConsumerLoanRecord(
        id="c1", name="装修贷", loan_amount_wan=10,
        start_date="2026-09-15", end_date="2027-01-15",
        annual_rate_pct=3.6, repayment_method="interest-first",
    )
