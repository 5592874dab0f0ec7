import uuid
from datetime import datetime


def generate_record_id(debt_type: str) -> str:
    """单条贷款记录 ID，例如 mortgage-20260101120000-ab12"""
    return f"{debt_type}-{datetime.now().strftime('%Y%m%d%H%M%S')}-{uuid.uuid4().hex[:4]}"


def generate_debt_id() -> str:
    """已确认债务 ID"""
    return f"DEBT-{datetime.now().strftime('%Y%m%d%H%M%S')}-{uuid.uuid4().hex[:4]}"
