import json
import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import pandas as pd
from openpyxl import load_workbook

from config.constants import (
    SHEET_CONFIRMED_DEBTS, SHEET_MORTGAGE_RECORDS, SHEET_CONFIG,
    CONFIRMED_DEBTS_COLUMNS, MORTGAGE_RECORDS_COLUMNS, CONFIG_COLUMNS,
    DebtType,
)
from config.settings import (
    EXCEL_FILE, MAX_BACKUPS, DEFAULT_LPR_5Y, DEFAULT_PROVIDENT_RATE, DEFAULT_DAY_BASIS,
)
from data_manager.schema import ConfirmedDebt, MortgageRecord, record_from_dict, record_to_dict

logger = logging.getLogger(__name__)


def _default_config_rows() -> List[dict]:
    now = datetime.now().isoformat()
    return [
        {"key": "lpr_5y", "value": str(DEFAULT_LPR_5Y), "description": "5年期以上LPR(%)", "updated_at": now},
        {"key": "provident_rate", "value": str(DEFAULT_PROVIDENT_RATE), "description": "公积金贷款利率(%)", "updated_at": now},
        {"key": "day_basis", "value": str(DEFAULT_DAY_BASIS), "description": "先息后本计息基础天数", "updated_at": now},
    ]


def init_excel(filepath: Path = EXCEL_FILE):
    """初始化 Excel 文件，创建所有 Sheet 和表头"""
    filepath.parent.mkdir(parents=True, exist_ok=True)
    if filepath.exists():
        return

    with pd.ExcelWriter(filepath, engine="openpyxl") as writer:
        pd.DataFrame(columns=CONFIRMED_DEBTS_COLUMNS).to_excel(
            writer, sheet_name=SHEET_CONFIRMED_DEBTS, index=False)
        pd.DataFrame(columns=MORTGAGE_RECORDS_COLUMNS).to_excel(
            writer, sheet_name=SHEET_MORTGAGE_RECORDS, index=False)
        config_df = pd.DataFrame(_default_config_rows(), columns=CONFIG_COLUMNS)
        config_df.to_excel(writer, sheet_name=SHEET_CONFIG, index=False)
    logger.info("已创建数据文件 %s", filepath)


def backup_excel(filepath: Path = EXCEL_FILE):
    """写入前自动备份，只保留最近 MAX_BACKUPS 个"""
    if not filepath.exists():
        return
    ts = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    backup_path = filepath.with_suffix(f".xlsx.bak_{ts}")
    shutil.copy2(filepath, backup_path)
    backups = sorted(filepath.parent.glob(f"{filepath.stem}.xlsx.bak_*"))
    for old in backups[:-MAX_BACKUPS]:
        old.unlink()
    logger.info("已备份 %s -> %s", filepath.name, backup_path.name)


def read_sheet(sheet_name: str, filepath: Path = EXCEL_FILE) -> pd.DataFrame:
    """读取指定 Sheet，空单元格为 None"""
    init_excel(filepath)
    try:
        df = pd.read_excel(filepath, sheet_name=sheet_name, engine="openpyxl")
    except ValueError:
        logger.warning("Sheet %s 不存在，返回空表", sheet_name)
        return pd.DataFrame()
    return df.astype(object).where(pd.notna(df), None)


def write_sheet(df: pd.DataFrame, sheet_name: str, filepath: Path = EXCEL_FILE):
    """写入指定 Sheet（覆盖该 Sheet，保留其他 Sheet）"""
    init_excel(filepath)
    backup_excel(filepath)

    wb = load_workbook(filepath)
    if sheet_name in wb.sheetnames:
        del wb[sheet_name]
    wb.save(filepath)

    with pd.ExcelWriter(filepath, engine="openpyxl", mode="a", if_sheet_exists="replace") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
    logger.info("已写入 %s (%d 行)", sheet_name, len(df))


# ---- 已确认债务 ----

def get_all_debts(filepath: Path = EXCEL_FILE) -> pd.DataFrame:
    return read_sheet(SHEET_CONFIRMED_DEBTS, filepath)


def get_confirmed_debts(filepath: Path = EXCEL_FILE) -> List[ConfirmedDebt]:
    df = get_all_debts(filepath)
    return [ConfirmedDebt.from_dict(row) for row in df.to_dict("records")]


def get_confirmed_debt(debt_id: str, filepath: Path = EXCEL_FILE) -> Optional[ConfirmedDebt]:
    for debt in get_confirmed_debts(filepath):
        if debt.debt_id == debt_id:
            return debt
    return None


def save_confirmed_debt(debt: ConfirmedDebt, filepath: Path = EXCEL_FILE):
    """保存已确认债务；同 debt_id 已存在时覆盖"""
    df = get_all_debts(filepath)
    row = debt.to_dict()
    if not df.empty and debt.debt_id in df["debt_id"].astype(str).values:
        df = df[df["debt_id"].astype(str) != debt.debt_id]
    df = pd.concat([df, pd.DataFrame([row], columns=CONFIRMED_DEBTS_COLUMNS)], ignore_index=True)
    write_sheet(df[CONFIRMED_DEBTS_COLUMNS], SHEET_CONFIRMED_DEBTS, filepath)


def delete_confirmed_debt(debt_id: str, filepath: Path = EXCEL_FILE) -> bool:
    df = get_all_debts(filepath)
    if df.empty or debt_id not in df["debt_id"].astype(str).values:
        return False
    df = df[df["debt_id"].astype(str) != debt_id]
    write_sheet(df, SHEET_CONFIRMED_DEBTS, filepath)
    return True


# ---- 房贷明细 ----

def get_mortgage_records(filepath: Path = EXCEL_FILE) -> List[MortgageRecord]:
    df = read_sheet(SHEET_MORTGAGE_RECORDS, filepath)
    if df.empty:
        return []
    return [
        record_from_dict(DebtType.MORTGAGE, json.loads(raw))
        for raw in df["record_json"] if raw
    ]


def save_mortgage_records(records: List[MortgageRecord], filepath: Path = EXCEL_FILE):
    """保存房贷明细（整表替换）"""
    rows = [{
        "record_id": r.id,
        "property_name": r.property_name,
        "loan_type": r.loan_type,
        "record_json": json.dumps(record_to_dict(r), ensure_ascii=False),
    } for r in records]
    write_sheet(pd.DataFrame(rows, columns=MORTGAGE_RECORDS_COLUMNS), SHEET_MORTGAGE_RECORDS, filepath)


# ---- 系统配置 ----

def get_config(key: str, filepath: Path = EXCEL_FILE) -> Optional[str]:
    df = read_sheet(SHEET_CONFIG, filepath)
    match = df[df["key"] == key]
    if match.empty:
        return None
    return str(match.iloc[0]["value"])


def get_float_config(key: str, default: float, filepath: Path = EXCEL_FILE) -> float:
    """读取数值配置，缺失或无法解析时用默认值"""
    value = get_config(key, filepath)
    try:
        return float(value) if value is not None else default
    except ValueError:
        logger.warning("配置 %s=%r 不是数字，使用默认值 %s", key, value, default)
        return default


def get_all_config(filepath: Path = EXCEL_FILE) -> pd.DataFrame:
    """获取所有系统配置"""
    return read_sheet(SHEET_CONFIG, filepath)


def set_config(key: str, value: str, description: str = "", filepath: Path = EXCEL_FILE):
    df = read_sheet(SHEET_CONFIG, filepath)
    now = datetime.now().isoformat()
    if key in df["key"].values:
        df.loc[df["key"] == key, "value"] = value
        df.loc[df["key"] == key, "updated_at"] = now
        if description:
            df.loc[df["key"] == key, "description"] = description
    else:
        new_row = pd.DataFrame([{
            "key": key, "value": value,
            "description": description, "updated_at": now,
        }])
        df = pd.concat([df, new_row], ignore_index=True)
    write_sheet(df, SHEET_CONFIG, filepath)
