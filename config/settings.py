from pathlib import Path

# 项目根目录
PROJECT_ROOT = Path(__file__).parent.parent

# 数据文件路径
DATA_DIR = PROJECT_ROOT / "data"
EXCEL_FILE = DATA_DIR / "debt_data.xlsx"
MAX_BACKUPS = 5

# 默认利率 (%)
DEFAULT_LPR_5Y = 3.5
DEFAULT_PROVIDENT_RATE = 2.85

# 计息天数基础：先息后本按 ACT/360，一次性还本付息按 ACT/365
DEFAULT_DAY_BASIS = 360
LUMP_SUM_DAY_BASIS = 365

# 各债务类型的默认还款日
DEFAULT_DUE_DAYS = {
    "mortgage": 20,
    "carLoan": 25,
    "consumerLoan": 15,
    "businessLoan": 10,
    "privateLoan": 25,
    "creditCard": 5,
}

# 日志
LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# 金额精度
AMOUNT_PRECISION = 2
WAN_PRECISION = 4
