def fmt_yuan(value: float) -> str:
    """格式化元：1234567.89 -> 1,234,567.89 元"""
    return f"{value:,.2f} 元"


def fmt_wan(value: float) -> str:
    """格式化万元（入参已是万）：123.4567 -> 123.46 万元"""
    if abs(value) >= 1e4:
        return f"{value / 1e4:,.2f} 亿元"
    return f"{value:,.2f} 万元"


def fmt_months(months: int) -> str:
    """格式化月数为年月：36 -> 3年"""
    if months <= 0:
        return "0个月"
    years = months // 12
    remain = months % 12
    if remain == 0:
        return f"{years}年"
    if years == 0:
        return f"{remain}个月"
    return f"{years}年{remain}个月"
