"""
时间转换工具
虚拟时间单位与毫秒、秒之间的转换和格式化

cargo解析器输出的时长单位为毫秒；
SimulationConfig.time_unit_ms 描述一个虚拟时间单位对应的毫秒数
"""

from typing import Optional


def units_to_ms(value: float, time_unit_ms: float = 1.0) -> float:
    """虚拟时间单位转换为毫秒"""
    return value * time_unit_ms


def units_to_seconds(value: float, time_unit_ms: float = 1.0) -> float:
    """虚拟时间单位转换为秒"""
    return value * time_unit_ms / 1000.0


def format_duration(seconds: float) -> str:
    """
    格式化时长为cargo报告使用的形式

    Args:
        seconds: 时长（秒）

    Returns:
        格式化字符串，如 "45.0s" 或 "75.3s (1m 15.3s)"
    """
    text = f"{seconds:.1f}s"
    if seconds > 60:
        text += f" ({int(seconds // 60)}m {seconds % 60:.1f}s)"
    return text


def format_duration_short(seconds: float) -> str:
    """
    格式化时长为短格式

    Args:
        seconds: 时长（秒）

    Returns:
        格式化字符串，如 "850ms"、"12.3s" 或 "2m05s"
    """
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    return f"{int(seconds // 60)}m{int(seconds % 60):02d}s"


def format_units(value: float, time_unit_ms: Optional[float] = 1.0) -> str:
    """
    将虚拟时间格式化为易读字符串

    Args:
        value: 虚拟时间
        time_unit_ms: 一个单位对应的毫秒数

    Returns:
        格式化字符串
    """
    return format_duration(units_to_seconds(value, time_unit_ms or 1.0))


def round_seconds(seconds: float, digits: int = 2) -> float:
    """按报告精度取整（默认保留两位小数）"""
    return round(seconds, digits)
