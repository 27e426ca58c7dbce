"""
报告导出工具
将仿真结果导出为CSV、JSON、文本摘要和cargo风格的HTML计时报告

功能:
- 计时记录CSV导出（可带BOM，便于表格软件打开）
- 完整结果JSON导出
- 终端文本摘要
- HTML计时报告（摘要表、单元表、并发度与CPU占用数据）

HTML报告沿用cargo计时报告的数据格式（UNIT_DATA / CONCURRENCY_DATA / CPU_USAGE），
时间单位为秒；不包含meta单元与解锁单元统计
"""

import csv
import html
import io
import json
import math
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional

from buildsim.models.result_model import SimulationResult
from buildsim.models.timing_model import TIMING_CSV_HEADERS
from buildsim.utils.time_converter import (
    format_duration,
    format_units,
    round_seconds,
    units_to_seconds,
)
from buildsim.utils.statistics import calculate_cpu_usage


def export_timings_csv(result: SimulationResult) -> str:
    """
    导出计时记录为CSV字符串

    Args:
        result: 仿真结果

    Returns:
        CSV内容字符串
    """
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow(TIMING_CSV_HEADERS)
    for entry in result.records:
        writer.writerow(entry.to_csv_row())

    return output.getvalue()


def export_timings_csv_bytes(result: SimulationResult) -> bytes:
    """
    导出计时记录为CSV字节（带BOM）

    Returns:
        CSV内容字节（UTF-8 with BOM）
    """
    return export_timings_csv(result).encode("utf-8-sig")


def export_timings_json(result: SimulationResult, indent: Optional[int] = 2) -> str:
    """
    导出完整仿真结果为JSON字符串

    Args:
        result: 仿真结果
        indent: 缩进

    Returns:
        JSON字符串
    """
    return json.dumps(result.to_dict(), ensure_ascii=False, indent=indent)


def render_text_summary(result: SimulationResult) -> str:
    """
    生成终端文本摘要

    Args:
        result: 仿真结果

    Returns:
        多行文本
    """
    config = result.config
    time_unit_ms = config.time_unit_ms if config else 1.0
    lines = [
        f"运行: {result.label}",
        f"单元数: {result.unit_count}",
        f"makespan: {result.makespan} ({format_units(result.makespan, time_unit_ms)})",
        f"关键路径下界: {result.critical_path_length}",
        f"加速比: {result.speedup:.2f}x",
        f"平均执行槽利用率: {result.avg_slot_utilization * 100:.1f}%",
    ]
    return "\n".join(lines)


def _unit_name(unit_id: str) -> str:
    """单元ID去掉包来源后缀，例如 'serde 1.0.0 (registry+...)#metadata' -> 'serde 1.0.0'"""
    package_id, _, _ = unit_id.partition("#")
    return package_id.split("(", 1)[0].strip()


def _unit_mode(unit_id: str) -> str:
    """单元ID中的产物类型"""
    return unit_id.rpartition("#")[2] if "#" in unit_id else ""


def build_report_data(
    result: SimulationResult,
    targets: Optional[Dict[str, str]] = None
) -> Dict[str, list]:
    """
    构建HTML报告使用的数据

    Args:
        result: 仿真结果
        targets: 单元ID -> 目标名称

    Returns:
        包含 unit_data / concurrency_data / cpu_usage 的字典（时间单位为秒）
    """
    time_unit_ms = result.config.time_unit_ms if result.config else 1.0
    targets = targets or {}

    def seconds(value: float) -> float:
        return round_seconds(units_to_seconds(value, time_unit_ms))

    unit_data = []
    for i, entry in enumerate(result.records):
        unit_data.append({
            "i": i,
            "name": _unit_name(entry.unit_id),
            "mode": _unit_mode(entry.unit_id),
            "target": targets.get(entry.unit_id, ""),
            "start": seconds(entry.start_time),
            "duration": seconds(entry.duration),
            "rmeta_time": None,
            "slot": entry.slot_id,
            "unlocked_units": [],
            "unlocked_rmeta_units": [],
        })

    concurrency_data = [
        {
            "t": seconds(s.t),
            "active": s.active,
            "waiting": s.waiting,
            "inactive": s.inactive,
        }
        for s in result.concurrency
    ]
    cpu_usage = [
        [seconds(t), round(usage, 2)] for t, usage in calculate_cpu_usage(result)
    ]

    return {
        "unit_data": unit_data,
        "concurrency_data": concurrency_data,
        "cpu_usage": cpu_usage,
    }


_HTML_HEAD = """<html>
<head>
  <title>Build Timings</title>
  <meta charset="utf-8">
<style type="text/css">
html { font-family: sans-serif; }
h1 { border-bottom: 1px solid #c0c0c0; }
.my-table { margin-top: 20px; margin-bottom: 20px; border-collapse: collapse; }
.my-table th { color: #d5dde5; background: #1b1e24; padding: 12px; text-align: left; }
.my-table td { padding: 10px; text-align: left; border-right: 1px solid #c1c3d1; }
.my-table tr:nth-child(odd) td { background: #ebebeb; }
.summary-table td:first-child { vertical-align: top; text-align: right; }
</style>
</head>
<body>

<h1>Build Timings</h1>
"""


def _format_start(build_start: datetime) -> str:
    """RFC 3339 格式（秒精度，UTC）"""
    return build_start.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def render_html_report(
    result: SimulationResult,
    build_start: Optional[datetime] = None,
    targets: Optional[Dict[str, str]] = None
) -> str:
    """
    生成cargo风格的HTML计时报告

    Args:
        result: 仿真结果
        build_start: 报告中显示的构建开始时间，默认当前时间
        targets: 单元ID -> 目标名称

    Returns:
        HTML文本
    """
    build_start = build_start or datetime.now(timezone.utc)
    time_unit_ms = result.config.time_unit_ms if result.config else 1.0
    total_seconds = units_to_seconds(result.makespan, time_unit_ms)
    data = build_report_data(result, targets)

    out = io.StringIO()
    out.write(_HTML_HEAD)

    out.write('<table class="my-table summary-table">\n')
    summary_rows = [
        ("Build start:", _format_start(build_start)),
        ("Total time:", format_duration(total_seconds)),
        ("Run:", result.label),
        ("Units:", str(result.unit_count)),
        ("Slots:", str(result.config.num_threads if result.config else 0)),
        ("Speedup:", f"{result.speedup:.2f}x"),
    ]
    for name, value in summary_rows:
        out.write(f"  <tr>\n    <td>{html.escape(name)}</td><td>{html.escape(value)}</td>\n  </tr>\n")
    out.write("</table>\n\n")

    out.write('<table class="my-table">\n  <thead>\n    <tr>\n')
    out.write("      <th></th><th>Unit</th><th>Mode</th><th>Start</th><th>Duration</th><th>Slot</th>\n")
    out.write("    </tr>\n  </thead>\n  <tbody>\n")
    by_duration = sorted(data["unit_data"], key=lambda u: (-u["duration"], u["i"]))
    for position, unit in enumerate(by_duration, start=1):
        out.write(
            "    <tr>\n"
            f"      <td>{position}.</td>"
            f"<td>{html.escape(unit['name'])}</td>"
            f"<td>{html.escape(unit['mode'])}</td>"
            f"<td>{unit['start']:.2f}s</td>"
            f"<td>{unit['duration']:.2f}s</td>"
            f"<td>{unit['slot']}</td>\n"
            "    </tr>\n"
        )
    out.write("  </tbody>\n</table>\n\n")

    out.write("<script>\n")
    out.write(f"DURATION = {math.ceil(total_seconds)};\n")
    out.write(f"const UNIT_DATA = {json.dumps(data['unit_data'], indent=2)};\n")
    out.write(f"const CONCURRENCY_DATA = {json.dumps(data['concurrency_data'], indent=2)};\n")
    out.write(f"const CPU_USAGE = {json.dumps(data['cpu_usage'], indent=2)};\n")
    out.write("</script>\n</body>\n</html>\n")

    return out.getvalue()


def report_filename(suffix: str, build_start: datetime) -> str:
    """
    生成报告文件名

    Args:
        suffix: 文件名后缀（通常为运行标签）
        build_start: 构建开始时间

    Returns:
        形如 buildsim-timing-{suffix}-{timestamp}.html 的文件名
    """
    timestamp = _format_start(build_start).replace("-", "").replace(":", "")
    safe_suffix = "".join(c if c.isalnum() or c in "-_.@" else "_" for c in suffix)
    return f"buildsim-timing-{safe_suffix}-{timestamp}.html"


def write_html_report(
    result: SimulationResult,
    directory: str = ".",
    suffix: Optional[str] = None,
    build_start: Optional[datetime] = None,
    targets: Optional[Dict[str, str]] = None
) -> str:
    """
    将HTML报告写入目录

    Args:
        result: 仿真结果
        directory: 输出目录（不存在时创建）
        suffix: 文件名后缀，默认使用运行标签
        build_start: 构建开始时间
        targets: 单元ID -> 目标名称

    Returns:
        写入的文件路径
    """
    build_start = build_start or datetime.now(timezone.utc)
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, report_filename(suffix or result.label, build_start))
    with open(path, "w", encoding="utf-8") as f:
        f.write(render_html_report(result, build_start, targets))
    return path


def render_comparison_text(rows: List[dict]) -> str:
    """
    将对比表渲染为终端文本

    Args:
        rows: build_comparison_table 的输出

    Returns:
        多行文本
    """
    lines = [f"{'#':>3}  {'运行':<32} {'makespan':>12} {'加速比':>8} {'利用率':>8}"]
    for row in rows:
        lines.append(
            f"{row['rank']:>3}  {row['label']:<32} {row['makespan']:>12} "
            f"{row['speedup']:>7.2f}x {row['avg_slot_utilization'] * 100:>7.1f}%"
        )
    return "\n".join(lines)
