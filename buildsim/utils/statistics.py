"""
KPI统计计算工具
提供仿真结果的统计分析功能

功能:
- 并发度时间线的加权统计（NumPy）
- 执行槽利用率统计
- 综合KPI汇总
- 多次运行的对比排名
"""

from typing import Any, Dict, List, Sequence
import numpy as np

from buildsim.models.result_model import SimulationResult, SlotUtilization


def calculate_utilization_rate(busy_time: float, total_time: float) -> float:
    """
    计算利用率

    Args:
        busy_time: 忙碌时间
        total_time: 总时间

    Returns:
        利用率（0-1）
    """
    if total_time <= 0:
        return 0.0
    return min(1.0, busy_time / total_time)


def _timeline_arrays(result: SimulationResult):
    """并发度时间线转换为 (时间, 执行中, 等待槽, 等待依赖) 数组"""
    samples = result.concurrency
    t = np.array([s.t for s in samples], dtype=float)
    active = np.array([s.active for s in samples], dtype=float)
    waiting = np.array([s.waiting for s in samples], dtype=float)
    inactive = np.array([s.inactive for s in samples], dtype=float)
    return t, active, waiting, inactive


def _time_weighted_mean(t: np.ndarray, values: np.ndarray, end: float) -> float:
    """阶梯函数在 [t0, end] 上的时间加权平均"""
    if len(t) == 0 or end <= t[0]:
        return 0.0
    spans = np.diff(np.append(t, end))
    spans = np.clip(spans, 0, None)
    total = spans.sum()
    if total <= 0:
        return 0.0
    return float(np.dot(values, spans) / total)


def calculate_average_parallelism(result: SimulationResult) -> float:
    """
    计算平均并行度

    即执行中单元数在整个makespan上的时间加权平均，
    等于总工作量 / makespan

    Args:
        result: 仿真结果

    Returns:
        平均并行度
    """
    t, active, _, _ = _timeline_arrays(result)
    return _time_weighted_mean(t, active, result.makespan)


def calculate_cpu_usage(result: SimulationResult) -> List[List[float]]:
    """
    计算CPU占用曲线（执行中单元数 / 执行槽数 * 100）

    Args:
        result: 仿真结果

    Returns:
        [时间, 百分比] 列表
    """
    num_slots = result.config.num_threads if result.config else 1
    t, active, _, _ = _timeline_arrays(result)
    usage = active / num_slots * 100.0
    return [[float(x), float(y)] for x, y in zip(t, usage)]


def calculate_slot_statistics(slot_stats: List[SlotUtilization]) -> Dict[str, Any]:
    """
    计算执行槽统计数据

    Args:
        slot_stats: 执行槽统计列表

    Returns:
        执行槽统计摘要
    """
    if not slot_stats:
        return {
            "count": 0,
            "avg_utilization": 0,
            "max_utilization": 0,
            "min_utilization": 0,
            "std_utilization": 0,
            "idle_slots": [],
            "details": []
        }

    rates = np.array([s.utilization_rate for s in slot_stats], dtype=float)
    return {
        "count": len(slot_stats),
        "avg_utilization": float(rates.mean()),
        "max_utilization": float(rates.max()),
        "min_utilization": float(rates.min()),
        "std_utilization": float(rates.std()),
        "avg_utilization_percentage": f"{rates.mean() * 100:.1f}%",
        # 从未执行过单元的执行槽
        "idle_slots": [s.slot_id for s in slot_stats if s.units_completed == 0],
        "details": [
            {
                "slot_id": s.slot_id,
                "busy_time": s.busy_time,
                "idle_time": s.idle_time,
                "utilization": s.utilization_rate,
                "units": s.units_completed
            }
            for s in slot_stats
        ]
    }


def calculate_kpi(result: SimulationResult) -> Dict[str, Any]:
    """
    计算完整的KPI指标

    Args:
        result: 仿真结果

    Returns:
        KPI指标字典
    """
    t, active, waiting, inactive = _timeline_arrays(result)

    time_kpi = {
        "makespan": result.makespan,
        "critical_path_length": result.critical_path_length,
        "total_work": result.total_work,
        # makespan超出关键路径下界的比例
        "critical_path_ratio": result.critical_path_ratio,
    }

    parallelism_kpi = {
        "num_threads": result.config.num_threads if result.config else 0,
        "speedup": result.speedup,
        "avg_parallelism": _time_weighted_mean(t, active, result.makespan),
        "peak_parallelism": int(active.max()) if len(active) else 0,
        "avg_waiting_for_slot": _time_weighted_mean(t, waiting, result.makespan),
        "peak_waiting_for_slot": int(waiting.max()) if len(waiting) else 0,
        "avg_waiting_for_dependencies": _time_weighted_mean(t, inactive, result.makespan),
    }

    return {
        "run": {
            "sim_id": result.sim_id,
            "label": result.label,
            "policy": result.config.policy.value if result.config else "",
            "unit_count": result.unit_count
        },
        "time": time_kpi,
        "parallelism": parallelism_kpi,
        "slots": calculate_slot_statistics(result.slot_stats)
    }


def build_comparison_table(results: Sequence[SimulationResult]) -> List[Dict[str, Any]]:
    """
    构建多次运行的对比表

    按makespan升序排名，并列时保持输入顺序

    Args:
        results: 仿真结果列表

    Returns:
        对比表行（含排名与相对最优的差距）
    """
    if not results:
        return []

    makespans = np.array([r.makespan for r in results], dtype=float)
    order = np.argsort(makespans, kind="stable")
    best = makespans[order[0]]

    rows = []
    for rank, index in enumerate(order, start=1):
        result = results[int(index)]
        gap = (result.makespan - best) / best if best > 0 else 0.0
        rows.append({
            "rank": rank,
            "label": result.label,
            "policy": result.config.policy.value if result.config else "",
            "num_threads": result.config.num_threads if result.config else 0,
            "makespan": result.makespan,
            "speedup": result.speedup,
            "avg_slot_utilization": result.avg_slot_utilization,
            "gap_to_best": float(gap),
            "sim_id": result.sim_id
        })
    return rows


def generate_kpi_report(result: SimulationResult) -> Dict[str, Any]:
    """
    生成KPI报告

    Args:
        result: 仿真结果

    Returns:
        KPI报告（含摘要文字）
    """
    kpi = calculate_kpi(result)
    parallelism = kpi["parallelism"]
    summary = []

    if result.unit_count == 0:
        summary.append("依赖图为空，makespan为0")
    else:
        summary.append(
            f"{result.unit_count} 个单元在 {parallelism['num_threads']} 个执行槽上"
            f"用时 {result.makespan}，加速比 {result.speedup:.2f}x"
        )
        if result.critical_path_ratio and result.critical_path_ratio <= 1.0 + 1e-9:
            summary.append("makespan已达到关键路径下界")
        elif parallelism["avg_waiting_for_slot"] >= 1:
            summary.append("存在等待执行槽的就绪单元，增加执行槽可能缩短makespan")
        else:
            summary.append("执行槽大多空闲，makespan主要受依赖链限制")

    return {
        "kpi": kpi,
        "summary": summary
    }
