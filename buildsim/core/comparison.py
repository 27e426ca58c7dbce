"""
策略与线程数对比
对同一依赖图执行多次相互独立的仿真

功能:
- 多策略对比
- 线程数扫描
- 可选的线程池并行执行（每次运行拥有独立的队列、执行槽与时钟）

结果总是按输入顺序返回
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Sequence

from buildsim.models.config_model import SimulationConfig
from buildsim.models.result_model import SimulationResult
from buildsim.core.unit_graph import UnitGraph
from buildsim.core.policies import available_policies, resolve_policy_name
from buildsim.core.simulation_engine import SimulationEngine
from buildsim.core.exceptions import ConfigError


logger = logging.getLogger(__name__)


def run_many(
    graph: UnitGraph,
    configs: Sequence[SimulationConfig],
    recorded_order: Optional[Iterable[str]] = None,
    max_workers: int = 1
) -> List[SimulationResult]:
    """
    执行多次独立仿真

    引擎全部在提交前创建，配置错误不会产生部分结果

    Args:
        graph: 单元依赖图（只读共享）
        configs: 每次运行的配置
        recorded_order: 记录的构建顺序
        max_workers: 并行线程数，1表示顺序执行

    Returns:
        仿真结果列表（与configs顺序一致）
    """
    order = list(recorded_order) if recorded_order is not None else None
    engines = [SimulationEngine(c, graph, recorded_order=order) for c in configs]

    if max_workers <= 1 or len(engines) <= 1:
        return [engine.run() for engine in engines]

    logger.info("并行执行 %d 次仿真（%d 线程）", len(engines), max_workers)
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(lambda engine: engine.run(), engines))


def compare_policies(
    graph: UnitGraph,
    base_config: Optional[SimulationConfig] = None,
    policies: Optional[Iterable] = None,
    recorded_order: Optional[Iterable[str]] = None,
    max_workers: int = 1
) -> List[SimulationResult]:
    """
    对比不同调度策略

    Args:
        graph: 单元依赖图
        base_config: 基础配置（槽数等）
        policies: 策略名称列表，默认使用所有可用策略
        recorded_order: 记录的构建顺序
        max_workers: 并行线程数

    Returns:
        每个策略的仿真结果
    """
    base_config = base_config or SimulationConfig()
    order = list(recorded_order) if recorded_order is not None else None

    if policies is None:
        names = available_policies(has_recorded_order=bool(order))
    else:
        names = [resolve_policy_name(p) for p in policies]
    if not names:
        raise ConfigError("至少需要一个调度策略")

    configs = [
        base_config.model_copy(update={"policy": name, "label": None})
        for name in names
    ]
    return run_many(graph, configs, order, max_workers)


def sweep_threads(
    graph: UnitGraph,
    thread_counts: Iterable[int],
    base_config: Optional[SimulationConfig] = None,
    recorded_order: Optional[Iterable[str]] = None,
    max_workers: int = 1
) -> List[SimulationResult]:
    """
    扫描不同执行槽数量

    Args:
        graph: 单元依赖图
        thread_counts: 执行槽数量列表
        base_config: 基础配置（策略等）
        recorded_order: 记录的构建顺序
        max_workers: 并行线程数

    Returns:
        每个槽数的仿真结果

    Raises:
        ConfigError: 槽数量小于1
    """
    base_config = base_config or SimulationConfig()
    counts = list(thread_counts)
    if not counts:
        raise ConfigError("至少需要一个执行槽数量")
    for n in counts:
        if not isinstance(n, int) or isinstance(n, bool) or n <= 0:
            raise ConfigError(f"执行槽数量必须为正整数（当前为 {n!r}）")

    configs = [
        base_config.model_copy(update={"num_threads": n, "label": None})
        for n in counts
    ]
    return run_many(graph, configs, recorded_order, max_workers)


def best_result(results: Sequence[SimulationResult]) -> Optional[SimulationResult]:
    """返回makespan最小的结果（并列时取靠前者）"""
    if not results:
        return None
    return min(results, key=lambda r: r.makespan)


__all__ = [
    "run_many",
    "compare_policies",
    "sweep_threads",
    "best_result",
]
