"""
数据验证工具
提供各种数据验证功能

功能:
- 仿真配置构建与YAML配置文件加载
- 依赖图定义预检查（收集全部问题，不在首个错误处停止）
- 依赖图连通性分析
"""

import math
import os
from numbers import Real
from typing import Any, Dict, List, Mapping, Iterable, Tuple
import networkx as nx
import yaml
from pydantic import ValidationError

from buildsim.models.config_model import SimulationConfig
from buildsim.core.exceptions import ConfigError


DEFAULT_CONFIG_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
    "config", "default_config.yaml"
)


def _format_validation_error(error: ValidationError) -> str:
    """将pydantic校验错误整理为一行说明"""
    parts = []
    for item in error.errors():
        field = ".".join(str(loc) for loc in item.get("loc", ())) or "config"
        parts.append(f"{field}: {item.get('msg')}")
    return "; ".join(parts)


def make_config(**options) -> SimulationConfig:
    """
    构建仿真配置

    值为None的选项视为未提供

    Args:
        **options: SimulationConfig字段

    Returns:
        校验后的配置

    Raises:
        ConfigError: 配置无效
    """
    data = {k: v for k, v in options.items() if v is not None}
    try:
        return SimulationConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"配置无效: {_format_validation_error(e)}") from e


def load_config_file(path: str, **overrides) -> SimulationConfig:
    """
    从YAML文件加载仿真配置

    Args:
        path: 配置文件路径
        **overrides: 覆盖文件中的值（None忽略）

    Returns:
        校验后的配置

    Raises:
        ConfigError: 文件无法读取、格式错误或配置无效
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"无法读取配置文件 {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"配置文件 {path} 不是有效的YAML: {e}") from e

    if config_data is None:
        config_data = {}
    if not isinstance(config_data, dict):
        raise ConfigError(f"配置文件 {path} 的顶层必须是映射")

    config_data.update({k: v for k, v in overrides.items() if v is not None})
    return make_config(**config_data)


def load_default_config() -> SimulationConfig:
    """加载默认配置文件，不存在时使用内置默认值"""
    if os.path.exists(DEFAULT_CONFIG_PATH):
        return load_config_file(DEFAULT_CONFIG_PATH)
    return SimulationConfig()


def validate_graph_definition(
    dependencies: Mapping[str, Iterable[str]],
    durations: Mapping[str, Any]
) -> Tuple[bool, List[str], List[str]]:
    """
    验证依赖图定义

    与UnitGraph构造不同，这里收集所有问题后一起返回，
    供API与命令行给出完整的错误列表

    检查内容:
    - 依赖引用的单元存在
    - 每个单元都有非负数值时长
    - 无循环依赖
    - 存在起始单元

    Args:
        dependencies: 单元ID -> 依赖单元ID列表
        durations: 单元ID -> 时长

    Returns:
        (是否有效, 错误列表, 警告列表)
    """
    errors = []
    warnings = []

    unit_ids = set(dependencies)

    # 1. 检查依赖有效性
    for unit_id in sorted(dependencies):
        for dep_id in dependencies[unit_id]:
            if dep_id not in unit_ids:
                errors.append(f"单元'{unit_id}'的依赖'{dep_id}'不存在")

    # 2. 检查时长
    for unit_id in sorted(unit_ids):
        if unit_id not in durations:
            errors.append(f"单元'{unit_id}'缺少时长记录")
            continue
        duration = durations[unit_id]
        if (
            isinstance(duration, bool)
            or not isinstance(duration, Real)
            or not math.isfinite(duration)
            or duration < 0
        ):
            errors.append(f"单元'{unit_id}'的时长无效: {duration!r}")
        elif duration == 0:
            warnings.append(f"单元'{unit_id}'的时长为0")

    extra = sorted(set(durations) - unit_ids)
    if extra:
        warnings.append(f"{len(extra)} 个计时条目不在依赖图中，将被忽略")

    # 3. 构建图并检查环
    graph = nx.DiGraph()
    graph.add_nodes_from(unit_ids)
    for unit_id, deps in dependencies.items():
        for dep_id in deps:
            if dep_id in unit_ids:
                graph.add_edge(dep_id, unit_id)

    if not nx.is_directed_acyclic_graph(graph):
        try:
            cycle = nx.find_cycle(graph)
            cycle_str = " -> ".join([f"{u}" for u, v in cycle] + [cycle[0][0]])
            errors.append(f"依赖图存在循环依赖: {cycle_str}")
        except nx.NetworkXNoCycle:
            errors.append("依赖图存在循环依赖")

    # 4. 检查起始单元
    if unit_ids:
        start_units = [n for n in graph.nodes() if graph.in_degree(n) == 0]
        if not start_units:
            errors.append("没有找到起始单元（所有单元都有依赖）")

    is_valid = len(errors) == 0
    return is_valid, errors, warnings


def check_graph_connectivity(dependencies: Mapping[str, Iterable[str]]) -> Dict[str, Any]:
    """
    检查依赖图连通性

    Args:
        dependencies: 单元ID -> 依赖单元ID列表

    Returns:
        连通性分析结果
    """
    graph = nx.DiGraph()
    graph.add_nodes_from(dependencies)
    for unit_id, deps in dependencies.items():
        for dep_id in deps:
            if dep_id in dependencies:
                graph.add_edge(dep_id, unit_id)

    weak_components = list(nx.weakly_connected_components(graph))
    isolated = sorted(n for n in graph.nodes() if graph.degree(n) == 0)

    return {
        "is_connected": len(weak_components) <= 1,
        "component_count": len(weak_components),
        "components": [sorted(c) for c in weak_components],
        "isolated_units": isolated
    }
