"""
单元依赖图
使用NetworkX构建和管理编译单元的依赖图

功能:
- 从依赖映射与时长映射构建DAG（有向无环图）
- 构建时校验：未知依赖、缺失时长、循环依赖
- 反向邻接（依赖方）查询
- 关键路径权重（一次逆拓扑遍历后缓存）
"""

import math
from numbers import Real
from typing import Dict, Iterable, List, Mapping, Optional, Tuple
import networkx as nx

from buildsim.models.unit_model import Unit
from buildsim.core.exceptions import (
    CycleError,
    InvalidDurationError,
    MissingDurationError,
    UnknownDependencyError,
)


class UnitGraph:
    """
    单元依赖图

    图中的边由被依赖单元指向依赖方，构建完成后只读，
    可被多个并行仿真同时读取
    """

    def __init__(
        self,
        dependencies: Mapping[str, Iterable[str]],
        durations: Mapping[str, float]
    ):
        """
        构建并校验依赖图

        Args:
            dependencies: 单元ID -> 依赖单元ID列表
            durations: 单元ID -> 时长

        Raises:
            UnknownDependencyError: 依赖引用了不存在的单元
            MissingDurationError: 单元缺少时长
            InvalidDurationError: 时长不是非负数值
            CycleError: 存在循环依赖（包括自引用）
        """
        self.graph = nx.DiGraph()
        self.unit_map: Dict[str, Unit] = {}

        self._build_graph(dependencies, durations)
        self._check_acyclic()

        self._topological_order: List[str] = list(
            nx.lexicographical_topological_sort(self.graph)
        )
        self._dependents: Dict[str, Tuple[str, ...]] = {
            unit_id: tuple(sorted(self.graph.successors(unit_id)))
            for unit_id in self.graph.nodes()
        }
        self._weights = self._compute_critical_path_weights()
        self._earliest_finish = self._compute_earliest_finish()

    @classmethod
    def from_definition(cls, definition) -> "UnitGraph":
        """从 UnitGraphDefinition 构建"""
        return cls(definition.dependencies, definition.durations)

    def _build_graph(
        self,
        dependencies: Mapping[str, Iterable[str]],
        durations: Mapping[str, float]
    ):
        """
        添加节点与边并校验输入

        Args:
            dependencies: 单元ID -> 依赖单元ID列表
            durations: 单元ID -> 时长
        """
        normalized = {
            str(unit_id): sorted({str(d) for d in deps})
            for unit_id, deps in dependencies.items()
        }

        for unit_id in sorted(normalized):
            for dep_id in normalized[unit_id]:
                if dep_id not in normalized:
                    raise UnknownDependencyError(unit_id, dep_id)

        # 时长键与单元ID使用同样的字符串形式
        durations = {str(unit_id): d for unit_id, d in durations.items()}

        for unit_id in sorted(normalized):
            if unit_id not in durations:
                raise MissingDurationError(unit_id)
            duration = durations[unit_id]
            if (
                isinstance(duration, bool)
                or not isinstance(duration, Real)
                or not math.isfinite(duration)
                or duration < 0
            ):
                raise InvalidDurationError(unit_id, duration)

            unit = Unit(
                unit_id=unit_id,
                dependencies=tuple(normalized[unit_id]),
                duration=duration
            )
            self.unit_map[unit_id] = unit
            self.graph.add_node(unit_id, data=unit)

        # 边从被依赖单元指向依赖方
        for unit_id, deps in normalized.items():
            for dep_id in deps:
                self.graph.add_edge(dep_id, unit_id)

    def _check_acyclic(self):
        """检查是否为DAG，存在环时抛出CycleError"""
        if nx.is_directed_acyclic_graph(self.graph):
            return
        try:
            cycle = nx.find_cycle(self.graph)
        except nx.NetworkXNoCycle:
            raise CycleError([])
        path = [u for u, _ in cycle]
        path.append(cycle[0][0])
        raise CycleError(path)

    def _compute_critical_path_weights(self) -> Dict[str, float]:
        """
        计算关键路径权重

        单元自身时长加上任一依赖方链条的最大累计时长，
        按逆拓扑序一次遍历完成

        Returns:
            单元ID -> 关键路径权重
        """
        weights: Dict[str, float] = {}
        for unit_id in reversed(self._topological_order):
            downstream = [weights[d] for d in self._dependents[unit_id]]
            weights[unit_id] = self.unit_map[unit_id].duration + max(downstream, default=0)
        return weights

    def _compute_earliest_finish(self) -> Dict[str, float]:
        """
        计算槽数不受限时各单元的最早完成时间

        按拓扑序正向累加（开始时间 + 时长），与仿真时钟的加法顺序一致，
        浮点时长下关键路径长度与makespan逐位相等

        Returns:
            单元ID -> 最早完成时间
        """
        finish: Dict[str, float] = {}
        for unit_id in self._topological_order:
            start = max((finish[d] for d in self.get_dependencies(unit_id)), default=0)
            finish[unit_id] = start + self.unit_map[unit_id].duration
        return finish

    def get_unit(self, unit_id: str) -> Optional[Unit]:
        """获取指定单元"""
        return self.unit_map.get(unit_id)

    def get_duration(self, unit_id: str) -> float:
        """获取单元时长"""
        return self.unit_map[unit_id].duration

    def get_dependencies(self, unit_id: str) -> Tuple[str, ...]:
        """获取单元的依赖"""
        return self.unit_map[unit_id].dependencies

    def get_dependents(self, unit_id: str) -> Tuple[str, ...]:
        """获取依赖此单元的单元（按ID排序）"""
        return self._dependents[unit_id]

    def get_all_units(self) -> List[str]:
        """获取所有单元ID（排序）"""
        return sorted(self.unit_map)

    def get_unit_count(self) -> int:
        """获取单元数量"""
        return self.graph.number_of_nodes()

    def __len__(self) -> int:
        return self.get_unit_count()

    def __contains__(self, unit_id) -> bool:
        return unit_id in self.unit_map

    def get_start_units(self) -> List[str]:
        """获取无依赖的单元"""
        return [u for u in self.get_all_units() if self.graph.in_degree(u) == 0]

    def get_end_units(self) -> List[str]:
        """获取无依赖方的单元"""
        return [u for u in self.get_all_units() if self.graph.out_degree(u) == 0]

    def get_topological_order(self) -> List[str]:
        """获取拓扑排序顺序（同层按ID字典序）"""
        return list(self._topological_order)

    def get_critical_path_weight(self, unit_id: str) -> float:
        """获取单元的关键路径权重（已缓存）"""
        return self._weights[unit_id]

    def get_total_work(self) -> float:
        """获取所有单元时长之和"""
        return sum(unit.duration for unit in self.unit_map.values())

    def get_critical_path(self) -> Tuple[List[str], float]:
        """
        获取关键路径和时长

        关键路径长度是任意槽数下makespan的下界，
        取正向累加的最早完成时间最大值

        Returns:
            (关键路径单元列表, 路径长度)
        """
        if not self.unit_map:
            return [], 0

        # 权重相同时取ID字典序最小者
        current = min(
            self.get_start_units(),
            key=lambda u: (-self._weights[u], u)
        )
        length = max(self._earliest_finish.values())

        critical_path = [current]
        while self._dependents[current]:
            current = min(
                self._dependents[current],
                key=lambda u: (-self._weights[u], u)
            )
            critical_path.append(current)

        return critical_path, length
