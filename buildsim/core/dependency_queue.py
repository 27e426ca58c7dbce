"""
依赖队列
跟踪每个单元尚未完成的依赖数，维护就绪集合

功能:
- 从依赖图初始化剩余依赖计数与初始就绪集合
- 通过调度策略从就绪集合中出队（标记开始）
- 完成通知：递减依赖方计数，计数归零的单元进入就绪集合
- 协议检查：重复出队、重复完成属于引擎缺陷

设计要点:
- 每次仿真运行持有独立的队列实例，依赖图本身保持只读
- 就绪集合保持插入顺序，同一批就绪的单元按ID顺序插入
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from buildsim.core.exceptions import ProtocolViolation
from buildsim.core.unit_graph import UnitGraph


@dataclass(frozen=True)
class ReadyUnit:
    """
    就绪集合中的条目

    Attributes:
        unit_id: 单元ID
        ready_time: 进入就绪集合的仿真时间
        seq: 插入序号（全局递增，用于稳定排序）
    """

    unit_id: str
    ready_time: float
    seq: int


class DependencyQueue:
    """
    依赖队列

    每个单元只会进入就绪集合一次、离开一次；
    complete() 对同一单元只能调用一次
    """

    def __init__(self, graph: UnitGraph, start_time: float = 0):
        """
        初始化依赖队列

        空图是合法输入，此时队列立即处于完成状态

        Args:
            graph: 单元依赖图
            start_time: 初始就绪单元的就绪时间
        """
        self.graph = graph
        self.remaining: Dict[str, int] = {}
        self.finished: Dict[str, bool] = {}
        self.started: Dict[str, bool] = {}
        self._ready: Dict[str, ReadyUnit] = {}
        self._seq = 0
        self._unfinished = 0
        self._total = 0

        for unit_id in graph.get_all_units():
            self.remaining[unit_id] = len(graph.get_dependencies(unit_id))
            self.finished[unit_id] = False
            self.started[unit_id] = False
            self._unfinished += 1
            self._total += 1

        for unit_id in graph.get_start_units():
            self._push_ready(unit_id, start_time)

    def _push_ready(self, unit_id: str, ready_time: float):
        """将单元加入就绪集合"""
        self._ready[unit_id] = ReadyUnit(unit_id, ready_time, self._seq)
        self._seq += 1

    def pop_ready(self, policy, context) -> Optional[ReadyUnit]:
        """
        通过调度策略选择一个就绪单元并出队

        Args:
            policy: 调度策略（SchedulingPolicy）
            context: 调度上下文（SchedulingContext）

        Returns:
            被选中的就绪条目，就绪集合为空时返回None

        Raises:
            ProtocolViolation: 策略返回了不在就绪集合中的单元
        """
        if not self._ready:
            return None

        candidates = list(self._ready.values())
        unit_id = policy.select(candidates, context)
        entry = self._ready.pop(unit_id, None)
        if entry is None:
            raise ProtocolViolation(
                f"策略 {policy.name} 选择了不在就绪集合中的单元'{unit_id}'"
            )
        if self.started[unit_id]:
            raise ProtocolViolation(f"单元'{unit_id}'被重复出队")
        self.started[unit_id] = True
        return entry

    def complete(self, unit_id: str, current_time: float = 0) -> List[str]:
        """
        标记单元完成

        递减其依赖方的剩余依赖计数，计数归零的依赖方
        按ID顺序进入就绪集合

        Args:
            unit_id: 完成的单元ID
            current_time: 完成时间（新就绪单元的就绪时间）

        Returns:
            因此次完成而就绪的单元ID列表

        Raises:
            ProtocolViolation: 单元未知、未开始或已完成
        """
        if unit_id not in self.finished:
            raise ProtocolViolation(f"完成了未知单元'{unit_id}'")
        if not self.started[unit_id]:
            raise ProtocolViolation(f"单元'{unit_id}'未开始即被完成")
        if self.finished[unit_id]:
            raise ProtocolViolation(f"单元'{unit_id}'被重复完成")

        self.finished[unit_id] = True
        self._unfinished -= 1

        newly_ready = []
        for dependent in self.graph.get_dependents(unit_id):
            self.remaining[dependent] -= 1
            if self.remaining[dependent] < 0:
                raise ProtocolViolation(f"单元'{dependent}'的剩余依赖数为负")
            if self.remaining[dependent] == 0:
                self._push_ready(dependent, current_time)
                newly_ready.append(dependent)
        return newly_ready

    def is_done(self) -> bool:
        """是否所有单元都已完成"""
        return self._unfinished == 0

    def __len__(self) -> int:
        """未完成的单元数"""
        return self._unfinished

    def is_finished(self, unit_id: str) -> bool:
        """单元是否已完成"""
        return self.finished.get(unit_id, False)

    def ready_count(self) -> int:
        """就绪集合大小"""
        return len(self._ready)

    def has_ready(self) -> bool:
        """就绪集合是否非空"""
        return bool(self._ready)

    def get_ready_units(self) -> List[str]:
        """按插入顺序获取就绪单元ID"""
        return list(self._ready)

    def waiting_on_dependencies(self) -> int:
        """仍在等待依赖的单元数"""
        return self._total - self._seq
