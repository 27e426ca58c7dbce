"""
调度策略
当有空闲执行槽且就绪单元多于一个时，决定下一个启动的单元

策略:
- FifoPolicy: 最早就绪者优先，同时就绪按ID排序
- LongestRemainingWorkPolicy: 关键路径权重最大者优先（cargo调度器的近似）
- ShortestJobPolicy: 自身时长最短者优先
- RepeatSchedulePolicy: 按记录的构建顺序重放

所有策略对相同输入给出相同结果；并列时按就绪集合的插入顺序决定
"""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence, Type

from buildsim.models.enums import PolicyName
from buildsim.core.exceptions import ConfigError
from buildsim.core.dependency_queue import ReadyUnit
from buildsim.core.unit_graph import UnitGraph


@dataclass(frozen=True)
class SchedulingContext:
    """
    调度上下文

    Attributes:
        graph: 单元依赖图（提供时长与关键路径权重）
        current_time: 当前仿真时间
    """

    graph: UnitGraph
    current_time: float = 0


class SchedulingPolicy(ABC):
    """调度策略接口"""

    name: PolicyName

    @abstractmethod
    def select(self, ready: Sequence[ReadyUnit], context: SchedulingContext) -> str:
        """
        从就绪集合中选择一个单元

        Args:
            ready: 就绪条目（按插入顺序，非空）
            context: 调度上下文

        Returns:
            被选中的单元ID
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class FifoPolicy(SchedulingPolicy):
    """先进先出：最早就绪的单元优先，同时就绪时按ID排序"""

    name = PolicyName.FIFO

    def select(self, ready, context):
        return min(ready, key=lambda r: (r.ready_time, r.unit_id)).unit_id


class LongestRemainingWorkPolicy(SchedulingPolicy):
    """
    最长剩余工作优先

    选择关键路径权重（自身时长 + 下游最长依赖链）最大的单元，
    即DAG上的LPT调度推广
    """

    name = PolicyName.LONGEST_REMAINING_WORK

    def select(self, ready, context):
        graph = context.graph
        return min(
            ready,
            key=lambda r: (-graph.get_critical_path_weight(r.unit_id), r.seq)
        ).unit_id


class ShortestJobPolicy(SchedulingPolicy):
    """最短作业优先：自身时长最短的单元优先"""

    name = PolicyName.SHORTEST_JOB

    def select(self, ready, context):
        graph = context.graph
        return min(
            ready,
            key=lambda r: (graph.get_duration(r.unit_id), r.seq)
        ).unit_id


class RepeatSchedulePolicy(SchedulingPolicy):
    """
    重放记录顺序

    按计时文件中的顺序启动单元，用于估算真实构建中的调度与通信开销。
    记录中的下一个单元尚未就绪时，退回到插入顺序最早的就绪单元，
    记录位置不前进。实例带状态，每次运行需新建
    """

    name = PolicyName.REPEAT_SCHEDULE

    def __init__(self, recorded_order: Iterable[str]):
        """
        Args:
            recorded_order: 记录的构建顺序（重复项只保留第一次）
        """
        seen = set()
        self._order = deque()
        for unit_id in recorded_order:
            if unit_id not in seen:
                seen.add(unit_id)
                self._order.append(unit_id)
        self._dispatched = set()

    def select(self, ready, context):
        while self._order and (
            self._order[0] in self._dispatched or self._order[0] not in context.graph
        ):
            self._order.popleft()

        ready_ids = {r.unit_id for r in ready}
        if self._order and self._order[0] in ready_ids:
            unit_id = self._order.popleft()
        else:
            unit_id = min(ready, key=lambda r: r.seq).unit_id

        self._dispatched.add(unit_id)
        return unit_id

    def remaining(self) -> int:
        """记录中尚未重放的单元数"""
        return len(self._order)

    def __repr__(self) -> str:
        return f"RepeatSchedulePolicy(remaining={len(self._order)})"


POLICY_REGISTRY: Dict[PolicyName, Type[SchedulingPolicy]] = {
    PolicyName.FIFO: FifoPolicy,
    PolicyName.LONGEST_REMAINING_WORK: LongestRemainingWorkPolicy,
    PolicyName.SHORTEST_JOB: ShortestJobPolicy,
    PolicyName.REPEAT_SCHEDULE: RepeatSchedulePolicy,
}


def resolve_policy_name(name) -> PolicyName:
    """
    解析策略名称

    Args:
        name: 策略名称字符串或PolicyName

    Returns:
        PolicyName

    Raises:
        ConfigError: 未知策略名称
    """
    try:
        return PolicyName(name)
    except ValueError:
        known = ", ".join(p.value for p in PolicyName)
        raise ConfigError(f"未知调度策略: {name!r}（可选: {known}）") from None


def create_policy(
    name,
    recorded_order: Optional[Iterable[str]] = None
) -> SchedulingPolicy:
    """
    创建调度策略实例（每次运行新建）

    Args:
        name: 策略名称
        recorded_order: 记录的构建顺序（重放策略必需）

    Returns:
        策略实例

    Raises:
        ConfigError: 未知策略，或重放策略缺少记录顺序
    """
    policy_name = resolve_policy_name(name)
    if policy_name == PolicyName.REPEAT_SCHEDULE:
        recorded_order = list(recorded_order or [])
        if not recorded_order:
            raise ConfigError("重放策略需要记录的构建顺序")
        return RepeatSchedulePolicy(recorded_order)
    return POLICY_REGISTRY[policy_name]()


def available_policies(has_recorded_order: bool = False) -> list:
    """
    获取可用的策略列表

    Args:
        has_recorded_order: 是否有记录的构建顺序

    Returns:
        可用策略名称列表
    """
    return [
        p for p in PolicyName
        if p != PolicyName.REPEAT_SCHEDULE or has_recorded_order
    ]
