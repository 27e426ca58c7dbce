"""
计时记录器
观察仿真过程中每个单元的开始与完成，生成计时记录

功能:
- 记录开始/完成事件（仅追加）
- 并发度时间线采样
- makespan与单元时间查询
- 执行槽利用率统计
"""

from typing import Dict, List, Optional, Tuple

from buildsim.models.enums import TimingEventType
from buildsim.models.timing_model import TimingEntry, ConcurrencySample
from buildsim.models.result_model import SlotUtilization
from buildsim.core.exceptions import ProtocolViolation


class TimingRecorder:
    """
    计时记录器

    计时记录按单元开始顺序排列；
    每个单元只能开始一次、完成一次
    """

    def __init__(self):
        """初始化计时记录器"""
        self.events: List[Tuple[TimingEventType, str, float]] = []
        self.concurrency: List[ConcurrencySample] = []

        # 单元ID -> (执行槽编号, 开始时间)
        self._running: Dict[str, Tuple[int, float]] = {}
        self._entries: Dict[str, TimingEntry] = {}
        self._start_order: List[str] = []

    def record_start(self, unit_id: str, slot_id: int, time: float):
        """
        记录单元开始

        Args:
            unit_id: 单元ID
            slot_id: 执行槽编号
            time: 开始时间
        """
        if unit_id in self._running or unit_id in self._entries:
            raise ProtocolViolation(f"单元'{unit_id}'被重复开始")
        self._running[unit_id] = (slot_id, time)
        self._start_order.append(unit_id)
        self.events.append((TimingEventType.START, unit_id, time))

    def record_finish(self, unit_id: str, time: float) -> TimingEntry:
        """
        记录单元完成

        Args:
            unit_id: 单元ID
            time: 完成时间

        Returns:
            生成的计时记录条目
        """
        if unit_id not in self._running:
            raise ProtocolViolation(f"单元'{unit_id}'未开始即被完成")
        slot_id, start_time = self._running.pop(unit_id)
        if time < start_time:
            raise ProtocolViolation(
                f"单元'{unit_id}'的完成时间 {time} 早于开始时间 {start_time}"
            )
        entry = TimingEntry(
            unit_id=unit_id,
            slot_id=slot_id,
            start_time=start_time,
            finish_time=time
        )
        self._entries[unit_id] = entry
        self.events.append((TimingEventType.FINISH, unit_id, time))
        return entry

    def record_concurrency(self, time: float, active: int, waiting: int, inactive: int):
        """
        记录一次并发度采样

        同一时刻的多次采样只保留最后一次

        Args:
            time: 采样时间
            active: 执行中的单元数
            waiting: 已就绪但等待执行槽的单元数
            inactive: 仍在等待依赖的单元数
        """
        sample = ConcurrencySample(t=time, active=active, waiting=waiting, inactive=inactive)
        if self.concurrency and self.concurrency[-1].t == time:
            self.concurrency[-1] = sample
        else:
            self.concurrency.append(sample)

    def get_records(self) -> List[TimingEntry]:
        """获取已完成单元的计时记录（按开始顺序）"""
        return [self._entries[u] for u in self._start_order if u in self._entries]

    def get_running_units(self) -> List[str]:
        """获取已开始但未完成的单元"""
        return list(self._running)

    def get_makespan(self) -> float:
        """获取makespan（最大完成时间，无记录时为0）"""
        return max((e.finish_time for e in self._entries.values()), default=0)

    def get_unit_times(self) -> Dict[str, Tuple[float, float]]:
        """
        获取各单元的开始与完成时间

        Returns:
            单元ID -> (开始时间, 完成时间)
        """
        return {e.unit_id: (e.start_time, e.finish_time) for e in self.get_records()}

    def get_entry(self, unit_id: str) -> Optional[TimingEntry]:
        """获取指定单元的计时记录"""
        return self._entries.get(unit_id)

    def get_slot_utilization(
        self,
        num_slots: int,
        makespan: Optional[float] = None
    ) -> List[SlotUtilization]:
        """
        计算各执行槽的利用率

        Args:
            num_slots: 执行槽数量
            makespan: 统计时长，默认使用记录的makespan

        Returns:
            每个执行槽的利用率统计（按编号）
        """
        if makespan is None:
            makespan = self.get_makespan()

        busy: Dict[int, float] = {slot_id: 0 for slot_id in range(num_slots)}
        counts: Dict[int, int] = {slot_id: 0 for slot_id in range(num_slots)}
        for entry in self._entries.values():
            busy[entry.slot_id] = busy.get(entry.slot_id, 0) + entry.duration
            counts[entry.slot_id] = counts.get(entry.slot_id, 0) + 1

        stats = []
        for slot_id in sorted(busy):
            stats.append(SlotUtilization(
                slot_id=slot_id,
                total_time=makespan,
                busy_time=busy[slot_id],
                idle_time=makespan - busy[slot_id],
                utilization_rate=busy[slot_id] / makespan if makespan > 0 else 0,
                units_completed=counts[slot_id]
            ))
        return stats

    def get_event_count(self) -> int:
        """获取事件总数"""
        return len(self.events)

    def clear(self):
        """清空所有记录"""
        self.events = []
        self.concurrency = []
        self._running = {}
        self._entries = {}
        self._start_order = []
