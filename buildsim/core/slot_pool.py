"""
执行槽池
使用SimPy FilterStore管理N个模拟执行槽

功能:
- 获取编号最小的空闲执行槽
- 为单元安排完成事件（SimPy Timeout）
- 等待最早的完成事件
- 收集同一时刻完成的所有执行槽

设计要点:
- 完成时间与SimPy事件时间使用同一次加法计算，保证相等比较精确
- 同一时刻完成的执行槽按单元ID排序后一起处理
"""

from typing import Dict, Generator, List, Optional
import simpy

from buildsim.models.slot_model import Slot
from buildsim.core.exceptions import ConfigError, ProtocolViolation


class SlotPool:
    """
    执行槽池

    使用SimPy FilterStore保存空闲执行槽，
    执行中的执行槽由对应的Timeout事件表示
    """

    def __init__(self, env: simpy.Environment, num_slots: int):
        """
        初始化执行槽池

        Args:
            env: SimPy环境
            num_slots: 执行槽数量

        Raises:
            ConfigError: 执行槽数量小于1
        """
        if num_slots <= 0:
            raise ConfigError(f"执行槽数量必须大于0（当前为 {num_slots}）")

        self.env = env
        self.store = simpy.FilterStore(env)
        self.slots: Dict[int, Slot] = {}
        self._done_events: Dict[int, simpy.Event] = {}

        for slot_id in range(num_slots):
            slot = Slot(slot_id=slot_id)
            self.slots[slot_id] = slot
            self.store.put(slot)

    def acquire_slot(self) -> Generator:
        """
        获取编号最小的空闲执行槽

        Yields:
            获取执行槽的SimPy事件

        Returns:
            获取到的执行槽
        """
        idle = [s for s in self.store.items if s.is_idle()]
        if idle:
            target_id = min(s.slot_id for s in idle)
            slot = yield self.store.get(lambda s: s.slot_id == target_id)
        else:
            # 没有空闲执行槽，等待任意一个被释放
            slot = yield self.store.get(lambda s: s.is_idle())
        return slot

    def start_unit(self, slot: Slot, unit_id: str, duration: float) -> float:
        """
        在执行槽上启动单元

        Args:
            slot: 已获取的执行槽
            unit_id: 单元ID
            duration: 单元时长

        Returns:
            计划完成时间
        """
        if slot.is_busy():
            raise ProtocolViolation(
                f"执行槽 {slot.slot_id} 正在执行'{slot.current_unit}'，无法分配'{unit_id}'"
            )
        start_time = self.env.now
        finish_time = start_time + duration
        slot.assign(unit_id, start_time, finish_time)
        self._done_events[slot.slot_id] = self.env.timeout(duration, value=slot.slot_id)
        return finish_time

    def next_completion(self) -> Optional[simpy.Event]:
        """
        等待最早完成的执行槽

        Returns:
            任一执行中槽位完成时触发的事件，没有执行中的槽位时返回None
        """
        events = [self._done_events[s.slot_id] for s in self.get_busy_slots()]
        if not events:
            return None
        return self.env.any_of(events)

    def collect_finished(self) -> List[Slot]:
        """
        获取当前时刻完成的所有执行槽

        Returns:
            完成时间等于当前时间的执行槽（按单元ID排序）
        """
        now = self.env.now
        finished = [s for s in self.get_busy_slots() if s.finish_time <= now]
        return sorted(finished, key=lambda s: s.current_unit)

    def release_slot(self, slot: Slot) -> str:
        """
        释放执行槽回池

        Args:
            slot: 要释放的执行槽

        Returns:
            刚完成的单元ID
        """
        if not slot.is_busy():
            raise ProtocolViolation(f"执行槽 {slot.slot_id} 未在执行中")
        unit_id = slot.release()
        self._done_events.pop(slot.slot_id, None)
        self.store.put(slot)
        return unit_id

    def has_idle(self) -> bool:
        """是否存在空闲执行槽"""
        return any(s.is_idle() for s in self.slots.values())

    def get_available_count(self) -> int:
        """获取空闲执行槽数量"""
        return sum(1 for s in self.slots.values() if s.is_idle())

    def get_busy_count(self) -> int:
        """获取执行中的执行槽数量"""
        return sum(1 for s in self.slots.values() if s.is_busy())

    def get_busy_slots(self) -> List[Slot]:
        """获取执行中的执行槽（按编号）"""
        return [s for s in self.slots.values() if s.is_busy()]

    def get_slot(self, slot_id: int) -> Optional[Slot]:
        """获取指定执行槽"""
        return self.slots.get(slot_id)

    def get_all_slots(self) -> List[Slot]:
        """获取所有执行槽"""
        return list(self.slots.values())

    def __len__(self) -> int:
        return len(self.slots)
