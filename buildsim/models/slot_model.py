"""
执行槽模型
定义模拟的并行执行资源及其状态

功能:
- 执行槽属性管理
- 单元分配与释放
"""

from typing import Optional
from dataclasses import dataclass, field

from buildsim.models.enums import SlotState


@dataclass
class Slot:
    """
    执行槽

    N个执行槽之一，对应构建工具的一个并行任务令牌

    Attributes:
        slot_id: 槽编号（从0开始）
        state: 当前状态（IDLE/BUSY）
        current_unit: 正在执行的单元ID
        start_time: 当前单元开始时间
        finish_time: 当前单元计划完成时间
    """

    slot_id: int
    state: SlotState = field(default=SlotState.IDLE)
    current_unit: Optional[str] = field(default=None)
    start_time: float = field(default=0.0)
    finish_time: float = field(default=0.0)

    def is_idle(self) -> bool:
        """判断是否空闲"""
        return self.state == SlotState.IDLE

    def is_busy(self) -> bool:
        """判断是否执行中"""
        return self.state == SlotState.BUSY

    def assign(self, unit_id: str, start_time: float, finish_time: float):
        """
        分配单元到此执行槽

        Args:
            unit_id: 单元ID
            start_time: 开始时间
            finish_time: 计划完成时间
        """
        self.state = SlotState.BUSY
        self.current_unit = unit_id
        self.start_time = start_time
        self.finish_time = finish_time

    def release(self) -> Optional[str]:
        """
        释放执行槽

        Returns:
            刚完成的单元ID
        """
        unit_id = self.current_unit
        self.state = SlotState.IDLE
        self.current_unit = None
        return unit_id
