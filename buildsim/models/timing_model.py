"""
计时记录模型
定义计时记录中的条目与并发采样

功能:
- 单元开始/完成时间记录
- 并发度时间线采样
- CSV/字典导出
"""

from typing import List
from dataclasses import dataclass


@dataclass(frozen=True)
class TimingEntry:
    """
    计时记录条目

    记录单个单元的一次执行，构成仿真的计时记录

    Attributes:
        unit_id: 单元ID
        slot_id: 执行槽编号
        start_time: 开始时间
        finish_time: 完成时间
    """

    unit_id: str
    slot_id: int
    start_time: float
    finish_time: float

    @property
    def duration(self) -> float:
        """执行时长"""
        return self.finish_time - self.start_time

    def overlaps_with(self, start: float, end: float) -> bool:
        """
        判断是否与指定时间范围重叠

        Args:
            start: 范围开始时间
            end: 范围结束时间

        Returns:
            是否重叠
        """
        return self.finish_time > start and self.start_time < end

    def as_triple(self) -> tuple:
        """(单元ID, 开始时间, 完成时间)"""
        return (self.unit_id, self.start_time, self.finish_time)

    def to_dict(self) -> dict:
        """转换为字典"""
        return {
            "unit_id": self.unit_id,
            "slot_id": self.slot_id,
            "start_time": self.start_time,
            "finish_time": self.finish_time,
            "duration": self.duration
        }

    def to_csv_row(self) -> List:
        """转换为CSV行数据"""
        return [
            self.unit_id,
            self.slot_id,
            self.start_time,
            self.finish_time,
            self.duration
        ]


@dataclass(frozen=True)
class ConcurrencySample:
    """
    并发度采样

    在每批事件处理完后记录一次

    Attributes:
        t: 采样时间
        active: 执行中的单元数
        waiting: 已就绪但等待空闲槽的单元数
        inactive: 仍在等待依赖的单元数
    """

    t: float
    active: int
    waiting: int
    inactive: int

    def to_dict(self) -> dict:
        """转换为字典"""
        return {
            "t": self.t,
            "active": self.active,
            "waiting": self.waiting,
            "inactive": self.inactive
        }


# CSV表头
TIMING_CSV_HEADERS = [
    "unit_id",
    "slot_id",
    "start_time",
    "finish_time",
    "duration"
]
