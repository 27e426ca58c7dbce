"""
仿真结果模型
定义仿真运行后的结果数据结构

模型:
- SlotUtilization: 执行槽利用率统计
- SimulationResult: 完整仿真结果
- *Model: API使用的Pydantic版本
"""

from typing import List, Dict, Any, Optional, Tuple
from dataclasses import dataclass, field
from pydantic import BaseModel, Field

from buildsim.models.enums import SimulationStatus
from buildsim.models.config_model import SimulationConfig
from buildsim.models.timing_model import TimingEntry, ConcurrencySample


@dataclass
class SlotUtilization:
    """
    执行槽利用率统计

    Attributes:
        slot_id: 槽编号
        total_time: 总时间（即makespan）
        busy_time: 忙碌时间
        idle_time: 空闲时间
        utilization_rate: 利用率（0-1）
        units_completed: 完成单元数
    """

    slot_id: int
    total_time: float
    busy_time: float
    idle_time: float = 0
    utilization_rate: float = 0
    units_completed: int = 0

    def __post_init__(self):
        """计算利用率和空闲时间"""
        if self.total_time > 0:
            if self.utilization_rate == 0:
                self.utilization_rate = self.busy_time / self.total_time
            if self.idle_time == 0:
                self.idle_time = self.total_time - self.busy_time

    @property
    def idle_rate(self) -> float:
        """空闲率"""
        if self.total_time <= 0:
            return 0
        return self.idle_time / self.total_time

    @property
    def utilization_percent(self) -> float:
        """利用率百分比"""
        return self.utilization_rate * 100

    def to_dict(self) -> dict:
        """转换为字典"""
        return {
            "slot_id": self.slot_id,
            "total_time": self.total_time,
            "busy_time": self.busy_time,
            "idle_time": self.idle_time,
            "utilization_rate": self.utilization_rate,
            "idle_rate": self.idle_rate,
            "units_completed": self.units_completed
        }


@dataclass
class SimulationResult:
    """
    仿真结果

    Attributes:
        sim_id: 仿真ID
        status: 仿真状态
        config: 使用的配置
        makespan: 总完成时间
        unit_count: 单元总数
        records: 计时记录（按开始顺序）
        slot_stats: 执行槽统计
        concurrency: 并发度时间线
        critical_path: 关键路径单元列表
        critical_path_length: 关键路径长度（makespan下界）
        total_work: 所有单元时长之和
        created_at: 创建时间
        completed_at: 完成时间
        error_message: 失败原因
    """

    sim_id: str = ""
    status: SimulationStatus = SimulationStatus.COMPLETED
    config: Optional[SimulationConfig] = None
    makespan: float = 0
    unit_count: int = 0
    records: List[TimingEntry] = field(default_factory=list)
    slot_stats: List[SlotUtilization] = field(default_factory=list)
    concurrency: List[ConcurrencySample] = field(default_factory=list)
    critical_path: List[str] = field(default_factory=list)
    critical_path_length: float = 0
    total_work: float = 0
    created_at: str = ""
    completed_at: str = ""
    error_message: str = ""

    @property
    def label(self) -> str:
        """运行标签"""
        return self.config.run_label if self.config else self.sim_id

    @property
    def avg_slot_utilization(self) -> float:
        """平均执行槽利用率"""
        if not self.slot_stats:
            return 0
        return sum(s.utilization_rate for s in self.slot_stats) / len(self.slot_stats)

    @property
    def speedup(self) -> float:
        """相对串行执行的加速比"""
        if self.makespan <= 0:
            return 0
        return self.total_work / self.makespan

    @property
    def critical_path_ratio(self) -> float:
        """makespan与关键路径下界之比（1.0为最优）"""
        if self.critical_path_length <= 0:
            return 0
        return self.makespan / self.critical_path_length

    def get_timing_triples(self) -> List[Tuple[str, float, float]]:
        """获取 (单元ID, 开始, 完成) 三元组列表"""
        return [entry.as_triple() for entry in self.records]

    def get_unit_times(self) -> Dict[str, Tuple[float, float]]:
        """获取 单元ID -> (开始, 完成) 映射"""
        return {e.unit_id: (e.start_time, e.finish_time) for e in self.records}

    def get_slot_stat(self, slot_id: int) -> Optional[SlotUtilization]:
        """获取指定执行槽的统计数据"""
        for stat in self.slot_stats:
            if stat.slot_id == slot_id:
                return stat
        return None

    def to_dict(self) -> dict:
        """转换为字典"""
        return {
            "sim_id": self.sim_id,
            "status": self.status.value if isinstance(self.status, SimulationStatus) else self.status,
            "config": self.config.model_dump(mode="json") if self.config else None,
            "label": self.label,
            "makespan": self.makespan,
            "unit_count": self.unit_count,
            "total_work": self.total_work,
            "critical_path": self.critical_path,
            "critical_path_length": self.critical_path_length,
            "speedup": self.speedup,
            "avg_slot_utilization": self.avg_slot_utilization,
            "records": [e.to_dict() for e in self.records],
            "slot_stats": [s.to_dict() for s in self.slot_stats],
            "concurrency": [c.to_dict() for c in self.concurrency],
            "created_at": self.created_at,
            "completed_at": self.completed_at,
            "error_message": self.error_message
        }

    def get_kpi_summary(self) -> dict:
        """获取KPI摘要"""
        return {
            "run": {
                "label": self.label,
                "units": self.unit_count,
                "num_threads": self.config.num_threads if self.config else 0
            },
            "time": {
                "makespan": self.makespan,
                "critical_path_length": self.critical_path_length,
                "total_work": self.total_work
            },
            "efficiency": {
                "speedup": f"{self.speedup:.2f}x",
                "avg_slot_utilization": f"{self.avg_slot_utilization * 100:.1f}%"
            }
        }


# Pydantic版本（用于API）
class TimingEntryModel(BaseModel):
    """计时记录条目（Pydantic）"""
    unit_id: str = Field(description="单元ID")
    slot_id: int = Field(description="执行槽编号")
    start_time: float = Field(description="开始时间")
    finish_time: float = Field(description="完成时间")


class SlotUtilizationModel(BaseModel):
    """执行槽利用率（Pydantic）"""
    slot_id: int = Field(description="槽编号")
    total_time: float = Field(description="总时间")
    busy_time: float = Field(description="忙碌时间")
    idle_time: float = Field(default=0, description="空闲时间")
    utilization_rate: float = Field(description="利用率")
    units_completed: int = Field(default=0, description="完成单元数")


class SimulationResultModel(BaseModel):
    """仿真结果（Pydantic）"""
    sim_id: str = Field(description="仿真ID")
    status: str = Field(description="仿真状态")
    label: str = Field(description="运行标签")
    makespan: float = Field(description="总完成时间")
    unit_count: int = Field(description="单元总数")
    critical_path_length: float = Field(default=0, description="关键路径长度")
    records: List[TimingEntryModel] = Field(default=[], description="计时记录")
    slot_stats: List[SlotUtilizationModel] = Field(default=[], description="执行槽统计")
    created_at: str = Field(description="创建时间")
    completed_at: Optional[str] = Field(default=None, description="完成时间")

    @classmethod
    def from_result(cls, result: SimulationResult) -> "SimulationResultModel":
        """从仿真结果构建"""
        return cls(
            sim_id=result.sim_id,
            status=result.status.value,
            label=result.label,
            makespan=result.makespan,
            unit_count=result.unit_count,
            critical_path_length=result.critical_path_length,
            records=[TimingEntryModel(**{
                "unit_id": e.unit_id,
                "slot_id": e.slot_id,
                "start_time": e.start_time,
                "finish_time": e.finish_time
            }) for e in result.records],
            slot_stats=[SlotUtilizationModel(
                slot_id=s.slot_id,
                total_time=s.total_time,
                busy_time=s.busy_time,
                idle_time=s.idle_time,
                utilization_rate=s.utilization_rate,
                units_completed=s.units_completed
            ) for s in result.slot_stats],
            created_at=result.created_at,
            completed_at=result.completed_at or None
        )
