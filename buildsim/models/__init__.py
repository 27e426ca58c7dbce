"""
数据模型包
包含系统中使用的数据模型

模块说明:
- enums.py: 枚举定义（PolicyName, SlotState等）
- config_model.py: 仿真配置模型
- unit_model.py: 编译单元模型
- slot_model.py: 执行槽模型
- timing_model.py: 计时记录模型
- result_model.py: 仿真结果模型
"""

from buildsim.models.enums import (
    PolicyName,
    SlotState,
    ArtifactType,
    SimulationStatus,
    TimingEventType,
    POLICY_META,
)
from buildsim.models.config_model import SimulationConfig
from buildsim.models.unit_model import Unit, UnitGraphDefinition
from buildsim.models.slot_model import Slot
from buildsim.models.timing_model import TimingEntry, ConcurrencySample
from buildsim.models.result_model import (
    SimulationResult,
    SlotUtilization,
    SimulationResultModel,
)

__all__ = [
    # 枚举
    "PolicyName",
    "SlotState",
    "ArtifactType",
    "SimulationStatus",
    "TimingEventType",
    "POLICY_META",
    # 配置
    "SimulationConfig",
    # 单元
    "Unit",
    "UnitGraphDefinition",
    # 执行槽
    "Slot",
    # 计时
    "TimingEntry",
    "ConcurrencySample",
    # 结果
    "SimulationResult",
    "SlotUtilization",
    "SimulationResultModel",
]
