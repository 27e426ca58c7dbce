"""
仿真配置模型
定义一次仿真运行的配置参数

配置项:
- 并行执行槽数量（对应构建线程数）
- 调度策略
- 是否将代码生成与元数据生成拆分为两个单元
- 报告使用的时间单位
"""

from typing import Optional
from pydantic import BaseModel, Field, computed_field

from buildsim.models.enums import PolicyName, get_policy_info


DEFAULT_NUM_THREADS = 10
DEFAULT_POLICY = PolicyName.LONGEST_REMAINING_WORK


class SimulationConfig(BaseModel):
    """
    仿真配置模型

    Attributes:
        num_threads: 并行执行槽数量（≥1）
        policy: 调度策略名称
        separate_codegen: 是否将库的代码生成作为独立单元
        time_unit_ms: 一个虚拟时间单位对应的毫秒数（仅用于报告）
        label: 运行标签（用于对比报告）
    """

    num_threads: int = Field(
        default=DEFAULT_NUM_THREADS,
        ge=1,
        description="并行执行槽数量"
    )
    policy: PolicyName = Field(
        default=DEFAULT_POLICY,
        description="调度策略"
    )
    separate_codegen: bool = Field(
        default=False,
        description="是否将代码生成与元数据生成拆分"
    )
    time_unit_ms: float = Field(
        default=1.0,
        gt=0,
        description="一个虚拟时间单位对应的毫秒数"
    )
    label: Optional[str] = Field(
        default=None,
        description="运行标签，为空时由策略与槽数生成"
    )

    @computed_field
    @property
    def run_label(self) -> str:
        """
        运行标签

        Returns:
            用户标签，或 "策略@槽数" 形式的默认标签
        """
        if self.label:
            return self.label
        return f"{self.policy.value}@{self.num_threads}"

    def needs_recorded_order(self) -> bool:
        """当前策略是否需要记录的构建顺序"""
        return bool(get_policy_info(self.policy)["needs_recorded_order"])

    def with_overrides(self, **overrides) -> "SimulationConfig":
        """
        生成覆盖部分字段的新配置

        值为None的覆盖项会被忽略

        Args:
            **overrides: 要覆盖的字段

        Returns:
            新的配置对象（经过校验）
        """
        data = self.model_dump(exclude={"run_label"})
        data.update({k: v for k, v in overrides.items() if v is not None})
        return SimulationConfig(**data)

    class Config:
        json_schema_extra = {
            "example": {
                "num_threads": 10,
                "policy": "longest-remaining-work",
                "separate_codegen": False,
                "time_unit_ms": 1.0
            }
        }
