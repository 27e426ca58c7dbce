"""
编译单元模型
定义依赖图中的单元和整图输入定义

模型:
- Unit: 单个编译单元（不可变）
- UnitGraphDefinition: 依赖图输入（单元 -> 依赖列表 + 单元 -> 时长）
"""

from typing import Dict, List, Tuple
from pydantic import BaseModel, Field


class Unit(BaseModel):
    """
    编译单元模型

    依赖边由依赖方指向被依赖方

    Attributes:
        unit_id: 唯一单元ID
        dependencies: 依赖的单元ID（按ID排序）
        duration: 执行时长（虚拟时间单位，cargo输入为毫秒）
    """

    unit_id: str = Field(
        description="唯一单元ID"
    )
    dependencies: Tuple[str, ...] = Field(
        default=(),
        description="依赖的单元ID"
    )
    duration: float = Field(
        ge=0,
        description="执行时长（虚拟时间单位）"
    )

    def has_dependencies(self) -> bool:
        """是否存在依赖"""
        return bool(self.dependencies)

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "unit_id": "serde 1.0.0#metadata",
                "dependencies": ["serde 1.0.0#build-script-run"],
                "duration": 1250
            }
        }


class UnitGraphDefinition(BaseModel):
    """
    依赖图输入定义

    两个数据集分别来自单元图文件和计时文件

    Attributes:
        dependencies: 单元ID -> 依赖单元ID列表
        durations: 单元ID -> 时长
        recorded_order: 记录的构建顺序（可选，用于重放策略）
    """

    dependencies: Dict[str, List[str]] = Field(
        default={},
        description="单元ID -> 依赖单元ID列表"
    )
    durations: Dict[str, float] = Field(
        default={},
        description="单元ID -> 时长"
    )
    recorded_order: List[str] = Field(
        default=[],
        description="记录的构建顺序"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "dependencies": {"a": [], "b": [], "c": ["a", "b"]},
                "durations": {"a": 2, "b": 3, "c": 1},
                "recorded_order": []
            }
        }
