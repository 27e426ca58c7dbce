"""
枚举定义
包含系统中使用的所有枚举类型

枚举类:
- PolicyName: 调度策略名称
- SlotState: 执行槽状态
- ArtifactType: 编译产物类型（cargo单元种类）
- SimulationStatus: 仿真状态
- TimingEventType: 计时事件类型
"""

from enum import Enum


class PolicyName(str, Enum):
    """
    调度策略枚举

    Values:
        FIFO: 先就绪先执行，同时就绪按ID排序
        LONGEST_REMAINING_WORK: 关键路径权重最大者优先（默认）
        SHORTEST_JOB: 自身时长最短者优先
        REPEAT_SCHEDULE: 按记录的构建顺序重放
    """
    FIFO = "fifo"
    LONGEST_REMAINING_WORK = "longest-remaining-work"
    SHORTEST_JOB = "shortest-job"
    REPEAT_SCHEDULE = "repeat-schedule"


class SlotState(str, Enum):
    """
    执行槽状态枚举

    Values:
        IDLE: 空闲
        BUSY: 执行中
    """
    IDLE = "idle"
    BUSY = "busy"


class ArtifactType(str, Enum):
    """
    编译产物类型枚举

    依赖图的节点按产物区分：部分单元只依赖rlib的元数据，
    另一些需要完整的代码生成结果

    Values:
        BUILD_SCRIPT_BUILD: 构建脚本编译
        BUILD_SCRIPT_RUN: 构建脚本运行
        METADATA: 元数据（rmeta），依赖方可提前开始
        CODEGEN: 代码生成（仅在拆分模式下单独存在）
        LINK: 链接（bin / proc-macro）
    """
    BUILD_SCRIPT_BUILD = "build-script-build"
    BUILD_SCRIPT_RUN = "build-script-run"
    METADATA = "metadata"
    CODEGEN = "codegen"
    LINK = "link"


class SimulationStatus(str, Enum):
    """
    仿真状态枚举

    Values:
        COMPLETED: 已完成
        FAILED: 输入或配置无效，未执行仿真
    """
    COMPLETED = "completed"
    FAILED = "failed"


class TimingEventType(str, Enum):
    """
    计时事件类型枚举

    Values:
        START: 单元开始执行
        FINISH: 单元执行完毕
    """
    START = "START"
    FINISH = "FINISH"


# ============ 调度策略元数据 ============

POLICY_META = {
    PolicyName.FIFO: {
        "zh": "先进先出",
        "en": "First In, First Out",
        "description": "选择最早就绪的单元，同时就绪时按ID排序",
        "needs_recorded_order": False,
    },
    PolicyName.LONGEST_REMAINING_WORK: {
        "zh": "最长剩余工作优先",
        "en": "Longest Remaining Work First",
        "description": "选择关键路径权重（自身时长+下游最长链）最大的单元",
        "needs_recorded_order": False,
    },
    PolicyName.SHORTEST_JOB: {
        "zh": "最短作业优先",
        "en": "Shortest Job First",
        "description": "选择自身时长最短的单元",
        "needs_recorded_order": False,
    },
    PolicyName.REPEAT_SCHEDULE: {
        "zh": "重放记录顺序",
        "en": "Repeat Recorded Schedule",
        "description": "按计时文件中的顺序启动单元，用于估算真实构建的调度开销",
        "needs_recorded_order": True,
    },
}


def get_policy_info(policy: PolicyName) -> dict:
    """
    获取调度策略的详细信息

    Args:
        policy: 策略枚举值

    Returns:
        包含中英文名称与说明的字典
    """
    return POLICY_META.get(policy, {
        "zh": "未知",
        "en": "Unknown",
        "description": "",
        "needs_recorded_order": False,
    })
