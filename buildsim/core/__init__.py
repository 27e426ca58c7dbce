"""
核心仿真模块包
包含SimPy仿真引擎的核心组件

模块说明:
- unit_graph.py: 单元依赖图（NetworkX）
- dependency_queue.py: 依赖队列（就绪集合）
- policies.py: 调度策略
- slot_pool.py: 执行槽池（FilterStore）
- simulation_engine.py: 仿真引擎主控（SimPy核心）
- timing_recorder.py: 计时记录器
- comparison.py: 策略对比与线程数扫描
- exceptions.py: 异常定义
"""

from buildsim.core.unit_graph import UnitGraph
from buildsim.core.dependency_queue import DependencyQueue, ReadyUnit
from buildsim.core.policies import (
    SchedulingContext,
    SchedulingPolicy,
    FifoPolicy,
    LongestRemainingWorkPolicy,
    ShortestJobPolicy,
    RepeatSchedulePolicy,
    create_policy,
)
from buildsim.core.slot_pool import SlotPool
from buildsim.core.timing_recorder import TimingRecorder
from buildsim.core.simulation_engine import SimulationEngine, run_simulation
from buildsim.core.comparison import compare_policies, sweep_threads

__all__ = [
    "UnitGraph",
    "DependencyQueue",
    "ReadyUnit",
    "SchedulingContext",
    "SchedulingPolicy",
    "FifoPolicy",
    "LongestRemainingWorkPolicy",
    "ShortestJobPolicy",
    "RepeatSchedulePolicy",
    "create_policy",
    "SlotPool",
    "TimingRecorder",
    "SimulationEngine",
    "run_simulation",
    "compare_policies",
    "sweep_threads",
]
