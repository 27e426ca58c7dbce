"""
异常定义

可恢复的错误（输入或配置问题）在仿真开始前抛出：
- GraphError 及其子类: 依赖图结构无效
- ConfigError: 运行配置无效
- InputFormatError: cargo输入文件格式错误

SimulationFault 表示引擎自身的缺陷（重复完成、死锁），
不应被捕获后继续使用结果。
"""


class BuildSimError(Exception):
    """所有buildsim错误的基类"""


class GraphError(BuildSimError, ValueError):
    """依赖图结构无效"""


class UnknownDependencyError(GraphError):
    """依赖引用了不存在的单元"""

    def __init__(self, unit_id: str, dependency_id: str):
        self.unit_id = unit_id
        self.dependency_id = dependency_id
        super().__init__(f"单元'{unit_id}'的依赖'{dependency_id}'不存在")


class CycleError(GraphError):
    """依赖图存在循环"""

    def __init__(self, cycle: list):
        self.cycle = list(cycle)
        path = " -> ".join(self.cycle)
        super().__init__(f"依赖图存在循环依赖: {path}")


class MissingDurationError(GraphError):
    """单元缺少时长记录"""

    def __init__(self, unit_id: str):
        self.unit_id = unit_id
        super().__init__(f"单元'{unit_id}'缺少时长记录")


class InvalidDurationError(GraphError):
    """单元时长不是非负数值"""

    def __init__(self, unit_id: str, value):
        self.unit_id = unit_id
        self.value = value
        super().__init__(f"单元'{unit_id}'的时长无效: {value!r}")


class ConfigError(BuildSimError, ValueError):
    """运行配置无效（槽数量、策略名称等）"""


class InputFormatError(BuildSimError, ValueError):
    """cargo计时文件或单元图文件格式错误"""


class SimulationFault(BuildSimError, RuntimeError):
    """引擎内部不变量被破坏"""


class ProtocolViolation(SimulationFault):
    """依赖队列的调用协议被违反（重复出队、重复完成等）"""


class DeadlockError(SimulationFault):
    """就绪集与执行中集合同时为空，但仍有未完成单元"""
