"""
buildsim - 构建调度仿真

按记录的依赖图和单元时长，在N个模拟执行槽上重放编译过程，
预测makespan并比较不同调度策略与线程数
"""

__version__ = "0.1.0"
