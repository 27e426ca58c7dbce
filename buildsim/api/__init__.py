"""
API模块包
包含所有REST API端点的定义

模块说明:
- simulation.py: 仿真控制接口
- results.py: 结果查询接口
"""

from buildsim.api import simulation, results

__all__ = ["simulation", "results"]
