"""
仿真控制接口
提供仿真的运行、对比、查询与清理功能

API端点:
- POST /api/simulation/run: 按依赖映射与时长运行仿真
- POST /api/simulation/run/cargo: 按cargo计时文件与单元图运行仿真
- POST /api/simulation/compare: 多策略/多线程数对比
- POST /api/simulation/validate: 验证依赖图定义
- GET /api/simulation/config/default: 获取默认配置
- GET /api/simulation/policies: 获取可用调度策略
- GET /api/simulation/list: 列出所有仿真记录
- DELETE /api/simulation/clear: 清除所有仿真记录
"""

import logging
from typing import Dict, List, Any, Optional
from fastapi import APIRouter
from pydantic import BaseModel, Field

from buildsim.models.config_model import SimulationConfig
from buildsim.models.enums import PolicyName, get_policy_info
from buildsim.models.result_model import SimulationResult
from buildsim.models.unit_model import UnitGraphDefinition
from buildsim.core.unit_graph import UnitGraph
from buildsim.core.simulation_engine import SimulationEngine
from buildsim.core.comparison import compare_policies, sweep_threads
from buildsim.core.exceptions import ConfigError, GraphError, InputFormatError
from buildsim.utils.cargo_parser import parse_timings, parse_unit_graph
from buildsim.utils.statistics import build_comparison_table
from buildsim.utils.validators import (
    check_graph_connectivity,
    load_default_config,
    validate_graph_definition,
)

router = APIRouter()
logger = logging.getLogger(__name__)

# 可恢复的输入错误，转换为 success=False 响应
RECOVERABLE_ERRORS = (GraphError, ConfigError, InputFormatError)


# ============ 请求/响应模型 ============

class APIResponse(BaseModel):
    """统一API响应格式"""
    success: bool = Field(description="请求是否成功")
    message: str = Field(description="响应消息")
    data: Optional[Any] = Field(default=None, description="响应数据")


class SimulationRequest(BaseModel):
    """仿真请求"""
    graph: UnitGraphDefinition = Field(description="依赖图定义")
    config: SimulationConfig = Field(default_factory=SimulationConfig, description="仿真配置")


class CargoSimulationRequest(BaseModel):
    """cargo输入仿真请求"""
    timings: str = Field(description="cargo --timings=json 输出内容")
    unit_graph: str = Field(description="cargo --unit-graph 输出内容")
    config: SimulationConfig = Field(default_factory=SimulationConfig, description="仿真配置")


class CompareRequest(BaseModel):
    """对比请求"""
    graph: UnitGraphDefinition = Field(description="依赖图定义")
    config: SimulationConfig = Field(default_factory=SimulationConfig, description="基础配置")
    policies: Optional[List[str]] = Field(default=None, description="参与对比的策略，为空时使用全部可用策略")
    thread_counts: Optional[List[int]] = Field(default=None, description="扫描的执行槽数量，设置后按槽数对比")


# ============ 仿真结果存储 ============

# 内存存储
simulation_results: Dict[str, SimulationResult] = {}
# 仿真ID -> (单元ID -> 目标名称)，仅cargo输入有
result_targets: Dict[str, Dict[str, str]] = {}


# ============ 辅助函数 ============

def error_response(error: Exception) -> APIResponse:
    """将可恢复错误转换为统一响应"""
    return APIResponse(
        success=False,
        message=f"仿真失败: {error}",
        data={"error_type": type(error).__name__}
    )


def store_result(result: SimulationResult, targets: Optional[Dict[str, str]] = None):
    """保存仿真结果"""
    simulation_results[result.sim_id] = result
    if targets:
        result_targets[result.sim_id] = targets


def summarize(result: SimulationResult) -> Dict[str, Any]:
    """仿真结果概要"""
    return {
        "sim_id": result.sim_id,
        "status": result.status.value,
        "label": result.label,
        "policy": result.config.policy.value if result.config else None,
        "num_threads": result.config.num_threads if result.config else None,
        "unit_count": result.unit_count,
        "makespan": result.makespan,
        "created_at": result.created_at,
        "completed_at": result.completed_at
    }


# ============ API端点 ============

@router.post("/run", response_model=APIResponse)
async def run_simulation(request: SimulationRequest):
    """
    运行仿真

    请求体:
    - graph: 依赖映射、时长映射、可选的记录顺序
    - config: 仿真配置（执行槽数量、调度策略等）

    响应:
    - data: 完整仿真结果
    """
    try:
        graph = UnitGraph.from_definition(request.graph)
        engine = SimulationEngine(
            request.config, graph, recorded_order=request.graph.recorded_order
        )
        result = engine.run()
    except RECOVERABLE_ERRORS as e:
        logger.warning("仿真请求无效: %s", e)
        return error_response(e)

    store_result(result)
    return APIResponse(
        success=True,
        message=f"仿真完成，makespan = {result.makespan}",
        data=result.to_dict()
    )


@router.post("/run/cargo", response_model=APIResponse)
async def run_cargo_simulation(request: CargoSimulationRequest):
    """
    按cargo输出运行仿真

    计时文件的记录顺序可用于 repeat-schedule 策略
    """
    try:
        separate = request.config.separate_codegen
        timings = parse_timings(request.timings, separate)
        dependencies = parse_unit_graph(request.unit_graph, separate)
        graph = UnitGraph(dependencies, timings.durations)
        engine = SimulationEngine(
            request.config, graph, recorded_order=timings.recorded_order
        )
        result = engine.run()
    except RECOVERABLE_ERRORS as e:
        logger.warning("cargo仿真请求无效: %s", e)
        return error_response(e)

    store_result(result, timings.targets)
    return APIResponse(
        success=True,
        message=f"仿真完成，{result.unit_count} 个单元，makespan = {result.makespan}",
        data=result.to_dict()
    )


@router.post("/compare", response_model=APIResponse)
async def compare_simulations(request: CompareRequest):
    """
    对比仿真

    设置 thread_counts 时按执行槽数量扫描（使用配置中的策略），
    否则对比各调度策略
    """
    try:
        graph = UnitGraph.from_definition(request.graph)
        recorded_order = request.graph.recorded_order or None
        if request.thread_counts:
            results = sweep_threads(
                graph, request.thread_counts, request.config, recorded_order
            )
        else:
            results = compare_policies(
                graph, request.config, request.policies, recorded_order
            )
    except RECOVERABLE_ERRORS as e:
        logger.warning("对比请求无效: %s", e)
        return error_response(e)

    for result in results:
        store_result(result)
    table = build_comparison_table(results)
    return APIResponse(
        success=True,
        message=f"对比完成，最优: {table[0]['label']}",
        data={
            "ranking": table,
            "results": [summarize(r) for r in results]
        }
    )


@router.post("/validate", response_model=APIResponse)
async def validate_graph(definition: UnitGraphDefinition):
    """
    验证依赖图定义

    一次返回所有错误与警告，并附带连通性分析
    """
    valid, errors, warnings = validate_graph_definition(
        definition.dependencies, definition.durations
    )
    return APIResponse(
        success=valid,
        message="依赖图有效" if valid else f"依赖图存在 {len(errors)} 个错误",
        data={
            "valid": valid,
            "errors": errors,
            "warnings": warnings,
            "connectivity": check_graph_connectivity(definition.dependencies)
        }
    )


@router.get("/config/default", response_model=APIResponse)
async def get_default_config():
    """
    获取默认配置

    读取 config/default_config.yaml，不存在时使用内置默认值
    """
    try:
        config = load_default_config()
    except ConfigError as e:
        return error_response(e)

    return APIResponse(
        success=True,
        message="获取默认配置成功",
        data=config.model_dump(mode="json")
    )


@router.get("/policies", response_model=APIResponse)
async def list_policies():
    """获取可用调度策略"""
    return APIResponse(
        success=True,
        message="获取调度策略成功",
        data=[
            {"name": policy.value, **get_policy_info(policy)}
            for policy in PolicyName
        ]
    )


@router.get("/list", response_model=APIResponse)
async def list_simulations():
    """
    列出所有仿真记录

    按创建时间倒序
    """
    summaries = [summarize(result) for result in simulation_results.values()]
    summaries.sort(key=lambda x: x["created_at"], reverse=True)

    return APIResponse(
        success=True,
        message=f"共 {len(summaries)} 条仿真记录",
        data=summaries
    )


@router.delete("/clear", response_model=APIResponse)
async def clear_simulations():
    """清除所有仿真记录"""
    count = len(simulation_results)
    simulation_results.clear()
    result_targets.clear()

    return APIResponse(
        success=True,
        message=f"已清除 {count} 条仿真记录"
    )
