"""
结果查询接口
提供仿真结果的查询、导出和分析功能

API端点:
- GET /api/results/{sim_id}: 获取仿真结果
- GET /api/results/{sim_id}/timings: 获取计时记录（支持时间范围与执行槽筛选）
- GET /api/results/{sim_id}/concurrency: 获取并发度时间线
- GET /api/results/{sim_id}/kpi: 获取KPI指标
- GET /api/results/{sim_id}/report: 导出HTML计时报告
- GET /api/results/{sim_id}/csv: 导出计时记录CSV
"""

import io
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import HTMLResponse, StreamingResponse

from buildsim.api.simulation import APIResponse, simulation_results, result_targets
from buildsim.models.result_model import SimulationResultModel
from buildsim.utils.report import export_timings_csv_bytes, render_html_report
from buildsim.utils.statistics import calculate_cpu_usage, generate_kpi_report

router = APIRouter()


def _not_found(sim_id: str) -> APIResponse:
    return APIResponse(
        success=False,
        message=f"仿真结果 {sim_id} 不存在"
    )


@router.get("/{sim_id}", response_model=APIResponse)
async def get_simulation_result(sim_id: str):
    """
    获取仿真结果

    返回指定仿真ID的完整结果数据
    """
    if sim_id not in simulation_results:
        return _not_found(sim_id)

    result = simulation_results[sim_id]
    return APIResponse(
        success=True,
        message="获取结果成功",
        data=SimulationResultModel.from_result(result).model_dump()
    )


@router.get("/{sim_id}/timings", response_model=APIResponse)
async def get_timings(
    sim_id: str,
    start: Optional[float] = Query(default=None, ge=0, description="时间范围开始"),
    end: Optional[float] = Query(default=None, ge=0, description="时间范围结束"),
    slot_id: Optional[int] = Query(default=None, ge=0, description="筛选执行槽")
):
    """
    获取计时记录

    按开始顺序返回 (单元, 执行槽, 开始, 完成)，
    可按时间范围（与范围重叠的记录）和执行槽筛选
    """
    if sim_id not in simulation_results:
        return _not_found(sim_id)

    result = simulation_results[sim_id]
    records = result.records

    if start is not None or end is not None:
        range_start = start if start is not None else 0
        range_end = end if end is not None else result.makespan
        if range_end < range_start:
            return APIResponse(success=False, message="时间范围结束早于开始")
        records = [
            e for e in records
            if e.overlaps_with(range_start, range_end)
            # 零时长单元落在范围内也算
            or (e.duration == 0 and range_start <= e.start_time <= range_end)
        ]

    if slot_id is not None:
        records = [e for e in records if e.slot_id == slot_id]

    return APIResponse(
        success=True,
        message=f"共 {len(records)} 条计时记录",
        data={
            "makespan": result.makespan,
            "records": [e.to_dict() for e in records]
        }
    )


@router.get("/{sim_id}/concurrency", response_model=APIResponse)
async def get_concurrency(sim_id: str):
    """获取并发度时间线与CPU占用曲线"""
    if sim_id not in simulation_results:
        return _not_found(sim_id)

    result = simulation_results[sim_id]
    return APIResponse(
        success=True,
        message="获取并发度成功",
        data={
            "concurrency": [s.to_dict() for s in result.concurrency],
            "cpu_usage": calculate_cpu_usage(result)
        }
    )


@router.get("/{sim_id}/kpi", response_model=APIResponse)
async def get_kpi_data(sim_id: str):
    """
    获取KPI指标

    返回makespan、关键路径、并行度与执行槽利用率
    """
    if sim_id not in simulation_results:
        return _not_found(sim_id)

    report = generate_kpi_report(simulation_results[sim_id])
    return APIResponse(
        success=True,
        message="获取KPI成功",
        data=report
    )


@router.get("/{sim_id}/report", response_class=HTMLResponse)
async def get_html_report(sim_id: str):
    """导出cargo风格的HTML计时报告"""
    if sim_id not in simulation_results:
        raise HTTPException(status_code=404, detail=f"仿真结果 {sim_id} 不存在")

    result = simulation_results[sim_id]
    content = render_html_report(result, targets=result_targets.get(sim_id))
    return HTMLResponse(content=content)


@router.get("/{sim_id}/csv")
async def export_timings(sim_id: str):
    """
    导出计时记录CSV

    UTF-8 with BOM
    """
    if sim_id not in simulation_results:
        raise HTTPException(status_code=404, detail=f"仿真结果 {sim_id} 不存在")

    result = simulation_results[sim_id]
    filename = f"timings_{sim_id[:8]}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"

    return StreamingResponse(
        io.BytesIO(export_timings_csv_bytes(result)),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={filename}"
        }
    )
