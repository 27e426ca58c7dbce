"""
FastAPI 主入口
构建调度仿真服务 - Build Schedule Simulation
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from buildsim import __version__
from buildsim.api import simulation, results

# 创建FastAPI应用实例
app = FastAPI(
    title="构建调度仿真系统",
    description="Build Schedule Simulation - 预测编译任务在N个并行槽上的makespan",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS中间件配置 - 允许跨域访问
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册API路由
app.include_router(simulation.router, prefix="/api/simulation", tags=["仿真控制"])
app.include_router(results.router, prefix="/api/results", tags=["结果查询"])


@app.get("/", response_class=HTMLResponse)
async def root():
    """
    根路径 - 返回服务说明页
    """
    return HTMLResponse(content=f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="UTF-8">
        <title>构建调度仿真系统</title>
    </head>
    <body>
        <h1>构建调度仿真系统</h1>
        <h2>Build Schedule Simulation v{__version__}</h2>
        <a href="/docs">API文档 (Swagger)</a>
        <a href="/redoc">API文档 (ReDoc)</a>
    </body>
    </html>
    """)


@app.get("/health")
async def health_check():
    """
    健康检查接口
    """
    return JSONResponse(content={
        "status": "healthy",
        "version": __version__,
        "service": "Build Schedule Simulation"
    })


@app.on_event("startup")
async def startup_event():
    """
    应用启动事件
    """
    print("构建调度仿真系统启动成功!")
    print("API文档: http://localhost:8000/docs")


@app.on_event("shutdown")
async def shutdown_event():
    """
    应用关闭事件
    """
    print("构建调度仿真系统已关闭")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("buildsim.main:app", host="0.0.0.0", port=8000, reload=True)
