"""
API接口测试
使用FastAPI TestClient测试仿真控制与结果查询接口
"""

import json

import pytest
from fastapi.testclient import TestClient

from buildsim.main import app
from buildsim.api.simulation import result_targets, simulation_results


BASIC_GRAPH = {
    "dependencies": {"a": [], "b": [], "c": ["a", "b"]},
    "durations": {"a": 2, "b": 3, "c": 1},
}


@pytest.fixture
def client():
    """测试客户端（每个测试前后清空结果存储）"""
    simulation_results.clear()
    result_targets.clear()
    yield TestClient(app)
    simulation_results.clear()
    result_targets.clear()


def run_basic(client, **config):
    """辅助函数：运行基础图仿真并返回仿真ID"""
    response = client.post("/api/simulation/run", json={"graph": BASIC_GRAPH, "config": config})
    body = response.json()
    assert body["success"], body["message"]
    return body["data"]["sim_id"]


class TestServiceEndpoints:
    """服务端点测试"""

    def test_health(self, client):
        """测试健康检查"""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, client):
        """测试根路径说明页"""
        response = client.get("/")

        assert response.status_code == 200
        assert "构建调度仿真系统" in response.text


class TestSimulationApi:
    """仿真控制接口测试"""

    def test_run(self, client):
        """测试运行仿真"""
        response = client.post("/api/simulation/run", json={
            "graph": BASIC_GRAPH,
            "config": {"num_threads": 1, "policy": "fifo"}
        })
        body = response.json()

        assert response.status_code == 200
        assert body["success"]
        assert body["data"]["makespan"] == 6
        assert [r["unit_id"] for r in body["data"]["records"]] == ["a", "b", "c"]
        assert body["data"]["sim_id"] in simulation_results

    def test_run_default_config(self, client):
        """测试省略配置时使用默认值"""
        response = client.post("/api/simulation/run", json={"graph": BASIC_GRAPH})
        body = response.json()

        assert body["success"]
        assert body["data"]["config"]["num_threads"] == 10
        assert body["data"]["makespan"] == 4

    def test_run_cycle(self, client):
        """测试循环依赖返回失败响应"""
        response = client.post("/api/simulation/run", json={"graph": {
            "dependencies": {"a": ["a"]},
            "durations": {"a": 1}
        }})
        body = response.json()

        assert response.status_code == 200
        assert not body["success"]
        assert body["data"]["error_type"] == "CycleError"
        assert simulation_results == {}

    def test_run_missing_duration(self, client):
        """测试缺少时长返回失败响应"""
        response = client.post("/api/simulation/run", json={"graph": {
            "dependencies": {"a": []},
            "durations": {}
        }})

        assert response.json()["data"]["error_type"] == "MissingDurationError"

    def test_run_repeat_without_order(self, client):
        """测试重放策略缺少记录顺序"""
        response = client.post("/api/simulation/run", json={
            "graph": BASIC_GRAPH,
            "config": {"policy": "repeat-schedule"}
        })

        assert response.json()["data"]["error_type"] == "ConfigError"

    def test_invalid_config_rejected(self, client):
        """测试请求体校验失败"""
        response = client.post("/api/simulation/run", json={
            "graph": BASIC_GRAPH,
            "config": {"num_threads": 0}
        })

        assert response.status_code == 422

    def test_run_cargo(self, client):
        """测试按cargo输出运行仿真"""
        lib = {"name": "dep", "crate_types": ["lib"]}
        timings = "\n".join([
            json.dumps({"reason": "timing-info", "package_id": "dep 0.1.0", "target": lib,
                        "mode": "build", "duration": 1.0}),
            json.dumps({"reason": "timing-info", "package_id": "app 0.1.0",
                        "target": {"name": "app", "crate_types": ["bin"]},
                        "mode": "build", "duration": 0.5}),
        ])
        unit_graph = json.dumps({"units": [
            {"pkg_id": "dep 0.1.0", "target": lib, "mode": "build", "dependencies": []},
            {"pkg_id": "app 0.1.0", "target": {"name": "app", "crate_types": ["bin"]},
             "mode": "build", "dependencies": [{"index": 0}]},
        ]})

        response = client.post("/api/simulation/run/cargo", json={
            "timings": timings,
            "unit_graph": unit_graph
        })
        body = response.json()

        assert body["success"]
        assert body["data"]["makespan"] == 1500
        assert result_targets[body["data"]["sim_id"]]["app 0.1.0#link"] == "app"

    def test_run_cargo_bad_input(self, client):
        """测试cargo输入格式错误"""
        response = client.post("/api/simulation/run/cargo", json={
            "timings": "{oops",
            "unit_graph": "{}"
        })

        assert response.json()["data"]["error_type"] == "InputFormatError"

    def test_compare_policies(self, client):
        """测试策略对比"""
        response = client.post("/api/simulation/compare", json={
            "graph": BASIC_GRAPH,
            "config": {"num_threads": 1}
        })
        body = response.json()

        assert body["success"]
        assert [r["policy"] for r in body["data"]["results"]] == \
            ["fifo", "longest-remaining-work", "shortest-job"]
        assert len(body["data"]["ranking"]) == 3
        assert len(simulation_results) == 3

    def test_compare_threads(self, client):
        """测试执行槽数量扫描"""
        response = client.post("/api/simulation/compare", json={
            "graph": BASIC_GRAPH,
            "thread_counts": [1, 2]
        })
        body = response.json()

        assert [r["num_threads"] for r in body["data"]["ranking"]] == [2, 1]

    def test_compare_invalid_policy(self, client):
        """测试对比未知策略"""
        response = client.post("/api/simulation/compare", json={
            "graph": BASIC_GRAPH,
            "policies": ["random"]
        })

        assert not response.json()["success"]

    def test_validate(self, client):
        """测试验证依赖图"""
        response = client.post("/api/simulation/validate", json={
            "dependencies": {"a": ["ghost"], "b": []},
            "durations": {"b": 1}
        })
        body = response.json()

        assert not body["success"]
        assert len(body["data"]["errors"]) == 2
        assert body["data"]["connectivity"]["component_count"] == 2

    def test_default_config(self, client):
        """测试获取默认配置"""
        body = client.get("/api/simulation/config/default").json()

        assert body["data"]["num_threads"] == 10
        assert body["data"]["policy"] == "longest-remaining-work"

    def test_policies(self, client):
        """测试获取调度策略"""
        body = client.get("/api/simulation/policies").json()

        names = [p["name"] for p in body["data"]]
        assert names == ["fifo", "longest-remaining-work", "shortest-job", "repeat-schedule"]
        assert body["data"][-1]["needs_recorded_order"]

    def test_list_and_clear(self, client):
        """测试列出与清除仿真记录"""
        run_basic(client)
        run_basic(client, num_threads=1)

        assert len(client.get("/api/simulation/list").json()["data"]) == 2

        body = client.delete("/api/simulation/clear").json()
        assert body["message"] == "已清除 2 条仿真记录"
        assert client.get("/api/simulation/list").json()["data"] == []


class TestResultsApi:
    """结果查询接口测试"""

    def test_get_result(self, client):
        """测试获取仿真结果"""
        sim_id = run_basic(client, num_threads=2)
        body = client.get(f"/api/results/{sim_id}").json()

        assert body["success"]
        assert body["data"]["makespan"] == 4
        assert len(body["data"]["records"]) == 3

    def test_missing_result(self, client):
        """测试结果不存在"""
        body = client.get("/api/results/unknown").json()

        assert not body["success"]
        assert "不存在" in body["message"]

    def test_timings_filter(self, client):
        """测试按时间范围与执行槽筛选计时记录"""
        sim_id = run_basic(client, num_threads=2)

        body = client.get(f"/api/results/{sim_id}/timings", params={"start": 3.5}).json()
        assert [r["unit_id"] for r in body["data"]["records"]] == ["c"]

        body = client.get(f"/api/results/{sim_id}/timings", params={"end": 2.5}).json()
        assert sorted(r["unit_id"] for r in body["data"]["records"]) == ["a", "b"]

        body = client.get(f"/api/results/{sim_id}/timings", params={"slot_id": 1}).json()
        assert [r["unit_id"] for r in body["data"]["records"]] == ["a"]

    def test_timings_bad_range(self, client):
        """测试结束早于开始"""
        sim_id = run_basic(client)
        body = client.get(f"/api/results/{sim_id}/timings", params={"start": 3, "end": 1}).json()

        assert not body["success"]

    def test_concurrency(self, client):
        """测试并发度时间线"""
        sim_id = run_basic(client, num_threads=2)
        body = client.get(f"/api/results/{sim_id}/concurrency").json()

        assert [c["active"] for c in body["data"]["concurrency"]] == [2, 1, 1, 0]
        assert body["data"]["cpu_usage"][0] == [0.0, 100.0]

    def test_kpi(self, client):
        """测试KPI指标"""
        sim_id = run_basic(client, num_threads=2)
        body = client.get(f"/api/results/{sim_id}/kpi").json()

        assert body["data"]["kpi"]["time"]["makespan"] == 4
        assert body["data"]["summary"]

    def test_html_report(self, client):
        """测试HTML计时报告"""
        sim_id = run_basic(client)
        response = client.get(f"/api/results/{sim_id}/report")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "const UNIT_DATA" in response.text

    def test_csv_export(self, client):
        """测试CSV导出"""
        sim_id = run_basic(client)
        response = client.get(f"/api/results/{sim_id}/csv")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.content.startswith(b"\xef\xbb\xbf")

    def test_export_missing(self, client):
        """测试导出不存在的结果"""
        assert client.get("/api/results/unknown/report").status_code == 404
        assert client.get("/api/results/unknown/csv").status_code == 404
