"""
cargo输入解析测试

测试内容:
- 计时文件解析（毫秒换算、忽略行、重复单元）
- 代码生成拆分
- 单元图解析与依赖映射
- 组合为依赖图并运行仿真
"""

import json

import pytest

from buildsim.models.enums import ArtifactType
from buildsim.core.unit_graph import UnitGraph
from buildsim.core.simulation_engine import run_simulation
from buildsim.core.exceptions import InputFormatError
from buildsim.utils.cargo_parser import (
    artifact_type,
    build_definition,
    load_inputs,
    parse_timings,
    parse_unit_graph,
    unit_key,
)


LIB = {"name": "dep", "crate_types": ["lib"]}
BIN = {"name": "app", "crate_types": ["bin"]}
BUILD_SCRIPT = {"name": "build-script-build", "crate_types": ["bin"]}


def timing_line(package_id, target, duration, mode="build", rmeta_time=None, **extra):
    """辅助函数：生成一行 timing-info JSON"""
    entry = {
        "reason": "timing-info",
        "package_id": package_id,
        "target": target,
        "mode": mode,
        "duration": duration,
    }
    if rmeta_time is not None:
        entry["rmeta_time"] = rmeta_time
    entry.update(extra)
    return json.dumps(entry)


def create_timings_text() -> str:
    """辅助函数：构建脚本 -> 库 -> 可执行文件 的计时文件"""
    return "\n".join([
        "   Compiling dep v0.1.0",
        timing_line("dep 0.1.0", BUILD_SCRIPT, 0.5),
        timing_line("dep 0.1.0", BUILD_SCRIPT, 0.25, mode="run-custom-build"),
        json.dumps({"reason": "compiler-artifact", "package_id": "dep 0.1.0"}),
        timing_line("dep 0.1.0", LIB, 2.0, rmeta_time=1.2),
        timing_line("app 0.1.0", BIN, 1.5),
        "",
    ])


def create_unit_graph_text() -> str:
    """辅助函数：与计时文件对应的单元图"""
    return json.dumps({
        "version": 1,
        "units": [
            {"pkg_id": "dep 0.1.0", "target": BUILD_SCRIPT, "mode": "build", "dependencies": []},
            {"pkg_id": "dep 0.1.0", "target": BUILD_SCRIPT, "mode": "run-custom-build",
             "dependencies": [{"index": 0}]},
            {"pkg_id": "dep 0.1.0", "target": LIB, "mode": "build",
             "dependencies": [{"index": 1}]},
            {"pkg_id": "app 0.1.0", "target": BIN, "mode": "build",
             "dependencies": [{"index": 2}]},
        ],
        "roots": [3],
    })


class TestArtifactType:
    """产物类型判定测试"""

    def test_kinds(self):
        """测试各类目标的产物类型"""
        assert artifact_type("build", BUILD_SCRIPT) == ArtifactType.BUILD_SCRIPT_BUILD
        assert artifact_type("run-custom-build", BUILD_SCRIPT) == ArtifactType.BUILD_SCRIPT_RUN
        assert artifact_type("build", LIB) == ArtifactType.METADATA
        assert artifact_type("build", BIN) == ArtifactType.LINK
        assert artifact_type("build", {"name": "derive", "crate_types": ["proc-macro"]}) == ArtifactType.LINK

    def test_unsupported_mode(self):
        """测试不支持的构建模式"""
        with pytest.raises(InputFormatError):
            artifact_type("test", LIB)

    def test_run_custom_build_on_library(self):
        """测试非构建脚本使用 run-custom-build"""
        with pytest.raises(InputFormatError):
            artifact_type("run-custom-build", LIB)

    def test_unit_key(self):
        """测试单元ID格式"""
        assert unit_key("dep 0.1.0", ArtifactType.CODEGEN) == "dep 0.1.0#codegen"


class TestParseTimings:
    """计时文件解析测试"""

    def test_durations_in_ms(self):
        """测试时长换算为毫秒整数"""
        data = parse_timings(create_timings_text())

        assert data.durations == {
            "dep 0.1.0#build-script-build": 500,
            "dep 0.1.0#build-script-run": 250,
            "dep 0.1.0#metadata": 2000,
            "app 0.1.0#link": 1500,
        }
        assert len(data) == 4

    def test_recorded_order(self):
        """测试记录的构建顺序"""
        data = parse_timings(create_timings_text())

        assert data.recorded_order == [
            "dep 0.1.0#build-script-build",
            "dep 0.1.0#build-script-run",
            "dep 0.1.0#metadata",
            "app 0.1.0#link",
        ]
        assert data.targets["app 0.1.0#link"] == "app"

    def test_skipped_lines(self):
        """测试非JSON行与非timing-info记录被忽略"""
        data = parse_timings(create_timings_text())

        assert data.skipped_lines == 2

    def test_rounding(self):
        """测试毫秒四舍五入"""
        data = parse_timings(timing_line("p", LIB, 0.0016))

        assert data.durations["p#metadata"] == 2

    def test_first_duplicate_wins(self):
        """测试重复单元保留第一次"""
        text = "\n".join([timing_line("p", LIB, 1.0), timing_line("p", LIB, 9.0)])

        data = parse_timings(text)
        assert data.durations == {"p#metadata": 1000}
        assert data.recorded_order == ["p#metadata"]

    def test_separate_codegen(self):
        """测试拆分代码生成"""
        data = parse_timings(create_timings_text(), separate_codegen=True)

        assert data.durations["dep 0.1.0#metadata"] == 1200
        assert data.durations["dep 0.1.0#codegen"] == 800
        assert data.recorded_order.index("dep 0.1.0#codegen") == \
            data.recorded_order.index("dep 0.1.0#metadata") + 1

    def test_separate_codegen_requires_rmeta(self):
        """测试拆分时缺少 rmeta_time"""
        with pytest.raises(InputFormatError):
            parse_timings(timing_line("p", LIB, 1.0), separate_codegen=True)

    def test_codegen_never_negative(self):
        """测试 rmeta_time 大于总时长时代码生成为0"""
        data = parse_timings(timing_line("p", LIB, 1.0, rmeta_time=1.5), separate_codegen=True)

        assert data.durations["p#codegen"] == 0

    @pytest.mark.parametrize("line", [
        "{not json",
        json.dumps({"reason": "timing-info", "target": LIB, "mode": "build", "duration": 1}),
        json.dumps({"reason": "timing-info", "package_id": "p", "target": "lib",
                    "mode": "build", "duration": 1}),
        timing_line("p", LIB, -1),
        timing_line("p", LIB, "fast"),
        timing_line("p", LIB, 1, mode="doc"),
    ])
    def test_invalid_lines(self, line):
        """测试格式错误的行"""
        with pytest.raises(InputFormatError):
            parse_timings(line)

    def test_empty_text(self):
        """测试空文件"""
        data = parse_timings("")

        assert data.durations == {}
        assert data.recorded_order == []


class TestParseUnitGraph:
    """单元图解析测试"""

    def test_dependencies(self):
        """测试依赖映射"""
        deps = parse_unit_graph(create_unit_graph_text())

        assert deps == {
            "dep 0.1.0#build-script-build": [],
            "dep 0.1.0#build-script-run": ["dep 0.1.0#build-script-build"],
            "dep 0.1.0#metadata": ["dep 0.1.0#build-script-run"],
            "app 0.1.0#link": ["dep 0.1.0#metadata"],
        }

    def test_separate_codegen(self):
        """测试拆分时链接单元依赖代码生成"""
        deps = parse_unit_graph(create_unit_graph_text(), separate_codegen=True)

        assert deps["dep 0.1.0#codegen"] == ["dep 0.1.0#metadata"]
        assert deps["app 0.1.0#link"] == ["dep 0.1.0#codegen"]

    def test_library_depends_on_metadata_only(self):
        """测试库之间只依赖元数据"""
        text = json.dumps({"units": [
            {"pkg_id": "a", "target": LIB, "mode": "build", "dependencies": []},
            {"pkg_id": "b", "target": LIB, "mode": "build", "dependencies": [{"index": 0}]},
        ]})

        deps = parse_unit_graph(text, separate_codegen=True)
        assert deps["b#metadata"] == ["a#metadata"]

    def test_duplicate_units_merged(self):
        """测试重复单元保留第一次的依赖"""
        text = json.dumps({"units": [
            {"pkg_id": "a", "target": LIB, "mode": "build", "dependencies": []},
            {"pkg_id": "b", "target": LIB, "mode": "build", "dependencies": [{"index": 0}]},
            {"pkg_id": "b", "target": LIB, "mode": "build", "dependencies": []},
        ]})

        assert parse_unit_graph(text)["b#metadata"] == ["a#metadata"]

    @pytest.mark.parametrize("text", [
        "not json",
        json.dumps({"version": 1}),
        json.dumps({"units": [{"pkg_id": "a", "target": LIB, "mode": "build",
                               "dependencies": [{"index": 5}]}]}),
        json.dumps({"units": [{"target": LIB, "mode": "build"}]}),
    ])
    def test_invalid_documents(self, text):
        """测试格式错误的单元图"""
        with pytest.raises(InputFormatError):
            parse_unit_graph(text)


class TestBuildDefinition:
    """组合输入测试"""

    def test_simulate_cargo_build(self):
        """测试解析结果可直接构建依赖图并仿真"""
        definition, timings = build_definition(create_timings_text(), create_unit_graph_text())
        graph = UnitGraph.from_definition(definition)
        result = run_simulation(graph)

        assert len(graph) == 4
        assert definition.recorded_order == timings.recorded_order
        assert result.makespan == 500 + 250 + 2000 + 1500

    def test_separate_codegen_overlaps_link(self):
        """测试拆分后依赖方可在元数据完成后开始"""
        text = "\n".join([
            timing_line("a", LIB, 2.0, rmeta_time=0.5),
            timing_line("b", LIB, 1.0, rmeta_time=0.4),
        ])
        graph_text = json.dumps({"units": [
            {"pkg_id": "a", "target": LIB, "mode": "build", "dependencies": []},
            {"pkg_id": "b", "target": LIB, "mode": "build", "dependencies": [{"index": 0}]},
        ]})

        definition, _ = build_definition(text, graph_text, separate_codegen=True)
        result = run_simulation(UnitGraph.from_definition(definition))
        times = result.get_unit_times()

        assert times["b#metadata"][0] == 500
        assert result.makespan == 2000

    def test_load_inputs(self, tmp_path):
        """测试从文件读取"""
        timings_file = tmp_path / "timings.json"
        graph_file = tmp_path / "unit-graph.json"
        timings_file.write_text(create_timings_text(), encoding="utf-8")
        graph_file.write_text(create_unit_graph_text(), encoding="utf-8")

        definition, timings = load_inputs(str(timings_file), str(graph_file))

        assert set(definition.dependencies) == set(timings.durations)

    def test_load_missing_file(self, tmp_path):
        """测试文件不存在"""
        with pytest.raises(InputFormatError):
            load_inputs(str(tmp_path / "missing.json"), str(tmp_path / "graph.json"))
