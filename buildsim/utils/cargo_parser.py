"""
cargo输入解析工具
解析 cargo build --timings=json 与 --unit-graph 的输出

功能:
- 解析计时文件：单元时长（毫秒整数）与记录的构建顺序
- 解析单元图文件：按产物类型拆分的依赖映射
- 组合两个文件为 UnitGraphDefinition

单元ID格式为 "{package_id}#{产物类型}"，例如
"serde 1.0.0 (registry+...)#metadata"。

库的产物:
- 不拆分时，metadata 单元代表完整的库编译
- 拆分时（separate_codegen），metadata 只包含rmeta生成时间，
  codegen 单元包含剩余时间并依赖自身的 metadata；
  链接单元（bin / proc-macro）依赖库的 codegen，其他依赖方只需 metadata
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from buildsim.models.enums import ArtifactType
from buildsim.models.unit_model import UnitGraphDefinition
from buildsim.core.exceptions import InputFormatError


BUILD_SCRIPT_TARGETS = ("build-script-build", "build-script-main")
LINK_CRATE_TYPES = ("bin", "proc-macro")
SUPPORTED_MODES = ("build", "run-custom-build")


@dataclass
class TimingsData:
    """
    计时文件解析结果

    Attributes:
        durations: 单元ID -> 时长（毫秒）
        recorded_order: 单元在文件中出现的顺序
        targets: 单元ID -> 目标名称（用于报告）
        skipped_lines: 忽略的行数（非JSON或非timing-info）
    """
    durations: Dict[str, int] = field(default_factory=dict)
    recorded_order: List[str] = field(default_factory=list)
    targets: Dict[str, str] = field(default_factory=dict)
    skipped_lines: int = 0

    def __len__(self) -> int:
        return len(self.durations)


def unit_key(package_id: str, artifact: ArtifactType) -> str:
    """生成单元ID"""
    return f"{package_id}#{artifact.value}"


def artifact_type(mode: str, target: Dict[str, Any]) -> ArtifactType:
    """
    根据构建模式与目标确定产物类型

    Args:
        mode: 构建模式（build / run-custom-build）
        target: 目标描述（name, crate_types）

    Returns:
        产物类型

    Raises:
        InputFormatError: 不支持的模式或组合
    """
    if mode not in SUPPORTED_MODES:
        raise InputFormatError(f"不支持的构建模式: {mode!r}")

    name = target.get("name")
    crate_types = target.get("crate_types") or []
    is_build_script = name in BUILD_SCRIPT_TARGETS

    if is_build_script:
        if mode == "build":
            return ArtifactType.BUILD_SCRIPT_BUILD
        return ArtifactType.BUILD_SCRIPT_RUN
    if mode == "run-custom-build":
        raise InputFormatError(f"目标'{name}'不是构建脚本，不能使用 run-custom-build 模式")
    if any(t in LINK_CRATE_TYPES for t in crate_types):
        return ArtifactType.LINK
    return ArtifactType.METADATA


def _require(entry: Dict[str, Any], key: str, where: str):
    """读取必需字段"""
    if key not in entry:
        raise InputFormatError(f"{where}: 缺少字段 '{key}'")
    return entry[key]


def _to_ms(seconds, where: str) -> int:
    """秒转换为毫秒整数"""
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        raise InputFormatError(f"{where}: 时长不是数值: {seconds!r}")
    if seconds < 0:
        raise InputFormatError(f"{where}: 时长为负: {seconds!r}")
    return int(round(seconds * 1000))


def parse_timings(text: str, separate_codegen: bool = False) -> TimingsData:
    """
    解析cargo计时文件

    只处理以 '{' 开头的行；reason 字段存在且不是 timing-info 的行会被忽略。
    同一单元出现多次时保留第一次的时长

    Args:
        text: 文件内容
        separate_codegen: 是否将库拆分为 metadata 与 codegen

    Returns:
        TimingsData

    Raises:
        InputFormatError: JSON无效、缺少字段或时长无效
    """
    data = TimingsData()

    for line_num, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line.startswith("{"):
            data.skipped_lines += 1
            continue
        where = f"第{line_num}行"
        try:
            entry = json.loads(line)
        except json.JSONDecodeError as e:
            raise InputFormatError(f"{where}: JSON格式错误: {e}") from e
        if not isinstance(entry, dict):
            raise InputFormatError(f"{where}: 不是JSON对象")
        if entry.get("reason", "timing-info") != "timing-info":
            data.skipped_lines += 1
            continue

        package_id = _require(entry, "package_id", where)
        target = _require(entry, "target", where)
        if not isinstance(target, dict):
            raise InputFormatError(f"{where}: target 必须是对象")
        mode = _require(entry, "mode", where)
        duration = _to_ms(_require(entry, "duration", where), where)

        typ = artifact_type(mode, target)
        pieces: List[Tuple[ArtifactType, int]]
        if typ == ArtifactType.METADATA and separate_codegen:
            rmeta_time = entry.get("rmeta_time")
            if rmeta_time is None:
                raise InputFormatError(f"{where}: 库'{package_id}'缺少 rmeta_time，无法拆分代码生成")
            rmeta = _to_ms(rmeta_time, where)
            pieces = [
                (ArtifactType.METADATA, rmeta),
                (ArtifactType.CODEGEN, max(duration - rmeta, 0)),
            ]
        else:
            pieces = [(typ, duration)]

        for piece_type, piece_duration in pieces:
            key = unit_key(package_id, piece_type)
            if key in data.durations:
                continue
            data.durations[key] = piece_duration
            data.recorded_order.append(key)
            data.targets[key] = target.get("name", "")

    return data


def parse_unit_graph(text: str, separate_codegen: bool = False) -> Dict[str, List[str]]:
    """
    解析cargo单元图文件

    Args:
        text: --unit-graph 输出的JSON
        separate_codegen: 是否将库拆分为 metadata 与 codegen

    Returns:
        单元ID -> 依赖单元ID列表（排序）

    Raises:
        InputFormatError: JSON无效、缺少字段或依赖索引越界
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise InputFormatError(f"单元图JSON格式错误: {e}") from e
    if not isinstance(document, dict) or not isinstance(document.get("units"), list):
        raise InputFormatError("单元图缺少 'units' 数组")

    units = document["units"]

    # 先确定每个单元的产物类型
    kinds: List[Tuple[str, ArtifactType]] = []
    for index, unit in enumerate(units):
        where = f"units[{index}]"
        if not isinstance(unit, dict):
            raise InputFormatError(f"{where}: 不是JSON对象")
        package_id = _require(unit, "pkg_id", where)
        target = _require(unit, "target", where)
        if not isinstance(target, dict):
            raise InputFormatError(f"{where}: target 必须是对象")
        mode = _require(unit, "mode", where)
        kinds.append((package_id, artifact_type(mode, target)))

    dependencies: Dict[str, List[str]] = {}
    for index, unit in enumerate(units):
        where = f"units[{index}]"
        package_id, typ = kinds[index]
        key = unit_key(package_id, typ)
        if key in dependencies:
            continue

        deps = set()
        for dep in unit.get("dependencies") or []:
            dep_index = dep.get("index") if isinstance(dep, dict) else None
            if not isinstance(dep_index, int) or not 0 <= dep_index < len(units):
                raise InputFormatError(f"{where}: 无效的依赖索引 {dep!r}")
            dep_package, dep_type = kinds[dep_index]
            if (
                dep_type == ArtifactType.METADATA
                and separate_codegen
                and typ == ArtifactType.LINK
            ):
                dep_type = ArtifactType.CODEGEN
            deps.add(unit_key(dep_package, dep_type))
        deps.discard(key)
        dependencies[key] = sorted(deps)

        if typ == ArtifactType.METADATA and separate_codegen:
            codegen_key = unit_key(package_id, ArtifactType.CODEGEN)
            dependencies.setdefault(codegen_key, [key])

    return dependencies


def build_definition(
    timings_text: str,
    unit_graph_text: str,
    separate_codegen: bool = False
) -> Tuple[UnitGraphDefinition, TimingsData]:
    """
    组合计时文件与单元图文件

    Args:
        timings_text: 计时文件内容
        unit_graph_text: 单元图文件内容
        separate_codegen: 是否拆分代码生成

    Returns:
        (依赖图输入定义, 计时解析结果)
    """
    timings = parse_timings(timings_text, separate_codegen)
    dependencies = parse_unit_graph(unit_graph_text, separate_codegen)
    definition = UnitGraphDefinition(
        dependencies=dependencies,
        durations=timings.durations,
        recorded_order=timings.recorded_order
    )
    return definition, timings


def load_inputs(
    timings_path: str,
    unit_graph_path: str,
    separate_codegen: bool = False,
    encoding: Optional[str] = "utf-8"
) -> Tuple[UnitGraphDefinition, TimingsData]:
    """
    从文件读取并组合依赖图输入

    Returns:
        (依赖图输入定义, 计时解析结果)

    Raises:
        InputFormatError: 文件无法读取或内容无效
    """
    contents = []
    for path in (timings_path, unit_graph_path):
        try:
            with open(path, "r", encoding=encoding) as f:
                contents.append(f.read())
        except OSError as e:
            raise InputFormatError(f"无法读取文件 {path}: {e}") from e
    return build_definition(contents[0], contents[1], separate_codegen)
