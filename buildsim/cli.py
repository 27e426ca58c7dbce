"""
命令行入口

用法:
    python -m buildsim TIMINGS_FILE UNIT_GRAPH_FILE [-n N] [--policy NAME]
                       [--separate-codegen] [--config FILE]
                       [--compare | --sweep 1,2,4,8] [--html DIR] [--json FILE]

输入或配置错误时输出到stderr并以状态码2退出
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from buildsim.models.enums import PolicyName
from buildsim.core.unit_graph import UnitGraph
from buildsim.core.simulation_engine import SimulationEngine
from buildsim.core.comparison import compare_policies, sweep_threads
from buildsim.core.exceptions import ConfigError, GraphError, InputFormatError
from buildsim.utils.cargo_parser import load_inputs
from buildsim.utils.validators import load_config_file, make_config
from buildsim.utils.statistics import build_comparison_table
from buildsim.utils.report import (
    render_comparison_text,
    render_text_summary,
    write_html_report,
)


EXIT_INPUT_ERROR = 2


def parse_thread_list(value: str) -> List[int]:
    """解析 "1,2,4,8" 形式的执行槽数量列表"""
    try:
        counts = [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"无效的线程数列表: {value!r}") from None
    if not counts or any(n <= 0 for n in counts):
        raise argparse.ArgumentTypeError(f"线程数必须为正整数: {value!r}")
    return counts


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="buildsim",
        description="按cargo计时文件与单元图仿真构建过程，预测makespan"
    )
    p.add_argument("timings_file", help="cargo build --timings=json 的输出")
    p.add_argument("dependency_graph_file", help="cargo build --unit-graph 的输出")
    p.add_argument(
        "-n", "--num-threads", type=int, default=None,
        help="并行执行槽数量（默认10）"
    )
    p.add_argument(
        "--policy", default=None,
        choices=[policy.value for policy in PolicyName],
        help="调度策略（默认 longest-remaining-work）"
    )
    p.add_argument(
        "--separate-codegen", action="store_true", default=None,
        help="将库的代码生成作为独立于元数据生成的单元"
    )
    p.add_argument("--config", default=None, help="YAML配置文件")

    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--compare", action="store_true", help="对比所有可用调度策略")
    mode.add_argument(
        "--sweep", type=parse_thread_list, default=None,
        help="扫描执行槽数量，例如 1,2,4,8"
    )
    p.add_argument("--jobs", type=int, default=1, help="对比/扫描时的并行仿真数")

    p.add_argument("--html", default=None, metavar="DIR", help="HTML计时报告输出目录")
    p.add_argument("--json", default=None, metavar="FILE", help="JSON结果输出文件")
    p.add_argument("-v", "--verbose", action="count", default=0, help="输出日志（-vv 为调试级别）")
    return p


def _configure_logging(verbosity: int):
    if verbosity <= 0:
        return
    logging.basicConfig(
        level=logging.DEBUG if verbosity > 1 else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


def main(argv: Optional[List[str]] = None) -> int:
    p = _build_parser()
    args = p.parse_args(argv)
    _configure_logging(args.verbose)

    overrides = {
        "num_threads": args.num_threads,
        "policy": args.policy,
        "separate_codegen": args.separate_codegen,
    }

    try:
        if args.config:
            config = load_config_file(args.config, **overrides)
        else:
            config = make_config(**overrides)

        definition, timings = load_inputs(
            args.timings_file, args.dependency_graph_file, config.separate_codegen
        )
        graph = UnitGraph.from_definition(definition)
        recorded_order = definition.recorded_order

        if args.compare:
            results = compare_policies(
                graph, config, recorded_order=recorded_order, max_workers=args.jobs
            )
        elif args.sweep:
            results = sweep_threads(
                graph, args.sweep, config, recorded_order=recorded_order, max_workers=args.jobs
            )
        else:
            results = [SimulationEngine(config, graph, recorded_order=recorded_order).run()]
    except (GraphError, ConfigError, InputFormatError) as e:
        print(f"buildsim: 错误: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    if len(results) == 1:
        print(render_text_summary(results[0]))
    else:
        print(render_comparison_text(build_comparison_table(results)))

    if args.html:
        for result in results:
            path = write_html_report(result, args.html, targets=timings.targets)
            print(f"HTML报告: {path}")

    if args.json:
        payload = [r.to_dict() for r in results]
        with open(args.json, "w", encoding="utf-8") as f:
            json.dump(payload[0] if len(payload) == 1 else payload, f, ensure_ascii=False, indent=2)
        print(f"JSON结果: {args.json}")

    return 0
