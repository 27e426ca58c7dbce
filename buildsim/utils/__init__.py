"""
工具函数包
提供各种辅助功能

模块说明:
- cargo_parser.py: cargo计时文件与单元图解析
- time_converter.py: 时间转换工具
- statistics.py: KPI统计计算
- report.py: CSV/JSON/HTML报告导出
- validators.py: 配置与依赖图验证
"""

from buildsim.utils.cargo_parser import (
    TimingsData,
    parse_timings,
    parse_unit_graph,
    build_definition,
    load_inputs,
)

from buildsim.utils.time_converter import (
    format_duration,
    format_duration_short,
    format_units,
    units_to_seconds,
)

from buildsim.utils.statistics import (
    calculate_kpi,
    calculate_average_parallelism,
    calculate_slot_statistics,
    build_comparison_table,
    generate_kpi_report,
)

from buildsim.utils.report import (
    export_timings_csv,
    export_timings_csv_bytes,
    export_timings_json,
    render_text_summary,
    render_html_report,
    write_html_report,
)

from buildsim.utils.validators import (
    make_config,
    load_config_file,
    load_default_config,
    validate_graph_definition,
    check_graph_connectivity,
)

__all__ = [
    # cargo输入
    "TimingsData",
    "parse_timings",
    "parse_unit_graph",
    "build_definition",
    "load_inputs",
    # 时间转换
    "format_duration",
    "format_duration_short",
    "format_units",
    "units_to_seconds",
    # 统计
    "calculate_kpi",
    "calculate_average_parallelism",
    "calculate_slot_statistics",
    "build_comparison_table",
    "generate_kpi_report",
    # 报告
    "export_timings_csv",
    "export_timings_csv_bytes",
    "export_timings_json",
    "render_text_summary",
    "render_html_report",
    "write_html_report",
    # 验证
    "make_config",
    "load_config_file",
    "load_default_config",
    "validate_graph_definition",
    "check_graph_connectivity",
]
