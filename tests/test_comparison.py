"""
策略与线程数对比测试

测试内容:
- 多策略对比按输入顺序返回
- 线程数扫描
- 并行执行与顺序执行结果一致
"""

import pytest

from buildsim.models.config_model import SimulationConfig
from buildsim.models.enums import PolicyName
from buildsim.core.unit_graph import UnitGraph
from buildsim.core.comparison import best_result, compare_policies, run_many, sweep_threads
from buildsim.core.exceptions import ConfigError


def create_test_graph() -> UnitGraph:
    """创建对比用依赖图"""
    return UnitGraph(
        {"a": [], "b": [], "z": [], "tail": ["z"], "end": ["a", "tail"]},
        {"a": 2, "b": 2, "z": 2, "tail": 4, "end": 1}
    )


class TestComparePolicies:
    """多策略对比测试"""

    def test_default_policies(self):
        """测试默认对比所有无需记录顺序的策略"""
        results = compare_policies(create_test_graph(), SimulationConfig(num_threads=2))

        assert [r.config.policy for r in results] == [
            PolicyName.FIFO,
            PolicyName.LONGEST_REMAINING_WORK,
            PolicyName.SHORTEST_JOB,
        ]
        assert all(r.config.num_threads == 2 for r in results)

    def test_includes_repeat_with_order(self):
        """测试提供记录顺序时包含重放策略"""
        results = compare_policies(
            create_test_graph(),
            recorded_order=["z", "a", "b", "tail", "end"]
        )

        assert results[-1].config.policy == PolicyName.REPEAT_SCHEDULE

    def test_explicit_policies_keep_order(self):
        """测试指定策略列表时保持输入顺序"""
        results = compare_policies(
            create_test_graph(),
            policies=["shortest-job", "fifo"]
        )

        assert [r.config.policy for r in results] == [PolicyName.SHORTEST_JOB, PolicyName.FIFO]

    def test_labels_regenerated(self):
        """测试每次运行使用独立的默认标签"""
        base = SimulationConfig(num_threads=3, label="base")
        results = compare_policies(create_test_graph(), base, policies=["fifo"])

        assert results[0].label == "fifo@3"

    def test_unknown_policy(self):
        """测试未知策略"""
        with pytest.raises(ConfigError):
            compare_policies(create_test_graph(), policies=["random"])

    def test_empty_policy_list(self):
        """测试空策略列表"""
        with pytest.raises(ConfigError):
            compare_policies(create_test_graph(), policies=[])

    def test_best_result(self):
        """测试选出makespan最小的结果"""
        results = compare_policies(create_test_graph(), SimulationConfig(num_threads=2))

        best = best_result(results)
        assert best.makespan == min(r.makespan for r in results)
        assert best_result([]) is None


class TestSweepThreads:
    """线程数扫描测试"""

    def test_sweep_order(self):
        """测试结果按输入顺序返回"""
        results = sweep_threads(create_test_graph(), [4, 1, 2])

        assert [r.config.num_threads for r in results] == [4, 1, 2]
        assert results[1].makespan == 11

    @pytest.mark.parametrize("counts", [[], [0], [2, -1], [1.5]])
    def test_invalid_counts(self, counts):
        """测试无效的线程数"""
        with pytest.raises(ConfigError):
            sweep_threads(create_test_graph(), counts)


class TestParallelRuns:
    """并行执行测试"""

    def test_parallel_matches_sequential(self):
        """测试并行执行与顺序执行的计时记录一致"""
        graph = create_test_graph()
        configs = [
            SimulationConfig(num_threads=n, policy=p)
            for n in [1, 2, 3]
            for p in [PolicyName.FIFO, PolicyName.LONGEST_REMAINING_WORK]
        ]

        sequential = run_many(graph, configs)
        parallel = run_many(graph, configs, max_workers=4)

        assert [r.get_timing_triples() for r in sequential] == \
            [r.get_timing_triples() for r in parallel]
        assert [r.config.num_threads for r in parallel] == [1, 1, 2, 2, 3, 3]

    def test_config_error_before_any_run(self):
        """测试配置错误在执行前抛出"""
        configs = [
            SimulationConfig(num_threads=2),
            SimulationConfig(policy=PolicyName.REPEAT_SCHEDULE),
        ]

        with pytest.raises(ConfigError):
            run_many(create_test_graph(), configs)
