"""
调度策略单元测试
测试各调度策略的选择规则

测试内容:
- FIFO / 最长剩余工作 / 最短作业
- 并列时的稳定顺序
- 重放记录顺序与回退
- 策略创建与名称解析
"""

import pytest

from buildsim.models.enums import PolicyName
from buildsim.core.unit_graph import UnitGraph
from buildsim.core.dependency_queue import ReadyUnit
from buildsim.core.policies import (
    FifoPolicy,
    LongestRemainingWorkPolicy,
    RepeatSchedulePolicy,
    SchedulingContext,
    ShortestJobPolicy,
    available_policies,
    create_policy,
    resolve_policy_name,
)
from buildsim.core.exceptions import ConfigError


def create_context() -> SchedulingContext:
    """
    辅助函数：调度上下文

    关键路径权重: a=10+1=11, b=3+1=4, c=8, d=1, e=3
    """
    graph = UnitGraph(
        {"a": [], "b": [], "c": [], "d": ["a", "b"], "e": []},
        {"a": 10, "b": 3, "c": 8, "d": 1, "e": 3}
    )
    return SchedulingContext(graph, 0)


def ready(*entries):
    """辅助函数：(单元ID, 就绪时间) 列表转为就绪条目，序号按顺序"""
    return [ReadyUnit(unit_id, t, seq) for seq, (unit_id, t) in enumerate(entries)]


class TestFifoPolicy:
    """FIFO策略测试"""

    def test_earliest_ready_first(self):
        """测试最早就绪者优先"""
        candidates = ready(("c", 5), ("b", 2), ("a", 7))

        assert FifoPolicy().select(candidates, create_context()) == "b"

    def test_tie_broken_by_id(self):
        """测试同时就绪按ID排序"""
        candidates = ready(("e", 0), ("b", 0), ("c", 0))

        assert FifoPolicy().select(candidates, create_context()) == "b"


class TestLongestRemainingWorkPolicy:
    """最长剩余工作策略测试"""

    def test_largest_weight_first(self):
        """测试关键路径权重最大者优先"""
        candidates = ready(("b", 0), ("c", 0), ("a", 0))

        assert LongestRemainingWorkPolicy().select(candidates, create_context()) == "a"

    def test_weight_includes_downstream(self):
        """测试权重包含下游链：b(3)+d(1)=4 大于 e(3)"""
        candidates = ready(("e", 0), ("b", 0))

        assert LongestRemainingWorkPolicy().select(candidates, create_context()) == "b"

    def test_tie_broken_by_insertion_order(self):
        """测试权重相同时按插入顺序"""
        graph = UnitGraph({"x": [], "y": []}, {"x": 5, "y": 5})
        context = SchedulingContext(graph, 0)

        assert LongestRemainingWorkPolicy().select(ready(("y", 0), ("x", 0)), context) == "y"
        assert LongestRemainingWorkPolicy().select(ready(("x", 0), ("y", 0)), context) == "x"


class TestShortestJobPolicy:
    """最短作业策略测试"""

    def test_shortest_first(self):
        """测试自身时长最短者优先"""
        candidates = ready(("a", 0), ("c", 0), ("b", 0))

        assert ShortestJobPolicy().select(candidates, create_context()) == "b"

    def test_tie_broken_by_insertion_order(self):
        """测试时长相同时按插入顺序"""
        candidates = ready(("e", 0), ("b", 0))

        assert ShortestJobPolicy().select(candidates, create_context()) == "e"


class TestRepeatSchedulePolicy:
    """重放策略测试"""

    def test_follows_recorded_order(self):
        """测试按记录顺序选择"""
        policy = RepeatSchedulePolicy(["c", "a", "b"])
        context = create_context()

        assert policy.select(ready(("a", 0), ("b", 0), ("c", 0)), context) == "c"
        assert policy.select(ready(("a", 0), ("b", 0)), context) == "a"
        assert policy.select(ready(("b", 0)), context) == "b"
        assert policy.remaining() == 0

    def test_fallback_when_next_not_ready(self):
        """测试记录中的下一个单元未就绪时回退且不前进"""
        policy = RepeatSchedulePolicy(["d", "a"])
        context = create_context()

        assert policy.select(ready(("b", 0), ("a", 0)), context) == "b"
        assert policy.remaining() == 2

    def test_skips_dispatched_and_unknown(self):
        """测试跳过已调度与图中不存在的记录"""
        policy = RepeatSchedulePolicy(["ghost", "b", "a"])
        context = create_context()

        # 回退选中了a，记录中的a随后被跳过
        assert policy.select(ready(("a", 0)), context) == "a"
        assert policy.select(ready(("b", 0), ("c", 0)), context) == "b"
        assert policy.select(ready(("c", 0)), context) == "c"
        assert policy.remaining() == 0

    def test_duplicates_removed(self):
        """测试记录中的重复项只保留第一次"""
        policy = RepeatSchedulePolicy(["a", "b", "a", "b"])

        assert policy.remaining() == 2


class TestPolicyFactory:
    """策略创建测试"""

    def test_resolve_names(self):
        """测试名称解析"""
        assert resolve_policy_name("fifo") == PolicyName.FIFO
        assert resolve_policy_name(PolicyName.SHORTEST_JOB) == PolicyName.SHORTEST_JOB

    def test_unknown_name(self):
        """测试未知策略名称"""
        with pytest.raises(ConfigError):
            resolve_policy_name("random")

    def test_create_each_policy(self):
        """测试创建各策略"""
        assert isinstance(create_policy("fifo"), FifoPolicy)
        assert isinstance(create_policy("longest-remaining-work"), LongestRemainingWorkPolicy)
        assert isinstance(create_policy("shortest-job"), ShortestJobPolicy)
        assert isinstance(create_policy("repeat-schedule", ["a"]), RepeatSchedulePolicy)

    def test_repeat_schedule_requires_order(self):
        """测试重放策略缺少记录顺序"""
        with pytest.raises(ConfigError):
            create_policy("repeat-schedule")
        with pytest.raises(ConfigError):
            create_policy("repeat-schedule", [])

    def test_fresh_instance_per_call(self):
        """测试每次创建新实例"""
        assert create_policy("fifo") is not create_policy("fifo")

    def test_available_policies(self):
        """测试可用策略列表"""
        assert PolicyName.REPEAT_SCHEDULE not in available_policies()
        assert PolicyName.REPEAT_SCHEDULE in available_policies(has_recorded_order=True)
        assert available_policies()[0] == PolicyName.FIFO
