"""
仿真引擎主控
SimPy离散事件仿真的核心控制器

功能:
- 准入阶段：有空闲执行槽且就绪集合非空时，由调度策略选出单元并启动
- 推进阶段：时钟前进到最早的完成时间，批量完成同一时刻结束的单元
- 结果收集：计时记录、makespan、执行槽利用率、并发度时间线

设计要点:
- 单个控制进程驱动整个仿真，运行过程完全确定
- 每次run()新建环境、执行槽池、依赖队列和记录器，依赖图只读共享
- 同一时刻完成的单元按ID顺序处理，全部处理完再进入下一次准入
"""

import logging
from typing import Generator, Iterable, Optional
from datetime import datetime
import uuid
import simpy

from buildsim.models.config_model import SimulationConfig
from buildsim.models.result_model import SimulationResult
from buildsim.models.enums import SimulationStatus
from buildsim.core.unit_graph import UnitGraph
from buildsim.core.dependency_queue import DependencyQueue
from buildsim.core.policies import SchedulingContext, SchedulingPolicy, create_policy
from buildsim.core.slot_pool import SlotPool
from buildsim.core.timing_recorder import TimingRecorder
from buildsim.core.exceptions import ConfigError, DeadlockError


logger = logging.getLogger(__name__)


class SimulationEngine:
    """
    仿真引擎主控

    负责协调整个仿真过程，包括：
    - 初始化仿真环境和组件
    - 准入与推进循环
    - 结果收集和统计
    """

    def __init__(
        self,
        config: SimulationConfig,
        graph: UnitGraph,
        policy: Optional[SchedulingPolicy] = None,
        recorded_order: Optional[Iterable[str]] = None
    ):
        """
        初始化仿真引擎

        配置错误在此处抛出，不会产生任何仿真事件

        Args:
            config: 仿真配置
            graph: 单元依赖图
            policy: 自定义调度策略实例（为空时按配置创建）
            recorded_order: 记录的构建顺序（重放策略使用）

        Raises:
            ConfigError: 执行槽数量无效，或策略无法创建
        """
        if config.num_threads <= 0:
            raise ConfigError(f"执行槽数量必须大于0（当前为 {config.num_threads}）")

        self.config = config
        self.graph = graph
        self.recorded_order = list(recorded_order) if recorded_order is not None else None
        self._custom_policy = policy

        if policy is None:
            # 提前创建一次以尽早暴露配置错误
            create_policy(config.policy, self.recorded_order)

        # 仿真组件（在run时初始化）
        self.env: Optional[simpy.Environment] = None
        self.slot_pool: Optional[SlotPool] = None
        self.queue: Optional[DependencyQueue] = None
        self.recorder: Optional[TimingRecorder] = None
        self.policy: Optional[SchedulingPolicy] = None

    def run(self) -> SimulationResult:
        """
        运行仿真

        Returns:
            仿真结果

        Raises:
            DeadlockError: 仍有未完成单元但没有可推进的事件
            ProtocolViolation: 依赖队列的调用协议被破坏
        """
        sim_id = str(uuid.uuid4())
        created_at = datetime.now().isoformat()

        self.env = simpy.Environment()
        self.slot_pool = SlotPool(self.env, self.config.num_threads)
        self.queue = DependencyQueue(self.graph, start_time=self.env.now)
        self.recorder = TimingRecorder()
        if self._custom_policy is not None:
            self.policy = self._custom_policy
        else:
            self.policy = create_policy(self.config.policy, self.recorded_order)

        logger.info(
            "开始仿真 %s: %d 个单元, %d 个执行槽, 策略 %s",
            sim_id, len(self.graph), self.config.num_threads, self.policy.name
        )

        process = self.env.process(self._controller())
        self.env.run()
        # 控制进程中的异常由env.run()重新抛出；此处确认进程已正常结束
        if not process.triggered:
            raise DeadlockError("仿真事件耗尽但控制进程未结束")

        result = self._collect_results(sim_id, created_at)
        logger.info("仿真 %s 完成: makespan=%s", sim_id, result.makespan)
        return result

    def _controller(self) -> Generator:
        """
        仿真控制进程

        交替执行准入阶段与推进阶段，直到依赖队列完成
        """
        while not self.queue.is_done():
            # 准入阶段
            admitted = []
            while self.slot_pool.has_idle() and self.queue.has_ready():
                context = SchedulingContext(self.graph, self.env.now)
                entry = self.queue.pop_ready(self.policy, context)
                slot = yield from self.slot_pool.acquire_slot()
                self.slot_pool.start_unit(
                    slot, entry.unit_id, self.graph.get_duration(entry.unit_id)
                )
                self.recorder.record_start(entry.unit_id, slot.slot_id, self.env.now)
                admitted.append(entry.unit_id)
            if admitted:
                logger.debug("t=%s 启动: %s", self.env.now, ", ".join(admitted))

            self._sample_concurrency()

            # 推进阶段
            next_event = self.slot_pool.next_completion()
            if next_event is None:
                raise DeadlockError(
                    f"t={self.env.now}: 就绪集合与执行中集合均为空，"
                    f"仍有 {len(self.queue)} 个单元未完成"
                )
            yield next_event

            finished = []
            for slot in self.slot_pool.collect_finished():
                unit_id = self.slot_pool.release_slot(slot)
                self.recorder.record_finish(unit_id, self.env.now)
                self.queue.complete(unit_id, self.env.now)
                finished.append(unit_id)
            logger.debug("t=%s 完成: %s", self.env.now, ", ".join(finished))

        if len(self.graph) > 0:
            self._sample_concurrency()

    def _sample_concurrency(self):
        """记录当前时刻的并发度"""
        self.recorder.record_concurrency(
            self.env.now,
            active=self.slot_pool.get_busy_count(),
            waiting=self.queue.ready_count(),
            inactive=self.queue.waiting_on_dependencies()
        )

    def _collect_results(self, sim_id: str, created_at: str) -> SimulationResult:
        """
        收集仿真结果

        Returns:
            完整的仿真结果
        """
        makespan = self.env.now if len(self.graph) > 0 else 0
        critical_path, critical_path_length = self.graph.get_critical_path()

        return SimulationResult(
            sim_id=sim_id,
            status=SimulationStatus.COMPLETED,
            config=self.config,
            makespan=makespan,
            unit_count=len(self.graph),
            records=self.recorder.get_records(),
            slot_stats=self.recorder.get_slot_utilization(self.config.num_threads, makespan),
            concurrency=list(self.recorder.concurrency),
            critical_path=critical_path,
            critical_path_length=critical_path_length,
            total_work=self.graph.get_total_work(),
            created_at=created_at,
            completed_at=datetime.now().isoformat()
        )


def run_simulation(
    graph: UnitGraph,
    config: Optional[SimulationConfig] = None,
    recorded_order: Optional[Iterable[str]] = None
) -> SimulationResult:
    """
    运行一次仿真的便捷函数

    Args:
        graph: 单元依赖图
        config: 仿真配置，默认10个执行槽、最长剩余工作优先
        recorded_order: 记录的构建顺序

    Returns:
        仿真结果
    """
    engine = SimulationEngine(config or SimulationConfig(), graph, recorded_order=recorded_order)
    return engine.run()
