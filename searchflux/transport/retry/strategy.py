"""
重试策略实现

本模块实现 SearchFlux 的故障切换决策逻辑：按优先级依次尝试候选主机，
根据每次尝试的结果分类决定返回、直接失败还是切换到下一台主机。

设计理念:
    - 应用错误必须短路：把格式错误的请求发给另一台主机只会浪费时间
    - 只有基础设施层面的失败才值得切换主机
    - 单次尝试超时逐步递增：真正宕机的主机快速跳过，
      较慢 (通常也更远) 的后续主机获得更多耐心

决策流程:
    ┌─────────────────────────────────────────────────────────────────┐
    │  hosts = registry.list_hosts(call_type)                         │
    │  for index, host in enumerate(hosts):                           │
    │      timeout = min(base * 2^index, max_timeout)                 │
    │      result  = await operation(host, timeout)                   │
    │                                                                  │
    │      SUCCESS           → report_success → RETURN 结果           │
    │      APPLICATION_ERROR → 不标记主机     → FAIL 原样抛出          │
    │      RETRYABLE_ERROR   → report_failure → FAILOVER 下一台        │
    │                                                                  │
    │  全部失败 → TransportUnavailableError(last_cause)               │
    └─────────────────────────────────────────────────────────────────┘

超时递增示例 (read_timeout=5, max_timeout=60):
    第 1 台: 5 秒, 第 2 台: 10 秒, 第 3 台: 20 秒, 第 4 台: 40 秒, 第 5 台: 60 秒

整体截止时间:
    配置了 total_timeout 时，单次超时还会被裁剪到剩余预算以内；
    预算耗尽后不再尝试新主机，按全部失败处理。
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

from ...models.errors import (
    RequestRejectedError,
    RetryOutcome,
    TransportUnavailableError,
)
from ...models.host import CallType, StatefulHost
from ..hosts import HostRegistry


class RetryAction(Enum):
    """
    重试决策动作枚举
    """
    RETURN = "return"      # 返回结果，不再尝试其他主机
    FAIL = "fail"          # 原样抛出应用错误，不再尝试其他主机
    FAILOVER = "failover"  # 标记主机故障，切换到下一台


@dataclass
class AttemptResult:
    """
    单次尝试的结果

    Attributes:
        outcome: 结果分类
        value: 成功时的解码结果
        error: 失败时的异常
        status_code: HTTP 状态码 (连接失败、超时时为 None)
    """
    outcome: RetryOutcome
    value: Any = None
    error: BaseException | None = None
    status_code: int | None = None

    @classmethod
    def success(cls, value: Any, status_code: int | None = 200) -> "AttemptResult":
        return cls(RetryOutcome.SUCCESS, value=value, status_code=status_code)

    @classmethod
    def rejected(cls, error: BaseException, status_code: int | None = None) -> "AttemptResult":
        return cls(RetryOutcome.APPLICATION_ERROR, error=error, status_code=status_code)

    @classmethod
    def retryable(cls, error: BaseException, status_code: int | None = None) -> "AttemptResult":
        return cls(RetryOutcome.RETRYABLE_ERROR, error=error, status_code=status_code)


@dataclass
class AttemptContext:
    """
    单次逻辑调用的尝试上下文

    由发起调用的协程独占，调用结束 (无论成败) 后丢弃。

    Attributes:
        call_type: 调用类别
        hosts: 本次调用的候选主机 (按优先级)
        base_timeout: 基础超时 (秒)
        max_timeout: 单次超时上限 (秒)
        deadline: 整体截止时间点 (time.monotonic 时间)，None 表示不限制
        attempts: 已进行的尝试次数
        timeouts: 已发出的单次超时值 (非递减)
        tried_hosts: 已尝试的主机地址
        last_error: 最近一次失败的异常
    """
    call_type: CallType
    hosts: list[StatefulHost]
    base_timeout: float
    max_timeout: float
    deadline: float | None = None
    started_at: float = field(default_factory=time.monotonic)
    attempts: int = 0
    timeouts: list[float] = field(default_factory=list)
    tried_hosts: list[str] = field(default_factory=list)
    last_error: BaseException | None = None

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def remaining(self) -> float | None:
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def next_timeout(self) -> float:
        """
        计算下一次尝试的超时

        base * 2^attempts，封顶 max_timeout，并裁剪到剩余预算以内。
        返回 0 表示整体预算已耗尽，或剩余预算小于上一次的超时
        (超时序列保持非递减)。
        """
        timeout = min(self.base_timeout * (2 ** self.attempts), self.max_timeout)
        remaining = self.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining)
            if timeout <= 0 or (self.timeouts and timeout < self.timeouts[-1]):
                return 0.0
        return timeout

    def record(self, host: StatefulHost, timeout: float) -> None:
        self.attempts += 1
        self.timeouts.append(timeout)
        self.tried_hosts.append(host.url)


# 单次尝试: (host, timeout) -> AttemptResult
Operation = Callable[[StatefulHost, float], Awaitable[AttemptResult]]


class RetryStrategy:
    """
    重试策略管理器

    根据调用类别从 HostRegistry 取得候选主机，逐台尝试并依据结果分类决策。
    策略本身无状态 (状态都在 AttemptContext 与 HostRegistry 中)，可被并发调用共享。

    Attributes:
        registry: 主机登记表
        read_timeout: 读请求基础超时 (秒)
        write_timeout: 写请求基础超时 (秒)
        max_timeout: 单次超时上限 (秒)
        total_timeout: 整体截止时间 (秒)，None 表示不限制
    """

    def __init__(
        self,
        registry: HostRegistry,
        read_timeout: float = 5.0,
        write_timeout: float = 30.0,
        max_timeout: float = 60.0,
        total_timeout: float | None = None,
    ):
        self.registry = registry
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self.max_timeout = max_timeout
        self.total_timeout = total_timeout

    def new_context(
        self, call_type: CallType, timeout: float | None = None
    ) -> AttemptContext:
        """
        为一次逻辑调用创建尝试上下文

        Args:
            call_type: 调用类别
            timeout: 调用方指定的基础超时，覆盖类别默认值
        """
        if timeout is None:
            timeout = self.write_timeout if call_type == CallType.WRITE else self.read_timeout

        deadline = None
        if self.total_timeout is not None:
            deadline = time.monotonic() + self.total_timeout

        return AttemptContext(
            call_type=call_type,
            hosts=self.registry.list_hosts(call_type),
            base_timeout=timeout,
            max_timeout=max(self.max_timeout, 0.0),
            deadline=deadline,
        )

    def decide(self, outcome: RetryOutcome) -> RetryAction:
        """
        根据结果分类做出决策

            SUCCESS           → RETURN
            APPLICATION_ERROR → FAIL
            RETRYABLE_ERROR   → FAILOVER
        """
        if outcome == RetryOutcome.SUCCESS:
            return RetryAction.RETURN
        if outcome == RetryOutcome.APPLICATION_ERROR:
            return RetryAction.FAIL
        return RetryAction.FAILOVER

    async def attempt(
        self,
        call_type: CallType,
        operation: Operation,
        timeout: float | None = None,
    ) -> Any:
        """
        按优先级尝试候选主机直到成功

        Args:
            call_type: 调用类别
            operation: 单次尝试，接收 (host, timeout) 返回 AttemptResult
            timeout: 调用方指定的基础超时

        Returns:
            首个成功主机的解码结果

        Raises:
            RequestRejectedError: 主机拒绝请求 (应用错误)，原样抛出
            TransportUnavailableError: 所有候选主机都失败
        """
        context = self.new_context(call_type, timeout)

        for host in context.hosts:
            attempt_timeout = context.next_timeout()
            if attempt_timeout <= 0:
                logging.warning(
                    f"{call_type} 调用整体超时 ({self.total_timeout}s)，"
                    f"已尝试 {context.attempts} 台主机"
                )
                break

            context.record(host, attempt_timeout)
            result = await operation(host, attempt_timeout)
            action = self.decide(result.outcome)

            if action == RetryAction.RETURN:
                self.registry.report_success(host)
                return result.value

            if action == RetryAction.FAIL:
                logging.debug(
                    f"主机[{host.url}] 拒绝请求 (HTTP {result.status_code})，不重试"
                )
                raise result.error or RequestRejectedError(
                    "请求被拒绝", status_code=result.status_code
                )

            context.last_error = result.error
            self.registry.report_failure(host)
            logging.warning(
                f"主机[{host.url}] 第 {context.attempts} 次尝试失败 "
                f"(超时 {attempt_timeout:.2f}s): {result.error!r}，切换下一台主机"
            )

        message = f"所有主机均请求失败 ({', '.join(context.tried_hosts) or '无可用主机'})"
        if context.last_error is not None:
            message += f": {context.last_error!r}"
        logging.error(message)
        raise TransportUnavailableError(
            message,
            last_cause=context.last_error,
            attempted_hosts=context.tried_hosts,
        ) from context.last_error
