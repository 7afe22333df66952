"""
重试策略模块

本模块提供按主机优先级故障切换的决策逻辑，是传输层的决策中枢。

类/函数清单:
    RetryAction (Enum):
        枚举值: RETURN (返回结果), FAIL (原样抛出应用错误), FAILOVER (切换下一台主机)

    AttemptResult (dataclass):
        属性: outcome (RetryOutcome), value (解码结果), error (异常), status_code (int | None)

    AttemptContext (dataclass):
        单次逻辑调用的尝试上下文: 候选主机、尝试次数、超时序列、整体截止时间
        - next_timeout() -> float  base * 2^attempts, 封顶 max_timeout

    RetryStrategy:
        - new_context(call_type, timeout) -> AttemptContext
        - decide(outcome) -> RetryAction
        - attempt(call_type, operation, timeout) -> Any
          按优先级尝试主机，成功返回结果，应用错误原样抛出，
          全部失败抛出 TransportUnavailableError

结果分类与决策:
    ┌───────────────────┬────────────┬──────────────────┬────────────┐
    │ 结果分类           │ 决策        │ 主机健康状态       │ 继续尝试    │
    ├───────────────────┼────────────┼──────────────────┼────────────┤
    │ SUCCESS           │ RETURN     │ 标记可用          │ ✗          │
    │ APPLICATION_ERROR │ FAIL       │ 不变              │ ✗          │
    │ RETRYABLE_ERROR   │ FAILOVER   │ 标记不可用        │ ✓          │
    └───────────────────┴────────────┴──────────────────┴────────────┘

使用示例:
    from searchflux.transport.retry import RetryStrategy

    strategy = RetryStrategy(registry, read_timeout=5, write_timeout=30, max_timeout=60)
    result = await strategy.attempt(CallType.READ, send_once)
"""

from .strategy import RetryStrategy, RetryAction, AttemptResult, AttemptContext

__all__ = ["RetryStrategy", "RetryAction", "AttemptResult", "AttemptContext"]
