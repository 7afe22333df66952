"""
请求传输层

本模块是 SearchFlux 的核心，负责把一次逻辑调用可靠地送达某台可用主机。

组件关系:
    ┌───────────────┐     ┌───────────────┐     ┌──────────────┐
    │ HttpTransport │ ──> │ RetryStrategy │ ──> │ HostRegistry │
    └───────┬───────┘     └───────────────┘     └──────────────┘
            │ 写操作响应绑定
            v
    ┌───────────────┐
    │  TaskPoller   │ ──(READ 查询任务状态)──> HttpTransport
    └───────────────┘

类/函数清单:
    HttpTransport: 请求生命周期 (构建、尝试、分类、解码)
    HostRegistry: 主机健康状态登记 (唯一跨调用共享的可变状态)
    RetryStrategy: 故障切换决策与超时递增
    TaskPoller: 写操作的持久化轮询 (指数退避)
    SessionPool: aiohttp.ClientSession 复用
    RWLock: 写优先读写锁
"""

from .lock import RWLock
from .hosts import HostRegistry
from .retry import RetryStrategy, RetryAction, AttemptResult, AttemptContext
from .session import SessionPool
from .poller import TaskPoller
from .executor import HttpTransport

__all__ = [
    "RWLock",
    "HostRegistry",
    "RetryStrategy",
    "RetryAction",
    "AttemptResult",
    "AttemptContext",
    "SessionPool",
    "TaskPoller",
    "HttpTransport",
]
