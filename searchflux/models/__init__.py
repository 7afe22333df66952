"""
数据模型与异常定义模块

模块内容:
    数据模型:
        - CallType / StatefulHost: 调用类别与带健康状态的主机
        - RequestOptions: 单次调用的不可变请求选项
        - TaskHandle / PollState: 任务句柄与轮询状态
        - 响应模型: TaskResponse、TaskStatusResponse、SearchResult 等

    异常类:
        - SearchFluxError: 基础异常类
        - ConfigError: 配置错误
        - RequestRejectedError: 请求被拒绝 (应用错误)
        - TransportUnavailableError: 所有主机不可达
        - ResponseDecodeError: 2xx 响应无法解码

    枚举:
        - RetryOutcome: 单次请求结果分类 (SUCCESS/APPLICATION_ERROR/RETRYABLE_ERROR)
"""

from .errors import (
    RetryOutcome,
    SearchFluxError,
    ConfigError,
    RequestRejectedError,
    TransportUnavailableError,
    ResponseDecodeError,
    RetryableHttpError,
)
from .host import CallType, StatefulHost, build_default_hosts, build_analytics_hosts
from .options import RequestOptions
from .task import TaskHandle, PollState
from .responses import (
    TaskResponse,
    TaskStatusResponse,
    BatchResponse,
    BatchIndexingResponse,
    UpdateObjectResponse,
    DeleteResponse,
    UpdatedAtResponse,
    SearchResult,
    ListIndicesResponse,
)

__all__ = [
    "RetryOutcome",
    "SearchFluxError",
    "ConfigError",
    "RequestRejectedError",
    "TransportUnavailableError",
    "ResponseDecodeError",
    "RetryableHttpError",
    "CallType",
    "StatefulHost",
    "build_default_hosts",
    "build_analytics_hosts",
    "RequestOptions",
    "TaskHandle",
    "PollState",
    "TaskResponse",
    "TaskStatusResponse",
    "BatchResponse",
    "BatchIndexingResponse",
    "UpdateObjectResponse",
    "DeleteResponse",
    "UpdatedAtResponse",
    "SearchResult",
    "ListIndicesResponse",
]
