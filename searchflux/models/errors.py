"""
结果分类与异常定义

本模块定义 SearchFlux 的单次请求结果分类和自定义异常类。
传输层依据结果分类决定是返回、直接失败还是切换到下一台主机。

结果分类设计:
    ┌───────────────────┬──────────────────────────────────────────────┐
    │ 分类               │ 说明                                         │
    ├───────────────────┼──────────────────────────────────────────────┤
    │ SUCCESS           │ 2xx 且响应体可解码                            │
    │ APPLICATION_ERROR │ 4xx (408 除外): 请求本身有误，不重试          │
    │ RETRYABLE_ERROR   │ 超时、连接失败、408、5xx: 切换下一台主机       │
    └───────────────────┴──────────────────────────────────────────────┘

异常层次结构:
    Exception
    └── SearchFluxError (基础异常)
        ├── ConfigError (配置错误)
        ├── RequestRejectedError (请求被拒绝，应用错误)
        ├── TransportUnavailableError (所有主机均不可达)
        ├── ResponseDecodeError (2xx 响应体无法解码)
        └── RetryableHttpError (408 / 5xx，作为 last_cause 携带)

调用方只会看到 RequestRejectedError 与 TransportUnavailableError 两种
请求失败，据此区分 "输入有误" 和 "服务不可达"：前者重试无意义，后者可以稍后重试。

使用示例:
    from searchflux.models.errors import RequestRejectedError, TransportUnavailableError

    try:
        await index.search({"query": "phone"})
    except RequestRejectedError as e:
        print(f"请求参数错误: {e.message} (HTTP {e.status_code})")
    except TransportUnavailableError as e:
        print(f"服务不可达, 最后一次错误: {e.last_cause}")
"""

from enum import Enum
from typing import Any


class RetryOutcome(str, Enum):
    """
    单次请求结果分类

    继承自 str 使得枚举值可以直接写入日志。

    Attributes:
        SUCCESS: 2xx 且响应体可解码
        APPLICATION_ERROR: 请求被服务端拒绝 (非 408 的 4xx)
        RETRYABLE_ERROR: 基础设施故障 (超时、连接失败、408、5xx)
    """

    SUCCESS = "success"
    APPLICATION_ERROR = "application_error"
    RETRYABLE_ERROR = "retryable_error"

    def __str__(self) -> str:
        return self.value


class SearchFluxError(Exception):
    """
    SearchFlux 基础异常类

    所有自定义异常的基类，提供统一的错误信息格式和附加详情支持。

    Attributes:
        message: 错误消息文本
        details: 附加的错误详情字典 (可选)
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | 详情: {self.details}"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


class ConfigError(SearchFluxError):
    """
    配置错误

    常见场景:
        - 配置文件不存在或 YAML 语法错误
        - 缺少 application_id / api_key
        - 主机列表为空或超时参数不合法
    """

    pass


class RequestRejectedError(SearchFluxError):
    """
    请求被拒绝 (应用错误)

    主机正常应答，但请求本身无效 (参数错误、载荷格式错误等)。
    该错误立即原样返回给调用方，不会重试，也不会把主机标记为不可用。

    Attributes:
        status_code: HTTP 状态码
    """

    outcome = RetryOutcome.APPLICATION_ERROR

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)


class TransportUnavailableError(SearchFluxError):
    """
    传输不可用

    所有候选主机都以可重试错误失败 (或整体截止时间耗尽) 后抛出。

    Attributes:
        last_cause: 最后一次尝试的底层异常，用于诊断
        attempted_hosts: 按尝试顺序排列的主机地址
    """

    outcome = RetryOutcome.RETRYABLE_ERROR

    def __init__(
        self,
        message: str,
        last_cause: BaseException | None = None,
        attempted_hosts: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.last_cause = last_cause
        self.attempted_hosts = list(attempted_hosts or [])
        super().__init__(message, details)


class ResponseDecodeError(SearchFluxError):
    """
    响应解码错误

    主机返回 2xx，但响应体不是合法 JSON 或不符合期望的响应类型。
    视为可重试错误，由重试策略切换到下一台主机。
    """

    outcome = RetryOutcome.RETRYABLE_ERROR

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)


class RetryableHttpError(SearchFluxError):
    """主机返回 408 或 5xx"""

    outcome = RetryOutcome.RETRYABLE_ERROR

    def __init__(self, message: str, status_code: int):
        self.status_code = status_code
        super().__init__(message)
