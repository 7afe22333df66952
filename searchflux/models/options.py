"""
单次调用的请求选项

RequestOptions 是不可变值对象：每次调用构造一次并按值传递，
所有 "with_*" 方法都返回新实例，避免并发调用之间共享可变状态。

使用示例:
    options = (
        RequestOptions()
        .with_header("X-Forwarded-For", "10.0.0.1")
        .with_query_parameter("forwardToReplicas", "true")
        .with_timeout(2.0)
    )
    await index.search({"query": "phone"}, options)
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping


def _freeze(mapping: Mapping[str, Any] | None) -> Mapping[str, str]:
    return MappingProxyType({str(k): str(v) for k, v in (mapping or {}).items()})


@dataclass(frozen=True)
class RequestOptions:
    """
    请求选项

    Attributes:
        headers: 额外的 HTTP 请求头
        query_parameters: 额外的查询参数
        timeout: 单次尝试的基础超时 (秒)，覆盖调用类别的默认值
    """

    headers: Mapping[str, str] = field(default_factory=dict)
    query_parameters: Mapping[str, str] = field(default_factory=dict)
    timeout: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", _freeze(self.headers))
        object.__setattr__(self, "query_parameters", _freeze(self.query_parameters))
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout 必须为正数: {self.timeout}")

    def with_header(self, name: str, value: Any) -> "RequestOptions":
        return replace(self, headers={**self.headers, name: value})

    def with_query_parameter(self, name: str, value: Any) -> "RequestOptions":
        if isinstance(value, bool):
            value = str(value).lower()
        return replace(self, query_parameters={**self.query_parameters, name: value})

    def with_timeout(self, timeout: float | None) -> "RequestOptions":
        return replace(self, timeout=timeout)

    def merge(self, other: "RequestOptions | None") -> "RequestOptions":
        """合并两个选项，other 中的值优先"""
        if other is None:
            return self
        return RequestOptions(
            headers={**self.headers, **other.headers},
            query_parameters={**self.query_parameters, **other.query_parameters},
            timeout=other.timeout if other.timeout is not None else self.timeout,
        )
