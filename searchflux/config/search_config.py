"""
客户端不可变配置

SearchConfig 在构造客户端时创建一次，之后只读。传输层的所有组件
(HostRegistry、RetryStrategy、HttpTransport、TaskPoller) 都从同一份配置读取参数。

配置来源:
    1. 代码直接构造: SearchConfig.create("APP", "KEY")
    2. YAML 配置字典: build_search_config(merge_config(DEFAULT_CONFIG, load_config(path)))
    3. 分析服务: SearchConfig.analytics("APP", "KEY")

主机列表中的 StatefulHost 只作为模板，HostRegistry 会复制一份自己持有，
配置对象本身从不被修改。
"""

import random
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from ..models.errors import ConfigError
from ..models.host import (
    ALL_CALL_TYPES,
    CallType,
    StatefulHost,
    build_analytics_hosts,
    build_default_hosts,
)
from .settings import DEFAULT_CONFIG, get_nested, merge_config


@dataclass(frozen=True)
class SearchConfig:
    """
    客户端配置

    Attributes:
        application_id: 应用 ID
        api_key: API 密钥
        hosts: 按优先级排列的主机模板
        read_timeout: 读请求单次尝试的基础超时 (秒)
        write_timeout: 写请求单次尝试的基础超时 (秒)
        max_timeout: 单次尝试超时上限 (秒)
        connect_timeout: TCP 连接超时 (秒)
        total_timeout: 单次逻辑调用的整体截止时间 (秒)，None 表示不限制
        host_expiry: 主机故障标记的过期时间 (秒)
        initial_poll_delay: 任务轮询的首次间隔 (秒)
        max_poll_delay: 任务轮询间隔上限 (秒)
        batch_size: 批量写入时每批的记录数
        default_headers: 每个请求都附带的请求头
        ssl_verify: 是否验证 SSL 证书
        proxy: 代理地址 (空字符串表示不使用代理)
        max_connections: 连接池总连接数上限
    """

    application_id: str
    api_key: str
    hosts: tuple[StatefulHost, ...]
    read_timeout: float = 5.0
    write_timeout: float = 30.0
    max_timeout: float = 60.0
    connect_timeout: float = 2.0
    total_timeout: float | None = None
    host_expiry: float = 300.0
    initial_poll_delay: float = 0.1
    max_poll_delay: float = 5.0
    batch_size: int = 1000
    default_headers: Mapping[str, str] = field(default_factory=dict)
    ssl_verify: bool = True
    proxy: str = ""
    max_connections: int = 100

    def __post_init__(self) -> None:
        object.__setattr__(self, "hosts", tuple(self.hosts))
        object.__setattr__(
            self, "default_headers", MappingProxyType(dict(self.default_headers))
        )
        self._validate()

    def _validate(self) -> None:
        if not self.application_id:
            raise ConfigError("缺少 application_id 配置")
        if not self.api_key:
            raise ConfigError("缺少 api_key 配置")
        if not self.hosts:
            raise ConfigError("主机列表不能为空")
        for name in ("read_timeout", "write_timeout", "max_timeout", "connect_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} 必须为正数: {getattr(self, name)}")
        if self.total_timeout is not None and self.total_timeout <= 0:
            raise ConfigError(f"total_timeout 必须为正数: {self.total_timeout}")
        if self.host_expiry < 0:
            raise ConfigError(f"host_expiry 不能为负数: {self.host_expiry}")
        if self.initial_poll_delay <= 0 or self.max_poll_delay <= 0:
            raise ConfigError("任务轮询间隔必须为正数")
        if self.batch_size <= 0:
            raise ConfigError(f"batch_size 必须为正整数: {self.batch_size}")

    def timeout_for(self, call_type: CallType) -> float:
        """调用类别对应的默认基础超时"""
        return self.write_timeout if call_type == CallType.WRITE else self.read_timeout

    @classmethod
    def create(
        cls,
        application_id: str,
        api_key: str,
        rng: random.Random | None = None,
        **kwargs: Any,
    ) -> "SearchConfig":
        """使用默认主机布局创建配置"""
        hosts = kwargs.pop("hosts", None) or build_default_hosts(application_id, rng)
        return cls(application_id=application_id, api_key=api_key, hosts=hosts, **kwargs)

    @classmethod
    def analytics(cls, application_id: str, api_key: str, **kwargs: Any) -> "SearchConfig":
        """分析服务配置：单一主机同时服务读写"""
        return cls(
            application_id=application_id,
            api_key=api_key,
            hosts=build_analytics_hosts(),
            **kwargs,
        )


def _parse_host(entry: Any) -> StatefulHost:
    """解析配置中的单个主机条目 (字符串或 {url, accept})"""
    if isinstance(entry, str):
        return StatefulHost(entry, accept=ALL_CALL_TYPES)

    if not isinstance(entry, dict) or not entry.get("url"):
        raise ConfigError(f"主机配置无效: {entry!r}")

    accept_raw = entry.get("accept") or [c.value for c in CallType]
    try:
        accept = frozenset(CallType(str(a).lower()) for a in accept_raw)
    except ValueError as e:
        raise ConfigError(f"主机 {entry['url']} 的调用类别无效: {accept_raw}") from e

    return StatefulHost(str(entry["url"]), accept=accept)


def build_search_config(config: dict[str, Any]) -> SearchConfig:
    """
    从配置字典构建 SearchConfig

    未配置的键使用 DEFAULT_CONFIG 中的默认值。未配置 hosts 时使用默认主机布局。

    Args:
        config: 配置字典 (通常来自 load_config)

    Returns:
        SearchConfig 实例

    Raises:
        ConfigError: 缺少必填字段或字段值不合法
    """
    merged = merge_config(DEFAULT_CONFIG, config)

    application_id = str(get_nested(merged, "client", "application_id", default=""))
    api_key = str(get_nested(merged, "client", "api_key", default=""))

    hosts_cfg = get_nested(merged, "client", "hosts", default=[]) or []
    hosts = [_parse_host(h) for h in hosts_cfg]
    if not hosts and application_id:
        hosts = build_default_hosts(application_id)

    transport = merged.get("transport", {})
    task = merged.get("task", {})

    try:
        total_timeout = transport.get("total_timeout")
        return SearchConfig(
            application_id=application_id,
            api_key=api_key,
            hosts=tuple(hosts),
            read_timeout=float(transport["read_timeout"]),
            write_timeout=float(transport["write_timeout"]),
            max_timeout=float(transport["max_timeout"]),
            connect_timeout=float(transport["connect_timeout"]),
            total_timeout=float(total_timeout) if total_timeout is not None else None,
            host_expiry=float(transport["host_expiry"]),
            initial_poll_delay=float(task["initial_poll_delay"]),
            max_poll_delay=float(task["max_poll_delay"]),
            batch_size=int(get_nested(merged, "indexing", "batch_size", default=1000)),
            default_headers=get_nested(merged, "client", "headers", default={}) or {},
            ssl_verify=bool(get_nested(merged, "client", "ssl_verify", default=True)),
            proxy=str(get_nested(merged, "client", "proxy", default="") or ""),
            max_connections=int(
                get_nested(merged, "client", "max_connections", default=100)
            ),
        )
    except (TypeError, ValueError, KeyError) as e:
        raise ConfigError(f"配置值无效: {e}") from e
