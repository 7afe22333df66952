"""
主机与调用类别定义

StatefulHost 表示一个 API 端点 (域名) 及其健康状态。
健康状态只是建议性的：标记为不可用的主机在过期窗口后自动恢复候选资格。

默认主机布局 (应用 ID 为 APP):
    ┌──────────────────────────┬──────────────┬──────────────────────┐
    │ 主机                      │ 调用类别      │ 顺序                  │
    ├──────────────────────────┼──────────────┼──────────────────────┤
    │ APP-dsn.algolia.net      │ READ         │ 首位 (区域主机)        │
    │ APP.algolia.net          │ WRITE        │ 首位 (区域主机)        │
    │ APP-1.algolianet.com     │ READ, WRITE  │ 集群成员, 每客户端打乱 │
    │ APP-2.algolianet.com     │ READ, WRITE  │ 集群成员, 每客户端打乱 │
    │ APP-3.algolianet.com     │ READ, WRITE  │ 集群成员, 每客户端打乱 │
    └──────────────────────────┴──────────────┴──────────────────────┘
"""

import random
import time
from dataclasses import dataclass, field
from enum import Enum


class CallType(str, Enum):
    """
    调用类别

    决定可用主机集合以及默认的超时预算。
    """

    READ = "read"
    WRITE = "write"

    def __str__(self) -> str:
        return self.value


ALL_CALL_TYPES: frozenset[CallType] = frozenset({CallType.READ, CallType.WRITE})


@dataclass(eq=False)
class StatefulHost:
    """
    带健康状态的主机

    可变字段 (is_up, last_health_check) 只能由 HostRegistry 在锁内修改。
    按对象身份比较，同一地址可以在不同注册表中各有一份状态。

    Attributes:
        url: 主机域名 (不含协议)
        is_up: 是否可用
        last_health_check: 最近一次状态变更的时间戳 (秒)
        accept: 该主机服务的调用类别
    """

    url: str
    is_up: bool = True
    last_health_check: float = field(default_factory=time.time)
    accept: frozenset[CallType] = ALL_CALL_TYPES

    def accepts(self, call_type: CallType) -> bool:
        return call_type in self.accept

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "is_up": self.is_up,
            "last_health_check": self.last_health_check,
            "accept": sorted(c.value for c in self.accept),
        }


def build_default_hosts(
    application_id: str, rng: random.Random | None = None
) -> list[StatefulHost]:
    """
    构建应用的默认主机列表

    区域主机排在最前，集群成员按客户端随机打乱，使不同客户端的负载分散。

    Args:
        application_id: 应用 ID
        rng: 随机数生成器 (测试时可固定种子)

    Returns:
        按优先级排列的主机列表
    """
    rng = rng or random.Random()

    cluster = [
        StatefulHost(f"{application_id}-{i}.algolianet.com", accept=ALL_CALL_TYPES)
        for i in (1, 2, 3)
    ]
    rng.shuffle(cluster)

    return [
        StatefulHost(f"{application_id}-dsn.algolia.net", accept=frozenset({CallType.READ})),
        StatefulHost(f"{application_id}.algolia.net", accept=frozenset({CallType.WRITE})),
        *cluster,
    ]


def build_analytics_hosts() -> list[StatefulHost]:
    """分析服务只有一个同时服务读写的主机"""
    return [StatefulHost("analytics.algolia.com", accept=ALL_CALL_TYPES)]
