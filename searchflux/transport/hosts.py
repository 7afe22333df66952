"""
主机登记表模块

HostRegistry 持有按优先级排列的候选主机及其健康状态，是传输层中
唯一跨调用共享的可变状态。一个客户端一份，注入到每条调用路径，不按调用重建。

核心功能:
    - 按调用类别列出候选主机 (list_hosts)
    - 记录尝试结果 (report_success / report_failure)
    - 故障标记自动过期：不可用主机在过期窗口后重新参与候选
    - 兜底回退：没有任何可用主机时返回全部主机，可用性优先于健康判断的准确性

主机状态流转:
    ┌──────────┐  report_failure   ┌──────────┐
    │  UP      │ ────────────────> │  DOWN    │
    │          │ <──────────────── │          │
    └──────────┘  report_success   └──────────┘
         ^                              │
         └───── now - last_health_check >= host_expiry (list_hosts 时自动恢复)

列出主机的规则:
    1. 只考虑 accept 包含该调用类别的主机，保持配置顺序
    2. is_up == False 且未过期的主机被排除
    3. is_up == False 但已过期的主机重置为可用 (乐观重试)
    4. 结果为空时回退为所有接受该类别的主机

线程安全:
    使用读写锁 (RWLock) 保护所有主机的可变字段。更新是幂等的
    (重复设置相同的布尔值和时间戳无害)，不需要跨主机协调。

使用示例:
    registry = HostRegistry(config.hosts, host_expiry=300)

    for host in registry.list_hosts(CallType.READ):
        ...
        registry.report_failure(host)   # 连接失败
        registry.report_success(host)   # 请求成功
"""

import logging
import time
from dataclasses import replace
from typing import Any, Callable, Iterable

from ..models.host import CallType, StatefulHost
from .lock import RWLock


class HostRegistry:
    """
    主机登记表

    Attributes:
        host_expiry: 故障标记的过期时间 (秒)
    """

    def __init__(
        self,
        hosts: Iterable[StatefulHost],
        host_expiry: float = 300.0,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            hosts: 按优先级排列的主机模板，登记表会复制一份自己持有
            host_expiry: 故障标记的过期时间 (秒)
            clock: 时间源，测试时可注入
        """
        self._clock = clock
        now = clock()
        self._hosts: list[StatefulHost] = [
            replace(h, is_up=True, last_health_check=now) for h in hosts
        ]
        self.host_expiry = host_expiry
        self._lock = RWLock()

    @property
    def hosts(self) -> list[StatefulHost]:
        """全部主机 (按优先级)"""
        return list(self._hosts)

    def _is_expired(self, host: StatefulHost, now: float) -> bool:
        return now - host.last_health_check >= self.host_expiry

    def list_hosts(self, call_type: CallType) -> list[StatefulHost]:
        """
        按优先级列出某调用类别的候选主机

        Args:
            call_type: 调用类别

        Returns:
            候选主机列表；所有主机都不可用且均未过期时返回全部主机
        """
        now = self._clock()
        expired: list[StatefulHost] = []

        with self._lock.read_lock():
            candidates = [h for h in self._hosts if h.accepts(call_type)]
            eligible = []
            for host in candidates:
                if host.is_up:
                    eligible.append(host)
                elif self._is_expired(host, now):
                    expired.append(host)
                    eligible.append(host)

        if expired:
            with self._lock.write_lock():
                for host in expired:
                    # 读锁释放后可能已被其他调用更新
                    if not host.is_up and self._is_expired(host, now):
                        host.is_up = True
                        host.last_health_check = now
            logging.info(
                f"主机故障标记已过期，重新参与候选: {[h.url for h in expired]}"
            )

        if not eligible:
            logging.warning(
                f"调用类别 {call_type} 没有可用主机，回退为全部 {len(candidates)} 个主机"
            )
            return candidates

        return eligible

    def report_success(self, host: StatefulHost) -> None:
        """标记主机可用"""
        with self._lock.write_lock():
            was_down = not host.is_up
            host.is_up = True
            host.last_health_check = self._clock()

        if was_down:
            logging.info(f"主机[{host.url}] 请求成功，恢复可用")

    def report_failure(self, host: StatefulHost) -> None:
        """标记主机不可用，host_expiry 秒后自动恢复候选资格"""
        with self._lock.write_lock():
            host.is_up = False
            host.last_health_check = self._clock()

        logging.warning(
            f"主机[{host.url}] 请求失败，标记为不可用 {self.host_expiry:.0f} 秒"
        )

    def reset(self) -> None:
        """将所有主机重置为可用"""
        now = self._clock()
        with self._lock.write_lock():
            for host in self._hosts:
                host.is_up = True
                host.last_health_check = now

    def is_up(self, url: str) -> bool | None:
        """按地址查询主机当前状态，地址未登记时返回 None"""
        with self._lock.read_lock():
            for host in self._hosts:
                if host.url == url:
                    return host.is_up
        return None

    def get_stats(self) -> list[dict[str, Any]]:
        """获取所有主机的状态快照"""
        now = self._clock()
        with self._lock.read_lock():
            return [
                {
                    **host.to_dict(),
                    "seconds_since_check": round(now - host.last_health_check, 3),
                }
                for host in self._hosts
            ]
