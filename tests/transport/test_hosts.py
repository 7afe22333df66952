"""
主机登记表单元测试

被测模块: searchflux/transport/hosts.py (HostRegistry)

测试 HostRegistry 的主机状态管理，包括：
- 按调用类别过滤并保持优先级顺序
- 故障标记与恢复
- 故障标记过期后自动恢复候选资格
- 无可用主机时回退为全部主机

测试类/函数清单:
    TestListHosts                                列出候选主机测试
        test_filters_by_call_type                验证只返回接受该调用类别的主机且保持顺序
        test_excludes_down_hosts                 验证未过期的故障主机被排除
        test_expired_host_is_reset               验证过期的故障主机重置为可用并重新参与候选
        test_fallback_when_all_down              验证全部故障时回退为全部候选主机
        test_fallback_keeps_call_type_filter     验证回退结果仍只包含该调用类别的主机
    TestReport                                   状态上报测试
        test_report_failure_marks_down           验证 report_failure 标记不可用并更新时间戳
        test_report_success_marks_up             验证 report_success 恢复可用并更新时间戳
        test_registry_copies_hosts               验证登记表持有主机副本，不修改配置模板
        test_reset                               验证 reset 将所有主机恢复可用
        test_get_stats                           验证状态快照包含地址与距上次检查的秒数
    TestConcurrency                              并发访问测试
        test_concurrent_reports_and_listing      验证多线程混合上报与列出时每台主机的 is_up/时间戳保持成对一致
"""

import itertools
import random
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from searchflux.models import CallType, StatefulHost
from searchflux.transport.hosts import HostRegistry


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    hosts = [
        StatefulHost("dsn", accept=frozenset({CallType.READ})),
        StatefulHost("write", accept=frozenset({CallType.WRITE})),
        StatefulHost("c1"),
        StatefulHost("c2"),
    ]
    return HostRegistry(hosts, host_expiry=300, clock=clock)


def _urls(hosts):
    return [h.url for h in hosts]


def _host(registry, url):
    return next(h for h in registry.hosts if h.url == url)


class TestListHosts:
    """列出候选主机测试"""

    def test_filters_by_call_type(self, registry):
        assert _urls(registry.list_hosts(CallType.READ)) == ["dsn", "c1", "c2"]
        assert _urls(registry.list_hosts(CallType.WRITE)) == ["write", "c1", "c2"]

    def test_excludes_down_hosts(self, registry, clock):
        registry.report_failure(_host(registry, "dsn"))
        clock.now += 299

        assert _urls(registry.list_hosts(CallType.READ)) == ["c1", "c2"]

    def test_expired_host_is_reset(self, registry, clock):
        dsn = _host(registry, "dsn")
        registry.report_failure(dsn)
        clock.now += 300

        assert _urls(registry.list_hosts(CallType.READ)) == ["dsn", "c1", "c2"]
        assert dsn.is_up is True
        assert dsn.last_health_check == clock.now

    def test_fallback_when_all_down(self, registry):
        for host in registry.list_hosts(CallType.READ):
            registry.report_failure(host)

        hosts = registry.list_hosts(CallType.READ)

        assert _urls(hosts) == ["dsn", "c1", "c2"]
        assert all(not h.is_up for h in hosts)

    def test_fallback_keeps_call_type_filter(self, registry):
        for host in registry.hosts:
            registry.report_failure(host)

        assert "dsn" not in _urls(registry.list_hosts(CallType.WRITE))


class TestReport:
    """状态上报测试"""

    def test_report_failure_marks_down(self, registry, clock):
        host = _host(registry, "c1")
        clock.now += 5
        registry.report_failure(host)

        assert host.is_up is False
        assert host.last_health_check == clock.now
        assert registry.is_up("c1") is False

    def test_report_success_marks_up(self, registry, clock):
        host = _host(registry, "c1")
        registry.report_failure(host)
        clock.now += 10
        registry.report_success(host)

        assert host.is_up is True
        assert host.last_health_check == clock.now

    def test_registry_copies_hosts(self, clock):
        template = StatefulHost("only")
        registry = HostRegistry([template], clock=clock)

        registry.report_failure(registry.hosts[0])

        assert template.is_up is True
        assert registry.is_up("only") is False
        assert registry.is_up("missing") is None

    def test_reset(self, registry):
        for host in registry.hosts:
            registry.report_failure(host)

        registry.reset()

        assert all(h.is_up for h in registry.hosts)

    def test_get_stats(self, registry, clock):
        registry.report_failure(_host(registry, "c2"))
        clock.now += 12

        stats = {s["url"]: s for s in registry.get_stats()}

        assert stats["c2"]["is_up"] is False
        assert stats["c2"]["seconds_since_check"] == 12
        assert stats["dsn"]["accept"] == ["read"]


class StampingClock:
    """每次调用返回递增时间戳，并记住当前线程最近一次取到的值"""

    def __init__(self):
        self._counter = itertools.count(1)
        self._lock = threading.Lock()
        self._local = threading.local()

    def __call__(self) -> float:
        with self._lock:
            value = float(next(self._counter))
        self._local.last = value
        return value

    @property
    def last(self) -> float:
        return self._local.last


class TestConcurrency:
    """并发访问测试"""

    def test_concurrent_reports_and_listing(self):
        clock = StampingClock()
        registry = HostRegistry(
            [StatefulHost(f"h{i}") for i in range(4)], host_expiry=1e9, clock=clock
        )
        hosts = registry.hosts
        reports = []

        def worker(seed: int) -> int:
            rng = random.Random(seed)
            listed = 0
            for _ in range(300):
                op = rng.random()
                host = rng.choice(hosts)
                if op < 0.35:
                    registry.report_failure(host)
                    reports.append((host.url, clock.last, False))
                elif op < 0.7:
                    registry.report_success(host)
                    reports.append((host.url, clock.last, True))
                else:
                    candidates = registry.list_hosts(
                        rng.choice([CallType.READ, CallType.WRITE])
                    )
                    assert candidates
                    listed += 1
            return listed

        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(worker, seed) for seed in range(8)]
            listed = sum(f.result() for f in futures)

        assert listed > 0
        for host in hosts:
            # 写锁串行化了状态更新，时间戳最大的上报就是最后生效的那次
            _, stamp, is_up = max(r for r in reports if r[0] == host.url)
            assert (host.is_up, host.last_health_check) == (is_up, stamp)
            assert registry.list_hosts(CallType.READ)
