"""
pytest fixtures - 测试共享资源

Fixtures 是 pytest 的核心概念，用于:
1. 提供测试数据 (配置字典、SearchConfig)
2. 提供按主机路由的伪造 aiohttp Session，无需真实网络
3. 在多个测试间共享资源
"""

import inspect
import json
import sys
from pathlib import Path
from typing import Any, Callable

import pytest

# 确保可以导入 searchflux 模块
sys.path.insert(0, str(Path(__file__).parent.parent))

from searchflux.config import SearchConfig  # noqa: E402
from searchflux.models import CallType, StatefulHost  # noqa: E402


# ==================== 伪造 HTTP Session ====================


class FakeResponse:
    """模拟 aiohttp.ClientResponse 的最小子集"""

    def __init__(self, status: int, body: Any):
        self.status = status
        self._body = body if isinstance(body, str) else json.dumps(body)

    async def text(self) -> str:
        return self._body


class _FakeRequest:
    def __init__(self, handler: Callable, method: str, url: str, kwargs: dict):
        self.handler = handler
        self.method = method
        self.url = url
        self.kwargs = kwargs

    async def __aenter__(self) -> FakeResponse:
        result = self.handler(self.method, self.url, self.kwargs)
        if inspect.isawaitable(result):
            result = await result
        status, body = result
        return FakeResponse(status, body)

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class FakeSession:
    """
    伪造的 aiohttp.ClientSession

    handler(method, url, kwargs) 返回 (status, body)，或抛出异常模拟连接失败，
    也可以是协程 (用于模拟慢响应)。所有请求记录在 calls 中。
    """

    def __init__(self, handler: Callable):
        self.handler = handler
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def request(self, method: str, url: str, **kwargs: Any) -> _FakeRequest:
        self.calls.append({"method": method, "url": url, **kwargs})
        return _FakeRequest(self.handler, method, url, kwargs)

    @property
    def hosts_called(self) -> list[str]:
        return [call["url"].split("/")[2] for call in self.calls]

    async def close(self) -> None:
        self.closed = True


def host_of(url: str) -> str:
    return url.split("/")[2]


def route_by_host(responses: dict[str, Any]) -> Callable:
    """
    按主机路由响应

    值可以是 (status, body)、异常实例、或 handler 函数。
    """

    def handler(method, url, kwargs):
        outcome = responses[host_of(url)]
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return outcome(method, url, kwargs)
        return outcome

    return handler


@pytest.fixture
def make_session() -> Callable[..., FakeSession]:
    """构造 FakeSession: make_session(handler) 或 make_session({host: outcome})"""

    def factory(handler_or_routes):
        if isinstance(handler_or_routes, dict):
            return FakeSession(route_by_host(handler_or_routes))
        return FakeSession(handler_or_routes)

    return factory


# ==================== 配置 Fixtures ====================


@pytest.fixture
def make_config() -> Callable[..., SearchConfig]:
    """
    构造测试用 SearchConfig

    hosts 可传入字符串 (读写皆可) 或 (url, {CallType...}) 元组。
    """

    def factory(hosts=("host-a", "host-b", "host-c"), **kwargs):
        parsed = []
        for entry in hosts:
            if isinstance(entry, tuple):
                url, accept = entry
                parsed.append(StatefulHost(url, accept=frozenset(accept)))
            else:
                parsed.append(StatefulHost(entry))
        kwargs.setdefault("read_timeout", 1.0)
        kwargs.setdefault("write_timeout", 1.0)
        kwargs.setdefault("max_timeout", 4.0)
        return SearchConfig(
            application_id="TESTAPP", api_key="test-key", hosts=tuple(parsed), **kwargs
        )

    return factory


@pytest.fixture
def sample_config() -> dict:
    """提供示例配置字典"""
    return {
        "global": {
            "log": {
                "level": "info",
                "format": "text",
                "output": "console",
            },
        },
        "client": {
            "application_id": "TESTAPP",
            "api_key": "test-key",
            "hosts": [
                {"url": "TESTAPP-dsn.algolia.net", "accept": ["read"]},
                {"url": "TESTAPP.algolia.net", "accept": ["write"]},
                "TESTAPP-1.algolianet.com",
            ],
            "headers": {"X-Team": "search"},
        },
        "transport": {
            "read_timeout": 2,
            "write_timeout": 10,
            "max_timeout": 20,
            "host_expiry": 120,
        },
        "task": {
            "initial_poll_delay": 0.05,
            "max_poll_delay": 1,
        },
        "indexing": {
            "batch_size": 2,
        },
    }


@pytest.fixture
def config_file(tmp_path, sample_config):
    """将示例配置写入临时 YAML 文件"""
    import yaml

    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(sample_config, allow_unicode=True), encoding="utf-8")
    return path


