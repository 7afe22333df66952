"""
传输执行器单元测试

被测模块: searchflux/transport/executor.py (HttpTransport)

使用 conftest.py 中的 FakeSession 按主机路由响应，不发起真实网络请求。

测试类/函数清单:
    TestClassification                                  结果分类测试
        test_failover_to_third_host                     验证 A/B 连接失败、C 返回 200 时得到 C 的响应且 A/B 被标记不可用
        test_bad_request_is_application_error           验证 400 抛出 RequestRejectedError 且主机保持可用
        test_server_error_fails_over                    验证 5xx 切换到下一台主机
        test_request_timeout_status_fails_over          验证 408 按可重试处理
        test_undecodable_success_fails_over             验证 2xx 但响应体无法解码时切换主机
        test_attempt_timeout_fails_over                 验证单次尝试超时后切换主机
        test_unclassified_exception_is_retryable        验证未归类异常按可重试处理
        test_all_hosts_down_is_distinct_error           验证全部失败抛出 TransportUnavailableError 而非 RequestRejectedError
        test_response_type_decoding                     验证响应按 response_type 解码
        test_rejected_message_falls_back_to_body        验证非 JSON 错误响应使用原文作为错误消息
    TestRequestBuilding                                 请求构建测试
        test_headers_and_query_parameters               验证认证头、默认头、调用方头与查询参数
        test_body_serialization                         验证 dict 与 Pydantic 模型请求体序列化
        test_read_and_write_host_selection              验证读写调用选择不同主机
        test_url_with_scheme                            验证主机地址带协议时直接拼接
    TestWaiterBinding                                   写操作等待器测试
        test_write_response_waitable                    验证写响应绑定等待器且 wait() 返回 DONE
        test_read_response_not_waitable                 验证读调用或未提供 resource 时不绑定等待器
        test_wait_forwards_options                      验证 wait(options=...) 的请求选项用于任务状态查询
    TestCancellation                                    取消测试
        test_cancel_propagates                          验证取消调用时 CancelledError 向上传播且主机不被标记
    TestClose                                           关闭测试
        test_execute_after_close_keeps_hosts_up         验证关闭后调用抛出 RuntimeError 且主机保持可用
        test_closed_transport_does_not_affect_shared_registry  验证共享登记表时已关闭的传输器不影响其他传输器
"""

import asyncio
import json

import aiohttp
import pytest
from pydantic import BaseModel

from searchflux.models import (
    BatchResponse,
    CallType,
    PollState,
    RequestOptions,
    RequestRejectedError,
    SearchResult,
    TransportUnavailableError,
)
from searchflux.transport.executor import HttpTransport


def _json_body(call):
    return json.loads(call["data"].decode("utf-8"))


class TestClassification:
    """结果分类测试"""

    @pytest.mark.asyncio
    async def test_failover_to_third_host(self, make_config, make_session):
        session = make_session(
            {
                "host-a": aiohttp.ClientConnectionError("connection refused"),
                "host-b": aiohttp.ClientConnectionError("connection refused"),
                "host-c": (200, {"hits": [{"objectID": "1"}]}),
            }
        )
        transport = HttpTransport(make_config(), session=session)

        result = await transport.execute("GET", "/1/indexes/products", CallType.READ)

        assert result == {"hits": [{"objectID": "1"}]}
        assert session.hosts_called == ["host-a", "host-b", "host-c"]
        assert transport.registry.is_up("host-a") is False
        assert transport.registry.is_up("host-b") is False
        assert transport.registry.is_up("host-c") is True

    @pytest.mark.asyncio
    async def test_bad_request_is_application_error(self, make_config, make_session):
        session = make_session({"host-a": (400, {"message": "bad request"})})
        transport = HttpTransport(make_config(), session=session)

        with pytest.raises(RequestRejectedError) as exc_info:
            await transport.execute("POST", "/1/indexes/products/query", CallType.READ)

        assert exc_info.value.message == "bad request"
        assert exc_info.value.status_code == 400
        assert session.hosts_called == ["host-a"]
        assert transport.registry.is_up("host-a") is True

    @pytest.mark.asyncio
    async def test_server_error_fails_over(self, make_config, make_session):
        session = make_session(
            {
                "host-a": (503, {"message": "unavailable"}),
                "host-b": (200, {"ok": True}),
            }
        )
        transport = HttpTransport(make_config(), session=session)

        assert await transport.execute("GET", "/1/x", CallType.READ) == {"ok": True}
        assert transport.registry.is_up("host-a") is False

    @pytest.mark.asyncio
    async def test_request_timeout_status_fails_over(self, make_config, make_session):
        session = make_session(
            {
                "host-a": (408, {"message": "request timeout"}),
                "host-b": (200, {"ok": True}),
            }
        )
        transport = HttpTransport(make_config(), session=session)

        assert await transport.execute("GET", "/1/x", CallType.READ) == {"ok": True}
        assert session.hosts_called == ["host-a", "host-b"]

    @pytest.mark.asyncio
    async def test_undecodable_success_fails_over(self, make_config, make_session):
        session = make_session(
            {
                "host-a": (200, "<html>proxy error</html>"),
                "host-b": (200, {"hits": []}),
            }
        )
        transport = HttpTransport(make_config(), session=session)

        result = await transport.execute(
            "POST", "/1/indexes/products/query", CallType.READ, response_type=SearchResult
        )

        assert isinstance(result, SearchResult)
        assert transport.registry.is_up("host-a") is False

    @pytest.mark.asyncio
    async def test_attempt_timeout_fails_over(self, make_config, make_session):
        async def slow(method, url, kwargs):
            await asyncio.sleep(1.0)
            return 200, {"late": True}

        session = make_session({"host-a": slow, "host-b": (200, {"fast": True})})
        transport = HttpTransport(
            make_config(read_timeout=0.05, max_timeout=0.2), session=session
        )

        assert await transport.execute("GET", "/1/x", CallType.READ) == {"fast": True}
        assert transport.registry.is_up("host-a") is False

    @pytest.mark.asyncio
    async def test_unclassified_exception_is_retryable(self, make_config, make_session):
        session = make_session(
            {
                "host-a": RuntimeError("unexpected"),
                "host-b": (200, {"ok": True}),
            }
        )
        transport = HttpTransport(make_config(), session=session)

        assert await transport.execute("GET", "/1/x", CallType.READ) == {"ok": True}

    @pytest.mark.asyncio
    async def test_all_hosts_down_is_distinct_error(self, make_config, make_session):
        last = aiohttp.ClientConnectionError("host-c refused")
        session = make_session(
            {
                "host-a": aiohttp.ClientConnectionError("host-a refused"),
                "host-b": (500, {"message": "internal"}),
                "host-c": last,
            }
        )
        transport = HttpTransport(make_config(), session=session)

        with pytest.raises(TransportUnavailableError) as exc_info:
            await transport.execute("GET", "/1/x", CallType.READ)

        assert not isinstance(exc_info.value, RequestRejectedError)
        assert exc_info.value.last_cause is last
        assert exc_info.value.attempted_hosts == ["host-a", "host-b", "host-c"]

    @pytest.mark.asyncio
    async def test_response_type_decoding(self, make_config, make_session):
        session = make_session(
            {
                "host-a": (
                    200,
                    {"hits": [{"objectID": "1"}], "nbHits": 1, "processingTimeMS": 3},
                )
            }
        )
        transport = HttpTransport(make_config(), session=session)

        result = await transport.execute(
            "POST", "/1/indexes/products/query", CallType.READ, response_type=SearchResult
        )

        assert result.nb_hits == 1
        assert result.processing_time_ms == 3

    @pytest.mark.asyncio
    async def test_rejected_message_falls_back_to_body(self, make_config, make_session):
        session = make_session({"host-a": (404, "Not Found")})
        transport = HttpTransport(make_config(), session=session)

        with pytest.raises(RequestRejectedError) as exc_info:
            await transport.execute("GET", "/1/indexes/missing", CallType.READ)

        assert exc_info.value.message == "Not Found"
        assert exc_info.value.status_code == 404


class TestRequestBuilding:
    """请求构建测试"""

    @pytest.mark.asyncio
    async def test_headers_and_query_parameters(self, make_config, make_session):
        session = make_session({"host-a": (200, {})})
        config = make_config(default_headers={"X-Team": "search"})
        transport = HttpTransport(config, session=session)
        options = (
            RequestOptions()
            .with_header("X-Forwarded-For", "10.0.0.1")
            .with_query_parameter("getVersion", 2)
        )

        await transport.execute("GET", "/1/indexes/products/settings", CallType.READ, options=options)

        call = session.calls[0]
        assert call["headers"]["X-Algolia-Application-Id"] == "TESTAPP"
        assert call["headers"]["X-Algolia-API-Key"] == "test-key"
        assert call["headers"]["X-Team"] == "search"
        assert call["headers"]["X-Forwarded-For"] == "10.0.0.1"
        assert "SearchFlux" in call["headers"]["User-Agent"]
        assert call["params"] == {"getVersion": "2"}
        assert call["data"] is None

    @pytest.mark.asyncio
    async def test_body_serialization(self, make_config, make_session):
        class Query(BaseModel):
            query: str
            hits_per_page: int | None = None

        session = make_session({"host-a": (200, {})})
        transport = HttpTransport(make_config(), session=session)

        await transport.execute("POST", "/1/q", CallType.READ, body={"query": "手机"})
        await transport.execute("POST", "/1/q", CallType.READ, body=Query(query="phone"))

        assert _json_body(session.calls[0]) == {"query": "手机"}
        assert _json_body(session.calls[1]) == {"query": "phone"}

    @pytest.mark.asyncio
    async def test_read_and_write_host_selection(self, make_config, make_session):
        session = make_session({"dsn": (200, {}), "write": (200, {})})
        config = make_config(
            hosts=[("dsn", {CallType.READ}), ("write", {CallType.WRITE})]
        )
        transport = HttpTransport(config, session=session)

        await transport.execute("GET", "/1/x", CallType.READ)
        await transport.execute("POST", "/1/x", CallType.WRITE, body={})

        assert session.hosts_called == ["dsn", "write"]

    @pytest.mark.asyncio
    async def test_url_with_scheme(self, make_config, make_session):
        session = make_session(lambda method, url, kwargs: (200, {"url": url}))
        transport = HttpTransport(
            make_config(hosts=["http://localhost:8080/"]), session=session
        )

        result = await transport.execute("GET", "/1/indexes", CallType.READ)

        assert result == {"url": "http://localhost:8080/1/indexes"}


class TestWaiterBinding:
    """写操作等待器测试"""

    @pytest.mark.asyncio
    async def test_write_response_waitable(self, make_config, make_session):
        def handler(method, url, kwargs):
            if method == "POST":
                return 200, {"taskID": 42, "objectIDs": ["1"]}
            assert url.endswith("/1/indexes/products/task/42")
            return 200, {"status": "published", "pendingTask": False}

        session = make_session(handler)
        transport = HttpTransport(make_config(), session=session)

        response = await transport.execute(
            "POST", "/1/indexes/products/batch", CallType.WRITE,
            body={"requests": []}, response_type=BatchResponse, resource="products",
        )

        assert response.waitable
        assert response.object_ids == ["1"]
        assert await response.wait() == PollState.DONE

    @pytest.mark.asyncio
    async def test_read_response_not_waitable(self, make_config, make_session):
        session = make_session({"host-a": (200, {"taskID": 1})})
        transport = HttpTransport(make_config(), session=session)

        read = await transport.execute(
            "GET", "/1/x", CallType.READ, response_type=BatchResponse, resource="products"
        )
        write = await transport.execute(
            "POST", "/1/x", CallType.WRITE, response_type=BatchResponse
        )

        assert not read.waitable
        assert not write.waitable
        assert await write.wait() is None

    @pytest.mark.asyncio
    async def test_wait_forwards_options(self, make_config, make_session):
        def handler(method, url, kwargs):
            if method == "POST":
                return 200, {"taskID": 9}
            return 200, {"status": "published"}

        session = make_session(handler)
        transport = HttpTransport(make_config(), session=session)
        response = await transport.execute(
            "POST", "/1/indexes/products/batch", CallType.WRITE,
            response_type=BatchResponse, resource="products",
        )

        options = RequestOptions().with_header("X-Trace-Id", "t-1")
        assert await response.wait(options=options) == PollState.DONE

        status_call = session.calls[-1]
        assert status_call["url"].endswith("/1/indexes/products/task/9")
        assert status_call["headers"]["X-Trace-Id"] == "t-1"


class TestCancellation:
    """取消测试"""

    @pytest.mark.asyncio
    async def test_cancel_propagates(self, make_config, make_session):
        started = asyncio.Event()

        async def hang(method, url, kwargs):
            started.set()
            await asyncio.sleep(10)
            return 200, {}

        session = make_session({"host-a": hang})
        transport = HttpTransport(make_config(read_timeout=5.0), session=session)

        task = asyncio.create_task(transport.execute("GET", "/1/x", CallType.READ))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert session.hosts_called == ["host-a"]
        assert transport.registry.is_up("host-a") is True


class TestClose:
    """关闭测试"""

    @pytest.mark.asyncio
    async def test_execute_after_close_keeps_hosts_up(self, make_config):
        transport = HttpTransport(make_config())
        await transport.close()

        with pytest.raises(RuntimeError):
            await transport.execute("GET", "/1/x", CallType.READ)

        assert [transport.registry.is_up(h) for h in ("host-a", "host-b", "host-c")] == [
            True,
            True,
            True,
        ]

    @pytest.mark.asyncio
    async def test_closed_transport_does_not_affect_shared_registry(
        self, make_config, make_session
    ):
        config = make_config()
        closed = HttpTransport(config)
        session = make_session({"host-a": (200, {"ok": True})})
        active = HttpTransport(config, registry=closed.registry, session=session)
        await closed.close()

        with pytest.raises(RuntimeError):
            await closed.execute("GET", "/1/x", CallType.READ)

        assert await active.execute("GET", "/1/x", CallType.READ) == {"ok": True}
        assert session.hosts_called == ["host-a"]
