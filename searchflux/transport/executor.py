"""
HTTP 传输执行器

本模块实现请求的完整生命周期：构建请求、驱动重试策略、执行单次尝试、
对结果分类并解码为调用方期望的响应类型。

请求格式:
    METHOD https://{host}{path}?{query_parameters}
    X-Algolia-Application-Id: {application_id}
    X-Algolia-API-Key: {api_key}
    Content-Type: application/json; charset=utf-8
    {JSON 请求体 (可选)}

单次尝试的结果分类:
    ┌──────────────────────────────────────┬───────────────────┐
    │ 情况                                  │ 分类               │
    ├──────────────────────────────────────┼───────────────────┤
    │ 2xx 且响应体可解码为 response_type     │ SUCCESS           │
    │ 2xx 但响应体无法解码                   │ RETRYABLE_ERROR   │
    │ 408 / 5xx                            │ RETRYABLE_ERROR   │
    │ 其他 4xx                              │ APPLICATION_ERROR │
    │ 超时 / aiohttp.ClientError / 其他异常  │ RETRYABLE_ERROR   │
    └──────────────────────────────────────┴───────────────────┘

取消:
    asyncio.CancelledError 不会被捕获。单次尝试被取消时 async with 退出，
    连接随之释放；取消继续向调用方传播。

关闭:
    close() 之后再调用 execute() 直接抛出 RuntimeError，不经过重试策略，
    主机状态不受影响。

写操作等待器:
    写请求成功且响应为 TaskResponse 时，若调用方提供了 resource (索引名)，
    执行器把 TaskHandle 与 TaskPoller 绑定到响应上，调用方可 await response.wait()。

使用示例:
    async with HttpTransport(SearchConfig.create("APP", "KEY")) as transport:
        result = await transport.execute(
            "POST", "/1/indexes/products/query", CallType.READ,
            body={"query": "phone"}, response_type=SearchResult,
        )
"""

import asyncio
import json
import logging
import time
from typing import Any

import aiohttp
from pydantic import BaseModel

from .. import __version__
from ..config.search_config import SearchConfig
from ..models.errors import (
    RequestRejectedError,
    ResponseDecodeError,
    RetryableHttpError,
)
from ..models.host import CallType, StatefulHost
from ..models.options import RequestOptions
from ..models.responses import TaskResponse
from ..models.task import PollState, TaskHandle
from .hosts import HostRegistry
from .poller import TaskPoller
from .retry import AttemptResult, RetryStrategy
from .session import SessionPool


class HttpTransport:
    """
    HTTP 传输执行器

    一个客户端一个实例，可被并发调用共享。HostRegistry 在实例内唯一，
    每次 execute() 各自创建独立的 AttemptContext。

    Attributes:
        config: 客户端配置
        registry: 主机登记表
        strategy: 重试策略
        poller: 任务完成轮询器
        session_pool: HTTP 连接池
    """

    def __init__(
        self,
        config: SearchConfig,
        registry: HostRegistry | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        """
        Args:
            config: 客户端配置
            registry: 主机登记表，默认按配置创建；多个传输器可共享同一个
            session: 外部提供的 ClientSession (由调用方负责关闭)
        """
        self.config = config
        self.registry = registry or HostRegistry(config.hosts, config.host_expiry)
        self.strategy = RetryStrategy(
            self.registry,
            read_timeout=config.read_timeout,
            write_timeout=config.write_timeout,
            max_timeout=config.max_timeout,
            total_timeout=config.total_timeout,
        )
        self.poller = TaskPoller(
            self,
            initial_delay=config.initial_poll_delay,
            max_delay=config.max_poll_delay,
        )
        self.session_pool = SessionPool(max_connections=config.max_connections)
        self._session = session
        self._client_timeout = aiohttp.ClientTimeout(
            total=None, connect=config.connect_timeout
        )

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """关闭自建的连接池 (外部提供的 session 由调用方关闭)"""
        await self.session_pool.close_all()

    async def execute(
        self,
        method: str,
        path: str,
        call_type: CallType,
        body: Any = None,
        response_type: type[BaseModel] | None = None,
        options: RequestOptions | None = None,
        resource: str | None = None,
    ) -> Any:
        """
        执行一次逻辑调用

        Args:
            method: HTTP 方法
            path: 请求路径 (以 / 开头，已完成 URL 编码)
            call_type: 调用类别 (READ / WRITE)
            body: 请求体 (dict / list / Pydantic 模型 / None)
            response_type: 响应解码类型，None 表示返回原始 JSON
            options: 请求选项 (请求头、查询参数、超时覆盖)
            resource: 写操作所属的索引名，用于绑定任务等待器

        Returns:
            解码后的响应

        Raises:
            RequestRejectedError: 请求被拒绝 (应用错误)
            TransportUnavailableError: 所有主机均不可达
            RuntimeError: 传输器已关闭
        """
        if self._session is None and self.session_pool.closed:
            raise RuntimeError("HttpTransport 已关闭")

        options = options or RequestOptions()
        headers = self._build_headers(options)
        params = dict(options.query_parameters)
        data = self._serialize(body)

        async def send_once(host: StatefulHost, timeout: float) -> AttemptResult:
            return await self._attempt(
                host, method, path, headers, params, data, response_type, timeout
            )

        result = await self.strategy.attempt(call_type, send_once, options.timeout)

        if call_type == CallType.WRITE and resource and isinstance(result, TaskResponse):
            self._bind_waiter(result, TaskHandle(result.task_id, resource))

        return result

    def _bind_waiter(self, response: TaskResponse, handle: TaskHandle) -> None:
        async def waiter(
            initial_delay: float | None,
            options: RequestOptions | None,
            cancel_event: asyncio.Event | None,
        ) -> PollState:
            return await self.poller.wait_for_completion(
                handle,
                initial_delay=initial_delay,
                options=options,
                cancel_event=cancel_event,
            )

        response.bind_waiter(waiter)

    def _build_headers(self, options: RequestOptions) -> dict[str, str]:
        headers = {
            "X-Algolia-Application-Id": self.config.application_id,
            "X-Algolia-API-Key": self.config.api_key,
            "User-Agent": f"SearchFlux (Python; {__version__})",
            "Accept": "application/json",
            "Content-Type": "application/json; charset=utf-8",
        }
        headers.update(self.config.default_headers)
        headers.update(options.headers)
        return headers

    @staticmethod
    def _serialize(body: Any) -> bytes | None:
        """将请求体序列化为 JSON 字节串"""
        if body is None:
            return None
        if isinstance(body, bytes):
            return body
        if isinstance(body, str):
            return body.encode("utf-8")
        if isinstance(body, BaseModel):
            body = body.model_dump(by_alias=True, exclude_none=True)
        return json.dumps(body, ensure_ascii=False).encode("utf-8")

    @staticmethod
    def _build_url(host: StatefulHost, path: str) -> str:
        if "://" in host.url:
            return host.url.rstrip("/") + path
        return f"https://{host.url}{path}"

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is not None:
            return self._session
        return await self.session_pool.get_or_create(
            ssl_verify=self.config.ssl_verify, proxy=self.config.proxy
        )

    async def _send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        params: dict[str, str],
        data: bytes | None,
    ) -> tuple[int, str]:
        session = await self._get_session()
        async with session.request(
            method,
            url,
            headers=headers,
            params=params or None,
            data=data,
            proxy=self.config.proxy or None,
            timeout=self._client_timeout,
        ) as resp:
            text = await resp.text()
            return resp.status, text

    async def _attempt(
        self,
        host: StatefulHost,
        method: str,
        path: str,
        headers: dict[str, str],
        params: dict[str, str],
        data: bytes | None,
        response_type: type[BaseModel] | None,
        timeout: float,
    ) -> AttemptResult:
        """对单台主机执行一次请求，并对结果分类"""
        url = self._build_url(host, path)
        start_time = time.time()
        logging.debug(f"{method} {url} (超时 {timeout:.2f}s)")

        try:
            status, text = await asyncio.wait_for(
                self._send(method, url, headers, params, data), timeout=timeout
            )
        except asyncio.TimeoutError:
            return AttemptResult.retryable(
                TimeoutError(f"请求 {host.url} 超时 (>{timeout:.2f}s)")
            )
        except aiohttp.ClientError as e:
            return AttemptResult.retryable(e)
        except Exception as e:
            # 未归类的传输层异常一律按可重试处理，交给重试策略切换主机
            logging.debug(f"请求 {host.url} 出现未归类异常: {e!r}")
            return AttemptResult.retryable(e)

        elapsed = time.time() - start_time
        logging.debug(f"{method} {url} 响应状态: {status} in {elapsed:.2f}s")

        return self._classify(status, text, response_type)

    @staticmethod
    def _extract_message(text: str) -> str:
        """提取错误响应中的 message 字段，不是 JSON 时返回原文 (截断)"""
        try:
            payload = json.loads(text)
        except ValueError:
            return text[:500]
        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
        return text[:500]

    @staticmethod
    def _decode(payload: Any, response_type: type[BaseModel] | None) -> Any:
        if response_type is None:
            return payload
        return response_type.model_validate(payload)

    def _classify(
        self, status: int, text: str, response_type: type[BaseModel] | None
    ) -> AttemptResult:
        if 200 <= status < 300:
            try:
                payload = json.loads(text) if text else {}
                value = self._decode(payload, response_type)
            except ValueError as e:
                return AttemptResult.retryable(
                    ResponseDecodeError(f"响应体无法解码: {e}", status_code=status),
                    status_code=status,
                )
            return AttemptResult.success(value, status_code=status)

        message = self._extract_message(text)

        if status == 408 or status >= 500:
            return AttemptResult.retryable(
                RetryableHttpError(message, status_code=status), status_code=status
            )

        if 400 <= status < 500:
            return AttemptResult.rejected(
                RequestRejectedError(message, status_code=status), status_code=status
            )

        return AttemptResult.retryable(
            RetryableHttpError(f"意外的响应状态 {status}: {message}", status_code=status),
            status_code=status,
        )
