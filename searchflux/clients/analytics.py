"""
分析服务客户端

分析服务只有一个主机 (analytics.algolia.com) 同时服务读写，
仍然走同一套传输层：单主机失败时直接抛出 TransportUnavailableError。
"""

from typing import Any

import aiohttp

from ..config.search_config import SearchConfig
from ..models.host import CallType
from ..models.options import RequestOptions
from ..transport.executor import HttpTransport


class AnalyticsClient:
    """分析服务客户端，提供通用的 get / post / delete 调用"""

    def __init__(
        self, config: SearchConfig, session: aiohttp.ClientSession | None = None
    ):
        self.config = config
        self.transport = HttpTransport(config, session=session)

    @classmethod
    def create(cls, application_id: str, api_key: str, **kwargs: Any) -> "AnalyticsClient":
        return cls(SearchConfig.analytics(application_id, api_key, **kwargs))

    async def __aenter__(self) -> "AnalyticsClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.transport.close()

    async def get(self, path: str, options: RequestOptions | None = None) -> Any:
        return await self.transport.execute("GET", path, CallType.READ, options=options)

    async def post(
        self, path: str, body: Any = None, options: RequestOptions | None = None
    ) -> Any:
        return await self.transport.execute(
            "POST", path, CallType.WRITE, body=body, options=options
        )

    async def delete(self, path: str, options: RequestOptions | None = None) -> Any:
        return await self.transport.execute("DELETE", path, CallType.WRITE, options=options)
