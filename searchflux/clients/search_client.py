"""
搜索客户端

SearchClient 持有一份 SearchConfig 和一个 HttpTransport，
所有由它创建的 SearchIndex 共享同一个传输器和主机登记表。

使用示例:
    config = SearchConfig.create("APP", "KEY")
    async with SearchClient(config) as client:
        index = client.init_index("products")
        result = await index.search({"query": "phone"})
"""

from typing import Any

import aiohttp

from ..config.search_config import SearchConfig
from ..models.host import CallType
from ..models.options import RequestOptions
from ..models.responses import ListIndicesResponse
from ..transport.executor import HttpTransport
from .index import SearchIndex


class SearchClient:
    """
    搜索服务客户端

    Attributes:
        config: 客户端配置
        transport: 共享的传输执行器
    """

    def __init__(
        self, config: SearchConfig, session: aiohttp.ClientSession | None = None
    ):
        self.config = config
        self.transport = HttpTransport(config, session=session)

    @classmethod
    def create(cls, application_id: str, api_key: str, **kwargs: Any) -> "SearchClient":
        return cls(SearchConfig.create(application_id, api_key, **kwargs))

    async def __aenter__(self) -> "SearchClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.transport.close()

    def init_index(self, name: str) -> SearchIndex:
        return SearchIndex(self.transport, self.config, name)

    async def list_indexes(
        self, options: RequestOptions | None = None
    ) -> ListIndicesResponse:
        return await self.transport.execute(
            "GET", "/1/indexes", CallType.READ,
            response_type=ListIndicesResponse, options=options,
        )
