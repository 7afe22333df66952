"""
服务端点封装

类清单:
    SearchClient: 搜索服务客户端 (init_index / list_indexes)
    SearchIndex: 单个索引的对象、设置、规则、同义词与任务操作
    AnalyticsClient: 分析服务客户端 (单主机)
"""

from .index import SearchIndex
from .search_client import SearchClient
from .analytics import AnalyticsClient

__all__ = ["SearchClient", "SearchIndex", "AnalyticsClient"]
