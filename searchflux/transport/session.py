"""
HTTP Session 连接池管理

按 (ssl_verify, proxy) 组合复用 aiohttp.ClientSession，所有主机共享连接池。
Session 在首次请求时于事件循环内懒创建，close_all() 释放全部连接。
"""

import logging
from typing import Any

import aiohttp


class SessionPool:
    """
    HTTP Session 连接池

    Attributes:
        sessions: Session 缓存字典
        max_connections: 每个 Session 的总连接数上限
        max_connections_per_host: 每台主机的连接数上限
    """

    def __init__(self, max_connections: int = 100, max_connections_per_host: int = 30):
        self.sessions: dict[tuple[bool, str], aiohttp.ClientSession] = {}
        self.max_connections = max_connections
        self.max_connections_per_host = max_connections_per_host
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def get_or_create(
        self,
        ssl_verify: bool = True,
        proxy: str = "",
    ) -> aiohttp.ClientSession:
        """
        获取或创建 ClientSession

        Args:
            ssl_verify: 是否验证 SSL 证书
            proxy: 代理地址 (空字符串表示不使用代理)

        Raises:
            RuntimeError: 连接池已关闭
        """
        if self._closed:
            raise RuntimeError("SessionPool 已关闭")

        key = (ssl_verify, proxy)

        session = self.sessions.get(key)
        if session is None or session.closed:
            connector = aiohttp.TCPConnector(
                ssl=ssl_verify if ssl_verify else False,
                limit=self.max_connections,
                limit_per_host=self.max_connections_per_host,
            )
            session = aiohttp.ClientSession(connector=connector)
            self.sessions[key] = session

            logging.debug(
                f"创建新的 ClientSession: ssl_verify={ssl_verify}, proxy={proxy or 'None'}"
            )

        return session

    async def close_all(self) -> None:
        """关闭所有 Session"""
        self._closed = True

        for key, session in self.sessions.items():
            try:
                await session.close()
                logging.debug(f"已关闭 ClientSession: {key}")
            except aiohttp.ClientError as e:
                logging.warning(f"关闭 ClientSession 时出错: {e}")

        self.sessions.clear()

    def get_stats(self) -> dict[str, Any]:
        """获取连接池统计信息"""
        return {
            "total_sessions": len(self.sessions),
            "sessions": [
                {"ssl_verify": key[0], "proxy": key[1] or None}
                for key in self.sessions.keys()
            ],
        }
