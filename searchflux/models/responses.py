"""
API 响应 Pydantic 模型定义

本模块只定义传输层需要理解的响应形状，字段按服务端的驼峰命名做别名映射，
未声明的字段通过 extra="allow" 原样保留。

模型分类:

任务类响应 (写操作):
    - TaskResponse: 所有写响应的基类，携带 taskID，可绑定完成等待器
    - BatchResponse / UpdateObjectResponse / DeleteResponse / UpdatedAtResponse
    - BatchIndexingResponse: 分批写入的聚合响应，wait() 等待所有批次

查询类响应:
    - TaskStatusResponse: 任务状态，status == "published" 表示已持久化
    - SearchResult: 搜索 / 规则搜索 / 同义词搜索结果
    - ListIndicesResponse: 索引列表

等待器绑定:
    传输层在写请求成功后调用 bind_waiter()，把 TaskHandle 和 TaskPoller
    绑定到响应上；调用方可以选择 await response.wait()，也可以直接丢弃。

使用示例:
    response = await index.save_object({"objectID": "1", "name": "phone"})
    await response.wait()          # 阻塞直到写入持久化
"""

import asyncio
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .options import RequestOptions
from .task import PollState

# 等待器签名: (initial_delay, options, cancel_event) -> PollState
Waiter = Callable[
    [float | None, RequestOptions | None, asyncio.Event | None], Awaitable[PollState]
]


class ApiModel(BaseModel):
    """所有响应模型的基类"""

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class TaskResponse(ApiModel):
    """
    写操作响应基类

    Attributes:
        task_id: 服务端任务 ID
    """

    task_id: int = Field(alias="taskID")

    _waiter: Waiter | None = PrivateAttr(default=None)

    def bind_waiter(self, waiter: Waiter) -> None:
        self._waiter = waiter

    @property
    def waitable(self) -> bool:
        return self._waiter is not None

    async def wait(
        self,
        initial_delay: float | None = None,
        options: RequestOptions | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> PollState | None:
        """
        等待写操作持久化

        Args:
            initial_delay: 首次轮询间隔 (秒)，默认使用配置值
            options: 查询任务状态时使用的请求选项
            cancel_event: 置位后放弃等待

        Returns:
            轮询的终止状态；响应未绑定等待器时返回 None
        """
        if self._waiter is None:
            return None
        return await self._waiter(initial_delay, options, cancel_event)


class BatchResponse(TaskResponse):
    object_ids: list[str] = Field(default_factory=list, alias="objectIDs")


class UpdateObjectResponse(TaskResponse):
    object_id: str | None = Field(default=None, alias="objectID")
    updated_at: str | None = Field(default=None, alias="updatedAt")


class DeleteResponse(TaskResponse):
    deleted_at: str | None = Field(default=None, alias="deletedAt")


class UpdatedAtResponse(TaskResponse):
    """设置、规则、同义词等写操作的通用响应"""

    updated_at: str | None = Field(default=None, alias="updatedAt")
    id: str | None = None


class BatchIndexingResponse(ApiModel):
    """
    分批写入的聚合响应

    每个批次都有独立的任务，wait() 依次等待全部批次。
    """

    responses: list[BatchResponse] = Field(default_factory=list)

    @property
    def object_ids(self) -> list[str]:
        return [object_id for r in self.responses for object_id in r.object_ids]

    async def wait(
        self,
        initial_delay: float | None = None,
        options: RequestOptions | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> PollState | None:
        state: PollState | None = None
        for response in self.responses:
            state = await response.wait(initial_delay, options, cancel_event)
            if state == PollState.ABORTED:
                return state
        return state


class TaskStatusResponse(ApiModel):
    """
    任务状态

    Attributes:
        status: "published" 为唯一的持久化信号，其余值 (如 "notPublished") 表示仍在处理
        pending_task: 索引是否还有未完成的任务
    """

    status: str
    pending_task: bool | None = Field(default=None, alias="pendingTask")

    @property
    def is_published(self) -> bool:
        return self.status == "published"


class SearchResult(ApiModel):
    """搜索结果 (对象、规则、同义词搜索共用)"""

    hits: list[dict[str, Any]] = Field(default_factory=list)
    nb_hits: int = Field(default=0, alias="nbHits")
    page: int = 0
    nb_pages: int = Field(default=0, alias="nbPages")
    hits_per_page: int = Field(default=0, alias="hitsPerPage")
    processing_time_ms: int = Field(default=0, alias="processingTimeMS")
    query: str = ""
    params: str = ""


class ListIndicesResponse(ApiModel):
    items: list[dict[str, Any]] = Field(default_factory=list)
    nb_pages: int = Field(default=0, alias="nbPages")
