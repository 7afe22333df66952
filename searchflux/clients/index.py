"""
索引操作封装

SearchIndex 是传输层之上的薄封装：每个方法只负责拼出路径、调用类别、
请求体和查询参数，然后交给 HttpTransport.execute()。
故障切换、超时与结果分类全部由传输层完成。

接口清单 (路径均以 /1/indexes/{index} 为前缀):
    ┌──────────────────────────┬────────┬───────────────────────┬───────┐
    │ 方法                      │ HTTP   │ 路径                   │ 类别   │
    ├──────────────────────────┼────────┼───────────────────────┼───────┤
    │ search                   │ POST   │ /query                │ READ  │
    │ get_object               │ GET    │ /{objectID}           │ READ  │
    │ batch / save_object(s)   │ POST   │ /batch                │ WRITE │
    │ partial_update_object    │ POST   │ /{objectID}/partial   │ WRITE │
    │ delete_object            │ DELETE │ /{objectID}           │ WRITE │
    │ clear_objects            │ POST   │ /clear                │ WRITE │
    │ get_settings             │ GET    │ /settings             │ READ  │
    │ set_settings             │ PUT    │ /settings             │ WRITE │
    │ get_rule                 │ GET    │ /rules/{objectID}     │ READ  │
    │ search_rules             │ POST   │ /rules/search         │ READ  │
    │ save_rule                │ PUT    │ /rules/{objectID}     │ WRITE │
    │ save_rules               │ POST   │ /rules/batch          │ WRITE │
    │ delete_rule              │ DELETE │ /rules/{objectID}     │ WRITE │
    │ clear_rules              │ POST   │ /rules/clear          │ WRITE │
    │ *_synonym(s)             │ ...    │ /synonyms/...         │ ...   │
    │ get_task                 │ GET    │ /task/{taskID}        │ READ  │
    └──────────────────────────┴────────┴───────────────────────┴───────┘

分批写入:
    save_objects / partial_update_objects / delete_objects 按 config.batch_size
    切分为固定大小的批次，逐批发送，返回 BatchIndexingResponse 聚合所有批次。
    每个批次的响应都绑定了任务等待器，response.wait() 会依次等待全部批次。

使用示例:
    index = client.init_index("products")
    response = await index.save_objects(records)
    await response.wait()
    result = await index.search({"query": "phone"})
"""

import asyncio
from typing import Any, AsyncIterator, Iterable
from urllib.parse import quote

from ..config.search_config import SearchConfig
from ..models.host import CallType
from ..models.options import RequestOptions
from ..models.responses import (
    BatchIndexingResponse,
    BatchResponse,
    DeleteResponse,
    SearchResult,
    TaskStatusResponse,
    UpdatedAtResponse,
    UpdateObjectResponse,
)
from ..models.task import PollState, TaskHandle
from ..transport.executor import HttpTransport

# 批量操作类型
ADD_OBJECT = "addObject"
UPDATE_OBJECT = "updateObject"
PARTIAL_UPDATE_OBJECT = "partialUpdateObject"
PARTIAL_UPDATE_OBJECT_NO_CREATE = "partialUpdateObjectNoCreate"
DELETE_OBJECT = "deleteObject"


def _encode(value: Any) -> str:
    return quote(str(value), safe="")


def _require_object_id(data: dict[str, Any]) -> str:
    object_id = data.get("objectID")
    if object_id is None or object_id == "":
        raise ValueError(f"记录缺少 objectID: {data!r}")
    return str(object_id)


class SearchIndex:
    """
    单个索引的操作入口

    Attributes:
        name: 索引名称
        transport: 共享的传输执行器
        config: 客户端配置
    """

    def __init__(self, transport: HttpTransport, config: SearchConfig, name: str):
        if not name:
            raise ValueError("索引名称不能为空")
        self.transport = transport
        self.config = config
        self.name = name
        self._base_path = f"/1/indexes/{_encode(name)}"

    def _path(self, *parts: Any) -> str:
        if not parts:
            return self._base_path
        return self._base_path + "/" + "/".join(_encode(p) for p in parts)

    @staticmethod
    def _with_flag(
        options: RequestOptions | None, name: str, value: bool
    ) -> RequestOptions:
        return (options or RequestOptions()).with_query_parameter(name, value)

    async def _read(
        self,
        method: str,
        path: str,
        body: Any = None,
        response_type: Any = None,
        options: RequestOptions | None = None,
    ) -> Any:
        return await self.transport.execute(
            method, path, CallType.READ, body=body,
            response_type=response_type, options=options,
        )

    async def _write(
        self,
        method: str,
        path: str,
        body: Any = None,
        response_type: Any = None,
        options: RequestOptions | None = None,
    ) -> Any:
        return await self.transport.execute(
            method, path, CallType.WRITE, body=body,
            response_type=response_type, options=options, resource=self.name,
        )

    # ==================== 对象 ====================

    async def search(
        self, query: dict[str, Any] | None = None, options: RequestOptions | None = None
    ) -> SearchResult:
        return await self._read(
            "POST", self._path("query"), query or {}, SearchResult, options
        )

    async def get_object(
        self,
        object_id: str,
        attributes_to_retrieve: list[str] | None = None,
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        if attributes_to_retrieve:
            options = (options or RequestOptions()).with_query_parameter(
                "attributesToRetrieve", ",".join(attributes_to_retrieve)
            )
        return await self._read("GET", self._path(object_id), options=options)

    async def batch(
        self, requests: list[dict[str, Any]], options: RequestOptions | None = None
    ) -> BatchResponse:
        """发送一个批次的原始操作 [{action, body}, ...]"""
        return await self._write(
            "POST", self._path("batch"), {"requests": requests}, BatchResponse, options
        )

    async def _split_into_batches(
        self,
        records: Iterable[dict[str, Any]],
        action: str,
        options: RequestOptions | None,
    ) -> BatchIndexingResponse:
        responses: list[BatchResponse] = []
        chunk: list[dict[str, Any]] = []

        for record in records:
            chunk.append({"action": action, "body": record})
            if len(chunk) == self.config.batch_size:
                responses.append(await self.batch(chunk, options))
                chunk = []

        if chunk:
            responses.append(await self.batch(chunk, options))

        return BatchIndexingResponse(responses=responses)

    async def save_object(
        self,
        data: dict[str, Any],
        auto_generate_object_id: bool = False,
        options: RequestOptions | None = None,
    ) -> BatchIndexingResponse:
        return await self.save_objects([data], auto_generate_object_id, options)

    async def save_objects(
        self,
        data: Iterable[dict[str, Any]],
        auto_generate_object_id: bool = False,
        options: RequestOptions | None = None,
    ) -> BatchIndexingResponse:
        """
        写入完整记录

        Args:
            data: 记录序列
            auto_generate_object_id: True 时由服务端生成 objectID (addObject)，
                否则每条记录必须携带 objectID (updateObject)

        Raises:
            ValueError: 记录缺少 objectID
        """
        if auto_generate_object_id:
            return await self._split_into_batches(data, ADD_OBJECT, options)

        records = list(data)
        for record in records:
            _require_object_id(record)
        return await self._split_into_batches(records, UPDATE_OBJECT, options)

    async def partial_update_object(
        self,
        data: dict[str, Any],
        create_if_not_exists: bool = False,
        options: RequestOptions | None = None,
    ) -> UpdateObjectResponse:
        object_id = _require_object_id(data)
        options = self._with_flag(options, "createIfNotExists", create_if_not_exists)
        return await self._write(
            "POST", self._path(object_id, "partial"), data, UpdateObjectResponse, options
        )

    async def partial_update_objects(
        self,
        data: Iterable[dict[str, Any]],
        create_if_not_exists: bool = False,
        options: RequestOptions | None = None,
    ) -> BatchIndexingResponse:
        action = (
            PARTIAL_UPDATE_OBJECT if create_if_not_exists
            else PARTIAL_UPDATE_OBJECT_NO_CREATE
        )
        return await self._split_into_batches(data, action, options)

    async def delete_object(
        self, object_id: str, options: RequestOptions | None = None
    ) -> DeleteResponse:
        if not object_id:
            raise ValueError("objectID 不能为空")
        return await self._write(
            "DELETE", self._path(object_id), response_type=DeleteResponse, options=options
        )

    async def delete_objects(
        self, object_ids: Iterable[str], options: RequestOptions | None = None
    ) -> BatchIndexingResponse:
        return await self._split_into_batches(
            ({"objectID": object_id} for object_id in object_ids), DELETE_OBJECT, options
        )

    async def clear_objects(self, options: RequestOptions | None = None) -> UpdatedAtResponse:
        return await self._write(
            "POST", self._path("clear"), response_type=UpdatedAtResponse, options=options
        )

    # ==================== 设置 ====================

    async def get_settings(self, options: RequestOptions | None = None) -> dict[str, Any]:
        return await self._read("GET", self._path("settings"), options=options)

    async def set_settings(
        self,
        settings: dict[str, Any],
        forward_to_replicas: bool = False,
        options: RequestOptions | None = None,
    ) -> UpdatedAtResponse:
        options = self._with_flag(options, "forwardToReplicas", forward_to_replicas)
        return await self._write(
            "PUT", self._path("settings"), settings, UpdatedAtResponse, options
        )

    # ==================== 规则 ====================

    async def get_rule(
        self, object_id: str, options: RequestOptions | None = None
    ) -> dict[str, Any]:
        return await self._read("GET", self._path("rules", object_id), options=options)

    async def search_rules(
        self, query: dict[str, Any] | None = None, options: RequestOptions | None = None
    ) -> SearchResult:
        return await self._read(
            "POST", self._path("rules", "search"), query or {"query": ""},
            SearchResult, options,
        )

    async def save_rule(
        self,
        rule: dict[str, Any],
        forward_to_replicas: bool = False,
        options: RequestOptions | None = None,
    ) -> UpdatedAtResponse:
        object_id = _require_object_id(rule)
        options = self._with_flag(options, "forwardToReplicas", forward_to_replicas)
        return await self._write(
            "PUT", self._path("rules", object_id), rule, UpdatedAtResponse, options
        )

    async def save_rules(
        self,
        rules: Iterable[dict[str, Any]],
        forward_to_replicas: bool = False,
        clear_existing_rules: bool = False,
        options: RequestOptions | None = None,
    ) -> UpdatedAtResponse:
        options = self._with_flag(options, "forwardToReplicas", forward_to_replicas)
        options = options.with_query_parameter("clearExistingRules", clear_existing_rules)
        return await self._write(
            "POST", self._path("rules", "batch"), list(rules), UpdatedAtResponse, options
        )

    async def replace_all_rules(
        self,
        rules: Iterable[dict[str, Any]],
        forward_to_replicas: bool = False,
        options: RequestOptions | None = None,
    ) -> UpdatedAtResponse:
        return await self.save_rules(
            rules, forward_to_replicas, clear_existing_rules=True, options=options
        )

    async def delete_rule(
        self,
        object_id: str,
        forward_to_replicas: bool = False,
        options: RequestOptions | None = None,
    ) -> DeleteResponse:
        options = self._with_flag(options, "forwardToReplicas", forward_to_replicas)
        return await self._write(
            "DELETE", self._path("rules", object_id),
            response_type=DeleteResponse, options=options,
        )

    async def clear_rules(
        self, forward_to_replicas: bool = False, options: RequestOptions | None = None
    ) -> UpdatedAtResponse:
        options = self._with_flag(options, "forwardToReplicas", forward_to_replicas)
        return await self._write(
            "POST", self._path("rules", "clear"),
            response_type=UpdatedAtResponse, options=options,
        )

    async def browse_rules(
        self, hits_per_page: int = 1000, options: RequestOptions | None = None
    ) -> AsyncIterator[dict[str, Any]]:
        """逐页遍历全部规则"""
        async for hit in self._browse(self.search_rules, hits_per_page, options):
            yield hit

    # ==================== 同义词 ====================

    async def get_synonym(
        self, object_id: str, options: RequestOptions | None = None
    ) -> dict[str, Any]:
        return await self._read(
            "GET", self._path("synonyms", object_id), options=options
        )

    async def search_synonyms(
        self, query: dict[str, Any] | None = None, options: RequestOptions | None = None
    ) -> SearchResult:
        return await self._read(
            "POST", self._path("synonyms", "search"), query or {"query": ""},
            SearchResult, options,
        )

    async def save_synonym(
        self,
        synonym: dict[str, Any],
        forward_to_replicas: bool = False,
        options: RequestOptions | None = None,
    ) -> UpdatedAtResponse:
        object_id = _require_object_id(synonym)
        options = self._with_flag(options, "forwardToReplicas", forward_to_replicas)
        return await self._write(
            "PUT", self._path("synonyms", object_id), synonym, UpdatedAtResponse, options
        )

    async def save_synonyms(
        self,
        synonyms: Iterable[dict[str, Any]],
        forward_to_replicas: bool = False,
        replace_existing_synonyms: bool = False,
        options: RequestOptions | None = None,
    ) -> UpdatedAtResponse:
        options = self._with_flag(options, "forwardToReplicas", forward_to_replicas)
        options = options.with_query_parameter(
            "replaceExistingSynonyms", replace_existing_synonyms
        )
        return await self._write(
            "POST", self._path("synonyms", "batch"), list(synonyms),
            UpdatedAtResponse, options,
        )

    async def replace_all_synonyms(
        self,
        synonyms: Iterable[dict[str, Any]],
        forward_to_replicas: bool = False,
        options: RequestOptions | None = None,
    ) -> UpdatedAtResponse:
        return await self.save_synonyms(
            synonyms, forward_to_replicas, replace_existing_synonyms=True, options=options
        )

    async def delete_synonym(
        self,
        object_id: str,
        forward_to_replicas: bool = False,
        options: RequestOptions | None = None,
    ) -> DeleteResponse:
        options = self._with_flag(options, "forwardToReplicas", forward_to_replicas)
        return await self._write(
            "DELETE", self._path("synonyms", object_id),
            response_type=DeleteResponse, options=options,
        )

    async def clear_synonyms(
        self, forward_to_replicas: bool = False, options: RequestOptions | None = None
    ) -> UpdatedAtResponse:
        options = self._with_flag(options, "forwardToReplicas", forward_to_replicas)
        return await self._write(
            "POST", self._path("synonyms", "clear"),
            response_type=UpdatedAtResponse, options=options,
        )

    async def browse_synonyms(
        self, hits_per_page: int = 1000, options: RequestOptions | None = None
    ) -> AsyncIterator[dict[str, Any]]:
        """逐页遍历全部同义词"""
        async for hit in self._browse(self.search_synonyms, hits_per_page, options):
            yield hit

    async def _browse(
        self, search: Any, hits_per_page: int, options: RequestOptions | None
    ) -> AsyncIterator[dict[str, Any]]:
        page = 0
        while True:
            result: SearchResult = await search(
                {"query": "", "hitsPerPage": hits_per_page, "page": page}, options
            )
            for hit in result.hits:
                hit.pop("_highlightResult", None)
                yield hit
            page += 1
            if not result.hits or page >= result.nb_pages:
                break

    # ==================== 任务 ====================

    async def get_task(
        self, task_id: int, options: RequestOptions | None = None
    ) -> TaskStatusResponse:
        return await self.transport.poller.fetch_status(
            TaskHandle(task_id, self.name), options
        )

    async def wait_task(
        self,
        task_id: int,
        initial_delay: float | None = None,
        options: RequestOptions | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> PollState:
        """
        等待任务发布

        Returns:
            PollState.DONE 或 PollState.ABORTED (查询失败或被取消)
        """
        return await self.transport.poller.wait_for_completion(
            TaskHandle(task_id, self.name),
            initial_delay=initial_delay,
            options=options,
            cancel_event=cancel_event,
        )
