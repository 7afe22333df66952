"""
任务句柄定义

写操作成功后服务端返回一个任务 ID，表示变更已受理但尚未持久化。
TaskHandle 把任务 ID 和所属索引绑定在一起，供 TaskPoller 查询状态。

生命周期:
    写响应解码成功 → 创建 TaskHandle → TaskPoller 消费 → 等待结束后丢弃
    调用方也可以选择不等待，直接丢弃句柄。
"""

from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote


class PollState(str, Enum):
    """
    任务轮询状态

        POLLING ──(status == "published")──> DONE
           │
           └──(取消 / 查询失败)──> ABORTED
    """

    POLLING = "polling"
    DONE = "done"
    ABORTED = "aborted"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TaskHandle:
    """
    任务句柄

    Attributes:
        task_id: 服务端任务 ID
        index_name: 任务所属的索引名称
    """

    task_id: int
    index_name: str

    @property
    def status_path(self) -> str:
        """任务状态查询路径"""
        return f"/1/indexes/{quote(self.index_name, safe='')}/task/{self.task_id}"
