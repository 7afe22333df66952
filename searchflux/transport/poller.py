"""
任务完成轮询器

写操作在服务端是异步生效的：响应先返回 taskID，数据随后才对查询可见。
TaskPoller 周期性查询任务状态，直到状态变为 "published"。

状态流转:
    ┌──────────┐  status == "published"   ┌──────────┐
    │ POLLING  │ ───────────────────────> │  DONE    │
    │          │                          └──────────┘
    │          │  传输错误 / 取消           ┌──────────┐
    │          │ ───────────────────────> │ ABORTED  │
    └──────────┘                          └──────────┘

等待间隔:
    从 initial_delay 开始，每次查询后翻倍，封顶 max_delay (默认 5 秒)。
    例: initial_delay=0.1 → 0.1, 0.2, 0.4, 0.8, 1.6, 3.2, 5.0, 5.0, ...
    不限制查询次数，调用方通过 cancel_event 或取消协程来放弃等待。

失败语义:
    - 查询出错 (TransportUnavailableError / RequestRejectedError) 时放弃，
      返回 ABORTED，不抛出异常
    - cancel_event 被设置时静默放弃，返回 ABORTED
    - 协程被取消时视为放弃，CancelledError 继续向上传播
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable

from ..models.errors import SearchFluxError
from ..models.host import CallType
from ..models.options import RequestOptions
from ..models.responses import TaskStatusResponse
from ..models.task import PollState, TaskHandle

if TYPE_CHECKING:
    from .executor import HttpTransport


Sleep = Callable[[float], Awaitable[None]]


class TaskPoller:
    """
    任务完成轮询器

    Attributes:
        transport: 用于查询任务状态的传输执行器
        initial_delay: 默认初始等待间隔 (秒)
        max_delay: 等待间隔上限 (秒)
    """

    def __init__(
        self,
        transport: "HttpTransport",
        initial_delay: float = 0.1,
        max_delay: float = 5.0,
        sleep: Sleep | None = None,
    ):
        """
        Args:
            transport: 传输执行器
            initial_delay: 默认初始等待间隔 (秒)
            max_delay: 等待间隔上限 (秒)
            sleep: 等待函数，默认 asyncio.sleep，测试时可注入
        """
        self.transport = transport
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self._sleep = sleep or asyncio.sleep

    def next_delay(self, delay: float) -> float:
        """翻倍并封顶"""
        return min(delay * 2, self.max_delay)

    async def fetch_status(
        self, handle: TaskHandle, options: RequestOptions | None = None
    ) -> TaskStatusResponse:
        """查询一次任务状态 (READ 调用)"""
        return await self.transport.execute(
            "GET",
            handle.status_path,
            CallType.READ,
            response_type=TaskStatusResponse,
            options=options,
        )

    async def _wait(self, delay: float, cancel_event: asyncio.Event | None) -> bool:
        """
        等待 delay 秒

        Returns:
            True 表示等待期间 cancel_event 被设置
        """
        if cancel_event is None:
            await self._sleep(delay)
            return False

        if cancel_event.is_set():
            return True

        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    async def wait_for_completion(
        self,
        handle: TaskHandle,
        initial_delay: float | None = None,
        options: RequestOptions | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> PollState:
        """
        等待任务发布

        Args:
            handle: 任务句柄
            initial_delay: 初始等待间隔 (秒)，默认使用构造参数
            options: 查询任务状态时使用的请求选项
            cancel_event: 设置后放弃等待

        Returns:
            PollState.DONE 或 PollState.ABORTED

        Raises:
            ValueError: initial_delay 不是正数
        """
        if initial_delay is not None and initial_delay <= 0:
            raise ValueError(f"initial_delay 必须为正数: {initial_delay}")

        delay = self.initial_delay if initial_delay is None else initial_delay
        delay = min(delay, self.max_delay)
        state = PollState.POLLING
        polls = 0

        logging.debug(f"开始等待任务 {handle.task_id} (索引 {handle.index_name})")

        try:
            while state == PollState.POLLING:
                if cancel_event is not None and cancel_event.is_set():
                    state = PollState.ABORTED
                    break

                try:
                    status = await self.fetch_status(handle, options)
                except SearchFluxError as e:
                    logging.warning(
                        f"查询任务 {handle.task_id} 状态失败，放弃等待: {e}"
                    )
                    state = PollState.ABORTED
                    break

                polls += 1
                if status.is_published:
                    state = PollState.DONE
                    break

                if await self._wait(delay, cancel_event):
                    state = PollState.ABORTED
                    break
                delay = self.next_delay(delay)
        except asyncio.CancelledError:
            logging.debug(f"等待任务 {handle.task_id} 被取消")
            raise

        if state == PollState.DONE:
            logging.debug(f"任务 {handle.task_id} 已发布 (查询 {polls} 次)")
        else:
            logging.debug(f"任务 {handle.task_id} 放弃等待 (查询 {polls} 次)")
        return state
