"""
读写锁

HostRegistry 的主机状态读多写少：每次逻辑调用开始时都要列出候选主机 (读)，
只有尝试结束时才更新健康状态 (写)。读写锁允许并发列出主机，写入时独占。

特性:
    - 多个读者可同时持有读锁
    - 写者需要等待所有读者释放
    - 有待处理的写者时，新读者需要等待（防止写者饥饿）

锁只保护内存中的字段修改，持有时间极短，绝不跨越网络等待 (await)。

使用方式:
    lock = RWLock()

    with lock.read_lock():
        hosts = [h for h in self._hosts if h.is_up]

    with lock.write_lock():
        host.is_up = False
"""

import threading
from typing import Any


class RWLock:
    """写优先的读写锁"""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0          # 当前持有读锁的数量
        self._writer = False       # 是否有写者持有锁
        self._pending_writers = 0  # 等待写锁的数量

    def read_acquire(self) -> None:
        with self._cond:
            while self._writer or self._pending_writers > 0:
                self._cond.wait()
            self._readers += 1

    def read_release(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def write_acquire(self) -> None:
        with self._cond:
            self._pending_writers += 1
            try:
                while self._readers > 0 or self._writer:
                    self._cond.wait()
            finally:
                self._pending_writers -= 1
            self._writer = True

    def write_release(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    class _Guard:
        """锁上下文管理器"""

        def __init__(self, acquire, release):
            self._acquire = acquire
            self._release = release

        def __enter__(self) -> "RWLock._Guard":
            self._acquire()
            return self

        def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
            self._release()

    def read_lock(self) -> "RWLock._Guard":
        return self._Guard(self.read_acquire, self.read_release)

    def write_lock(self) -> "RWLock._Guard":
        return self._Guard(self.write_acquire, self.write_release)
