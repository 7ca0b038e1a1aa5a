"""按键去抖调度器"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Set

logger = logging.getLogger(__name__)

class Debouncer:
    """每个key最多保留一个待触发的调用。

    再次调度同一个key会取消尚未触发的调用；已经触发的调用不会被取消，
    会一直执行到结束。
    """

    def __init__(self):
        self._pending: Dict[str, asyncio.Task] = {}
        self._running: Set[asyncio.Task] = set()

    def schedule(self, key: str, delay: float, factory: Callable[[], Awaitable[None]]) -> asyncio.Task:
        self.cancel(key)
        task = asyncio.get_running_loop().create_task(self._run(key, delay, factory))
        self._pending[key] = task
        return task

    def cancel(self, key: str) -> bool:
        """取消待触发的调用，返回是否有调用被取消"""
        task = self._pending.pop(key, None)
        if task is None:
            return False
        task.cancel()
        return True

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def _run(self, key: str, delay: float, factory: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(delay)

        current = asyncio.current_task()
        if self._pending.get(key) is current:
            del self._pending[key]
        self._running.add(current)
        try:
            await factory()
        except Exception:
            logger.exception("Debounced call %s failed", key)
        finally:
            self._running.discard(current)

    async def drain(self) -> None:
        """等待所有待触发和执行中的调用完成"""
        while self._pending or self._running:
            await asyncio.gather(*self._pending.values(), *self._running, return_exceptions=True)

    async def close(self) -> None:
        """取消所有待触发的调用，并等待执行中的调用结束"""
        for key in list(self._pending):
            self.cancel(key)
        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)
