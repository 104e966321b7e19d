"""Single-consumer operation queue for Identity Kit.

Runs submitted coroutine factories one at a time, in submission order, on a
single worker task bound to the running event loop.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from ..telemetry import get_logger

T = TypeVar("T")

Operation = Callable[[], Awaitable[Any]]


class SerialQueue:
    """FIFO queue that runs at most one operation at a time.

    Each submitted operation resolves its own future exactly once. If the
    caller stops waiting, the operation still runs to completion.
    """

    def __init__(self, name: str = "identity-kit.serial-queue") -> None:
        self.name = name
        self._queue: asyncio.Queue[tuple[Operation, asyncio.Future[Any]]] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._logger = get_logger()

    @property
    def pending(self) -> int:
        """Number of operations waiting to start."""
        return self._queue.qsize() if self._queue is not None else 0

    async def submit(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Enqueue an operation and wait for its result.

        Args:
            operation: Zero-argument callable returning the awaitable to run.

        Returns:
            The operation's result.

        Raises:
            Exception: Whatever the operation raised.
        """
        loop = asyncio.get_running_loop()
        queue = self._ensure_worker(loop)
        future: asyncio.Future[T] = loop.create_future()
        queue.put_nowait((operation, future))
        return await future

    async def aclose(self) -> None:
        """Stop the worker. Operations still queued are cancelled."""
        worker, queue = self._worker, self._queue
        self._worker = None
        self._queue = None
        self._loop = None

        if worker is not None and not worker.done():
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass

        if queue is not None:
            while not queue.empty():
                _, future = queue.get_nowait()
                future.cancel()

    def _ensure_worker(
        self,
        loop: asyncio.AbstractEventLoop,
    ) -> asyncio.Queue[tuple[Operation, asyncio.Future[Any]]]:
        if self._queue is None or self._loop is not loop:
            self._queue = asyncio.Queue()
            self._loop = loop
            self._worker = None
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._run(self._queue), name=self.name)
        return self._queue

    async def _run(
        self,
        queue: asyncio.Queue[tuple[Operation, asyncio.Future[Any]]],
    ) -> None:
        while True:
            operation, future = await queue.get()
            try:
                result = await operation()
            except asyncio.CancelledError:
                if not future.done():
                    future.cancel()
                raise
            except Exception as e:
                if future.done():
                    self._logger.debug(
                        "Abandoned operation failed",
                        queue=self.name,
                        error=str(e),
                    )
                else:
                    future.set_exception(e)
            except BaseException as e:
                if not future.done():
                    future.set_exception(e)
                # This worker stops; a new one drains the operations still queued
                if self._queue is queue:
                    self._worker = asyncio.get_running_loop().create_task(
                        self._run(queue),
                        name=self.name,
                    )
                raise
            else:
                if not future.done():
                    future.set_result(result)
            finally:
                queue.task_done()
