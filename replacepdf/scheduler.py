"""Coalescing page-render scheduler.

At most one render runs at a time.  Requests that arrive while a render is
in flight overwrite a single pending slot, so once the current render
finishes only the most recently requested page is drawn next.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Rendering:
    page: int


@dataclass(frozen=True)
class RenderingWithPending:
    page: int
    pending: int


RenderState = Union[Idle, Rendering, RenderingWithPending]

IDLE = Idle()


def on_request(state: RenderState, page: int) -> tuple[RenderState, Optional[int]]:
    """Apply a "show page" request; returns (new_state, page_to_start)."""
    if isinstance(state, Idle):
        return Rendering(page), page
    if isinstance(state, Rendering):
        return RenderingWithPending(state.page, page), None
    return RenderingWithPending(state.page, page), None


def on_complete(state: RenderState) -> tuple[RenderState, Optional[int]]:
    """Apply a render completion; returns (new_state, page_to_start)."""
    if isinstance(state, RenderingWithPending):
        return Rendering(state.pending), state.pending
    if isinstance(state, Rendering):
        return IDLE, None
    raise RuntimeError("Render completed while no render was in flight")


class RenderScheduler:
    """Drives the render state machine on the running asyncio loop.

    ``render`` is awaited once per page actually drawn.  A render failure is
    logged, does not stop the pending page from being drawn, and is re-raised
    from the next ``wait_idle()``.
    """

    def __init__(self, render: Callable[[int], Awaitable[None]]):
        self._render = render
        self._state: RenderState = IDLE
        self._task: asyncio.Task | None = None
        self._idle = asyncio.Event()
        self._idle.set()
        self._error: BaseException | None = None

    @property
    def state(self) -> RenderState:
        return self._state

    @property
    def busy(self) -> bool:
        return not isinstance(self._state, Idle)

    def request_render(self, page: int) -> None:
        self._state, start = on_request(self._state, page)
        if start is not None:
            self._start(start)
        else:
            logger.debug("Render busy, page %d queued as pending", page)

    def on_render_complete(self) -> None:
        self._state, start = on_complete(self._state)
        if start is not None:
            self._start(start)
        else:
            self._idle.set()

    def _start(self, page: int) -> None:
        self._idle.clear()
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(page))

    async def _run(self, page: int) -> None:
        logger.debug("Rendering page %d", page)
        try:
            await self._render(page)
        except Exception as exc:
            logger.error("Rendering page %d failed: %s", page, exc)
            self._error = exc
        finally:
            self.on_render_complete()

    async def wait_idle(self) -> None:
        """Wait until no render is in flight or pending."""
        await self._idle.wait()
        if self._error is not None:
            error, self._error = self._error, None
            raise error
