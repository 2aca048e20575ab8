"""Caller-driven cancellation of in-flight collaborator calls."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Coroutine
from typing import Any, TypeVar

T = TypeVar("T")


class SignalCancelled(Exception):
    """The caller's cancel event fired before the call finished.

    Internal: public entry points translate it into a benign ``None``.
    """


async def run_cancellable(coro: Coroutine[Any, Any, T], cancel: asyncio.Event | None) -> T:
    """Await *coro* unless *cancel* is set first.

    On cancellation the underlying task is cancelled and awaited so no
    request outlives the call, then :class:`SignalCancelled` is raised.
    """
    if cancel is None:
        return await coro
    if cancel.is_set():
        coro.close()
        raise SignalCancelled

    work = asyncio.ensure_future(coro)
    signal = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({work, signal}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        signal.cancel()
        if not work.done():
            work.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await work

    if work.cancelled():
        raise SignalCancelled
    return work.result()
