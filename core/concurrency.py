"""
Run blocking store calls without stalling the event loop

The selection engine ticks on the event loop; SQLAlchemy calls are blocking,
so the roster store hands them to a small thread pool and awaits the result.
The pool is created on first use and released by shutdown_executor() when the
app stops.
"""
from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Optional

from database import get_settings

_EXECUTOR: Optional[ThreadPoolExecutor] = None
_EXECUTOR_LOCK = threading.Lock()


def _get_executor() -> ThreadPoolExecutor:
    global _EXECUTOR
    with _EXECUTOR_LOCK:
        if _EXECUTOR is None:
            _EXECUTOR = ThreadPoolExecutor(
                max_workers=max(1, get_settings().store_max_workers),
                thread_name_prefix="roster-store",
            )
        return _EXECUTOR


def shutdown_executor(wait: bool = False) -> None:
    global _EXECUTOR
    with _EXECUTOR_LOCK:
        executor, _EXECUTOR = _EXECUTOR, None
    if executor is not None:
        executor.shutdown(wait=wait)


def executor_active() -> bool:
    return _EXECUTOR is not None


async def run_blocking(func: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Any:
    loop = asyncio.get_running_loop()
    bound = partial(func, *args, **kwargs)
    return await loop.run_in_executor(_get_executor(), bound)
