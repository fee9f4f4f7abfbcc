"""
Task runner: submits a task to the session and reduces its event stream to text.
"""
from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import aclosing
from typing import Any, Callable, List, Optional

from ..config import FALLBACK_RESULT
from ..errors import StreamError, TaskExecutionError
from ..tools.events import Event, EventKind, Task

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Event], None]


def dot_progress(event: Event) -> None:
    """Liveness marker: one dot per event on stdout."""
    sys.stdout.write(".")
    sys.stdout.flush()


async def run_task(
    session: Any,
    instruction: str,
    model_id: str,
    progress: Optional[ProgressCallback] = dot_progress,
    timeout: Optional[float] = None,
    fallback: str = FALLBACK_RESULT,
) -> str:
    """
    Execute one task and return the concatenated text fragments, or
    `fallback` when the agent emitted none.

    There is no deadline unless `timeout` is given; on expiry the event
    stream is closed and TaskExecutionError is raised.
    """
    collect = _collect(session, Task(instruction=instruction, model_id=model_id), progress, fallback)
    if timeout is None:
        return await collect
    try:
        return await asyncio.wait_for(collect, timeout)
    except asyncio.TimeoutError as exc:
        raise TaskExecutionError(f"task exceeded the {timeout:g}s deadline") from exc


async def _collect(session: Any, task: Task, progress: Optional[ProgressCallback], fallback: str) -> str:
    parts: List[str] = []
    count = 0
    try:
        async with aclosing(session.submit(task)) as events:
            async for event in events:
                count += 1
                if progress is not None:
                    progress(event)
                if event.kind == EventKind.TEXT and event.content:
                    parts.append(event.content)
    except TaskExecutionError:
        raise
    except Exception as exc:
        raise StreamError(f"event stream ended abnormally after {count} events: {exc}") from exc
    logger.debug("Task consumed %d events, %d text fragments", count, len(parts))
    return "".join(parts) or fallback
