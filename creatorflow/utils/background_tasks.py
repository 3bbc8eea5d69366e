"""
Safe background task execution with error handling.

Remote writes run as fire-and-forget asyncio tasks. This module:
- Logs failures with stack traces instead of losing them
- Keeps task references so they are not garbage collected mid-flight
- Lets shutdown code wait for everything still running
"""

import asyncio
import logging
from typing import Any, Coroutine, Set

logger = logging.getLogger(__name__)

# Track active tasks to prevent garbage collection
_active_background_tasks: Set[asyncio.Task] = set()


async def safe_background_task(coro: Coroutine, task_name: str) -> Any:
    """
    Wrapper for background tasks with error handling.

    Returns the coroutine result, or None if it raised.
    """
    try:
        result = await coro
        logger.debug(f"Background task completed: {task_name}")
        return result
    except Exception as e:
        logger.error(f"Background task failed: {task_name} - {e}", exc_info=True)
        return None


def create_safe_task(coro: Coroutine, task_name: str) -> asyncio.Task:
    """
    Create a tracked background task with error handling.

    Example:
        task = create_safe_task(
            store_write(),
            "insert-project-3f2a"
        )
    """
    task = asyncio.create_task(safe_background_task(coro, task_name))

    _active_background_tasks.add(task)
    task.add_done_callback(_active_background_tasks.discard)

    logger.debug(f"Created safe background task: {task_name}")
    return task


def pending_background_tasks() -> int:
    """Number of background tasks still running."""
    return len(_active_background_tasks)


async def drain_background_tasks() -> None:
    """Wait for every tracked background task to finish."""
    while _active_background_tasks:
        await asyncio.gather(*list(_active_background_tasks), return_exceptions=True)
