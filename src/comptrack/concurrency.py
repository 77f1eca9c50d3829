from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from contextvars import copy_context
from typing import Any, Callable


def run_tasks_fail_fast(
    tasks: list[Callable[[], Any]],
    *,
    max_workers: int,
) -> list[Any]:
    """Run a batch of independent tasks and wait for all of them.

    Results come back in submission order. The first failure cancels the tasks
    that have not started yet and is re-raised once the running ones finish.
    """
    if not tasks:
        return []
    if max_workers <= 1 or len(tasks) == 1:
        return [task() for task in tasks]

    results: dict[int, Any] = {}
    with ThreadPoolExecutor(max_workers=min(max_workers, len(tasks))) as executor:
        future_to_index = {
            executor.submit(copy_context().run, task): index
            for index, task in enumerate(tasks)
        }
        try:
            for future in as_completed(future_to_index):
                results[future_to_index[future]] = future.result()
        except Exception:
            for future in future_to_index:
                future.cancel()
            raise

    return [results[index] for index in range(len(tasks))]
