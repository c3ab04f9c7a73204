"""
Task Group

Spawns one thread per item, waits for all of them, and collects the
per-item results in input order.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class TaskResult(Generic[T, R]):
    """Value or exception produced by one task."""
    item: T
    value: Optional[R] = None
    error: Optional[BaseException] = None
    
    @property
    def ok(self) -> bool:
        return self.error is None


class TaskGroup:
    """
    Fan-out / join-all helper.
    
    The pool is sized to the number of items, so every task starts at once.
    run() returns only after every task has finished; a task that raises
    does not cancel its siblings.
    
    Example:
        results = TaskGroup("check").run(check_one, services)
    """
    
    def __init__(self, name: str = "task"):
        self.name = name
    
    def run(self, fn: Callable[[T], R], items: Sequence[T]) -> List[TaskResult]:
        if not items:
            return []
        
        with ThreadPoolExecutor(
            max_workers=len(items), thread_name_prefix=self.name
        ) as pool:
            futures = [pool.submit(fn, item) for item in items]
        # Leaving the with-block waits for every future
        
        results: List[TaskResult] = []
        for item, future in zip(items, futures):
            error = future.exception()
            if error is not None:
                logger.error(f"Task {self.name} raised {type(error).__name__}: {error}")
                results.append(TaskResult(item=item, error=error))
            else:
                results.append(TaskResult(item=item, value=future.result()))
        return results
