"""
Operation executor: one wrapper for the validation, logging, timing and
timeout handling every service call needs.
"""

import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, Callable, Optional, TypeVar

from normaize.config import Settings, settings as default_settings
from normaize.utils.exceptions import AnalysisError, AppException, OperationTimeoutError
from normaize.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class OperationExecutor:
    """
    Runs operations on a shared worker pool with a time budget.

    A timed-out operation is abandoned: the caller gets OperationTimeoutError
    and never a partial result.
    """

    def __init__(self, config: Optional[Settings] = None) -> None:
        self.config = config or default_settings
        self._pool = ThreadPoolExecutor(
            max_workers=self.config.MAX_WORKERS,
            thread_name_prefix="normaize-op",
        )

    def execute(
        self,
        name: str,
        operation: Callable[[], T],
        validate: Optional[Callable[[], Any]] = None,
        timeout: Optional[float] = None,
    ) -> T:
        timeout = timeout if timeout is not None else self.config.OPERATION_TIMEOUT_SECONDS
        logger.info(f"Starting operation: {name}")
        started = time.perf_counter()

        try:
            if validate is not None:
                validate()
            future = self._pool.submit(operation)
            try:
                result = future.result(timeout=timeout)
            except FutureTimeoutError:
                future.cancel()
                logger.error(f"Operation {name} timed out after {timeout}s")
                raise OperationTimeoutError(f"Operation '{name}' timed out after {timeout} seconds.")
        except AppException as e:
            logger.warning(f"Operation {name} failed: {e.message}")
            raise
        except Exception as e:
            logger.error(f"Operation {name} failed: {type(e).__name__}: {e}", exc_info=True)
            raise AnalysisError(f"Operation '{name}' failed: {e}") from e

        elapsed_ms = (time.perf_counter() - started) * 1000.0
        logger.info(f"Operation {name} completed in {elapsed_ms:.1f}ms")
        return result
