"""Bounded-time execution of storage calls.

Store calls run on a shared worker pool and the caller waits at most ``timeout``
seconds. A call that outlives its timeout keeps running to completion in the pool;
only the caller stops waiting.
"""
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from threading import Lock
from typing import Any, Callable, Optional, TypeVar

from alumni_api.core.exceptions import ContentServiceException, StorageUnavailableError
from alumni_api.core.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = Lock()


def configure_storage_pool(max_workers: int) -> None:
    """Replace the worker pool. Running calls on the old pool are left to finish."""
    global _executor
    with _executor_lock:
        old = _executor
        _executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="storage")
    if old is not None:
        old.shutdown(wait=False)


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="storage")
        return _executor


def call_storage(operation: str, fn: Callable[..., T], *args: Any, timeout: float, **kwargs: Any) -> T:
    """
    Run a storage call under a timeout.

    Application exceptions raised by the call (not found, validation, conflict)
    propagate unchanged. Timeouts and any other failure surface as
    StorageUnavailableError.

    Args:
        operation: Short description used in logs and error details
        fn: The storage callable
        timeout: Seconds the caller is willing to wait
    """
    future = _get_executor().submit(fn, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        logger.error(f"Storage call timed out after {timeout}s: {operation}")
        raise StorageUnavailableError(
            "Storage did not respond in time. Please try again later.",
            error_code="STORAGE_TIMEOUT",
            details={"operation": operation, "timeout_seconds": timeout}
        )
    except ContentServiceException:
        raise
    except Exception as e:
        logger.exception(f"Storage call failed: {operation}")
        raise StorageUnavailableError(
            "Storage is unavailable. Please try again later.",
            error_code="STORAGE_UNAVAILABLE",
            details={"operation": operation, "type": type(e).__name__}
        ) from e
