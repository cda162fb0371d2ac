"""
Retry policy shared by every per-exchange stage of a cycle
"""

from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from exchange_adapters.base_models import is_retryable_error


def exchange_retrying(max_attempts: int, wait_seconds: float, log=None) -> AsyncRetrying:
    """
    Build the retry controller for one exchange's fetch.

    Retries adapter errors other than ``UnsupportedOperationError`` up to
    ``max_attempts`` total attempts, then re-raises the last error.
    """

    def _before_sleep(retry_state) -> None:
        if log is None:
            return
        error = retry_state.outcome.exception()
        log.warning(
            f"Attempt {retry_state.attempt_number}/{max_attempts} failed: {error}; "
            f"retrying in {wait_seconds:.1f}s"
        )

    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(wait_seconds),
        retry=retry_if_exception(is_retryable_error),
        before_sleep=_before_sleep,
        reraise=True,
    )
