# ==============================================================================
# Retry Configuration
# ==============================================================================
"""
Retry decorators for PostgreSQL connections.

Pipeline runs and schema setup use the standard policy. The reachability
ping behind `db init` uses the light policy so a missing server is reported
within seconds.

Standard retry: 10 attempts, backoff capped at 32s (~60s total)
Light retry: 3 attempts (~7s total)
"""

import logging
from typing import Tuple, Type

import psycopg2
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

# ==============================================================================
# Retry Constants
# ==============================================================================

RETRY_ATTEMPTS = 10
RETRY_ATTEMPTS_LIGHT = 3
RETRY_WAIT_MIN = 1  # seconds
RETRY_WAIT_MAX = 32  # seconds

# Errors raised while the server is starting, restarting or unreachable
POSTGRES_RETRY_EXCEPTIONS = (
    psycopg2.OperationalError,
    psycopg2.InterfaceError,
)

ExceptionTypes = Tuple[Type[Exception], ...]


def log_retry_attempt(logger: logging.Logger, attempts: int = RETRY_ATTEMPTS):
    """Return a tenacity before_sleep callback that logs each failed attempt."""

    def _log_retry(retry_state: RetryCallState) -> None:
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Retry attempt %d/%d after error: %s",
            retry_state.attempt_number,
            attempts,
            exception,
        )

    return _log_retry


def _build_retry(attempts: int, exception_types: ExceptionTypes, logger: logging.Logger):
    return retry(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=RETRY_WAIT_MIN, max=RETRY_WAIT_MAX),
        retry=retry_if_exception_type(exception_types),
        before_sleep=log_retry_attempt(logger, attempts),
        reraise=True,
    )


# ==============================================================================
# Retry Decorators
# ==============================================================================


def retry_standard(exception_types: ExceptionTypes, logger: logging.Logger):
    """
    Retry decorator for connections a pipeline run cannot proceed without.

    Example:
        @retry_standard(POSTGRES_RETRY_EXCEPTIONS, logger)
        def connect(self):
            ...
    """
    return _build_retry(RETRY_ATTEMPTS, exception_types, logger)


def retry_light(exception_types: ExceptionTypes, logger: logging.Logger):
    """Retry decorator for quick reachability checks."""
    return _build_retry(RETRY_ATTEMPTS_LIGHT, exception_types, logger)
