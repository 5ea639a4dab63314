"""Translation of storage failures into caller-facing errors."""

import logging
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar

from carpool.core.exceptions import InternalError, StoreError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def translate_store_errors(func: F) -> F:
    """Log store failures with context and re-raise them as InternalError.

    Validation errors raised by the wrapped operation pass through untouched.
    """

    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except StoreError as e:
            logger.error(
                "Store failure in %s (args=%s kwargs=%s): %s",
                func.__qualname__,
                args[1:],
                kwargs,
                e.detail,
                exc_info=True,
            )
            raise InternalError() from e

    return wrapper  # type: ignore[return-value]
