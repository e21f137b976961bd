"""
Uniform primary/fallback handling for best-effort stages.
"""

import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def with_fallback(
    primary: Callable[[], Awaitable[T]],
    fallback_factory: Callable[[R], T],
    classify: Optional[Callable[[Exception], R]] = None,
    label: str = "operation",
) -> T:
    """
    Await ``primary()``; if it raises, classify the exception and return
    ``fallback_factory(classification)`` instead.

    Cancellation is not intercepted.
    """
    try:
        return await primary()
    except Exception as exc:
        reason: Any = classify(exc) if classify else exc
        logger.warning(f"{label} failed, using fallback ({reason}): {exc}")
        return fallback_factory(reason)
