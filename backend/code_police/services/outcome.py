"""Explicit results for best-effort steps.

Hard-fail steps of the pipeline let exceptions propagate. Best-effort
steps go through :func:`attempt`, which logs the failure and hands the
caller an :class:`Outcome` to inspect instead of an exception.
"""

import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Value of a best-effort step, or the error it raised."""

    step: str
    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def value_or(self, default: T) -> T:
        return self.value if self.ok and self.value is not None else default


async def attempt(step: str, awaitable: Awaitable[T]) -> Outcome[T]:
    """Await a best-effort step, capturing any exception it raises."""
    try:
        return Outcome(step=step, value=await awaitable)
    except Exception as e:
        logger.warning(f"{step} failed: {e}")
        return Outcome(step=step, error=e)
