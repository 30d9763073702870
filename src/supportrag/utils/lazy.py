"""Lazily initialized, single-flight shared resources."""

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LazyResource(Generic[T]):
    """An expensive resource created on first use and then reused.

    Concurrent first callers await a single initialization. A failed
    initialization is not memoized, so the next caller tries again.

    Example:
        ```python
        model = LazyResource(load_model, name="embedding model")
        instance = await model.get()
        ```
    """

    def __init__(self, factory: Callable[[], Awaitable[T]], name: str = "resource"):
        """Initialize the lazy resource.

        Args:
            factory: Coroutine function that builds the resource
            name: Human-readable name used in log messages
        """
        self._factory = factory
        self.name = name
        self._value: Optional[T] = None
        self._lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._value is not None

    async def get(self) -> T:
        """Return the resource, creating it if needed."""
        if self._value is not None:
            return self._value

        async with self._lock:
            if self._value is None:
                logger.debug(f"Initializing {self.name}")
                self._value = await self._factory()
                logger.info(f"Initialized {self.name}")

        return self._value

    def reset(self) -> None:
        """Drop the memoized resource; the next get() rebuilds it."""
        self._value = None
