"""Ordered interceptor chains with first-result-wins semantics."""

import inspect
import logging
from typing import Any, Awaitable, Callable, Generic, Iterable, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

Interceptor = Callable[..., Union[T, None, Awaitable[Union[T, None]]]]


def as_list(value: Any) -> list:
    """Normalize a single interceptor, a list of them, or None to a list."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class InterceptorChain(Generic[T]):
    """Runs interceptors in registration order until one returns a result.

    Interceptors may be plain functions or coroutine functions. Returning
    ``None`` passes control to the next interceptor; the first non-``None``
    result is returned and the rest of the chain is skipped.
    """

    def __init__(self, interceptors: Iterable[Interceptor[T]] | None = None, name: str = "interceptor"):
        self._interceptors: list[Interceptor[T]] = list(interceptors or [])
        self.name = name

    def use(self, interceptor: Interceptor[T]) -> None:
        self._interceptors.append(interceptor)

    def __len__(self) -> int:
        return len(self._interceptors)

    async def try_handle(self, *args: Any, **kwargs: Any) -> T | None:
        for index, interceptor in enumerate(self._interceptors):
            result = interceptor(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            if result is not None:
                logger.debug(f"{self.name} #{index} handled the call")
                return result
        return None
