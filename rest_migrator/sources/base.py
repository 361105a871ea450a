"""Source supplier contract."""

import inspect
from typing import Any, AsyncIterator, Callable, Iterable, Optional

# Zero-argument (or one config-argument) callable returning a sync or async iterable
SourceFactory = Callable[..., Any]


async def open_source(
    factory: SourceFactory,
    options: Optional[Any] = None
) -> AsyncIterator[Any]:
    """
    Call a source factory and iterate what it returns asynchronously.

    Args:
        factory: Source factory, or an already-created iterable
        options: Single argument passed to the factory when given

    Yields:
        Source records, in source order
    """
    if callable(factory):
        source = factory(options) if options is not None else factory()
    else:
        source = factory

    if inspect.isawaitable(source):
        source = await source

    if hasattr(source, "__aiter__"):
        async for item in source:
            yield item
    elif isinstance(source, Iterable):
        for item in source:
            yield item
    else:
        raise TypeError(f"Source factory returned a non-iterable {type(source).__name__}")


def from_items(items: Iterable[Any]) -> SourceFactory:
    """Wrap an in-memory collection as a source factory."""
    items = list(items)

    def factory():
        return iter(items)

    return factory
