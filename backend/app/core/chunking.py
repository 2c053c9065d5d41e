"""Batching helpers for repository methods that take large id collections.

PostgreSQL caps a single statement at 65535 bind parameters, so methods that
expand a collection into an ``IN (...)`` clause or a multi-row insert are
wrapped to run once per bounded slice of that collection.
"""

from __future__ import annotations

import functools
import inspect
from typing import Any, Awaitable, Callable, Iterable

DATABASE_PARAMETER_CHUNK_SIZE = 65500


def chunks(values: Iterable[Any], size: int) -> list[list[Any]]:
    items = list(values)
    return [items[start:start + size] for start in range(0, len(items), size)]


def chunked(
    param_index: int = 0,
    chunk_size: int | None = None,
    merge: Callable[[list[Any]], Any] | None = None,
):
    """Split the collection at ``param_index`` (not counting ``self``) into batches.

    The collection may be passed positionally or by keyword. Collections that
    fit in one batch reach the wrapped method untouched. For larger ones the
    method is awaited once per batch, sequentially, and ``merge`` combines the
    per-batch results. Without ``merge`` the wrapper returns ``None``.

    ``chunk_size`` defaults to ``DATABASE_PARAMETER_CHUNK_SIZE``, read on every
    call.
    """
    if chunk_size is not None and chunk_size < 1:
        raise ValueError("chunk_size must be positive")

    def decorator(func: Callable[..., Awaitable[Any]]):
        signature = inspect.signature(func)
        param_name = list(signature.parameters)[param_index + 1]

        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            bound = signature.bind(self, *args, **kwargs)
            values = bound.arguments[param_name]
            size = chunk_size if chunk_size is not None else DATABASE_PARAMETER_CHUNK_SIZE
            if len(values) <= size:
                return await func(self, *args, **kwargs)

            results = []
            for batch in chunks(values, size):
                bound.arguments[param_name] = batch
                results.append(await func(*bound.args, **bound.kwargs))

            if merge is None:
                return None
            return merge(results)

        return wrapper

    return decorator


def _union(results: list[set]) -> set:
    merged: set = set()
    for result in results:
        merged.update(result)
    return merged


def chunked_set(param_index: int = 0, chunk_size: int | None = None):
    return chunked(param_index=param_index, chunk_size=chunk_size, merge=_union)
