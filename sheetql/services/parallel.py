from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import Executor
from functools import reduce
from typing import TypeVar

"""Split-apply-combine primitive.

Input is split into fixed-size contiguous chunks, ``apply`` maps each chunk to
a partial result (optionally on an executor) and the partials are combined
with a left fold starting at ``identity``. ``combine`` must be associative
with ``identity`` as its neutral element; then the result does not depend
on the chunk size or on whether an executor was used.
"""

__all__ = [
    "chunked",
    "split_apply_combine",
]

T = TypeVar("T")
R = TypeVar("R")


def chunked(items: Sequence[T], chunk_size: int) -> Iterator[Sequence[T]]:
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive: {chunk_size}")
    for start in range(0, len(items), chunk_size):
        yield items[start:start + chunk_size]


def split_apply_combine(
    items: Sequence[T],
    apply: Callable[[Sequence[T]], R],
    combine: Callable[[R, R], R],
    identity: R,
    chunk_size: int,
    executor: Executor | None = None,
) -> R:
    chunks = list(chunked(items, chunk_size))
    if executor is None:
        partials = [apply(c) for c in chunks]
    else:
        # map は入力順で結果を返す (fold 順序が安定)
        partials = list(executor.map(apply, chunks))
    return reduce(combine, partials, identity)
