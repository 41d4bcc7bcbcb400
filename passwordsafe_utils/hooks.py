"""Hook system for API calls.

Hooks are plain callables receiving a call context object. API clients keep
built-in hooks (metrics, latency, logging) and merge user supplied hooks on
top of them.
"""

import contextlib
from collections.abc import Callable, Generator, Iterable
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Hooks[T]:
    """Pre, post and error hooks for a call context of type T."""

    pre_hooks: list[Callable[[T], None]] = field(default_factory=list)
    post_hooks: list[Callable[[T], None]] = field(default_factory=list)
    error_hooks: list[Callable[[T], None]] = field(default_factory=list)

    def merge(self, other: "Hooks[T] | None") -> "Hooks[T]":
        """Return new hooks running self's hooks before other's."""
        if other is None:
            return Hooks(
                pre_hooks=list(self.pre_hooks),
                post_hooks=list(self.post_hooks),
                error_hooks=list(self.error_hooks),
            )
        return Hooks(
            pre_hooks=[*self.pre_hooks, *other.pre_hooks],
            post_hooks=[*self.post_hooks, *other.post_hooks],
            error_hooks=[*self.error_hooks, *other.error_hooks],
        )


@contextlib.contextmanager
def invoke_with_hooks[T](
    context: T,
    pre_hooks: Iterable[Callable[[T], None]] | None = None,
    post_hooks: Iterable[Callable[[T], None]] | None = None,
    error_hooks: Iterable[Callable[[T], None]] | None = None,
) -> Generator[None, Any, None]:
    """Run hooks around the wrapped block.

    Error hooks run when the block raises; the exception is re-raised.
    Post hooks always run.

    Example:
        >>> with invoke_with_hooks(ctx, pre_hooks=[log_hook]):
        ...     response = client.get("/")
    """
    for hook in pre_hooks or []:
        hook(context)
    try:
        yield
    except Exception:
        for hook in error_hooks or []:
            hook(context)
        raise
    finally:
        for hook in post_hooks or []:
            hook(context)
