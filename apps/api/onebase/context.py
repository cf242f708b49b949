from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token

CORRELATION_HEADER = "x-correlation-id"

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def set_correlation_id(value: str | None) -> Token[str | None]:
    return correlation_id_var.set(value)


def reset_correlation_id(token: Token[str | None]) -> None:
    correlation_id_var.reset(token)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


@contextmanager
def correlation_scope(value: str) -> Iterator[str]:
    """Bind ``value`` as the correlation id for log records emitted inside the block."""
    token = set_correlation_id(value)
    try:
        yield value
    finally:
        reset_correlation_id(token)
