"""Per-request business context for multi-tenant isolation.

Every data access runs on behalf of exactly one business. The active
business is carried in a ``ContextVar`` so each asyncio task (and therefore
each web request or webhook delivery) sees only its own tenant, and tool
operations refuse to touch a business other than the one in context.
"""

import inspect
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class BusinessContextError(Exception):
    """Missing business context or an operation on another tenant's data."""

    pass


@dataclass(frozen=True)
class BusinessContext:
    """The business (and optionally user) an operation acts for."""

    business_id: str
    user_id: str | None = None
    role: str | None = None


_current_context: ContextVar[BusinessContext | None] = ContextVar(
    "equiledger_business_context", default=None
)


def set_business_context(context: BusinessContext) -> Token[BusinessContext | None]:
    """Set the business context for the current task.

    Returns a token for ``reset_business_context``.
    """
    return _current_context.set(context)


def reset_business_context(token: Token[BusinessContext | None]) -> None:
    _current_context.reset(token)


def get_business_context() -> BusinessContext | None:
    return _current_context.get()


@contextmanager
def business_context(
    business_id: str,
    user_id: str | None = None,
    role: str | None = None,
) -> Iterator[BusinessContext]:
    """Run a block on behalf of ``business_id``.

    The id is also bound into structlog's contextvars so every log line in
    the block carries it. Both are restored on exit.
    """
    context = BusinessContext(business_id=business_id, user_id=user_id, role=role)
    token = set_business_context(context)
    log_tokens = structlog.contextvars.bind_contextvars(business_id=business_id)
    try:
        yield context
    finally:
        structlog.contextvars.reset_contextvars(**log_tokens)
        reset_business_context(token)


def with_business_context(operation: Callable[[BusinessContext], T]) -> T:
    """Call ``operation`` with the active context, failing if none is set."""
    context = get_business_context()
    if context is None:
        raise BusinessContextError(
            "No business context found. Call set_business_context() first."
        )
    return operation(context)


async def safe_db_operation(
    business_id: str,
    operation: Callable[[], Awaitable[T] | T],
) -> T:
    """Execute ``operation`` inside a context for ``business_id``.

    Accepts plain and async callables.
    """
    with business_context(business_id):
        result: Any = operation()
        if inspect.isawaitable(result):
            result = await result
        return result


def verify_business_context(business_id: str) -> None:
    """Raise unless the active context is for ``business_id``."""
    context = get_business_context()
    if context is None or context.business_id != business_id:
        logger.warning(
            "business_context_mismatch",
            requested=business_id,
            active=context.business_id if context else None,
        )
        raise BusinessContextError("Business context mismatch. Operation not allowed.")
