"""Per-service circuit breakers and the result-or-absent call guard."""

from __future__ import annotations

import logging
from collections.abc import Awaitable

from circuitbreaker import (  # pyright: ignore[reportUnknownVariableType]
    CircuitBreaker,
    CircuitBreakerError,
)

from defilens.constants import ERROR_TRUNCATION_CHARS
from defilens.resilience.errors import classify_error

logger = logging.getLogger(__name__)

# One breaker per remote service so a dead market API does not stop
# name resolution and vice versa.
_breaker_registry: dict[str, CircuitBreaker] = {}  # pyright: ignore[reportUnknownVariableType]


def get_breaker(
    service: str, *, failure_threshold: int, recovery_timeout: int
) -> CircuitBreaker:  # pyright: ignore[reportUnknownParameterType]
    """Get or create the circuit breaker for a remote service."""
    if service not in _breaker_registry:
        _breaker_registry[service] = CircuitBreaker(  # pyright: ignore[reportUnknownMemberType]
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            expected_exception=Exception,
            name=f"remote_{service}",
        )
    return _breaker_registry[service]


def reset_breakers() -> None:
    """Forget all breaker state (tests, configuration changes)."""
    _breaker_registry.clear()


async def guarded_call(
    breaker: CircuitBreaker,  # pyright: ignore[reportUnknownParameterType]
    awaitable: Awaitable[object],
) -> object:
    """Await ``awaitable`` while the breaker counts its failures.

    Raises CircuitBreakerError without awaiting when the breaker is
    open; the pending awaitable is closed so it never runs.
    """
    if breaker.opened:  # pyright: ignore[reportUnknownMemberType]
        close = getattr(awaitable, "close", None)
        if close is not None:
            close()
        raise CircuitBreakerError(breaker)  # pyright: ignore[reportUnknownArgumentType]
    with breaker:  # pyright: ignore[reportUnknownMemberType]
        return await awaitable


async def absent_on_error[T](
    awaitable: Awaitable[T],
    *,
    component: str,
    operation: str,
) -> T | None:
    """Await a remote call, converting any failure to ``None``.

    The failure is logged with its error class; nothing propagates.
    """
    try:
        return await awaitable
    except CircuitBreakerError:
        logger.warning(
            "event=circuit_open component=%s operation=%s action=skip",
            component,
            operation,
        )
        return None
    except Exception as exc:  # noqa: BLE001
        logger.warning(
            "event=remote_unavailable component=%s operation=%s"
            " error_class=%s error=%s",
            component,
            operation,
            classify_error(exc).value,
            str(exc)[:ERROR_TRUNCATION_CHARS],
        )
        return None
