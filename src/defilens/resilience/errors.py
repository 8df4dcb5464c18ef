"""Error classification for remote-call failures.

Every remote failure is converted to "no data" at its call site; the
class computed here only decides how the failure is logged.
"""

from __future__ import annotations

import asyncio
from enum import Enum

import httpx
from circuitbreaker import CircuitBreakerError


class ErrorClass(Enum):
    TRANSIENT = "transient"  # 429, network errors
    SERVER = "server"  # 500, 502, 503
    TIMEOUT = "timeout"  # deadline exceeded
    CLIENT = "client"  # 400, 401, 403: usually bad credentials
    CIRCUIT_OPEN = "circuit_open"  # breaker short-circuited the call
    UNKNOWN = "unknown"


def _status_code(error: Exception) -> int | None:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    return None


def classify_error(error: Exception) -> ErrorClass:
    """Classify a remote failure for structured logging.

    Checks structured attributes first (httpx status, ``status_code``),
    then exception types, then falls back to string matching.
    """
    if isinstance(error, CircuitBreakerError):
        return ErrorClass.CIRCUIT_OPEN

    status_code = _status_code(error)
    if status_code is not None:
        if status_code == 429:
            return ErrorClass.TRANSIENT
        if 400 <= status_code < 500:
            return ErrorClass.CLIENT
        if 500 <= status_code < 600:
            return ErrorClass.SERVER

    if isinstance(
        error,
        (TimeoutError, asyncio.TimeoutError, httpx.TimeoutException),
    ):
        return ErrorClass.TIMEOUT
    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return ErrorClass.TRANSIENT

    msg = str(error).lower()

    if "timeout" in msg or "timed out" in msg:
        return ErrorClass.TIMEOUT
    if "429" in msg or "rate limit" in msg:
        return ErrorClass.TRANSIENT
    if any(code in msg for code in ("500", "502", "503", "504")):
        return ErrorClass.SERVER
    if "connection" in msg:
        return ErrorClass.TRANSIENT
    if any(code in msg for code in ("400", "401", "403", "404")):
        return ErrorClass.CLIENT

    return ErrorClass.UNKNOWN
