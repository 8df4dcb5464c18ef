"""Bidirectional ENS name resolution with round-trip confirmation.

Reverse records are set by whoever controls the address and are not
authenticated by ENS, so a reverse result is only trusted when the
forward lookup of that name points back at the same address. Nothing is
cached: every call is a fresh round-trip.
"""

from __future__ import annotations

import logging

from defilens.analysis.validators import checksum
from defilens.constants import ZERO_ADDRESS
from defilens.resilience.guard import absent_on_error
from defilens.services.chain import ChainBackend

logger = logging.getLogger(__name__)


def _same_address(a: str, b: str) -> bool:
    try:
        return checksum(a) == checksum(b)
    except (ValueError, TypeError):
        return False


class NameResolver:
    """Confirmed name ↔ address lookups. Never raises to the caller."""

    def __init__(self, backend: ChainBackend) -> None:
        self._backend = backend

    async def resolve_address_for_name(self, name: str) -> str | None:
        """Forward lookup. The zero address counts as no record."""
        if not name:
            return None
        address = await absent_on_error(
            self._backend.forward_address(name),
            component="names",
            operation="forward",
        )
        if not address or _same_address(address, ZERO_ADDRESS):
            logger.debug("event=ens_no_record name=%s", name)
            return None
        try:
            return checksum(address)
        except (ValueError, TypeError):
            logger.warning(
                "event=ens_bad_address name=%s address=%s",
                name,
                address,
            )
            return None

    async def resolve_name_for_address(self, address: str) -> str | None:
        """Reverse lookup confirmed by a forward lookup."""
        name = await absent_on_error(
            self._backend.reverse_name(address),
            component="names",
            operation="reverse",
        )
        if not name:
            return None
        logger.debug(
            "event=ens_reverse_found address=%s name=%s", address, name
        )
        forward = await self.resolve_address_for_name(name)
        if forward is None or not _same_address(forward, address):
            logger.debug(
                "event=ens_unconfirmed address=%s name=%s forward=%s",
                address,
                name,
                forward,
            )
            return None
        return name

    async def get_balance_wei(self, address: str) -> int | None:
        return await absent_on_error(
            self._backend.get_balance_wei(address),
            component="chain",
            operation="balance",
        )
