"""On-chain lookups: ENS records and ether balances over JSON-RPC."""

from __future__ import annotations

import logging
from typing import Protocol

import aiohttp
from ens import AsyncENS
from ens.exceptions import InvalidName
from ens.utils import (
    address_to_reverse_domain,
    normal_name_to_hash,
    normalize_name,
)
from web3 import AsyncHTTPProvider, AsyncWeb3

from defilens.constants import (
    CB_CHAIN_FAILURE_THRESHOLD,
    CB_CHAIN_RECOVERY_TIMEOUT,
    HTTP_TIMEOUT_SECONDS,
)
from defilens.resilience.guard import get_breaker, guarded_call

logger = logging.getLogger(__name__)


class ChainBackend(Protocol):
    """Raw, unconfirmed chain queries. Implementations may raise."""

    async def reverse_name(self, address: str) -> str | None:
        """Name stored in the address's reverse record (unauthenticated)."""
        ...

    async def forward_address(self, name: str) -> str | None:
        """Address the name's resolver points at."""
        ...

    async def get_balance_wei(self, address: str) -> int | None:
        ...


def _breaker():  # pyright: ignore[reportUnknownParameterType]
    return get_breaker(
        "chain",
        failure_threshold=CB_CHAIN_FAILURE_THRESHOLD,
        recovery_timeout=CB_CHAIN_RECOVERY_TIMEOUT,
    )


class Web3ChainBackend:
    """ChainBackend over web3.py's async provider and ENS module."""

    def __init__(
        self,
        rpc_url: str,
        *,
        project_secret: str = "",
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        request_kwargs: dict[str, object] = {
            "timeout": aiohttp.ClientTimeout(total=timeout)
        }
        if project_secret:
            request_kwargs["auth"] = aiohttp.BasicAuth("", project_secret)
        self._w3 = AsyncWeb3(
            AsyncHTTPProvider(rpc_url, request_kwargs=request_kwargs)
        )
        self._ens = AsyncENS.from_web3(self._w3)

    async def reverse_name(self, address: str) -> str | None:
        return await guarded_call(_breaker(), self._reverse_name(address))  # type: ignore[return-value]

    async def _reverse_name(self, address: str) -> str | None:
        reverse_domain = address_to_reverse_domain(
            self._w3.to_checksum_address(address)
        )
        resolver = await self._ens.resolver(reverse_domain)
        if resolver is None:
            return None
        name = await resolver.caller.name(  # pyright: ignore[reportUnknownMemberType]
            normal_name_to_hash(reverse_domain)
        )
        return str(name) or None

    async def forward_address(self, name: str) -> str | None:
        # malformed names fail locally and must not count against the RPC
        try:
            normalized = normalize_name(name)
        except InvalidName:
            logger.debug("event=ens_invalid_name name=%s", name)
            return None
        result = await guarded_call(_breaker(), self._ens.address(normalized))
        return str(result) if result else None

    async def get_balance_wei(self, address: str) -> int | None:
        balance = await guarded_call(
            _breaker(),
            self._w3.eth.get_balance(
                self._w3.to_checksum_address(address)
            ),
        )
        return int(balance)  # type: ignore[call-overload]
