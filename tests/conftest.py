"""Shared test fixtures — stub chain backend, mocked market API."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable

import httpx
import pytest
import pytest_asyncio
from circuitbreaker import CircuitBreakerMonitor

from defilens.resilience.guard import reset_breakers
from defilens.services.market import BalanceLookup, MarketDataClient
from defilens.services.names import NameResolver

VITALIK = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"
DAI = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
KEY_ADDRESS = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"

type Handler = Callable[[httpx.Request], httpx.Response]
type MarketFactory = Callable[..., MarketDataClient]


class StubChain:
    """In-memory ChainBackend. Keys of ``reverse``/``balances`` are lowercase."""

    def __init__(self) -> None:
        self.reverse: dict[str, str] = {}
        self.forward: dict[str, str] = {}
        self.balances: dict[str, int] = {}
        self.error: Exception | None = None
        self.calls: list[tuple[str, str]] = []

    async def reverse_name(self, address: str) -> str | None:
        self.calls.append(("reverse", address))
        if self.error is not None:
            raise self.error
        return self.reverse.get(address.lower())

    async def forward_address(self, name: str) -> str | None:
        self.calls.append(("forward", name))
        if self.error is not None:
            raise self.error
        return self.forward.get(name)

    async def get_balance_wei(self, address: str) -> int | None:
        self.calls.append(("balance", address))
        if self.error is not None:
            raise self.error
        return self.balances.get(address.lower())


@pytest.fixture(autouse=True)
def _reset_breakers() -> None:
    """Reset circuit breakers between tests."""
    reset_breakers()
    for cb in CircuitBreakerMonitor.get_circuits():
        cb.reset()  # type: ignore[union-attr]


@pytest.fixture
def chain() -> StubChain:
    return StubChain()


@pytest.fixture
def resolver(chain: StubChain) -> NameResolver:
    return NameResolver(chain)


@pytest.fixture
def vitalik_chain(chain: StubChain) -> StubChain:
    """Chain where VITALIK <-> vitalik.eth round-trips."""
    chain.reverse[VITALIK.lower()] = "vitalik.eth"
    chain.forward["vitalik.eth"] = VITALIK
    return chain


@pytest_asyncio.fixture
async def market_factory() -> AsyncIterator[MarketFactory]:
    """Build MarketDataClients over an ``httpx.MockTransport``."""
    clients: list[MarketDataClient] = []

    def _make(
        handler: Handler,
        *,
        api_key: str = "test-key",
        balance_lookup: BalanceLookup | None = None,
    ) -> MarketDataClient:
        client = MarketDataClient(
            api_key,
            base_url="https://market.test/api/v2",
            balance_lookup=balance_lookup,
            transport=httpx.MockTransport(handler),
        )
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.aclose()


def envelope(payload: object, status_code: int = 200) -> httpx.Response:
    """Market API response wrapping ``payload``."""
    return httpx.Response(
        status_code, json={"status": status_code, "payload": payload}
    )


def token_price_record(
    address: str = DAI,
    *,
    name: str = "Dai Stablecoin",
    symbol: str = "DAI",
    price: str = "2.5",
) -> dict[str, object]:
    return {
        "address": address.lower(),
        "name": name,
        "symbol": symbol,
        "priceUSD": price,
        "marketCapUSD": "5345000000.129",
        "totalSupply": "5346000000000000000000000000",
        "dailyVolumeUSD": "120000000.4",
    }
