"""Market data client: token metadata, prices and account holdings.

Every public method returns "no data" (``None`` / empty list) instead of
raising. Composite results are gathered from independent sub-calls, so a
failed price lookup only drops the priced fields.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from decimal import Context, Decimal
from typing import Any, cast

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from defilens.constants import (
    CB_MARKET_FAILURE_THRESHOLD,
    CB_MARKET_RECOVERY_TIMEOUT,
    ETHER_DECIMALS,
    HTTP_TIMEOUT_SECONDS,
    MARKET_API_BASE_URL,
    MARKET_BLOCKCHAIN_ID,
    MARKET_CURRENCY,
    TOP_HOLDINGS_PAGE_SIZE,
)
from defilens.resilience.guard import (
    absent_on_error,
    get_breaker,
    guarded_call,
)

logger = logging.getLogger(__name__)

type BalanceLookup = Callable[[str], Awaitable[int | None]]

# Raw token amounts routinely exceed the default 28 significant digits.
_WIDE = Context(prec=100)


# ── Upstream response shapes ─────────────────────────────


class _Upstream(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RankedToken(_Upstream):
    """One entry of ``/tokens/rankings``."""

    name: str | None = None
    symbol: str | None = None
    address: str
    market_cap: Decimal | None = Field(default=None, alias="marketCap")
    current_price: Decimal | None = Field(
        default=None, alias="currentPrice"
    )
    total_supply: Decimal | None = Field(default=None, alias="totalSupply")
    trade_volume: Decimal | None = Field(default=None, alias="tradeVolume")
    unique_addresses: Decimal | None = Field(
        default=None, alias="uniqueAddresses"
    )


class RankingsPayload(_Upstream):
    data: list[Any] = []  # validated per record


class TokenPrice(_Upstream):
    """One entry of ``/market/tokens/prices/{address}/latest``."""

    name: str | None = None
    symbol: str | None = None
    address: str
    market_cap_usd: Decimal | None = Field(
        default=None, alias="marketCapUSD"
    )
    price_usd: Decimal | None = Field(default=None, alias="priceUSD")
    total_supply: Decimal | None = Field(default=None, alias="totalSupply")
    daily_volume_usd: Decimal | None = Field(
        default=None, alias="dailyVolumeUSD"
    )
    unique_addresses: Decimal | None = Field(
        default=None, alias="uniqueAddresses"
    )


class PriceQuote(_Upstream):
    quote: Decimal | None = None
    total: Decimal | None = None


class AccountPrice(_Upstream):
    value: PriceQuote | None = None


class AccountBalancePayload(_Upstream):
    """``/addresses/{address}/account-balances/latest`` payload."""

    value: Decimal | None = None  # wei
    price: AccountPrice | None = None


class HoldingPrice(_Upstream):
    amount: PriceQuote | None = None


class HoldingRecord(_Upstream):
    symbol: str | None = None
    amount: Decimal
    decimals: int = 0
    price: HoldingPrice | None = None


class HoldingsPayload(_Upstream):
    records: list[Any] = []  # validated per record


# ── Domain records ───────────────────────────────────────


@dataclass(frozen=True)
class TokenInfo:
    name: str
    symbol: str
    address: str
    market_cap_usd: Decimal | None
    price_usd: Decimal | None
    total_supply_raw: Decimal | None
    daily_volume_usd: Decimal | None
    unique_addresses_daily: Decimal | None = None

    @property
    def label(self) -> str:
        return f"{self.name} ({self.symbol})"


@dataclass(frozen=True)
class TokenHolding:
    symbol: str
    amount: Decimal
    usd_value: Decimal | None = None
    usd_price: Decimal | None = None


@dataclass(frozen=True)
class AccountSummary:
    ether_balance: Decimal | None = None
    usd_value: Decimal | None = None
    ether_price_usd: Decimal | None = None
    top_token_holdings: list[TokenHolding] = field(
        default_factory=lambda: list[TokenHolding]()
    )

    @property
    def is_empty(self) -> bool:
        return (
            self.ether_balance is None
            and self.usd_value is None
            and not self.top_token_holdings
        )


def scale_amount(raw: Decimal, decimals: int) -> Decimal:
    """Divide a raw integer token amount by ``10**decimals`` exactly."""
    if decimals <= 0:
        return raw
    return raw.scaleb(-decimals, _WIDE)


def wei_to_ether(wei: int | Decimal) -> Decimal:
    return scale_amount(Decimal(wei), ETHER_DECIMALS)


def _valid_records[T: _Upstream](
    model: type[T], items: list[Any], operation: str
) -> list[T]:
    """Validate upstream list entries one by one, skipping malformed ones."""
    records: list[T] = []
    for item in items:
        try:
            records.append(model.model_validate(item))
        except ValidationError:
            logger.warning("event=bad_record operation=%s", operation)
    return records


def _to_token(record: RankedToken | TokenPrice) -> TokenInfo:
    if isinstance(record, RankedToken):
        return TokenInfo(
            name=record.name or "",
            symbol=record.symbol or "",
            address=record.address,
            market_cap_usd=record.market_cap,
            price_usd=record.current_price,
            total_supply_raw=record.total_supply,
            daily_volume_usd=record.trade_volume,
            unique_addresses_daily=record.unique_addresses,
        )
    return TokenInfo(
        name=record.name or "",
        symbol=record.symbol or "",
        address=record.address,
        market_cap_usd=record.market_cap_usd,
        price_usd=record.price_usd,
        total_supply_raw=record.total_supply,
        daily_volume_usd=record.daily_volume_usd,
        unique_addresses_daily=record.unique_addresses,
    )


def _to_holding(record: HoldingRecord) -> TokenHolding:
    quote = record.price.amount if record.price else None
    return TokenHolding(
        symbol=record.symbol or "?",
        amount=scale_amount(record.amount, record.decimals),
        usd_value=quote.total if quote else None,
        usd_price=quote.quote if quote else None,
    )


def _breaker():  # pyright: ignore[reportUnknownParameterType]
    return get_breaker(
        "market",
        failure_threshold=CB_MARKET_FAILURE_THRESHOLD,
        recovery_timeout=CB_MARKET_RECOVERY_TIMEOUT,
    )


class MarketDataClient:
    """Async client for the market data HTTP API.

    An empty ``api_key`` disables the client: every method returns no
    data without issuing a request.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = MARKET_API_BASE_URL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        balance_lookup: BalanceLookup | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._balance_lookup = balance_lookup
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"x-api-key": api_key},
            timeout=timeout,
            transport=transport,
        )

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(
        self,
        path: str,
        *,
        params: dict[str, str] | None,
        headers: dict[str, str] | None,
    ) -> httpx.Response:
        """GET inside the breaker; HTTP error statuses count as failures."""
        response = await self._client.get(
            path, params=params, headers=headers
        )
        response.raise_for_status()
        return response

    async def _get_payload(
        self,
        path: str,
        *,
        params: dict[str, str] | None = None,
        chain_scoped: bool = False,
    ) -> Any:
        """GET ``path`` and return the envelope's ``payload`` (or None)."""
        headers = (
            {"x-amberdata-blockchain-id": MARKET_BLOCKCHAIN_ID}
            if chain_scoped
            else None
        )
        response = await guarded_call(
            _breaker(), self._get(path, params=params, headers=headers)
        )
        body = cast(httpx.Response, response).json()
        if not isinstance(body, dict):
            return None
        return body.get("payload")

    async def _fetch(
        self,
        operation: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        chain_scoped: bool = False,
    ) -> Any:
        if not self.enabled:
            return None
        return await absent_on_error(
            self._get_payload(
                path, params=params, chain_scoped=chain_scoped
            ),
            component="market",
            operation=operation,
        )

    async def list_top_tokens(self) -> list[TokenInfo]:
        """First page of tokens ranked by market cap, descending."""
        payload = await self._fetch(
            "top_tokens",
            "/tokens/rankings",
            params={
                "direction": "descending",
                "sortType": "marketCap",
                "timeInterval": "days",
            },
        )
        if not payload:
            return []
        try:
            rankings = RankingsPayload.model_validate(payload)
        except ValidationError:
            logger.warning("event=bad_payload operation=top_tokens")
            return []
        records = _valid_records(RankedToken, rankings.data, "top_tokens")
        return [_to_token(r) for r in records]

    async def get_token_by_address(self, address: str) -> TokenInfo | None:
        payload = await self._fetch(
            "token_by_address",
            f"/market/tokens/prices/{address.lower()}/latest",
        )
        if not isinstance(payload, list) or not payload:
            return None
        try:
            record = TokenPrice.model_validate(payload[0])
        except ValidationError:
            logger.warning(
                "event=bad_payload operation=token_by_address address=%s",
                address,
            )
            return None
        return _to_token(record)

    async def _account_balance(
        self, address: str
    ) -> AccountBalancePayload | None:
        payload = await self._fetch(
            "account_balance",
            f"/addresses/{address}/account-balances/latest",
            params={"includePrice": "true", "currency": MARKET_CURRENCY},
            chain_scoped=True,
        )
        if not isinstance(payload, dict):
            return None
        try:
            return AccountBalancePayload.model_validate(payload)
        except ValidationError:
            logger.warning(
                "event=bad_payload operation=account_balance address=%s",
                address,
            )
            return None

    async def _token_holdings(self, address: str) -> list[TokenHolding]:
        payload = await self._fetch(
            "token_holdings",
            f"/addresses/{address}/tokens",
            params={
                "direction": "descending",
                "includePrice": "true",
                "currency": MARKET_CURRENCY,
                "sortType": "amount",
                "page": "0",
                "size": str(TOP_HOLDINGS_PAGE_SIZE),
            },
            chain_scoped=True,
        )
        if not isinstance(payload, dict):
            return []
        try:
            holdings = HoldingsPayload.model_validate(payload)
        except ValidationError:
            logger.warning(
                "event=bad_payload operation=token_holdings address=%s",
                address,
            )
            return []
        records = _valid_records(
            HoldingRecord, holdings.records, "token_holdings"
        )
        return [_to_holding(r) for r in records]

    async def _chain_balance(self, address: str) -> int | None:
        if self._balance_lookup is None:
            return None
        return await absent_on_error(
            self._balance_lookup(address),
            component="chain",
            operation="balance",
        )

    async def get_account_summary(self, address: str) -> AccountSummary:
        """Ether balance, USD value and top holdings, each best-effort."""
        wei, account, holdings = await asyncio.gather(
            self._chain_balance(address),
            self._account_balance(address),
            self._token_holdings(address),
        )

        if wei is None and account is not None and account.value is not None:
            wei = int(account.value)

        quote = (
            account.price.value
            if account is not None and account.price is not None
            else None
        )
        ether = wei_to_ether(wei) if wei is not None else None

        return AccountSummary(
            ether_balance=ether,
            usd_value=quote.total if quote else None,
            ether_price_usd=quote.quote if quote else None,
            top_token_holdings=holdings,
        )
