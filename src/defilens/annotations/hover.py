"""Hover markdown for addresses, private keys and ENS names."""

from __future__ import annotations

import asyncio
import logging
from decimal import Context, Decimal

from defilens.analysis.scanner import LineIndex, word_at
from defilens.analysis.validators import classify_word
from defilens.annotations.models import HoverPayload
from defilens.constants import WordKind
from defilens.services.market import (
    AccountSummary,
    MarketDataClient,
    TokenInfo,
    wei_to_ether,
)
from defilens.services.names import NameResolver

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")
_UNITS = Decimal("1")
# Supplies are raw integer amounts that exceed the default 28 digits.
_WIDE = Context(prec=100)


def format_usd(value: Decimal) -> str:
    """``$1234.50``: always exactly two decimals."""
    return f"${value.quantize(_CENTS, context=_WIDE)}"


def format_count(value: Decimal) -> str:
    return str(value.quantize(_UNITS, context=_WIDE))


def format_amount(value: Decimal) -> str:
    """Plain decimal notation without trailing zeros or exponents."""
    return format(value.normalize(_WIDE), "f")


def render_token_markdown(token: TokenInfo) -> str:
    lines = [f"**Token: {token.label}**", ""]
    if token.price_usd is not None:
        lines.append(f"**Price:** {format_usd(token.price_usd)} USD  ")
    if token.market_cap_usd is not None:
        lines.append(
            f"**Market Cap:** {format_usd(token.market_cap_usd)} USD  "
        )
    if token.total_supply_raw is not None:
        lines.append(
            f"**Total Supply:** {format_count(token.total_supply_raw)}  "
        )
    if token.unique_addresses_daily is not None:
        lines.append(
            "**Unique Addresses (Daily):** "
            f"{format_count(token.unique_addresses_daily)}  "
        )
    if token.daily_volume_usd is not None:
        lines.append(
            "**Trading Volume (Daily):** "
            f"{format_usd(token.daily_volume_usd)} USD  "
        )
    return "\n".join(lines) + "\n"


def render_address_markdown(
    address: str,
    name: str | None,
    summary: AccountSummary,
) -> str:
    parts = [f"**Ethereum Address**: {address}"]
    if name:
        parts.append(f"**ENS Name**: {name}")

    if summary.ether_balance is not None and summary.ether_balance > 0:
        balance = f"    {format_amount(summary.ether_balance)} ETH"
        if (
            summary.usd_value is not None
            and summary.ether_price_usd is not None
        ):
            balance += (
                f" ({format_usd(summary.usd_value)} USD"
                f" @ {format_usd(summary.ether_price_usd)})"
            )
        parts.append("**Ether Balance**:")
        parts.append(balance)

    if summary.top_token_holdings:
        rows = ["| Token | Amount | Value (USD) | Price (USD) |"]
        rows.append("|---|---:|---:|---:|")
        for holding in summary.top_token_holdings:
            value = (
                format_usd(holding.usd_value)
                if holding.usd_value is not None
                else ""
            )
            price = (
                format_usd(holding.usd_price)
                if holding.usd_price is not None
                else ""
            )
            rows.append(
                f"| {holding.symbol} | {format_amount(holding.amount)}"
                f" | {value} | {price} |"
            )
        parts.append("**Tokens**:")
        parts.append("\n".join(rows))

    return "\n\n".join(parts) + "\n"


async def markdown_for_address(
    address: str,
    resolver: NameResolver | None,
    market: MarketDataClient | None,
) -> str:
    """Token card if the address is a known token, else account card."""
    token = (
        await market.get_token_by_address(address)
        if market is not None
        else None
    )
    if token is not None:
        return render_token_markdown(token)

    name, summary = await asyncio.gather(
        _confirmed_name(resolver, address),
        _summary(resolver, market, address),
    )
    return render_address_markdown(address, name, summary)


async def _confirmed_name(
    resolver: NameResolver | None, address: str
) -> str | None:
    if resolver is None:
        return None
    return await resolver.resolve_name_for_address(address)


async def _summary(
    resolver: NameResolver | None,
    market: MarketDataClient | None,
    address: str,
) -> AccountSummary:
    if market is not None:
        return await market.get_account_summary(address)
    if resolver is None:
        return AccountSummary()
    wei = await resolver.get_balance_wei(address)
    return AccountSummary(
        ether_balance=wei_to_ether(wei) if wei is not None else None
    )


async def build_hover(
    text: str,
    offset: int,
    resolver: NameResolver | None,
    market: MarketDataClient | None,
    index: LineIndex | None = None,
) -> HoverPayload | None:
    """Hover for the word at ``offset``; None when there is nothing to show."""
    word, start, end = word_at(text, offset)
    classified = classify_word(word)
    if classified is None:
        return None
    kind, value = classified

    if kind == WordKind.NAME:
        if resolver is None:
            return None
        address = await resolver.resolve_address_for_name(value)
        if address is None:
            return None
    else:
        address = value

    logger.debug("event=hover kind=%s address=%s", kind, address)
    markdown = await markdown_for_address(address, resolver, market)
    line_index = index or LineIndex(text)
    return HoverPayload(
        markdown=markdown, range=line_index.range_of(start, end)
    )
