"""Completion items that insert the addresses of top tokens."""

from __future__ import annotations

import logging

from defilens.analysis.validators import checksum, looks_like_address
from defilens.annotations.models import TokenCompletion
from defilens.services.market import MarketDataClient, TokenInfo

logger = logging.getLogger(__name__)


def _insert_text(token: TokenInfo) -> str:
    if looks_like_address(token.address):
        return checksum(token.address)
    logger.debug(
        "event=token_address_not_checksummable address=%s", token.address
    )
    return token.address


async def build_completions(
    market: MarketDataClient | None,
) -> tuple[list[TokenCompletion], dict[str, TokenInfo]]:
    """Completions for the current top tokens by market cap.

    Also returns the tokens keyed by address so the caller can render
    documentation when an item is resolved.
    """
    if market is None:
        return [], {}
    tokens = await market.list_top_tokens()
    items: list[TokenCompletion] = []
    by_address: dict[str, TokenInfo] = {}
    for rank, token in enumerate(tokens):
        items.append(
            TokenCompletion(
                label=f"Token: {token.label}",
                insert_text=_insert_text(token),
                token_address=token.address,
                sort_text=f"{rank:04d}",
            )
        )
        by_address[token.address.lower()] = token
    return items, by_address
