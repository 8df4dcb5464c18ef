"""Per-network explorer links (code lenses), resolved lazily."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from defilens.analysis.validators import Classified
from defilens.annotations.models import ActionableLink, LinkCommand
from defilens.constants import (
    EXPLORER_URLS,
    SHOW_URL_COMMAND,
    CandidateKind,
    LinkKind,
    Network,
)
from defilens.services.market import MarketDataClient, TokenInfo
from defilens.services.names import NameResolver


def build_links(items: Sequence[Classified]) -> list[ActionableLink]:
    """One link per network for every shape-valid address or key.

    Keys link to the address they derive; nothing remote happens here.
    """
    links: list[ActionableLink] = []
    for item in items:
        address = item.address
        if address is None:
            continue
        kind = (
            LinkKind.PRIVATE_KEY
            if item.candidate.kind == CandidateKind.PRIVATE_KEY_HEX
            else LinkKind.ADDRESS
        )
        links.extend(
            ActionableLink(
                range=item.candidate.span.range,
                kind=kind,
                network=network,
                address=address,
            )
            for network in Network
        )
    return links


def explorer_url(network: Network, address: str) -> str:
    return EXPLORER_URLS[network] + address


def link_title(
    link: ActionableLink,
    name: str | None = None,
    token: TokenInfo | None = None,
) -> str:
    if link.network != Network.MAINNET:
        return f"({link.network})"
    prefix = ""
    if name:
        prefix += f"{name} | "
    if token is not None:
        prefix += f"{token.label} | "
    noun = "token" if token is not None else "address"
    title = f"Ethereum {noun} (mainnet): {link.address}"
    if link.kind == LinkKind.PRIVATE_KEY:
        title = f"Private key for {title}"
    return prefix + title


async def resolve_link(
    link: ActionableLink,
    resolver: NameResolver | None,
    market: MarketDataClient | None,
) -> LinkCommand:
    """Compute the command for a link when the editor asks for it.

    Only mainnet links trigger remote lookups; both run concurrently
    and either may come back empty.
    """
    name: str | None = None
    token: TokenInfo | None = None
    if link.network == Network.MAINNET:
        name, token = await asyncio.gather(
            _name(resolver, link.address), _token(market, link.address)
        )
    return LinkCommand(
        title=link_title(link, name, token),
        command=SHOW_URL_COMMAND,
        url=explorer_url(link.network, link.address),
    )


async def _name(resolver: NameResolver | None, address: str) -> str | None:
    if resolver is None:
        return None
    return await resolver.resolve_name_for_address(address)


async def _token(
    market: MarketDataClient | None, address: str
) -> TokenInfo | None:
    if market is None:
        return None
    return await market.get_token_by_address(address)
