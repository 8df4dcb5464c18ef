"""Session-scoped state shared by all documents of one server.

Holds the per-document settings cache, the pass generation counters
used to drop stale publications, warn-once bookkeeping for missing
credentials, and remote clients cached by credential set. All mutation
happens on the event loop thread, so no locks are needed.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from defilens.config import DocumentSettings, Settings
from defilens.services.chain import ChainBackend, Web3ChainBackend
from defilens.services.market import BalanceLookup, MarketDataClient
from defilens.services.names import NameResolver

logger = logging.getLogger(__name__)

type ChainFactory = Callable[[DocumentSettings], ChainBackend]
type MarketFactory = Callable[
    [DocumentSettings, BalanceLookup | None], MarketDataClient
]


@dataclass(frozen=True)
class Backends:
    """Remote collaborators for one credential set; None when disabled."""

    resolver: NameResolver | None
    market: MarketDataClient | None


class SessionStore:
    def __init__(
        self,
        settings: Settings,
        *,
        chain_factory: ChainFactory | None = None,
        market_factory: MarketFactory | None = None,
    ) -> None:
        self._settings = settings
        self._chain_factory = chain_factory or self._default_chain
        self._market_factory = market_factory or self._default_market
        self._global_settings: DocumentSettings | None = None
        self._document_settings: dict[str, DocumentSettings] = {}
        self._generations: dict[str, int] = {}
        self._warned: set[str] = set()
        self._backends: dict[tuple[str, str, str], Backends] = {}
        self._retired: list[Backends] = []

    @property
    def settings(self) -> Settings:
        return self._settings

    # ── Settings cache ───────────────────────────────────

    async def settings_for(
        self,
        uri: str,
        fetch: Callable[[], Awaitable[DocumentSettings]] | None,
    ) -> DocumentSettings:
        """Cached settings for ``uri``; ``fetch`` fills a cache miss.

        Without ``fetch`` (client lacks configuration support) the
        settings pushed by the last configuration change apply, or the
        server-level defaults before any change arrived.
        """
        if fetch is None:
            return self.global_settings
        cached = self._document_settings.get(uri)
        if cached is not None:
            return cached
        try:
            fetched = await fetch()
        except Exception:  # noqa: BLE001
            logger.warning(
                "event=settings_fetch_failed uri=%s", uri, exc_info=True
            )
            return self._settings.default_document_settings()
        self._document_settings[uri] = fetched
        return fetched

    def document_closed(self, uri: str) -> None:
        self._document_settings.pop(uri, None)
        self._generations.pop(uri, None)

    def configuration_changed(
        self, pushed: DocumentSettings | None = None
    ) -> None:
        """Drop cached settings; ``pushed`` replaces the global fallback.

        Cached backends are retired too, so clients built for replaced
        credentials get closed by :meth:`close_retired`.
        """
        self._document_settings.clear()
        self._retired.extend(self._backends.values())
        self._backends.clear()
        if pushed is not None:
            self._global_settings = pushed

    @property
    def global_settings(self) -> DocumentSettings:
        if self._global_settings is not None:
            return self._global_settings
        return self._settings.default_document_settings()

    # ── Pass generations ─────────────────────────────────

    def begin_pass(self, uri: str) -> int:
        generation = self._generations.get(uri, 0) + 1
        self._generations[uri] = generation
        return generation

    def is_current(self, uri: str, generation: int) -> bool:
        """False once a newer pass started or the document closed."""
        return self._generations.get(uri) == generation

    # ── Remote backends ──────────────────────────────────

    def warn_once(self, key: str, message: str) -> None:
        if key in self._warned:
            return
        self._warned.add(key)
        logger.warning(message)

    def backends_for(self, document: DocumentSettings) -> Backends:
        key = (
            document.infura_project_id,
            document.infura_project_secret,
            document.amberdata_api_key,
        )
        cached = self._backends.get(key)
        if cached is not None:
            return cached

        resolver: NameResolver | None = None
        if document.has_chain_credentials:
            resolver = NameResolver(self._chain_factory(document))
        else:
            self.warn_once(
                "infura",
                "event=config_missing credential=infura_project_id"
                " effect=name_resolution_and_balances_disabled",
            )

        market: MarketDataClient | None = None
        if document.has_market_credentials:
            balance = resolver.get_balance_wei if resolver else None
            market = self._market_factory(document, balance)
        else:
            self.warn_once(
                "amberdata",
                "event=config_missing credential=amberdata_api_key"
                " effect=market_data_disabled",
            )

        backends = Backends(resolver=resolver, market=market)
        self._backends[key] = backends
        return backends

    async def close_retired(self) -> None:
        retired, self._retired = self._retired, []
        for backends in retired:
            if backends.market is not None:
                await backends.market.aclose()

    async def aclose(self) -> None:
        self._retired.extend(self._backends.values())
        self._backends.clear()
        await self.close_retired()

    # ── Defaults ─────────────────────────────────────────

    def _default_chain(self, document: DocumentSettings) -> ChainBackend:
        return Web3ChainBackend(
            self._settings.rpc_url(document),
            project_secret=document.infura_project_secret,
            timeout=self._settings.http_timeout_seconds,
        )

    def _default_market(
        self,
        document: DocumentSettings,
        balance_lookup: BalanceLookup | None,
    ) -> MarketDataClient:
        return MarketDataClient(
            document.amberdata_api_key,
            base_url=self._settings.market_api_base_url,
            timeout=self._settings.http_timeout_seconds,
            balance_lookup=balance_lookup,
        )
