"""Language server wiring: pygls features over the annotation pipeline."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from lsprotocol import types
from pydantic import ValidationError
from pygls.lsp.server import LanguageServer

from defilens import __version__
from defilens.analysis.pipeline import (
    classify_link_targets,
    run_validation_pass,
)
from defilens.analysis.scanner import LineIndex, Position
from defilens.annotations.completion import build_completions
from defilens.annotations.hover import build_hover, render_token_markdown
from defilens.annotations.links import build_links, resolve_link
from defilens.annotations.quickfix import quick_fix_for
from defilens.config import DocumentSettings, Settings
from defilens.constants import CONFIG_SECTION
from defilens.protocol import (
    from_lsp_diagnostic,
    parse_code_lens_data,
    to_lsp_code_action,
    to_lsp_code_lens,
    to_lsp_command,
    to_lsp_completion,
    to_lsp_diagnostic,
    to_lsp_hover,
)
from defilens.services.market import TokenInfo
from defilens.session import SessionStore

logger = logging.getLogger(__name__)


class DefiLanguageServer(LanguageServer):
    """pygls server holding one ``SessionStore`` for its lifetime."""

    def __init__(
        self,
        settings: Settings | None = None,
        session: SessionStore | None = None,
    ) -> None:
        super().__init__("defilens", __version__)
        self.app_settings = settings or Settings()
        self.session = session or SessionStore(self.app_settings)
        self.completion_tokens: dict[str, TokenInfo] = {}

    # ── Client capabilities ──────────────────────────────

    def supports_configuration(self) -> bool:
        workspace = self.client_capabilities.workspace
        return bool(workspace and workspace.configuration)

    def supports_related_information(self) -> bool:
        text_document = self.client_capabilities.text_document
        publish = text_document.publish_diagnostics if text_document else None
        return bool(publish and publish.related_information)

    # ── Settings ─────────────────────────────────────────

    async def document_settings(self, uri: str) -> DocumentSettings:
        if not self.supports_configuration():
            return await self.session.settings_for(uri, None)

        async def _fetch() -> DocumentSettings:
            result = await self.workspace_configuration_async(
                types.ConfigurationParams(
                    items=[
                        types.ConfigurationItem(
                            scope_uri=uri, section=CONFIG_SECTION
                        )
                    ]
                )
            )
            return DocumentSettings.from_client(result[0] if result else None)

        return await self.session.settings_for(uri, _fetch)

    def configuration_changed(self, pushed: object) -> None:
        """Invalidate settings; clients without pull support push them."""
        if self.supports_configuration():
            self.session.configuration_changed()
            return
        section = (
            pushed.get(CONFIG_SECTION) if isinstance(pushed, dict) else None
        )
        try:
            document = DocumentSettings.from_client(section)
        except ValidationError as exc:
            logger.warning(
                "event=bad_client_settings errors=%d", exc.error_count()
            )
            document = self.app_settings.default_document_settings()
        self.session.configuration_changed(document)

    # ── Diagnostics ──────────────────────────────────────

    async def compute_diagnostics(
        self, uri: str, text: str
    ) -> list[types.Diagnostic] | None:
        """Diagnostics for one revision; None when a newer pass superseded it."""
        generation = self.session.begin_pass(uri)
        settings = await self.document_settings(uri)
        backends = self.session.backends_for(settings)
        result = await run_validation_pass(text, settings, backends.resolver)
        if not self.session.is_current(uri, generation):
            logger.debug(
                "event=stale_pass_dropped uri=%s generation=%d",
                uri,
                generation,
            )
            return None
        related = self.supports_related_information()
        return [
            to_lsp_diagnostic(d, uri, related_information=related)
            for d in result.diagnostics
        ]

    async def validate(self, uri: str) -> None:
        document = self.workspace.get_text_document(uri)
        version = document.version
        diagnostics = await self.compute_diagnostics(uri, document.source)
        if diagnostics is None:
            return
        self.text_document_publish_diagnostics(
            types.PublishDiagnosticsParams(
                uri=uri, diagnostics=diagnostics, version=version
            )
        )

    async def revalidate_all(self) -> None:
        for uri in list(self.workspace.text_documents):
            await self.validate(uri)

    def clear_diagnostics(self, uri: str) -> None:
        self.session.document_closed(uri)
        self.text_document_publish_diagnostics(
            types.PublishDiagnosticsParams(uri=uri, diagnostics=[])
        )

    # ── Code lenses ──────────────────────────────────────

    async def code_lenses(self, uri: str, text: str) -> list[types.CodeLens]:
        settings = await self.document_settings(uri)
        items = classify_link_targets(text, settings.max_number_of_problems)
        return [to_lsp_code_lens(link, uri) for link in build_links(items)]

    async def resolve_code_lens(self, lens: types.CodeLens) -> types.CodeLens:
        parsed = parse_code_lens_data(lens.data, lens.range)
        if parsed is None:
            return lens
        link, uri = parsed
        settings = await self.document_settings(uri)
        backends = self.session.backends_for(settings)
        command = await resolve_link(link, backends.resolver, backends.market)
        lens.command = to_lsp_command(command)
        return lens

    # ── Code actions ─────────────────────────────────────

    def code_actions(
        self, uri: str, diagnostics: Sequence[types.Diagnostic]
    ) -> list[types.CodeAction]:
        actions: list[types.CodeAction] = []
        for original in diagnostics:
            fix = quick_fix_for(from_lsp_diagnostic(original))
            if fix is not None:
                actions.append(to_lsp_code_action(fix, uri, original))
        return actions

    # ── Hover ────────────────────────────────────────────

    async def hover(
        self, uri: str, text: str, position: types.Position
    ) -> types.Hover | None:
        index = LineIndex(text)
        offset = index.offset_at(Position(position.line, position.character))
        settings = await self.document_settings(uri)
        backends = self.session.backends_for(settings)
        payload = await build_hover(
            text, offset, backends.resolver, backends.market, index
        )
        return to_lsp_hover(payload) if payload is not None else None

    # ── Completion ───────────────────────────────────────

    async def completions(
        self, uri: str, position: types.Position
    ) -> list[types.CompletionItem]:
        settings = await self.document_settings(uri)
        backends = self.session.backends_for(settings)
        items, tokens = await build_completions(backends.market)
        self.completion_tokens = tokens
        return [to_lsp_completion(item, position) for item in items]

    def resolve_completion(
        self, item: types.CompletionItem
    ) -> types.CompletionItem:
        data = item.data if isinstance(item.data, dict) else {}
        address = str(data.get("address", ""))
        token = self.completion_tokens.get(address.lower())
        if token is None:
            return item
        item.detail = address
        item.documentation = types.MarkupContent(
            kind=types.MarkupKind.Markdown,
            value=render_token_markdown(token),
        )
        return item


def create_server(
    settings: Settings | None = None,
    session: SessionStore | None = None,
) -> DefiLanguageServer:
    """Build a server with every feature registered."""
    server = DefiLanguageServer(settings, session)

    @server.feature(types.INITIALIZED)
    async def initialized(
        ls: DefiLanguageServer, params: types.InitializedParams
    ) -> None:
        if not ls.supports_configuration():
            return
        try:
            await ls.client_register_capability_async(
                types.RegistrationParams(
                    registrations=[
                        types.Registration(
                            id=str(uuid.uuid4()),
                            method=types.WORKSPACE_DID_CHANGE_CONFIGURATION,
                        )
                    ]
                )
            )
        except Exception:  # noqa: BLE001
            logger.warning(
                "event=capability_registration_failed"
                " method=workspace/didChangeConfiguration",
                exc_info=True,
            )

    @server.feature(types.TEXT_DOCUMENT_DID_OPEN)
    async def did_open(
        ls: DefiLanguageServer, params: types.DidOpenTextDocumentParams
    ) -> None:
        await ls.validate(params.text_document.uri)

    @server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
    async def did_change(
        ls: DefiLanguageServer, params: types.DidChangeTextDocumentParams
    ) -> None:
        await ls.validate(params.text_document.uri)

    @server.feature(types.TEXT_DOCUMENT_DID_CLOSE)
    def did_close(
        ls: DefiLanguageServer, params: types.DidCloseTextDocumentParams
    ) -> None:
        ls.clear_diagnostics(params.text_document.uri)

    @server.feature(types.WORKSPACE_DID_CHANGE_CONFIGURATION)
    async def did_change_configuration(
        ls: DefiLanguageServer, params: types.DidChangeConfigurationParams
    ) -> None:
        ls.configuration_changed(params.settings)
        await ls.revalidate_all()
        # passes still holding a retired client are stale by now
        await ls.session.close_retired()

    @server.feature(
        types.TEXT_DOCUMENT_CODE_LENS,
        types.CodeLensOptions(resolve_provider=True),
    )
    async def code_lens(
        ls: DefiLanguageServer, params: types.CodeLensParams
    ) -> list[types.CodeLens]:
        uri = params.text_document.uri
        document = ls.workspace.get_text_document(uri)
        return await ls.code_lenses(uri, document.source)

    @server.feature(types.CODE_LENS_RESOLVE)
    async def code_lens_resolve(
        ls: DefiLanguageServer, params: types.CodeLens
    ) -> types.CodeLens:
        return await ls.resolve_code_lens(params)

    @server.feature(
        types.TEXT_DOCUMENT_CODE_ACTION,
        types.CodeActionOptions(
            code_action_kinds=[types.CodeActionKind.QuickFix]
        ),
    )
    def code_action(
        ls: DefiLanguageServer, params: types.CodeActionParams
    ) -> list[types.CodeAction]:
        return ls.code_actions(
            params.text_document.uri, params.context.diagnostics
        )

    @server.feature(types.TEXT_DOCUMENT_HOVER)
    async def hover(
        ls: DefiLanguageServer, params: types.HoverParams
    ) -> types.Hover | None:
        uri = params.text_document.uri
        document = ls.workspace.get_text_document(uri)
        return await ls.hover(uri, document.source, params.position)

    @server.feature(
        types.TEXT_DOCUMENT_COMPLETION,
        types.CompletionOptions(resolve_provider=True),
    )
    async def completion(
        ls: DefiLanguageServer, params: types.CompletionParams
    ) -> list[types.CompletionItem]:
        return await ls.completions(
            params.text_document.uri, params.position
        )

    @server.feature(types.COMPLETION_ITEM_RESOLVE)
    def completion_resolve(
        ls: DefiLanguageServer, params: types.CompletionItem
    ) -> types.CompletionItem:
        return ls.resolve_completion(params)

    @server.feature(types.SHUTDOWN)
    async def shutdown(ls: DefiLanguageServer, params: None) -> None:
        await ls.session.aclose()

    return server
