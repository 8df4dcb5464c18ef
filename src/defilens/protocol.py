"""Conversions between core annotations and LSP wire types."""

from __future__ import annotations

import logging
from typing import Any

from lsprotocol import types

from defilens.analysis.scanner import Position, Range
from defilens.annotations.models import (
    ActionableLink,
    Diagnostic,
    HoverPayload,
    LinkCommand,
    QuickFix,
    TokenCompletion,
)
from defilens.constants import SOURCE_NAME, LinkKind, Network, Severity

logger = logging.getLogger(__name__)

_SEVERITY_TO_LSP = {
    Severity.ERROR: types.DiagnosticSeverity.Error,
    Severity.WARNING: types.DiagnosticSeverity.Warning,
    Severity.INFORMATION: types.DiagnosticSeverity.Information,
    Severity.HINT: types.DiagnosticSeverity.Hint,
}
_SEVERITY_FROM_LSP = {v: k for k, v in _SEVERITY_TO_LSP.items()}


def to_lsp_range(r: Range) -> types.Range:
    return types.Range(
        start=types.Position(line=r.start.line, character=r.start.character),
        end=types.Position(line=r.end.line, character=r.end.character),
    )


def from_lsp_range(r: types.Range) -> Range:
    return Range(
        start=Position(r.start.line, r.start.character),
        end=Position(r.end.line, r.end.character),
    )


def to_lsp_diagnostic(
    diagnostic: Diagnostic,
    uri: str,
    *,
    related_information: bool = False,
) -> types.Diagnostic:
    lsp_range = to_lsp_range(diagnostic.range)
    related = None
    if related_information:
        related = [
            types.DiagnosticRelatedInformation(
                location=types.Location(uri=uri, range=lsp_range),
                message=diagnostic.detail,
            )
        ]
    return types.Diagnostic(
        range=lsp_range,
        message=diagnostic.message,
        severity=_SEVERITY_TO_LSP[diagnostic.severity],
        code=diagnostic.code,
        source=SOURCE_NAME,
        related_information=related,
    )


def from_lsp_diagnostic(diagnostic: types.Diagnostic) -> Diagnostic:
    """Rebuild the core record from what the client sent back."""
    severity = _SEVERITY_FROM_LSP.get(
        diagnostic.severity or types.DiagnosticSeverity.Error,
        Severity.ERROR,
    )
    return Diagnostic(
        range=from_lsp_range(diagnostic.range),
        severity=severity,
        message=diagnostic.message,
        detail="",
        code="" if diagnostic.code is None else str(diagnostic.code),
    )


def to_lsp_code_action(
    fix: QuickFix, uri: str, original: types.Diagnostic
) -> types.CodeAction:
    edit = types.TextEdit(range=to_lsp_range(fix.range), new_text=fix.new_text)
    return types.CodeAction(
        title=fix.title,
        kind=types.CodeActionKind.QuickFix,
        edit=types.WorkspaceEdit(changes={uri: [edit]}),
        diagnostics=[original],
    )


def to_lsp_code_lens(link: ActionableLink, uri: str) -> types.CodeLens:
    return types.CodeLens(
        range=to_lsp_range(link.range),
        data=[str(link.kind), str(link.network), link.address, uri],
    )


def parse_code_lens_data(
    data: Any, lens_range: types.Range
) -> tuple[ActionableLink, str] | None:
    """Inverse of ``to_lsp_code_lens``; None for foreign or broken data."""
    if not isinstance(data, list) or len(data) != 4:
        return None
    kind, network, address, uri = data
    try:
        link = ActionableLink(
            range=from_lsp_range(lens_range),
            kind=LinkKind(kind),
            network=Network(network),
            address=str(address),
        )
    except ValueError:
        logger.debug("event=bad_code_lens_data data=%s", data)
        return None
    return link, str(uri)


def to_lsp_command(command: LinkCommand) -> types.Command:
    return types.Command(
        title=command.title,
        command=command.command,
        arguments=[command.url],
    )


def to_lsp_hover(payload: HoverPayload) -> types.Hover:
    return types.Hover(
        contents=types.MarkupContent(
            kind=types.MarkupKind.Markdown, value=payload.markdown
        ),
        range=to_lsp_range(payload.range) if payload.range else None,
    )


def to_lsp_completion(
    item: TokenCompletion, position: types.Position
) -> types.CompletionItem:
    return types.CompletionItem(
        label=item.label,
        kind=types.CompletionItemKind.Value,
        sort_text=item.sort_text,
        text_edit=types.TextEdit(
            range=types.Range(start=position, end=position),
            new_text=item.insert_text,
        ),
        data={"address": item.token_address},
    )
