"""Tests for conversions to and from LSP wire types."""

from __future__ import annotations

from conftest import VITALIK
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
from defilens.protocol import (
    from_lsp_diagnostic,
    from_lsp_range,
    parse_code_lens_data,
    to_lsp_code_action,
    to_lsp_code_lens,
    to_lsp_command,
    to_lsp_completion,
    to_lsp_diagnostic,
    to_lsp_hover,
    to_lsp_range,
)

URI = "file:///wallets.md"
_RANGE = Range(Position(2, 5), Position(2, 47))


def _diagnostic(severity: Severity = Severity.WARNING) -> Diagnostic:
    return Diagnostic(
        range=_RANGE,
        severity=severity,
        message="not a checksum address",
        detail="use the checksum form",
        code=f"checksum:{VITALIK}",
    )


class TestRanges:
    def test_round_trip(self) -> None:
        assert from_lsp_range(to_lsp_range(_RANGE)) == _RANGE

    def test_fields(self) -> None:
        lsp = to_lsp_range(_RANGE)
        assert (lsp.start.line, lsp.start.character) == (2, 5)
        assert (lsp.end.line, lsp.end.character) == (2, 47)


class TestDiagnostics:
    def test_wire_fields(self) -> None:
        lsp = to_lsp_diagnostic(_diagnostic(), URI)
        assert lsp.severity == types.DiagnosticSeverity.Warning
        assert lsp.source == SOURCE_NAME
        assert lsp.code == f"checksum:{VITALIK}"
        assert lsp.related_information is None

    def test_related_information(self) -> None:
        lsp = to_lsp_diagnostic(
            _diagnostic(), URI, related_information=True
        )
        assert lsp.related_information is not None
        (related,) = lsp.related_information
        assert related.location.uri == URI
        assert related.message == "use the checksum form"

    def test_every_severity_maps(self) -> None:
        for severity in Severity:
            lsp = to_lsp_diagnostic(_diagnostic(severity), URI)
            assert from_lsp_diagnostic(lsp).severity == severity

    def test_from_client_keeps_code_and_range(self) -> None:
        core = from_lsp_diagnostic(to_lsp_diagnostic(_diagnostic(), URI))
        assert core.code == f"checksum:{VITALIK}"
        assert core.range == _RANGE

    def test_from_client_without_code(self) -> None:
        lsp = types.Diagnostic(range=to_lsp_range(_RANGE), message="x")
        core = from_lsp_diagnostic(lsp)
        assert core.code == ""
        assert core.severity == Severity.ERROR


class TestCodeActions:
    def test_quick_fix_edit(self) -> None:
        original = to_lsp_diagnostic(_diagnostic(), URI)
        fix = QuickFix(
            title="Convert to checksum address",
            range=_RANGE,
            new_text=VITALIK,
            diagnostic=_diagnostic(),
        )
        action = to_lsp_code_action(fix, URI, original)
        assert action.kind == types.CodeActionKind.QuickFix
        assert action.diagnostics == [original]
        assert action.edit is not None
        assert action.edit.changes is not None
        (edit,) = action.edit.changes[URI]
        assert edit.new_text == VITALIK
        assert edit.range == to_lsp_range(_RANGE)


class TestCodeLenses:
    def test_data_round_trip(self) -> None:
        link = ActionableLink(
            range=_RANGE,
            kind=LinkKind.PRIVATE_KEY,
            network=Network.SEPOLIA,
            address=VITALIK,
        )
        lens = to_lsp_code_lens(link, URI)
        assert lens.command is None
        parsed = parse_code_lens_data(lens.data, lens.range)
        assert parsed == (link, URI)

    def test_foreign_data(self) -> None:
        lsp_range = to_lsp_range(_RANGE)
        assert parse_code_lens_data(None, lsp_range) is None
        assert parse_code_lens_data({"a": 1}, lsp_range) is None
        assert (
            parse_code_lens_data(
                ["Bogus", "mainnet", VITALIK, URI], lsp_range
            )
            is None
        )

    def test_command(self) -> None:
        command = to_lsp_command(
            LinkCommand(
                title="(goerli)",
                command="etherscan.show.url",
                url="https://goerli.etherscan.io/address/x",
            )
        )
        assert command.command == "etherscan.show.url"
        assert command.arguments == ["https://goerli.etherscan.io/address/x"]


class TestHoverAndCompletion:
    def test_hover_is_markdown(self) -> None:
        hover = to_lsp_hover(HoverPayload(markdown="**x**", range=_RANGE))
        assert isinstance(hover.contents, types.MarkupContent)
        assert hover.contents.kind == types.MarkupKind.Markdown
        assert hover.contents.value == "**x**"
        assert hover.range == to_lsp_range(_RANGE)

    def test_hover_without_range(self) -> None:
        assert to_lsp_hover(HoverPayload(markdown="x")).range is None

    def test_completion_inserts_at_cursor(self) -> None:
        position = types.Position(line=4, character=9)
        item = to_lsp_completion(
            TokenCompletion(
                label="Token: Dai Stablecoin (DAI)",
                insert_text=VITALIK,
                token_address=VITALIK.lower(),
                sort_text="0000",
            ),
            position,
        )
        assert isinstance(item.text_edit, types.TextEdit)
        assert item.text_edit.new_text == VITALIK
        assert item.text_edit.range.start == position
        assert item.text_edit.range.end == position
        assert item.data == {"address": VITALIK.lower()}
