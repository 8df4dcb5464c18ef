"""Tests for quick fixes rebuilt from diagnostic codes."""

from __future__ import annotations

from conftest import VITALIK

from defilens.analysis.scanner import Position, Range
from defilens.annotations.models import Diagnostic
from defilens.annotations.quickfix import quick_fix_for, synthesize
from defilens.constants import ErrorCode, Severity

_RANGE = Range(Position(3, 4), Position(3, 46))


def _diagnostic(code: str) -> Diagnostic:
    return Diagnostic(
        range=_RANGE,
        severity=Severity.WARNING,
        message="m",
        detail="d",
        code=code,
    )


class TestQuickFixFor:
    def test_checksum_fix(self) -> None:
        diagnostic = _diagnostic(f"checksum:{VITALIK}")
        fix = quick_fix_for(diagnostic)
        assert fix is not None
        assert fix.title == "Convert to checksum address"
        assert fix.new_text == VITALIK
        assert fix.range == _RANGE
        assert fix.diagnostic is diagnostic

    def test_ens_fix(self) -> None:
        fix = quick_fix_for(_diagnostic("ens:vitalik.eth"))
        assert fix is not None
        assert fix.title == 'Convert to ENS name "vitalik.eth"'
        assert fix.new_text == "vitalik.eth"

    def test_empty_replacement(self) -> None:
        assert quick_fix_for(_diagnostic("checksum:")) is None

    def test_unknown_codes(self) -> None:
        assert quick_fix_for(_diagnostic(ErrorCode.NOT_VALID_ADDRESS)) is None
        assert quick_fix_for(_diagnostic("")) is None
        assert quick_fix_for(_diagnostic("ENS:vitalik.eth")) is None


class TestSynthesize:
    def test_one_fix_per_fixable_diagnostic(self) -> None:
        fixes = synthesize(
            [
                _diagnostic(f"checksum:{VITALIK}"),
                _diagnostic("invalid-address"),
                _diagnostic("ens:vitalik.eth"),
            ]
        )
        assert [f.new_text for f in fixes] == [VITALIK, "vitalik.eth"]

    def test_empty(self) -> None:
        assert synthesize([]) == []
