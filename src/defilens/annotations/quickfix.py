"""Quick fixes rebuilt from the remediation code of published diagnostics."""

from __future__ import annotations

from collections.abc import Iterable

from defilens.annotations.models import Diagnostic, QuickFix
from defilens.constants import RemediationPrefix


def _title(prefix: RemediationPrefix, replacement: str) -> str:
    if prefix == RemediationPrefix.CHECKSUM:
        return "Convert to checksum address"
    return f'Convert to ENS name "{replacement}"'


def quick_fix_for(diagnostic: Diagnostic) -> QuickFix | None:
    """Replacement over the diagnostic's range, or None if not fixable."""
    code = diagnostic.code or ""
    for prefix in RemediationPrefix:
        if code.startswith(prefix):
            replacement = code[len(prefix):]
            if not replacement:
                return None
            return QuickFix(
                title=_title(prefix, replacement),
                range=diagnostic.range,
                new_text=replacement,
                diagnostic=diagnostic,
            )
    return None


def synthesize(diagnostics: Iterable[Diagnostic]) -> list[QuickFix]:
    """At most one fix per diagnostic; unknown codes are skipped."""
    fixes: list[QuickFix] = []
    for diagnostic in diagnostics:
        fix = quick_fix_for(diagnostic)
        if fix is not None:
            fixes.append(fix)
    return fixes
