"""Turn classified spans and confirmed names into diagnostics."""

from __future__ import annotations

from collections.abc import Sequence

from defilens.analysis.validators import (
    Classified,
    InvalidChecksum,
    ShapeInvalid,
    Valid,
)
from defilens.annotations.models import Diagnostic
from defilens.constants import ErrorCode, RemediationPrefix, Severity


def diagnostics_for(
    item: Classified, name: str | None
) -> list[Diagnostic]:
    """Diagnostics for one address span, in emission order."""
    span = item.candidate.span
    raw = span.raw_text
    match item.result:
        case ShapeInvalid():
            return [
                Diagnostic(
                    range=span.range,
                    severity=Severity.ERROR,
                    message=f"{raw} is not a valid Ethereum address",
                    detail=(
                        "The string appears to be an Ethereum address"
                        " but fails checksum."
                    ),
                    code=ErrorCode.NOT_VALID_ADDRESS,
                )
            ]
        case InvalidChecksum(expected_checksum=expected):
            out = [
                Diagnostic(
                    range=span.range,
                    severity=Severity.WARNING,
                    message=f"{raw} is not a checksum address",
                    detail=(
                        "Use a checksum address as a best practice to"
                        " ensure the address is valid."
                    ),
                    code=RemediationPrefix.CHECKSUM + expected,
                )
            ]
        case Valid():
            out = []
    if name:
        out.append(
            Diagnostic(
                range=span.range,
                severity=Severity.HINT,
                message=(
                    f'{raw} can be converted to its ENS name "{name}"'
                ),
                detail=(
                    "Convert the Ethereum address to its ENS name for"
                    " better readability."
                ),
                code=RemediationPrefix.ENS_NAME + name,
            )
        )
    return out


def build_diagnostics(
    items: Sequence[Classified],
    names: Sequence[str | None],
    limit: int,
) -> list[Diagnostic]:
    """Diagnostics in scan order, never more than ``limit``.

    ``names[i]`` is the confirmed name for ``items[i]`` (or None).
    """
    diagnostics: list[Diagnostic] = []
    for item, name in zip(items, names, strict=True):
        for diagnostic in diagnostics_for(item, name):
            if len(diagnostics) >= limit:
                return diagnostics
            diagnostics.append(diagnostic)
    return diagnostics
