"""Protocol-neutral annotation records.

``defilens.protocol`` converts these into wire types; nothing here
depends on the editor protocol library.
"""

from __future__ import annotations

from dataclasses import dataclass

from defilens.analysis.scanner import Range
from defilens.constants import LinkKind, Network, Severity


@dataclass(frozen=True)
class Diagnostic:
    range: Range
    severity: Severity
    message: str
    detail: str
    code: str
    """Remediation code: a known prefix followed by the fix text."""


@dataclass(frozen=True)
class ActionableLink:
    """Unresolved per-network link; the title is computed on request."""

    range: Range
    kind: LinkKind
    network: Network
    address: str


@dataclass(frozen=True)
class LinkCommand:
    title: str
    command: str
    url: str


@dataclass(frozen=True)
class HoverPayload:
    markdown: str
    range: Range | None = None


@dataclass(frozen=True)
class QuickFix:
    title: str
    range: Range
    new_text: str
    diagnostic: Diagnostic


@dataclass(frozen=True)
class TokenCompletion:
    label: str
    insert_text: str
    token_address: str
    sort_text: str
