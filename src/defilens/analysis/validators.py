"""Local validators: address shape, checksum case, private-key derivation.

Everything here is pure and offline. Failures are values
(``ShapeInvalid`` / ``None``), never exceptions, so one bad span cannot
affect its siblings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from eth_account import Account
from eth_utils import is_address, to_checksum_address

from defilens.analysis.scanner import TextSpan
from defilens.constants import (
    ADDRESS_HEX_DIGITS,
    HEX_PREFIX,
    PRIVATE_KEY_HEX_DIGITS,
    CandidateKind,
    WordKind,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AddressCandidate:
    span: TextSpan
    kind: CandidateKind


@dataclass(frozen=True)
class Valid:
    """Shape and checksum are correct (or the key derived cleanly)."""

    checksum_address: str


@dataclass(frozen=True)
class InvalidChecksum:
    """A single-case address; usable, but the checksum form is advised."""

    expected_checksum: str


@dataclass(frozen=True)
class ShapeInvalid:
    """Not an address (or not a derivable key). Fatal for the span."""


type ValidationResult = Valid | InvalidChecksum | ShapeInvalid


@dataclass(frozen=True)
class Classified:
    """A candidate paired with its validation outcome."""

    candidate: AddressCandidate
    result: ValidationResult

    @property
    def address(self) -> str | None:
        """Checksum address for shape-valid spans, else None."""
        match self.result:
            case Valid(checksum_address=addr):
                return addr
            case InvalidChecksum(expected_checksum=addr):
                return addr
            case ShapeInvalid():
                return None


def normalize_hex(value: str) -> str:
    """Prepend ``0x`` unless already present."""
    if value.startswith(HEX_PREFIX):
        return value
    return HEX_PREFIX + value


def checksum(address: str) -> str:
    """EIP-55 checksum form. Idempotent on already-checksummed input."""
    return to_checksum_address(address)


def validate_address(raw: str) -> ValidationResult:
    """Two-tier address check.

    Mixed case with a wrong checksum fails ``is_address`` and is shape
    invalid; single-case input passes the shape check but differs from
    its checksum form.
    """
    if not is_address(raw):
        return ShapeInvalid()
    expected = checksum(raw)
    if raw == expected:
        return Valid(checksum_address=expected)
    return InvalidChecksum(expected_checksum=expected)


def derive_address(private_key: str) -> str | None:
    """Checksum address controlled by ``private_key``, or None.

    Malformed input (wrong length, non-hex, outside the curve order)
    returns None instead of raising.
    """
    key = normalize_hex(private_key.strip())
    if len(key) != len(HEX_PREFIX) + PRIVATE_KEY_HEX_DIGITS:
        return None
    try:
        return str(Account.from_key(key).address)
    except Exception:  # noqa: BLE001
        logger.debug("event=key_derivation_failed", exc_info=True)
        return None


def validate_private_key(raw: str) -> ValidationResult:
    derived = derive_address(raw)
    if derived is None:
        return ShapeInvalid()
    return Valid(checksum_address=derived)


def classify(span: TextSpan, kind: CandidateKind) -> Classified:
    """Run the validator matching the scan pattern that found ``span``."""
    candidate = AddressCandidate(span=span, kind=kind)
    if kind == CandidateKind.PRIVATE_KEY_HEX:
        return Classified(candidate, validate_private_key(span.raw_text))
    return Classified(candidate, validate_address(span.raw_text))


def classify_word(word: str) -> tuple[WordKind, str] | None:
    """Classify a hover word.

    Returns ``(ADDRESS, checksum)``, ``(PRIVATE_KEY, derived address)``,
    ``(NAME, word)`` for anything that may be a name, or None for words
    that cannot be any of these.
    """
    word = word.rstrip(".")
    if not word:
        return None
    if is_address(word):
        return WordKind.ADDRESS, checksum(word)
    derived = derive_address(word)
    if derived is not None:
        return WordKind.PRIVATE_KEY, derived
    labels = word.split(".")
    if len(labels) > 1 and all(labels):
        return WordKind.NAME, word
    return None


def looks_like_address(value: str) -> bool:
    """Cheap shape test used on upstream data before checksumming."""
    return (
        value.startswith(HEX_PREFIX)
        and len(value) == len(HEX_PREFIX) + ADDRESS_HEX_DIGITS
        and is_address(value)
    )
