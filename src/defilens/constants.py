"""Shared constants for scanning, annotations and remote services.

StrEnum members are str-compatible, so they can be handed to the
protocol layer and to log lines unchanged.
"""

from __future__ import annotations

from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class CandidateKind(StrEnum):
    """What a scanned span looked like before validation."""

    RAW_ADDRESS = "raw_address"
    PRIVATE_KEY_HEX = "private_key_hex"


class WordKind(StrEnum):
    """Classification of the word under the cursor for hover."""

    ADDRESS = "address"
    PRIVATE_KEY = "private_key"
    NAME = "name"


class Severity(StrEnum):
    """Diagnostic severities emitted by the annotation builder."""

    ERROR = "error"
    WARNING = "warning"
    INFORMATION = "information"
    HINT = "hint"


class Network(StrEnum):
    """Networks that get one actionable link per valid address."""

    MAINNET = "mainnet"
    GOERLI = "goerli"
    SEPOLIA = "sepolia"
    HOLESKY = "holesky"


class LinkKind(StrEnum):
    """Origin of the address an actionable link points at."""

    ADDRESS = "EthAddress"
    PRIVATE_KEY = "EthPrivateKey"


class RemediationPrefix(StrEnum):
    """Prefixes of diagnostic codes that carry their own fix text."""

    CHECKSUM = "checksum:"
    ENS_NAME = "ens:"


class StageOutcome(StrEnum):
    """Outcome of one stage of a validation pass."""

    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ErrorCode(StrEnum):
    """Diagnostic code for spans without an automatic fix."""

    NOT_VALID_ADDRESS = "invalid-address"


# ── Named Constants ──────────────────────────────────────

SOURCE_NAME = "DeFi Language Support"
CONFIG_SECTION = "defi"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

ADDRESS_HEX_DIGITS = 40
PRIVATE_KEY_HEX_DIGITS = 64
HEX_PREFIX = "0x"

DEFAULT_MAX_PROBLEMS = 1000

# ── Explorer / Commands ──────────────────────────────────

SHOW_URL_COMMAND = "etherscan.show.url"

EXPLORER_URLS: dict[Network, str] = {
    Network.MAINNET: "https://etherscan.io/address/",
    Network.GOERLI: "https://goerli.etherscan.io/address/",
    Network.SEPOLIA: "https://sepolia.etherscan.io/address/",
    Network.HOLESKY: "https://holesky.etherscan.io/address/",
}

# ── Market API ───────────────────────────────────────────

MARKET_API_BASE_URL = "https://web3api.io/api/v2"
MARKET_BLOCKCHAIN_ID = "ethereum-mainnet"
MARKET_CURRENCY = "usd"
TOP_HOLDINGS_PAGE_SIZE = 5

# ── Chain RPC ────────────────────────────────────────────

INFURA_URL_TEMPLATE = "https://mainnet.infura.io/v3/{project_id}"
ETHER_DECIMALS = 18

# ── Circuit Breaker Configuration ────────────────────────

CB_MARKET_FAILURE_THRESHOLD = 5
CB_MARKET_RECOVERY_TIMEOUT = 30
CB_CHAIN_FAILURE_THRESHOLD = 5
CB_CHAIN_RECOVERY_TIMEOUT = 30

# ── HTTP ─────────────────────────────────────────────────

HTTP_TIMEOUT_SECONDS = 10.0

# ── Misc ─────────────────────────────────────────────────

ERROR_TRUNCATION_CHARS = 200
