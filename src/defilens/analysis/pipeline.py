"""One validation pass: scan → validate → resolve names → diagnostics.

Each pass works on an immutable snapshot of the document text. Stages
are isolated: a failing remote stage leaves its output empty and the
local diagnostics are still produced.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from defilens.analysis.scanner import (
    ADDRESS_PATTERN,
    PRIVATE_KEY_PATTERN,
    LineIndex,
    scan,
)
from defilens.analysis.validators import Classified, classify
from defilens.annotations.diagnostics import build_diagnostics
from defilens.annotations.models import Diagnostic
from defilens.config import DocumentSettings
from defilens.constants import CandidateKind, StageOutcome
from defilens.services.names import NameResolver

logger = logging.getLogger(__name__)


@dataclass
class StageResult[TOutput]:
    """Outcome of a single pipeline stage execution."""

    stage_name: str
    output: TOutput | None
    duration_ms: float
    status: StageOutcome
    error: str | None = None


@dataclass
class PipelineStage[TInput, TOutput]:
    """A named async stage whose exceptions become a FAILED result."""

    name: str
    execute: Callable[[TInput], Awaitable[TOutput]]

    async def run(self, input_data: TInput) -> StageResult[TOutput]:
        start = time.monotonic()
        try:
            output = await self.execute(input_data)
            elapsed = (time.monotonic() - start) * 1000
            return StageResult(
                stage_name=self.name,
                output=output,
                duration_ms=elapsed,
                status=StageOutcome.COMPLETED,
            )
        except Exception as exc:  # noqa: BLE001
            elapsed = (time.monotonic() - start) * 1000
            logger.warning(
                "event=stage_failed stage=%s error=%s", self.name, exc
            )
            return StageResult(
                stage_name=self.name,
                output=None,
                duration_ms=elapsed,
                status=StageOutcome.FAILED,
                error=str(exc),
            )


@dataclass
class PassResult:
    diagnostics: list[Diagnostic]
    candidates: list[Classified]
    stages: list[StageResult[object]] = field(
        default_factory=lambda: list[StageResult[object]]()
    )
    duration_ms: float = 0.0

    @property
    def failed_stages(self) -> list[str]:
        return [
            s.stage_name
            for s in self.stages
            if s.status == StageOutcome.FAILED
        ]


def classify_addresses(
    text: str, limit: int, index: LineIndex | None = None
) -> list[Classified]:
    """Scan and validate address spans, at most ``limit`` of them."""
    spans = scan(text, ADDRESS_PATTERN, limit, index)
    return [classify(s, CandidateKind.RAW_ADDRESS) for s in spans]


def classify_link_targets(
    text: str, limit: int, index: LineIndex | None = None
) -> list[Classified]:
    """Addresses plus private keys, both shape-checked, in text order."""
    line_index = index or LineIndex(text)
    items = classify_addresses(text, limit, line_index)
    items.extend(
        classify(s, CandidateKind.PRIVATE_KEY_HEX)
        for s in scan(text, PRIVATE_KEY_PATTERN, limit, line_index)
    )
    items.sort(key=lambda c: c.candidate.span.start_offset)
    return items


async def resolve_names(
    items: Sequence[Classified], resolver: NameResolver | None
) -> list[str | None]:
    """Confirmed names for every shape-valid span, looked up concurrently.

    Shape-invalid spans and a missing resolver yield None entries.
    """
    if resolver is None:
        return [None] * len(items)

    async def _lookup(item: Classified) -> str | None:
        address = item.address
        if address is None:
            return None
        return await resolver.resolve_name_for_address(address)

    return list(await asyncio.gather(*(_lookup(i) for i in items)))


async def run_validation_pass(
    text: str,
    settings: DocumentSettings,
    resolver: NameResolver | None,
) -> PassResult:
    """Compute the diagnostics for one document revision."""
    start = time.monotonic()
    limit = settings.max_number_of_problems
    index = LineIndex(text)

    async def _scan(snapshot: str) -> list[Classified]:
        return classify_addresses(snapshot, limit, index)

    scan_result = await PipelineStage("scan", _scan).run(text)
    items = scan_result.output or []

    names_result = await PipelineStage(
        "resolve_names",
        lambda batch: resolve_names(batch, resolver),
    ).run(items)
    names = names_result.output or [None] * len(items)

    diagnostics = build_diagnostics(items, names, limit)
    elapsed = (time.monotonic() - start) * 1000
    logger.debug(
        "event=pass_complete spans=%d diagnostics=%d duration_ms=%.1f",
        len(items),
        len(diagnostics),
        elapsed,
    )
    return PassResult(
        diagnostics=diagnostics,
        candidates=items,
        stages=[scan_result, names_result],  # type: ignore[list-item]
        duration_ms=elapsed,
    )
