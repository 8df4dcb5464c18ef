"""Tests for round-trip confirmed ENS resolution."""

from __future__ import annotations

import logging

import pytest
from conftest import DAI, VITALIK, StubChain

from defilens.constants import ZERO_ADDRESS
from defilens.services.names import NameResolver


class TestForward:
    async def test_returns_checksummed_address(
        self, chain: StubChain, resolver: NameResolver
    ) -> None:
        chain.forward["vitalik.eth"] = VITALIK.lower()
        assert await resolver.resolve_address_for_name("vitalik.eth") == (
            VITALIK
        )

    async def test_zero_address_is_no_record(
        self, chain: StubChain, resolver: NameResolver
    ) -> None:
        chain.forward["burned.eth"] = ZERO_ADDRESS
        assert await resolver.resolve_address_for_name("burned.eth") is None

    async def test_unknown_name(self, resolver: NameResolver) -> None:
        assert await resolver.resolve_address_for_name("nobody.eth") is None

    async def test_empty_name_skips_backend(
        self, chain: StubChain, resolver: NameResolver
    ) -> None:
        assert await resolver.resolve_address_for_name("") is None
        assert chain.calls == []

    async def test_garbage_address_is_dropped(
        self,
        chain: StubChain,
        resolver: NameResolver,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        chain.forward["weird.eth"] = "not-an-address"
        with caplog.at_level(logging.WARNING):
            assert await resolver.resolve_address_for_name("weird.eth") is None
        assert "event=ens_bad_address" in caplog.text


class TestReverse:
    async def test_confirmed_round_trip(
        self, vitalik_chain: StubChain
    ) -> None:
        resolver = NameResolver(vitalik_chain)
        assert await resolver.resolve_name_for_address(VITALIK) == (
            "vitalik.eth"
        )
        assert [op for op, _ in vitalik_chain.calls] == ["reverse", "forward"]

    async def test_inconsistent_backend_is_suppressed(
        self, chain: StubChain, resolver: NameResolver
    ) -> None:
        chain.reverse[VITALIK.lower()] = "dai.eth"
        chain.forward["dai.eth"] = DAI
        assert await resolver.resolve_name_for_address(VITALIK) is None

    async def test_name_without_forward_record(
        self, chain: StubChain, resolver: NameResolver
    ) -> None:
        chain.reverse[VITALIK.lower()] = "dangling.eth"
        assert await resolver.resolve_name_for_address(VITALIK) is None

    async def test_no_reverse_record(
        self, chain: StubChain, resolver: NameResolver
    ) -> None:
        assert await resolver.resolve_name_for_address(VITALIK) is None
        assert len(chain.calls) == 1

    async def test_backend_failure_is_absent(
        self,
        chain: StubChain,
        resolver: NameResolver,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        chain.error = TimeoutError()
        with caplog.at_level(logging.WARNING):
            assert await resolver.resolve_name_for_address(VITALIK) is None
        assert "event=remote_unavailable" in caplog.text
        assert "error_class=timeout" in caplog.text


class TestBalance:
    async def test_balance(
        self, chain: StubChain, resolver: NameResolver
    ) -> None:
        chain.balances[VITALIK.lower()] = 10**18
        assert await resolver.get_balance_wei(VITALIK) == 10**18

    async def test_balance_failure(
        self, chain: StubChain, resolver: NameResolver
    ) -> None:
        chain.error = ConnectionError("refused")
        assert await resolver.get_balance_wei(VITALIK) is None
