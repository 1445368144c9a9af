"""Tests for WalletManager: account caching, fee rates and disposal."""

from __future__ import annotations

import asyncio
import gc
import time

import pytest

from wdk_wallet_solana.errors import (
    ConfigurationError,
    DerivationError,
    InvalidSeedError,
    WalletDisposedError,
)
from wdk_wallet_solana.models import FeeRates
from wdk_wallet_solana.wallet import account as account_module
from wdk_wallet_solana.wallet.manager import WalletManager

from .conftest import MNEMONIC, RPC_URL


def fee_samples(*fees: int) -> list[dict]:
    return [{"slot": slot, "prioritizationFee": fee} for slot, fee in enumerate(fees)]


class TestAccounts:
    @pytest.mark.parametrize("index", [0, 1, 5, 42])
    async def test_get_account_matches_canonical_path(self, wallet, index):
        by_index = await wallet.get_account(index)
        by_path = await wallet.get_account_by_path(f"0'/0/{index}")

        assert by_index is by_path
        assert by_index.index == index
        assert by_index.path == f"0'/0/{index}"

    async def test_default_index_is_zero(self, wallet):
        assert (await wallet.get_account()).path == "0'/0/0"

    async def test_same_path_returns_cached_instance(self, wallet):
        first = await wallet.get_account_by_path("1'/0/3")
        second = await wallet.get_account_by_path("1'/0/3")
        assert first is second

    async def test_different_paths_have_different_addresses(self, wallet):
        a = await wallet.get_account(0)
        b = await wallet.get_account(1)
        assert await a.get_address() != await b.get_address()

    async def test_concurrent_requests_share_one_derivation(self, wallet, monkeypatch):
        calls = []
        original = account_module.derive_private_key

        def counting(seed, path):
            calls.append(path)
            return original(seed, path)

        monkeypatch.setattr(account_module, "derive_private_key", counting)

        accounts = await asyncio.gather(
            *(wallet.get_account_by_path("0'/0/9") for _ in range(5))
        )

        assert calls == ["0'/0/9"]
        assert all(a is accounts[0] for a in accounts)
        assert wallet._pending == {}

    async def test_failed_derivation_after_callers_cancelled(self, wallet, monkeypatch):
        def slow_failure(seed, path):
            time.sleep(0.05)
            raise DerivationError(f"cannot derive {path}")

        monkeypatch.setattr(account_module, "derive_private_key", slow_failure)
        loop = asyncio.get_running_loop()
        unhandled = []
        loop.set_exception_handler(lambda loop, context: unhandled.append(context))

        caller = asyncio.ensure_future(wallet.get_account_by_path("0'/0/8"))
        await asyncio.sleep(0)
        task = wallet._pending["0'/0/8"]
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        await asyncio.wait([task])
        del task, caller
        gc.collect()
        loop.set_exception_handler(None)

        assert unhandled == []
        assert wallet._pending == {}
        assert wallet._accounts == {}

    @pytest.mark.parametrize("index", [-1, 1.5, "2", True])
    async def test_invalid_index(self, wallet, index):
        with pytest.raises(ValueError):
            await wallet.get_account(index)

    async def test_malformed_path_is_not_cached(self, wallet):
        with pytest.raises(DerivationError):
            await wallet.get_account_by_path("0'/x/1")

        assert wallet._accounts == {}
        assert wallet._pending == {}

    async def test_same_seed_bytes_and_mnemonic_agree(self, fake_rpc):
        from wdk_wallet_solana.wallet.keys import seed_from_input

        seed_bytes = seed_from_input(MNEMONIC).reveal()
        from_phrase = WalletManager(MNEMONIC, rpc=fake_rpc)
        from_bytes = WalletManager(seed_bytes, rpc=fake_rpc)

        a = await from_phrase.get_account(3)
        b = await from_bytes.get_account(3)

        assert await a.get_address() == await b.get_address()
        from_phrase.dispose()
        from_bytes.dispose()

    def test_invalid_seed(self):
        with pytest.raises(InvalidSeedError):
            WalletManager("not a real seed phrase")


class TestFeeRates:
    async def test_uses_max_positive_sample(self, wallet, fake_rpc):
        fake_rpc.prioritization_fees = fee_samples(0, 3000, 7000)

        assert await wallet.get_fee_rates() == FeeRates(normal=7700, fast=14000)

    async def test_falls_back_to_default_base_fee(self, wallet, fake_rpc):
        fake_rpc.prioritization_fees = fee_samples(0, 0, 0)

        assert await wallet.get_fee_rates() == FeeRates(normal=5500, fast=10000)

    async def test_no_samples_uses_default(self, wallet, fake_rpc):
        fake_rpc.prioritization_fees = []

        assert await wallet.get_fee_rates() == FeeRates(normal=5500, fast=10000)

    async def test_rounds_half_up(self, fake_rpc):
        manager = WalletManager(
            MNEMONIC, {"rpc_url": RPC_URL, "fee_rate_normal_multiplier": 0.5}, rpc=fake_rpc
        )
        fake_rpc.prioritization_fees = fee_samples(5)

        assert (await manager.get_fee_rates()).normal == 3
        manager.dispose()

    async def test_custom_multipliers_and_default(self, fake_rpc):
        manager = WalletManager(
            MNEMONIC,
            {
                "rpc_url": RPC_URL,
                "default_base_fee": 1000,
                "fee_rate_normal_multiplier": 1.0,
                "fee_rate_fast_multiplier": 3.0,
            },
            rpc=fake_rpc,
        )

        assert await manager.get_fee_rates() == FeeRates(normal=1000, fast=3000)
        manager.dispose()

    async def test_each_call_queries_the_network(self, wallet, fake_rpc):
        fake_rpc.prioritization_fees = fee_samples(1000)
        await wallet.get_fee_rates()
        fake_rpc.prioritization_fees = fee_samples(2000)

        assert (await wallet.get_fee_rates()).fast == 4000
        assert fake_rpc.calls.count("getRecentPrioritizationFees") == 2

    async def test_requires_rpc(self):
        manager = WalletManager(MNEMONIC)

        with pytest.raises(ConfigurationError):
            await manager.get_fee_rates()
        manager.dispose()


class TestDispose:
    async def test_dispose_clears_cache_and_accounts(self, wallet):
        first = await wallet.get_account(0)
        second = await wallet.get_account(1)

        wallet.dispose()

        assert wallet._accounts == {}
        assert first.disposed and second.disposed
        assert wallet._seed.cleared
        with pytest.raises(WalletDisposedError):
            await first.sign("hello")

    async def test_dispose_is_idempotent(self, wallet):
        await wallet.get_account(0)
        wallet.dispose()
        wallet.dispose()
        assert wallet.disposed

    async def test_no_accounts_after_dispose(self, wallet):
        wallet.dispose()

        with pytest.raises(WalletDisposedError):
            await wallet.get_account(0)

    async def test_dispose_during_derivation(self, wallet):
        pending = asyncio.ensure_future(wallet.get_account(4))
        await asyncio.sleep(0)
        wallet.dispose()

        with pytest.raises(WalletDisposedError):
            await pending
        assert wallet._accounts == {}

    async def test_aclose_closes_owned_rpc(self, monkeypatch):
        manager = WalletManager(MNEMONIC, {"rpc_url": RPC_URL})
        closed = []

        async def fake_aclose():
            closed.append(True)

        monkeypatch.setattr(manager._rpc, "aclose", fake_aclose)

        async with manager:
            await manager.get_account(0)

        assert manager.disposed
        assert closed == [True]

    async def test_aclose_leaves_injected_rpc_open(self, fake_rpc):
        async with WalletManager(MNEMONIC, rpc=fake_rpc) as manager:
            await manager.get_account(0)

        assert not fake_rpc.closed
