"""Wallet manager: owns the seed and hands out derived accounts."""

from __future__ import annotations

import asyncio
import logging
import math

from wdk_wallet_solana.config import SolanaWalletConfig, coerce_config
from wdk_wallet_solana.errors import ConfigurationError, WalletDisposedError
from wdk_wallet_solana.models import FeeRates
from wdk_wallet_solana.wallet.account import WalletAccount
from wdk_wallet_solana.wallet.keys import seed_from_input
from wdk_wallet_solana.wallet.rpc import SolanaRpc
from wdk_wallet_solana.wallet.subscriptions import SolanaSubscriptions

logger = logging.getLogger("wdk_wallet_solana.wallet.manager")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _consume_exception(task: asyncio.Task) -> None:
    # Every waiter may have been cancelled before a failed derivation finished.
    if not task.cancelled() and task.exception() is not None:
        logger.debug(f"Account derivation failed: {task.exception()}")


class WalletManager:
    """Derives and caches :class:`WalletAccount` objects for one seed.

    Parameters
    ----------
    seed:
        A BIP-39 mnemonic or raw seed bytes. The manager keeps its own copy
        and erases it on :meth:`dispose`.
    config:
        A :class:`SolanaWalletConfig` or an equivalent mapping. Without an
        ``rpc_url`` the manager can still derive accounts, sign and verify,
        but every network call raises :class:`ConfigurationError`.
    rpc:
        Optional pre-built RPC client (shared with every account).
    """

    def __init__(
        self,
        seed: str | bytes,
        config: SolanaWalletConfig | dict | None = None,
        *,
        rpc: SolanaRpc | None = None,
    ) -> None:
        self._config = coerce_config(config)
        self._seed = seed_from_input(seed)
        self._accounts: dict[str, WalletAccount] = {}
        self._pending: dict[str, asyncio.Task] = {}
        self._disposed = False

        self._owns_rpc = rpc is None and self._config.rpc_url is not None
        if rpc is None and self._config.rpc_url:
            rpc = SolanaRpc(
                self._config.rpc_url,
                timeout=self._config.request_timeout,
                commitment=self._config.commitment,
            )
        self._rpc = rpc

        ws_url = self._config.websocket_url
        self._subscriptions = (
            SolanaSubscriptions(ws_url, self._config.commitment) if ws_url else None
        )

    @property
    def config(self) -> SolanaWalletConfig:
        return self._config

    @property
    def disposed(self) -> bool:
        return self._disposed

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def get_account(self, index: int = 0) -> WalletAccount:
        """Return the account at ``m/44'/501'/0'/0/{index}``."""
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise ValueError(f"Account index must be a non-negative integer, got {index!r}.")
        return await self.get_account_by_path(f"0'/0/{index}")

    async def get_account_by_path(self, path: str) -> WalletAccount:
        """Return the account at a relative BIP-44 path (e.g. ``"0'/0/1"``).

        The first request for a path derives the account; concurrent
        requests for the same path wait on that single derivation, and later
        requests get the cached instance.
        """
        self._check_disposed()
        account = self._accounts.get(path)
        if account is not None:
            return account

        task = self._pending.get(path)
        if task is None:
            task = asyncio.ensure_future(self._derive(path))
            task.add_done_callback(_consume_exception)
            self._pending[path] = task
        return await asyncio.shield(task)

    async def _derive(self, path: str) -> WalletAccount:
        try:
            account = await WalletAccount.create(
                self._seed,
                path,
                self._config,
                rpc=self._rpc,
                subscriptions=self._subscriptions,
            )
        finally:
            self._pending.pop(path, None)

        if self._disposed:
            account.dispose()
            raise WalletDisposedError("The wallet was disposed during account derivation.")
        self._accounts[path] = account
        logger.debug(f"Cached account for path {path}")
        return account

    def _check_disposed(self) -> None:
        if self._disposed:
            raise WalletDisposedError("The wallet has been disposed.")

    # ------------------------------------------------------------------
    # Fees
    # ------------------------------------------------------------------

    async def get_fee_rates(self) -> FeeRates:
        """Current fee rates in lamports.

        The base fee is the highest non-zero recent prioritization fee, or
        ``default_base_fee`` when every sample is zero. Each call re-queries
        the network.
        """
        if self._rpc is None:
            raise ConfigurationError(
                "The wallet must be connected to a provider to get fee rates."
            )

        samples = await self._rpc.get_recent_prioritization_fees()
        positive = [
            int(sample["prioritizationFee"])
            for sample in samples
            if int(sample["prioritizationFee"]) > 0
        ]
        base_fee = max(positive) if positive else self._config.default_base_fee

        return FeeRates(
            normal=_round_half_up(base_fee * self._config.fee_rate_normal_multiplier),
            fast=_round_half_up(base_fee * self._config.fee_rate_fast_multiplier),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Dispose every cached account and erase the seed.

        Idempotent. The RPC transport stays open; use :meth:`aclose` (or
        ``async with``) to close it as well.
        """
        for account in self._accounts.values():
            account.dispose()
        self._accounts.clear()
        self._seed.clear()
        if not self._disposed:
            logger.info("Wallet disposed; seed erased.")
        self._disposed = True

    async def aclose(self) -> None:
        """Dispose the wallet and close the RPC client it owns."""
        self.dispose()
        if self._owns_rpc and self._rpc is not None:
            await self._rpc.aclose()
            self._owns_rpc = False

    async def __aenter__(self) -> WalletManager:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
