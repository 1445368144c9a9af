"""Async JSON-RPC client for Solana nodes."""

from __future__ import annotations

import base64
import itertools
import logging
from typing import Any

import httpx

from wdk_wallet_solana.config import DEFAULT_COMMITMENT, DEFAULT_REQUEST_TIMEOUT
from wdk_wallet_solana.errors import NetworkError, RpcError

logger = logging.getLogger("wdk_wallet_solana.wallet.rpc")


class SolanaRpc:
    """Thin wrapper around the Solana JSON-RPC 2.0 HTTP API.

    Each method issues exactly one request and returns the ``result`` member
    of the response, unwrapped from its ``{"context", "value"}`` envelope
    where the node uses one. Nothing is retried: transport failures raise
    :class:`NetworkError`, JSON-RPC error objects raise :class:`RpcError`.

    Parameters
    ----------
    url:
        HTTP(S) endpoint of the node.
    timeout:
        Per-request timeout in seconds.
    commitment:
        Default commitment level for reads.
    transport:
        Optional ``httpx`` transport, mainly for tests.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        commitment: str = DEFAULT_COMMITMENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.commitment = commitment
        self._ids = itertools.count(1)
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> SolanaRpc:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def request(self, method: str, params: list | None = None) -> Any:
        """Send one JSON-RPC call and return its ``result``."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        try:
            resp = await self._client.post(self.url, json=payload)
        except httpx.HTTPError as exc:
            raise NetworkError(f"{method} request to {self.url} failed: {exc}") from exc

        if resp.status_code >= 400:
            raise NetworkError(
                f"{method} request to {self.url} failed with HTTP {resp.status_code}: {resp.text}"
            )
        try:
            body = resp.json()
        except ValueError as exc:
            raise NetworkError(f"{method} returned invalid JSON: {exc}") from exc

        error = body.get("error")
        if error is not None:
            raise RpcError(
                error.get("message", "Unknown error"),
                code=error.get("code"),
                data=error.get("data"),
            )
        return body.get("result")

    @staticmethod
    def _value(result: Any) -> Any:
        if isinstance(result, dict) and "value" in result and "context" in result:
            return result["value"]
        return result

    # ------------------------------------------------------------------
    # Fees
    # ------------------------------------------------------------------

    async def get_recent_prioritization_fees(
        self, addresses: list[str] | None = None
    ) -> list[dict]:
        """Recent per-slot prioritization fee samples.

        Each entry is ``{"slot": int, "prioritizationFee": int}``.
        """
        params = [addresses] if addresses else []
        return await self.request("getRecentPrioritizationFees", params) or []

    async def get_fee_for_message(self, message: bytes) -> int | None:
        """The fee in lamports the network charges for a serialized message."""
        encoded = base64.b64encode(message).decode("ascii")
        result = await self.request(
            "getFeeForMessage", [encoded, {"commitment": self.commitment}]
        )
        return self._value(result)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def get_balance(self, address: str) -> int:
        """Native balance in lamports."""
        result = await self.request(
            "getBalance", [address, {"commitment": self.commitment}]
        )
        return int(self._value(result))

    async def get_account_info(self, address: str) -> dict | None:
        """Account data in ``jsonParsed`` encoding, or ``None`` if missing."""
        result = await self.request(
            "getAccountInfo",
            [address, {"encoding": "jsonParsed", "commitment": self.commitment}],
        )
        return self._value(result)

    async def get_token_account_balance(self, address: str) -> dict:
        """Token amount of a token account (``amount``, ``decimals``, ...)."""
        result = await self.request(
            "getTokenAccountBalance", [address, {"commitment": self.commitment}]
        )
        return self._value(result)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def get_latest_blockhash(self) -> dict:
        """``{"blockhash": str, "lastValidBlockHeight": int}``."""
        result = await self.request(
            "getLatestBlockhash", [{"commitment": self.commitment}]
        )
        return self._value(result)

    async def send_transaction(self, wire: bytes) -> str:
        """Submit a signed transaction and return its signature."""
        encoded = base64.b64encode(wire).decode("ascii")
        signature = await self.request(
            "sendTransaction",
            [encoded, {"encoding": "base64", "preflightCommitment": self.commitment}],
        )
        logger.info(f"Submitted transaction {signature}")
        return signature

    async def get_transaction(self, signature: str) -> dict | None:
        """A confirmed transaction, or ``None`` if it is not in a block yet."""
        commitment = "confirmed" if self.commitment == "processed" else self.commitment
        return await self.request(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "commitment": commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
