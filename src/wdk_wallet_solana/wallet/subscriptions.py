"""WebSocket subscriptions for transaction confirmation."""

from __future__ import annotations

import asyncio
import json
import logging

import websockets
from websockets.exceptions import WebSocketException

from wdk_wallet_solana.config import DEFAULT_COMMITMENT
from wdk_wallet_solana.errors import NetworkError, RpcError, TransactionFailedError

logger = logging.getLogger("wdk_wallet_solana.wallet.subscriptions")


class SolanaSubscriptions:
    """Opens a short-lived ``signatureSubscribe`` stream per confirmation."""

    def __init__(self, ws_url: str, commitment: str = DEFAULT_COMMITMENT) -> None:
        self.ws_url = ws_url
        self.commitment = commitment

    async def wait_for_signature(self, signature: str, timeout: float = 60.0) -> dict:
        """Block until ``signature`` reaches the configured commitment.

        Returns the notification value (``{"err": None}`` on success).

        Raises
        ------
        TransactionFailedError
            If the transaction landed with an error.
        asyncio.TimeoutError
            If no notification arrives within ``timeout`` seconds.
        """
        value = await asyncio.wait_for(self._subscribe(signature), timeout=timeout)
        if value.get("err") is not None:
            raise TransactionFailedError(signature, value["err"])
        logger.info(f"Transaction {signature} reached {self.commitment}")
        return value

    async def _subscribe(self, signature: str) -> dict:
        request = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "signatureSubscribe",
            "params": [signature, {"commitment": self.commitment}],
        }
        try:
            async with websockets.connect(self.ws_url) as ws:
                await ws.send(json.dumps(request))
                while True:
                    message = json.loads(await ws.recv())
                    if "error" in message:
                        error = message["error"]
                        raise RpcError(
                            error.get("message", "Unknown error"),
                            code=error.get("code"),
                            data=error.get("data"),
                        )
                    if message.get("method") == "signatureNotification":
                        return message["params"]["result"]["value"]
        except (OSError, WebSocketException) as exc:
            raise NetworkError(f"Subscription to {self.ws_url} failed: {exc}") from exc
