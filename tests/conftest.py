"""Shared fixtures: a deterministic seed and an in-memory RPC double."""

from __future__ import annotations

import asyncio
import json

import pytest
from solders.hash import Hash
from solders.transaction import Transaction

from wdk_wallet_solana.errors import RpcError
from wdk_wallet_solana.wallet.manager import WalletManager
from wdk_wallet_solana.wallet.token import TOKEN_PROGRAM_ID

MNEMONIC = (
    "abandon abandon abandon abandon abandon abandon "
    "abandon abandon abandon abandon abandon about"
)
RPC_URL = "http://127.0.0.1:8899"


def mint_account(decimals: int = 6, owner: str = str(TOKEN_PROGRAM_ID)) -> dict:
    return {
        "owner": owner,
        "lamports": 1461600,
        "executable": False,
        "data": {
            "program": "spl-token",
            "parsed": {"type": "mint", "info": {"decimals": decimals, "supply": "1000000"}},
        },
    }


class FakeRpc:
    """Answers the calls WalletAccount/WalletManager make, and records them."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.prioritization_fees: list[dict] = []
        self.balances: dict[str, int] = {}
        self.accounts: dict[str, dict] = {}
        self.token_balances: dict[str, int] = {}
        self.transactions: dict[str, dict] = {}
        self.fee = 5000
        self.blockhash = str(Hash.new_unique())
        self.sent: list[bytes] = []
        self.closed = False

    async def get_recent_prioritization_fees(self, addresses=None):
        self.calls.append("getRecentPrioritizationFees")
        return self.prioritization_fees

    async def get_balance(self, address):
        self.calls.append("getBalance")
        return self.balances.get(address, 0)

    async def get_account_info(self, address):
        self.calls.append("getAccountInfo")
        return self.accounts.get(address)

    async def get_token_account_balance(self, address):
        self.calls.append("getTokenAccountBalance")
        if address not in self.token_balances:
            raise RpcError("Invalid param: could not find account", code=-32602)
        amount = self.token_balances[address]
        return {"amount": str(amount), "decimals": 6, "uiAmountString": str(amount / 10**6)}

    async def get_latest_blockhash(self):
        self.calls.append("getLatestBlockhash")
        return {"blockhash": self.blockhash, "lastValidBlockHeight": 100}

    async def get_fee_for_message(self, message):
        self.calls.append("getFeeForMessage")
        return self.fee

    async def send_transaction(self, wire):
        self.calls.append("sendTransaction")
        self.sent.append(wire)
        return str(Transaction.from_bytes(wire).signatures[0])

    async def get_transaction(self, signature):
        self.calls.append("getTransaction")
        return self.transactions.get(signature)

    async def aclose(self):
        self.closed = True


class FakeWebSocket:
    """Replays queued messages; an exception in the queue is raised from recv().

    Once the queue is empty, recv() blocks until cancelled.
    """

    def __init__(self, messages: list) -> None:
        self.sent: list[dict] = []
        self._messages = list(messages)

    async def send(self, data: str) -> None:
        self.sent.append(json.loads(data))

    async def recv(self) -> str:
        if not self._messages:
            await asyncio.Event().wait()
        message = self._messages.pop(0)
        if isinstance(message, Exception):
            raise message
        return json.dumps(message)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


@pytest.fixture
def fake_rpc() -> FakeRpc:
    return FakeRpc()


@pytest.fixture
async def wallet(fake_rpc):
    manager = WalletManager(MNEMONIC, {"rpcUrl": RPC_URL}, rpc=fake_rpc)
    yield manager
    manager.dispose()


@pytest.fixture
async def account(wallet):
    return await wallet.get_account(0)
