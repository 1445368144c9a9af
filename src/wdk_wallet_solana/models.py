"""Pydantic models for wallet inputs and results."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

U64_MAX = 2**64 - 1  # lamports and token amounts are u64 on chain


class KeyPair(BaseModel):
    """Raw ed25519 key material of an account.

    ``private_key`` is the 32-byte secret seed, or ``None`` once the account
    has been disposed.
    """

    model_config = ConfigDict(frozen=True)

    public_key: bytes
    private_key: Optional[bytes] = None


class FeeRates(BaseModel):
    """Two-tier fee estimate in lamports."""

    normal: int
    fast: int


# ---------------------------------------------------------------------------
# Transaction descriptors
# ---------------------------------------------------------------------------


class SolanaTransaction(BaseModel):
    """A native SOL transfer."""

    to: str
    value: int = Field(ge=0, le=U64_MAX)  # lamports


class TransferOptions(BaseModel):
    """An SPL token transfer."""

    token: str  # mint address
    recipient: str
    amount: int = Field(ge=0, le=U64_MAX)  # base units


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class TransactionQuote(BaseModel):
    """Dry-run cost of a native transfer."""

    fee: int


class TransactionResult(TransactionQuote):
    """Outcome of a submitted native transfer."""

    hash: str


class TransferQuote(BaseModel):
    """Dry-run cost of a token transfer."""

    fee: int


class TransferResult(TransferQuote):
    """Outcome of a submitted token transfer."""

    hash: str
