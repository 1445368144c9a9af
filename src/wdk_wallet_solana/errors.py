"""Exception hierarchy for the Solana wallet.

Every error raised on purpose by this package derives from
:class:`WalletError`, so callers can catch the whole family at once.
Failures are never retried here; they propagate to the caller.
"""

from __future__ import annotations

from typing import Any


class WalletError(Exception):
    """Base class for wallet-related errors."""


class ConfigurationError(WalletError):
    """The wallet is missing configuration required by the operation.

    Raised, for example, when a network call is made on a wallet that was
    created without an ``rpc_url``.
    """


class InvalidSeedError(WalletError):
    """The seed is neither a valid BIP-39 mnemonic nor usable seed bytes."""


class DerivationError(WalletError):
    """A derivation path is malformed or the key cannot be derived."""


class FeeExceededError(WalletError):
    """The estimated fee of a transfer is above ``transfer_max_fee``."""

    def __init__(self, fee: int, max_fee: int) -> None:
        self.fee = fee
        self.max_fee = max_fee
        super().__init__(
            f"Exceeded maximum fee cost for transfer operation "
            f"(estimated {fee} lamports, maximum {max_fee} lamports)."
        )


class NetworkError(WalletError):
    """An RPC request could not be completed."""


class RpcError(NetworkError):
    """The RPC node answered with a JSON-RPC error object."""

    def __init__(self, message: str, code: int | None = None, data: Any = None) -> None:
        self.code = code
        self.data = data
        super().__init__(f"RPC error {code}: {message}" if code is not None else message)


class TransactionFailedError(WalletError):
    """A submitted transaction was confirmed with an error."""

    def __init__(self, signature: str, err: Any) -> None:
        self.signature = signature
        self.err = err
        super().__init__(f"Transaction {signature} failed: {err}")


class WalletDisposedError(WalletError):
    """The wallet or account was disposed and its secrets erased."""
