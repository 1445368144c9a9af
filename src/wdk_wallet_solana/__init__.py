"""Hierarchical Solana wallet built on BIP-39 seeds and BIP-44 derivation."""

from wdk_wallet_solana.config import SolanaWalletConfig, load_config, save_config
from wdk_wallet_solana.errors import (
    ConfigurationError,
    DerivationError,
    FeeExceededError,
    InvalidSeedError,
    NetworkError,
    RpcError,
    TransactionFailedError,
    WalletDisposedError,
    WalletError,
)
from wdk_wallet_solana.models import (
    FeeRates,
    KeyPair,
    SolanaTransaction,
    TransactionQuote,
    TransactionResult,
    TransferOptions,
    TransferQuote,
    TransferResult,
)
from wdk_wallet_solana.wallet.account import WalletAccount
from wdk_wallet_solana.wallet.manager import WalletManager

__all__ = [
    "ConfigurationError",
    "DerivationError",
    "FeeExceededError",
    "FeeRates",
    "InvalidSeedError",
    "KeyPair",
    "NetworkError",
    "RpcError",
    "SolanaTransaction",
    "SolanaWalletConfig",
    "TransactionFailedError",
    "TransactionQuote",
    "TransactionResult",
    "TransferOptions",
    "TransferQuote",
    "TransferResult",
    "WalletAccount",
    "WalletDisposedError",
    "WalletError",
    "WalletManager",
    "load_config",
    "save_config",
]
