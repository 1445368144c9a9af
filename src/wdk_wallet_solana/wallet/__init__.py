"""Hierarchical Solana wallet.

A :class:`~wdk_wallet_solana.wallet.manager.WalletManager` owns a BIP-39 seed
and hands out :class:`~wdk_wallet_solana.wallet.account.WalletAccount`
objects, one per BIP-44 derivation path (``m/44'/501'/...``). Accounts query
balances and build, quote and submit SOL and SPL token transfers over a
JSON-RPC endpoint.
"""
