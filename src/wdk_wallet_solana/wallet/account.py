"""A single derived Solana account and its operations."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, TypeVar

from pydantic import BaseModel
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from wdk_wallet_solana.config import SolanaWalletConfig, coerce_config
from wdk_wallet_solana.errors import (
    ConfigurationError,
    FeeExceededError,
    NetworkError,
    RpcError,
    WalletDisposedError,
)
from wdk_wallet_solana.models import (
    KeyPair,
    SolanaTransaction,
    TransactionQuote,
    TransactionResult,
    TransferOptions,
    TransferQuote,
    TransferResult,
)
from wdk_wallet_solana.wallet.keys import (
    SecretBuffer,
    derive_private_key,
    parse_path,
    seed_from_input,
)
from wdk_wallet_solana.wallet.rpc import SolanaRpc
from wdk_wallet_solana.wallet.subscriptions import SolanaSubscriptions
from wdk_wallet_solana.wallet.token import (
    TOKEN_PROGRAM_IDS,
    create_associated_token_account_idempotent,
    get_associated_token_address,
    transfer_checked,
)

logger = logging.getLogger("wdk_wallet_solana.wallet.account")

_M = TypeVar("_M", bound=BaseModel)

_CREATE_TOKEN = object()


def _coerce(model: type[_M], value: _M | dict) -> _M:
    if isinstance(value, model):
        return value
    return model.model_validate(value)


def _parse_address(address: str, what: str = "address") -> Pubkey:
    try:
        return Pubkey.from_string(address)
    except ValueError as exc:
        raise ValueError(f"Invalid {what} '{address}': {exc}") from exc


def _is_account_not_found(exc: RpcError) -> bool:
    return "could not find account" in str(exc).lower()


class WalletAccount:
    """One key pair derived from the wallet seed at a BIP-44 path.

    Instances are created with :meth:`create`, which performs the derivation;
    the constructor is private. Every operation raises
    :class:`WalletDisposedError` after :meth:`dispose`.
    """

    def __init__(
        self,
        path: str,
        config: SolanaWalletConfig,
        private_key: bytes,
        *,
        rpc: SolanaRpc | None,
        subscriptions: SolanaSubscriptions | None,
        owns_rpc: bool = False,
        _token: object = None,
    ) -> None:
        if _token is not _CREATE_TOKEN:
            raise TypeError("Use 'await WalletAccount.create(...)' to build an account.")
        self._path = path
        self._config = config
        self._secret = SecretBuffer(private_key)
        self._signer: Keypair | None = Keypair.from_seed(private_key)
        self._public_key: Pubkey = self._signer.pubkey()
        self._rpc = rpc
        self._subscriptions = subscriptions
        self._owns_rpc = owns_rpc
        self._disposed = False

    @classmethod
    async def create(
        cls,
        seed: SecretBuffer | str | bytes,
        path: str,
        config: SolanaWalletConfig | dict | None = None,
        *,
        rpc: SolanaRpc | None = None,
        subscriptions: SolanaSubscriptions | None = None,
    ) -> WalletAccount:
        """Derive the account at ``path`` and open its network handles.

        ``rpc`` and ``subscriptions`` may be shared handles (the manager
        passes its own); otherwise they are built from ``config``.
        """
        config = coerce_config(config)
        parse_path(path)

        owned_seed = not isinstance(seed, SecretBuffer)
        seed_buffer = seed_from_input(seed) if owned_seed else seed
        try:
            private_key = await asyncio.to_thread(
                derive_private_key, seed_buffer.reveal(), path
            )
        finally:
            if owned_seed:
                seed_buffer.clear()

        owns_rpc = False
        if rpc is None and config.rpc_url:
            rpc = SolanaRpc(
                config.rpc_url,
                timeout=config.request_timeout,
                commitment=config.commitment,
            )
            owns_rpc = True
        if subscriptions is None and config.websocket_url:
            subscriptions = SolanaSubscriptions(config.websocket_url, config.commitment)

        account = cls(
            path,
            config,
            private_key,
            rpc=rpc,
            subscriptions=subscriptions,
            owns_rpc=owns_rpc,
            _token=_CREATE_TOKEN,
        )
        logger.debug(f"Created account {account._public_key} at path {path}")
        return account

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def index(self) -> int:
        """The last component of the derivation path."""
        return parse_path(self._path)[-1]

    @property
    def path(self) -> str:
        return self._path

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def key_pair(self) -> KeyPair:
        """The account's key pair; ``private_key`` is ``None`` once disposed."""
        private_key = None if self._disposed else self._secret.reveal()
        return KeyPair(public_key=bytes(self._public_key), private_key=private_key)

    def _check_disposed(self) -> None:
        if self._disposed:
            raise WalletDisposedError(
                f"The account at path {self._path} has been disposed."
            )

    def _require_rpc(self) -> SolanaRpc:
        self._check_disposed()
        if self._rpc is None:
            raise ConfigurationError(
                "The wallet must be connected to a provider (rpc_url) for this operation."
            )
        return self._rpc

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    async def get_address(self) -> str:
        """The account's base58 address."""
        self._check_disposed()
        return str(self._public_key)

    async def sign(self, message: str) -> str:
        """Sign a UTF-8 message; returns the base58 signature."""
        self._check_disposed()
        return str(self._signer.sign_message(message.encode("utf-8")))

    async def verify(self, message: str, signature: str) -> bool:
        """Check a base58 signature of ``message`` against this account.

        Returns ``False`` for a well-formed signature that does not match;
        raises ``ValueError`` if ``signature`` cannot be decoded.
        """
        self._check_disposed()
        try:
            sig = Signature.from_string(signature)
        except ValueError as exc:
            raise ValueError(f"Malformed signature '{signature}': {exc}") from exc
        return sig.verify(self._public_key, message.encode("utf-8"))

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    async def get_balance(self) -> int:
        """Native balance in lamports."""
        rpc = self._require_rpc()
        return await rpc.get_balance(str(self._public_key))

    async def get_token_balance(self, token_address: str) -> int:
        """Balance of the account's associated token account for a mint.

        Returns ``0`` when the mint or the associated token account does not
        exist.
        """
        rpc = self._require_rpc()
        mint = _parse_address(token_address, "token address")
        mint_info = await self._get_mint(mint)
        if mint_info is None:
            return 0
        token_program, _decimals = mint_info

        associated = get_associated_token_address(self._public_key, mint, token_program)
        try:
            balance = await rpc.get_token_account_balance(str(associated))
        except RpcError as exc:
            if _is_account_not_found(exc):
                return 0
            raise
        return int(balance["amount"])

    async def _get_mint(self, mint: Pubkey) -> tuple[Pubkey, int] | None:
        """``(token program, decimals)`` of a mint, or ``None`` if it doesn't exist."""
        info = await self._rpc.get_account_info(str(mint))
        if info is None:
            return None
        token_program = Pubkey.from_string(info["owner"])
        if token_program not in TOKEN_PROGRAM_IDS:
            raise ValueError(f"{mint} is not a token mint (owner {token_program}).")
        data = info.get("data")
        parsed = data.get("parsed") if isinstance(data, dict) else None
        if not isinstance(parsed, dict) or parsed.get("type") != "mint":
            raise ValueError(f"{mint} is not a token mint (account is not a mint).")
        decimals = int(parsed["info"]["decimals"])
        return token_program, decimals

    # ------------------------------------------------------------------
    # Transaction building
    # ------------------------------------------------------------------

    async def _compile(self, instructions: list[Instruction]) -> tuple[Message, Hash, int]:
        """Build a message on the latest blockhash and price it."""
        rpc = self._require_rpc()
        latest = await rpc.get_latest_blockhash()
        blockhash = Hash.from_string(latest["blockhash"])
        message = Message.new_with_blockhash(instructions, self._public_key, blockhash)
        fee = await rpc.get_fee_for_message(bytes(message))
        if fee is None:
            raise NetworkError("The node could not price the transaction (blockhash expired).")
        return message, blockhash, int(fee)

    async def _submit(self, message: Message, blockhash: Hash) -> str:
        self._check_disposed()
        tx = Transaction([self._signer], message, blockhash)
        return await self._rpc.send_transaction(bytes(tx))

    async def _get_transaction(self, tx: SolanaTransaction | dict) -> tuple[Message, Hash, int]:
        tx = _coerce(SolanaTransaction, tx)
        instruction = transfer(
            TransferParams(
                from_pubkey=self._public_key,
                to_pubkey=_parse_address(tx.to, "recipient"),
                lamports=tx.value,
            )
        )
        return await self._compile([instruction])

    async def _get_transfer(self, options: TransferOptions | dict) -> tuple[Message, Hash, int]:
        options = _coerce(TransferOptions, options)
        self._require_rpc()
        mint = _parse_address(options.token, "token address")
        recipient = _parse_address(options.recipient, "recipient")

        mint_info = await self._get_mint(mint)
        if mint_info is None:
            raise ValueError(f"Token mint {options.token} does not exist.")
        token_program, decimals = mint_info

        source = get_associated_token_address(self._public_key, mint, token_program)
        destination = get_associated_token_address(recipient, mint, token_program)
        instructions = [
            create_associated_token_account_idempotent(
                self._public_key, recipient, mint, token_program
            ),
            transfer_checked(
                source,
                mint,
                destination,
                self._public_key,
                options.amount,
                decimals,
                token_program,
            ),
        ]
        message, blockhash, fee = await self._compile(instructions)

        max_fee = self._config.transfer_max_fee
        if max_fee is not None and fee > max_fee:
            raise FeeExceededError(fee, max_fee)
        return message, blockhash, fee

    # ------------------------------------------------------------------
    # Native transfers
    # ------------------------------------------------------------------

    async def send_transaction(self, tx: SolanaTransaction | dict) -> TransactionResult:
        """Sign and submit a SOL transfer ``{to, value}``."""
        message, blockhash, fee = await self._get_transaction(tx)
        signature = await self._submit(message, blockhash)
        return TransactionResult(hash=signature, fee=fee)

    async def quote_send_transaction(self, tx: SolanaTransaction | dict) -> TransactionQuote:
        """Price a SOL transfer without signing or submitting it."""
        _message, _blockhash, fee = await self._get_transaction(tx)
        return TransactionQuote(fee=fee)

    # ------------------------------------------------------------------
    # Token transfers
    # ------------------------------------------------------------------

    async def transfer(self, options: TransferOptions | dict) -> TransferResult:
        """Sign and submit an SPL token transfer.

        Raises :class:`FeeExceededError` without submitting when the fee is
        above ``transfer_max_fee``.
        """
        message, blockhash, fee = await self._get_transfer(options)
        signature = await self._submit(message, blockhash)
        logger.info(f"Token transfer from {self._public_key} submitted: {signature}")
        return TransferResult(hash=signature, fee=fee)

    async def quote_transfer(self, options: TransferOptions | dict) -> TransferQuote:
        """Price an SPL token transfer without signing or submitting it."""
        _message, _blockhash, fee = await self._get_transfer(options)
        return TransferQuote(fee=fee)

    # ------------------------------------------------------------------
    # Receipts
    # ------------------------------------------------------------------

    async def get_transaction_receipt(self, hash: str) -> dict[str, Any] | None:
        """The confirmed transaction, or ``None`` if it is not in a block yet."""
        rpc = self._require_rpc()
        return await rpc.get_transaction(hash)

    async def wait_for_confirmation(self, hash: str, timeout: float = 60.0) -> dict:
        """Wait over WebSocket until ``hash`` reaches the configured commitment."""
        self._check_disposed()
        if self._subscriptions is None:
            raise ConfigurationError(
                "The wallet must be configured with an rpc_url or ws_url to wait for confirmations."
            )
        return await self._subscriptions.wait_for_signature(hash, timeout=timeout)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Erase the private key from memory. Safe to call more than once."""
        if self._disposed:
            return
        self._secret.clear()
        self._signer = None
        self._disposed = True
        logger.debug(f"Disposed account at path {self._path}")

    async def aclose(self) -> None:
        """Dispose the account and close the RPC client it owns."""
        self.dispose()
        if self._owns_rpc and self._rpc is not None:
            await self._rpc.aclose()
            self._owns_rpc = False

    async def __aenter__(self) -> WalletAccount:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
