"""Seed handling and ed25519 key derivation.

Seeds are BIP-39 mnemonics (or raw seed bytes); accounts are derived with
SLIP-10 for ed25519 under the Solana BIP-44 prefix ``m/44'/501'``. SLIP-10
only defines hardened child derivation for ed25519, so every component of a
relative path is hardened: ``0'/0/1`` derives ``m/44'/501'/0'/0'/1'``.
"""

from __future__ import annotations

import logging

from bip_utils import (
    Bip32KeyError,
    Bip32PathError,
    Bip32Slip10Ed25519,
    Bip39MnemonicValidator,
    Bip39SeedGenerator,
)

from wdk_wallet_solana.errors import DerivationError, InvalidSeedError, WalletDisposedError

logger = logging.getLogger("wdk_wallet_solana.wallet.keys")

SOLANA_PATH_PREFIX = "m/44'/501'"
HARDENED_OFFSET = 0x80000000

SEED_MIN_BYTES = 16
SEED_MAX_BYTES = 64


class SecretBuffer:
    """A mutable, explicitly owned buffer for secret bytes.

    Python cannot guarantee that no other copy of a secret exists, but every
    long-lived reference held by this package lives in a ``SecretBuffer`` and
    is overwritten with zeros by :meth:`clear`.
    """

    __slots__ = ("_data", "_cleared")

    def __init__(self, data: bytes | bytearray) -> None:
        self._data = bytearray(data)
        self._cleared = False

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        state = "cleared" if self._cleared else f"{len(self._data)} bytes"
        return f"<SecretBuffer {state}>"

    @property
    def cleared(self) -> bool:
        return self._cleared

    def reveal(self) -> bytes:
        """Return a copy of the secret.

        Raises :class:`WalletDisposedError` once the buffer was cleared.
        """
        if self._cleared:
            raise WalletDisposedError("The secret has been erased.")
        return bytes(self._data)

    def clear(self) -> None:
        """Overwrite the secret with zeros. Safe to call more than once."""
        for i in range(len(self._data)):
            self._data[i] = 0
        self._cleared = True


def seed_from_input(seed: str | bytes | bytearray) -> SecretBuffer:
    """Turn a BIP-39 mnemonic or raw seed bytes into an owned seed buffer.

    Raises
    ------
    InvalidSeedError
        If the mnemonic fails the BIP-39 checksum, or raw bytes are not
        between 16 and 64 bytes long.
    """
    if isinstance(seed, str):
        mnemonic = " ".join(seed.split())
        if not mnemonic or not Bip39MnemonicValidator().IsValid(mnemonic):
            raise InvalidSeedError("The seed phrase is not a valid BIP-39 mnemonic.")
        return SecretBuffer(Bip39SeedGenerator(mnemonic).Generate())

    if isinstance(seed, (bytes, bytearray)):
        if not SEED_MIN_BYTES <= len(seed) <= SEED_MAX_BYTES:
            raise InvalidSeedError(
                f"Seed must be between {SEED_MIN_BYTES} and {SEED_MAX_BYTES} bytes, "
                f"got {len(seed)}."
            )
        return SecretBuffer(seed)

    raise InvalidSeedError(
        f"Seed must be a mnemonic string or bytes, got {type(seed).__name__}."
    )


def parse_path(path: str) -> list[int]:
    """Parse a relative derivation path such as ``"0'/0/3"``.

    Hardening marks are accepted but not required; the returned indexes are
    the plain (un-hardened) component values.
    """
    if not isinstance(path, str) or not path:
        raise DerivationError(f"Invalid derivation path: {path!r}")

    indexes: list[int] = []
    for component in path.split("/"):
        digits = component[:-1] if component.endswith("'") else component
        if not digits.isdigit() or not digits.isascii():
            raise DerivationError(
                f"Invalid derivation path '{path}': bad component '{component}'."
            )
        value = int(digits)
        if value >= HARDENED_OFFSET:
            raise DerivationError(
                f"Invalid derivation path '{path}': component {value} is out of range."
            )
        indexes.append(value)
    return indexes


def full_path(path: str) -> str:
    """Return the absolute, fully hardened path for a relative one."""
    components = "/".join(f"{index}'" for index in parse_path(path))
    return f"{SOLANA_PATH_PREFIX}/{components}"


def derive_private_key(seed: bytes, path: str) -> bytes:
    """Derive the 32-byte ed25519 private key at ``path``.

    This is CPU-bound; async callers run it in a worker thread.
    """
    absolute = full_path(path)
    try:
        ctx = Bip32Slip10Ed25519.FromSeed(seed).DerivePath(absolute)
    except (Bip32KeyError, Bip32PathError, ValueError) as exc:
        raise DerivationError(f"Failed to derive key at {absolute}: {exc}") from exc
    logger.debug(f"Derived key at {absolute}")
    return ctx.PrivateKey().Raw().ToBytes()
