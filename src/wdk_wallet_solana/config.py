"""Configuration for the Solana wallet.

A :class:`SolanaWalletConfig` can be built directly, from a plain dict (the
camelCase keys ``rpcUrl``, ``wsUrl`` and ``transferMaxFee`` are accepted), or
loaded from a YAML file with ``${VAR}`` environment variable expansion.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from wdk_wallet_solana.wallet.clusters import get_cluster


# ---------------------------------------------------------------------------
# Fee estimation defaults
# ---------------------------------------------------------------------------

FEE_RATE_NORMAL_MULTIPLIER = 1.1
FEE_RATE_FAST_MULTIPLIER = 2.0
DEFAULT_BASE_FEE = 5000  # lamports

DEFAULT_COMMITMENT = "confirmed"
DEFAULT_REQUEST_TIMEOUT = 30.0

Commitment = Literal["processed", "confirmed", "finalized"]


# ---------------------------------------------------------------------------
# Environment-variable expansion helper
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def _expand_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with their environment values.

    Unset variables are left as-is so that validation can catch them later.
    """

    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1), match.group(0))

    return _ENV_VAR_RE.sub(_replace, value)


def _expand_env_recursive(obj: object) -> object:
    """Walk an arbitrary nested structure and expand env vars in strings."""
    if isinstance(obj, str):
        return _expand_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _expand_env_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# Pydantic v2 model
# ---------------------------------------------------------------------------


class SolanaWalletConfig(BaseModel):
    """Connection and policy settings shared by a manager and its accounts."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    rpc_url: Optional[str] = Field(default=None, alias="rpcUrl")
    ws_url: Optional[str] = Field(default=None, alias="wsUrl")
    transfer_max_fee: Optional[int] = Field(default=None, alias="transferMaxFee", ge=0)
    commitment: Commitment = DEFAULT_COMMITMENT
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)
    fee_rate_normal_multiplier: float = Field(default=FEE_RATE_NORMAL_MULTIPLIER, gt=0)
    fee_rate_fast_multiplier: float = Field(default=FEE_RATE_FAST_MULTIPLIER, gt=0)
    default_base_fee: int = Field(default=DEFAULT_BASE_FEE, ge=0)

    @property
    def websocket_url(self) -> str | None:
        """The subscription endpoint, derived from ``rpc_url`` when unset.

        ``https://`` maps to ``wss://`` and ``http://`` to ``ws://``.
        """
        if self.ws_url:
            return self.ws_url
        if not self.rpc_url:
            return None
        if self.rpc_url.startswith("https://"):
            return "wss://" + self.rpc_url[len("https://"):]
        if self.rpc_url.startswith("http://"):
            return "ws://" + self.rpc_url[len("http://"):]
        return self.rpc_url

    @classmethod
    def for_cluster(cls, name: str, **overrides) -> SolanaWalletConfig:
        """Build a config pointing at a well-known cluster (e.g. ``devnet``)."""
        cluster = get_cluster(name)
        data = {"rpc_url": cluster.rpc_url, "ws_url": cluster.ws_url}
        data.update(overrides)
        return cls.model_validate(data)


def coerce_config(config: SolanaWalletConfig | dict | None) -> SolanaWalletConfig:
    """Accept a config instance, a plain mapping, or ``None``."""
    if config is None:
        return SolanaWalletConfig()
    if isinstance(config, SolanaWalletConfig):
        return config
    return SolanaWalletConfig.model_validate(config)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def load_config(path: Path) -> SolanaWalletConfig:
    """Load and validate a wallet configuration from a YAML file.

    Environment variable placeholders (``${VAR}``) are expanded before
    validation.
    """
    raw_text = Path(path).read_text(encoding="utf-8")
    raw_data = yaml.safe_load(raw_text) or {}
    expanded = _expand_env_recursive(raw_data)
    return SolanaWalletConfig.model_validate(expanded)


def save_config(config: SolanaWalletConfig, path: Path) -> None:
    """Serialize a :class:`SolanaWalletConfig` to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="python", exclude_none=True)
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False, sort_keys=False)
