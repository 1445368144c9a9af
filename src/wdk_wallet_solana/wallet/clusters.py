"""Well-known Solana cluster endpoints."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Cluster:
    """A Solana cluster and its public endpoints."""

    name: str
    rpc_url: str
    ws_url: str
    explorer_url: str

    def explorer_tx_url(self, signature: str) -> str:
        """Return the explorer link for a transaction signature."""
        if self.name == "mainnet-beta":
            return f"{self.explorer_url}/tx/{signature}"
        if self.name == "localnet":
            return f"{self.explorer_url}/tx/{signature}?cluster=custom"
        return f"{self.explorer_url}/tx/{signature}?cluster={self.name}"


CLUSTERS: dict[str, Cluster] = {
    "mainnet-beta": Cluster(
        name="mainnet-beta",
        rpc_url="https://api.mainnet-beta.solana.com",
        ws_url="wss://api.mainnet-beta.solana.com",
        explorer_url="https://explorer.solana.com",
    ),
    "devnet": Cluster(
        name="devnet",
        rpc_url="https://api.devnet.solana.com",
        ws_url="wss://api.devnet.solana.com",
        explorer_url="https://explorer.solana.com",
    ),
    "testnet": Cluster(
        name="testnet",
        rpc_url="https://api.testnet.solana.com",
        ws_url="wss://api.testnet.solana.com",
        explorer_url="https://explorer.solana.com",
    ),
    "localnet": Cluster(
        name="localnet",
        rpc_url="http://127.0.0.1:8899",
        ws_url="ws://127.0.0.1:8900",
        explorer_url="https://explorer.solana.com",
    ),
}


def get_cluster(name: str) -> Cluster:
    """Get a cluster by name. Raises ``KeyError`` if not found."""
    if name not in CLUSTERS:
        raise KeyError(
            f"Unknown cluster '{name}'. Available: {list_cluster_names()}"
        )
    return CLUSTERS[name]


def list_cluster_names() -> list[str]:
    """Return the names of all known clusters."""
    return list(CLUSTERS.keys())
