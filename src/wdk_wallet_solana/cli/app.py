"""CLI for the Solana wallet - inspect accounts and send funds from the terminal."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from wdk_wallet_solana.config import SolanaWalletConfig, load_config
from wdk_wallet_solana.errors import WalletError
from wdk_wallet_solana.wallet.clusters import get_cluster, list_cluster_names
from wdk_wallet_solana.wallet.manager import WalletManager

app = typer.Typer(
    name="wdk-wallet-solana",
    help="Hierarchical Solana wallet: derive accounts, check balances, send SOL and tokens.",
    no_args_is_help=True,
)
console = Console()

SEED_ENV_VAR = "WDK_WALLET_SEED"

_options: dict = {
    "config": None,
    "cluster": None,
    "rpc_url": None,
    "seed": None,
}


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        console.print(f"wdk-wallet-solana {version('wdk-wallet-solana')}")
        raise typer.Exit()


@app.callback()
def main(
    config: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML wallet configuration",
        envvar="WDK_WALLET_CONFIG",
    ),
    cluster: str = typer.Option(
        None,
        "--cluster",
        help=f"Well-known cluster ({', '.join(list_cluster_names())})",
    ),
    rpc_url: str = typer.Option(None, "--rpc-url", help="RPC endpoint (overrides config)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Hierarchical Solana wallet: derive accounts, check balances, send SOL and tokens."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _options["config"] = config
    _options["cluster"] = cluster
    _options["rpc_url"] = rpc_url
    _options["seed"] = None


def _build_config() -> SolanaWalletConfig:
    if _options["config"] is not None:
        config = load_config(_options["config"])
    elif _options["cluster"]:
        config = SolanaWalletConfig.for_cluster(_options["cluster"])
    else:
        config = SolanaWalletConfig()
    if _options["rpc_url"]:
        config = config.model_copy(update={"rpc_url": _options["rpc_url"]})
    return config


def _read_seed() -> str:
    """Seed phrase from the environment, or prompt once per invocation."""
    seed = os.environ.get(SEED_ENV_VAR) or _options.get("seed")
    if not seed:
        seed = console.input("[bold]Seed phrase: [/bold]", password=True)
        _options["seed"] = seed
    return seed


def _open_manager() -> WalletManager:
    return WalletManager(_read_seed(), _build_config())


def _run(coro):
    """Run a coroutine, turning wallet errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except (WalletError, ValueError, KeyError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def _explorer_link(signature: str) -> str | None:
    if not _options["cluster"]:
        return None
    return get_cluster(_options["cluster"]).explorer_tx_url(signature)


_INDEX_OPTION = typer.Option(0, "--index", "-i", min=0, help="Account index (m/44'/501'/0'/0/<index>)")


# ------------------------------------------------------------------
# Accounts
# ------------------------------------------------------------------


@app.command("address")
def address(index: int = _INDEX_OPTION):
    """Show the address of an account."""

    async def _address():
        async with _open_manager() as wallet:
            account = await wallet.get_account(index)
            return account.path, await account.get_address()

    path, addr = _run(_address())
    console.print(Panel(
        f"[cyan]{addr}[/cyan]\n\n[dim]Path: m/44'/501'/{path}[/dim]",
        title=f"Account {index}",
    ))


@app.command("balance")
def balance(index: int = _INDEX_OPTION):
    """Show the SOL balance of an account (in lamports)."""

    async def _balance():
        async with _open_manager() as wallet:
            account = await wallet.get_account(index)
            return await account.get_address(), await account.get_balance()

    addr, lamports = _run(_balance())
    console.print(f"[bold]{addr}:[/bold] {lamports} lamports")


@app.command("token-balance")
def token_balance(
    token: str = typer.Argument(help="Token mint address"),
    index: int = _INDEX_OPTION,
):
    """Show the balance of an SPL token (in base units)."""

    async def _token_balance():
        async with _open_manager() as wallet:
            account = await wallet.get_account(index)
            return await account.get_token_balance(token)

    amount = _run(_token_balance())
    console.print(f"[bold]{token}:[/bold] {amount}")


@app.command("fee-rates")
def fee_rates():
    """Show the current fee rates (in lamports)."""

    async def _fee_rates():
        async with _open_manager() as wallet:
            return await wallet.get_fee_rates()

    rates = _run(_fee_rates())
    table = Table(title="Fee Rates")
    table.add_column("Tier", style="cyan")
    table.add_column("Lamports", justify="right")
    table.add_row("normal", str(rates.normal))
    table.add_row("fast", str(rates.fast))
    console.print(table)


# ------------------------------------------------------------------
# Messages
# ------------------------------------------------------------------


@app.command("sign")
def sign(
    message: str = typer.Argument(help="Message to sign"),
    index: int = _INDEX_OPTION,
):
    """Sign a message with an account key."""

    async def _sign():
        async with _open_manager() as wallet:
            account = await wallet.get_account(index)
            return await account.sign(message)

    console.print(_run(_sign()))


@app.command("verify")
def verify(
    message: str = typer.Argument(help="Signed message"),
    signature: str = typer.Argument(help="Base58 signature"),
    index: int = _INDEX_OPTION,
):
    """Verify a message signature against an account."""

    async def _verify():
        async with _open_manager() as wallet:
            account = await wallet.get_account(index)
            return await account.verify(message, signature)

    if _run(_verify()):
        console.print("[green]Valid signature.[/green]")
    else:
        console.print("[red]Invalid signature.[/red]")
        raise typer.Exit(1)


# ------------------------------------------------------------------
# Transfers
# ------------------------------------------------------------------


@app.command("send")
def send(
    amount: int = typer.Argument(min=0, help="Amount in lamports"),
    to: str = typer.Option(..., "--to", "-t", help="Recipient address"),
    index: int = _INDEX_OPTION,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Send SOL to another address."""
    tx = {"to": to, "value": amount}

    async def _quote():
        async with _open_manager() as wallet:
            account = await wallet.get_account(index)
            return await account.quote_send_transaction(tx)

    async def _send():
        async with _open_manager() as wallet:
            account = await wallet.get_account(index)
            return await account.send_transaction(tx)

    quote = _run(_quote())
    console.print(f"\n[bold]Send {amount} lamports[/bold]")
    console.print(f"  To: {to}")
    console.print(f"  Fee: {quote.fee} lamports\n")
    if not yes:
        typer.confirm("Confirm this transaction?", abort=True)

    result = _run(_send())
    _print_sent(result.hash, result.fee)


@app.command("transfer")
def transfer(
    amount: int = typer.Argument(min=0, help="Amount in token base units"),
    token: str = typer.Option(..., "--token", help="Token mint address"),
    to: str = typer.Option(..., "--to", "-t", help="Recipient address"),
    index: int = _INDEX_OPTION,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Transfer SPL tokens to another address."""
    options = {"token": token, "recipient": to, "amount": amount}

    async def _quote():
        async with _open_manager() as wallet:
            account = await wallet.get_account(index)
            return await account.quote_transfer(options)

    async def _transfer():
        async with _open_manager() as wallet:
            account = await wallet.get_account(index)
            return await account.transfer(options)

    quote = _run(_quote())
    console.print(f"\n[bold]Transfer {amount} of {token}[/bold]")
    console.print(f"  To: {to}")
    console.print(f"  Fee: {quote.fee} lamports\n")
    if not yes:
        typer.confirm("Confirm this transfer?", abort=True)

    result = _run(_transfer())
    _print_sent(result.hash, result.fee)


def _print_sent(signature: str, fee: int) -> None:
    body = f"[bold green]Transaction sent![/bold green]\n\nTx: [cyan]{signature}[/cyan]\nFee: {fee} lamports"
    link = _explorer_link(signature)
    if link:
        body += f"\nExplorer: {link}"
    console.print(Panel(body, title="Transaction Sent"))


@app.command("receipt")
def receipt(
    signature: str = typer.Argument(help="Transaction signature"),
    index: int = _INDEX_OPTION,
):
    """Look up a transaction receipt."""

    async def _receipt():
        async with _open_manager() as wallet:
            account = await wallet.get_account(index)
            return await account.get_transaction_receipt(signature)

    result = _run(_receipt())
    if result is None:
        console.print("[yellow]Transaction not found (not yet included in a block).[/yellow]")
        raise typer.Exit(1)

    meta = result.get("meta") or {}
    table = Table(title="Transaction Receipt")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Slot", str(result.get("slot")))
    table.add_row("Block time", str(result.get("blockTime")))
    table.add_row("Fee", str(meta.get("fee")))
    err = meta.get("err")
    table.add_row("Status", f"[red]{err}[/red]" if err else "[green]OK[/green]")
    console.print(table)
