"""CLI for the Blockpool RPC client."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.traceback import install

from blockpool_client.core.config import ClientConfig, load_config
from blockpool_client.core.errors import BlockpoolError, log_and_format
from blockpool_client.core.formatting import format_address
from blockpool_client.data import format_explorer_url, get_network_config, get_supported_networks
from blockpool_client.rpc import RpcClient

T = TypeVar("T")

app = typer.Typer(
    name="blockpool",
    help="Query live Sei blockchain data through the Blockpool RPC client",
    add_completion=False,
)

console = Console()


class OutputFormat(StrEnum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def _setup_logging(debug: bool) -> None:
    if debug:
        # Install rich traceback handler
        install(show_locals=True)
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=debug, show_path=debug)],
        force=True,
    )


def _build_config(config_path: Path | None, url: str | None, debug: bool) -> ClientConfig:
    overrides: dict[str, Any] = {}
    if url:
        overrides["server"] = {"url": url}
    if debug:
        overrides["debug"] = True
    return load_config(config_path, **overrides)


def _run(
    description: str,
    config: ClientConfig,
    action: Callable[[RpcClient], Awaitable[T]],
) -> T:
    """
    Connect, run ``action`` with a spinner, and always disconnect.

    Raises
    ------
    typer.Exit
        If the client reports an error (re-raised as-is in debug mode)

    """

    async def runner() -> T:
        async with RpcClient(config) as client:
            return await action(client)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(description, total=None)
        try:
            return asyncio.run(runner())
        except BlockpoolError as e:
            progress.stop()
            console.print(f"[bold red]Error:[/bold red] {log_and_format(e, description)}")
            if config.debug:
                raise
            raise typer.Exit(code=1) from e


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


def _print_mapping(title: str, data: dict[str, Any]) -> None:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")
    for key, value in data.items():
        if isinstance(value, dict | list):
            value = json.dumps(value, default=str)
        table.add_row(str(key), str(value))
    console.print(table)


@app.command()
def health(
    config_path: Path | None = typer.Option(None, "--config", help="YAML config file", exists=True, dir_okay=False),
    url: str | None = typer.Option(None, "--url", "-u", help="Override server URL"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """Connect to the server and show the connection status."""
    _setup_logging(debug)
    config = _build_config(config_path, url, debug)

    async def action(client: RpcClient) -> dict[str, Any]:
        return client.get_debug_info()

    info = _run(f"Connecting to {config.server.url}...", config, action)
    status = info["connection_status"]
    console.print(f"[bold green]✓ Connected[/bold green] to {config.server.url}")
    console.print(f"  Session: {status['session_id']}")
    console.print(
        f"  Rate limit: {info['rate_limit_status']['remaining']}/{config.rate_limit.max_requests_per_minute} remaining"
    )


@app.command()
def balance(
    address: str = typer.Argument(..., help="Wallet address to query"),
    network: str | None = typer.Option(None, "--network", "-n", help="Network name"),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
    config_path: Path | None = typer.Option(None, "--config", help="YAML config file", exists=True, dir_okay=False),
    url: str | None = typer.Option(None, "--url", "-u", help="Override server URL"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """
    Get the balance of a wallet.

    Examples:

        blockpool balance sei1abc...

        blockpool balance 0xABC... --network sei-evm --format json
    """
    _setup_logging(debug)
    config = _build_config(config_path, url, debug)
    result = _run(
        f"Fetching balance for {format_address(address)}...",
        config,
        lambda client: client.get_balance(address, network),
    )

    if format == OutputFormat.JSON:
        _print_json(result.model_dump(by_alias=True))
        return

    table = Table(title=f"Balance for {format_address(address)}", show_header=True, header_style="bold magenta")
    table.add_column("Denom", style="cyan")
    table.add_column("Amount", style="white", justify="right")
    for token in result.tokens:
        table.add_row(token.denom, token.amount)
    console.print(table)
    console.print(f"[bold]Total:[/bold] [bold green]{result.formatted}[/bold green]")


@app.command()
def tx(
    tx_hash: str = typer.Argument(..., help="Transaction hash"),
    network: str | None = typer.Option(None, "--network", "-n", help="Network name"),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
    config_path: Path | None = typer.Option(None, "--config", help="YAML config file", exists=True, dir_okay=False),
    url: str | None = typer.Option(None, "--url", "-u", help="Override server URL"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """Get transaction details by hash."""
    _setup_logging(debug)
    config = _build_config(config_path, url, debug)
    result = _run("Fetching transaction...", config, lambda client: client.get_transaction(tx_hash, network))

    data = result.model_dump(by_alias=True)
    if format == OutputFormat.JSON:
        _print_json(data)
        return
    _print_mapping(f"Transaction {format_address(tx_hash, keep=8)}", data)
    console.print(f"[dim]{format_explorer_url(result.network, 'tx', result.hash)}[/dim]")


@app.command()
def block(
    network: str | None = typer.Option(None, "--network", "-n", help="Network name"),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
    config_path: Path | None = typer.Option(None, "--config", help="YAML config file", exists=True, dir_okay=False),
    url: str | None = typer.Option(None, "--url", "-u", help="Override server URL"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """Get the latest block."""
    _setup_logging(debug)
    config = _build_config(config_path, url, debug)
    result = _run("Fetching latest block...", config, lambda client: client.get_latest_block(network))

    data = result.model_dump(by_alias=True)
    if format == OutputFormat.JSON:
        _print_json(data)
        return
    data["transactions"] = len(result.transactions)
    _print_mapping(f"Latest block on {result.network}", data)


@app.command()
def call(
    method: str = typer.Argument(..., help="RPC method name"),
    params: str = typer.Option("{}", "--params", "-p", help="JSON object of parameters"),
    config_path: Path | None = typer.Option(None, "--config", help="YAML config file", exists=True, dir_okay=False),
    url: str | None = typer.Option(None, "--url", "-u", help="Override server URL"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """Call an arbitrary RPC method and print the JSON result."""
    _setup_logging(debug)
    try:
        parsed = json.loads(params)
    except ValueError as e:
        console.print(f"[bold red]Invalid --params JSON:[/bold red] {e}")
        raise typer.Exit(code=2) from e
    if not isinstance(parsed, dict):
        console.print("[bold red]--params must be a JSON object[/bold red]")
        raise typer.Exit(code=2)

    config = _build_config(config_path, url, debug)
    result = _run(f"Calling {method}...", config, lambda client: client.call(method, parsed))
    _print_json(result)


@app.command()
def networks() -> None:
    """List all supported networks."""
    table = Table(title="Supported Networks", show_header=True, header_style="bold magenta")
    table.add_column("Network", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Chain ID", style="green", justify="right")
    table.add_column("Mode", style="yellow")
    table.add_column("Primary RPC", style="dim")

    for name in get_supported_networks():
        config = get_network_config(name)
        table.add_row(name, config["name"], str(config["chain_id"]), config["mode"], config["rpc_endpoints"][0])

    console.print(table)


if __name__ == "__main__":
    app()
