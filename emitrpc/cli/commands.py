"""CLI commands for emitrpc.

In the overall architecture: the CLI is process bootstrapping only. It loads a
user's RpcApp (``module:attribute``), applies config overrides and serves it
with uvicorn; it also encodes/decodes the connection parameter header.
"""

import asyncio
import importlib
import json
import sys
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from emitrpc import __logo__, __version__
from emitrpc.cli.shared.logging_utils import configure_console_logging, ensure_rotating_log_file
from emitrpc.cli.shared.network_utils import is_port_in_use, ws_url
from emitrpc.server.app import RpcApp
from emitrpc.server.params_codec import Base64JsonCodec

app = typer.Typer(
    name="emitrpc",
    help=f"{__logo__} emitrpc - JSON-RPC over WebSocket with emitters",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} emitrpc v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", callback=version_callback, is_eager=True
    ),
):
    """emitrpc - JSON-RPC over WebSocket with emitters."""
    pass


def load_rpc_app(target: str, app_dir: str | None = ".") -> RpcApp:
    """Import ``module:attribute``; a callable attribute is treated as a factory."""
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"expected 'module:attribute', got {target!r}")
    if app_dir is not None:
        resolved = str(Path(app_dir).resolve())
        if resolved not in sys.path:
            sys.path.insert(0, resolved)
    module = importlib.import_module(module_name)
    obj: Any = module
    for part in attr.split("."):
        obj = getattr(obj, part)
    if not isinstance(obj, RpcApp) and callable(obj):
        obj = obj()
    if not isinstance(obj, RpcApp):
        raise TypeError(f"{target} is {type(obj).__name__}, not an RpcApp")
    return obj


def _load_or_exit(target: str, app_dir: str) -> RpcApp:
    try:
        return load_rpc_app(target, app_dir)
    except (ImportError, AttributeError, TypeError, ValueError) as e:
        console.print(f"[red]Cannot load {target}:[/red] {e}")
        raise typer.Exit(1)


# ============================================================================
# Server
# ============================================================================

@app.command()
def serve(
    target: str = typer.Argument(..., help="RpcApp to serve, as module:attribute"),
    host: str = typer.Option(None, "--host", "-h", help="Bind host (default from config)"),
    port: int = typer.Option(None, "--port", "-p", help="Bind port (default from config)"),
    path: str = typer.Option(None, "--path", help="WebSocket route"),
    timeout: int = typer.Option(None, "--timeout", help="Connection lifetime ceiling in milliseconds"),
    app_dir: str = typer.Option(".", "--app-dir", help="Directory prepended to sys.path for the import"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Serve an RpcApp over WebSocket."""
    rpc_app = _load_or_exit(target, app_dir)

    overrides = {
        key: value
        for key, value in {"host": host, "port": port, "path": path, "timeout": timeout}.items()
        if value is not None
    }
    if verbose:
        overrides["log_level"] = "DEBUG"
    try:
        config = rpc_app.configure(**overrides) if overrides else rpc_app.config
    except ValueError as e:
        console.print(f"[red]Invalid option:[/red] {e}")
        raise typer.Exit(1)

    if is_port_in_use(config.host, config.port):
        console.print(
            f"[red]Port {config.port} is already in use.[/red] "
            f"Close the process using it, or pass [cyan]--port[/cyan] (current: {config.host}:{config.port})."
        )
        raise typer.Exit(1)

    configure_console_logging(config.log_level)
    log_path = ensure_rotating_log_file("serve", level=config.log_level)
    console.print(f"{__logo__} Starting emitrpc on {ws_url(config.host, config.port, config.path)}")
    console.print(f"[dim]Logs: {log_path}[/dim]")

    def _on_listen(addr: tuple[str, int]) -> None:
        console.print(f"[green]✓[/green] Listening on {addr[0]}:{addr[1]}")

    try:
        asyncio.run(rpc_app.listen(on_listen=_on_listen))
    except KeyboardInterrupt:
        console.print("\n[yellow]Shutting down...[/yellow]")


@app.command()
def routes(
    target: str = typer.Argument(..., help="RpcApp to inspect, as module:attribute"),
    app_dir: str = typer.Option(".", "--app-dir", help="Directory prepended to sys.path for the import"),
):
    """List the methods and emitters an RpcApp registers."""
    rpc_app = _load_or_exit(target, app_dir)
    table = Table(title=f"Routes ({rpc_app.config.path})")
    table.add_column("Name", style="cyan")
    table.add_column("Kind")
    for name in rpc_app.handlers.method_names():
        table.add_row(name, "method")
    for name in rpc_app.handlers.emitter_names():
        table.add_row(f"{name}:", "emitter")
    console.print(table)


# ============================================================================
# Connection parameters
# ============================================================================

@app.command("encode-params")
def encode_params(value: str = typer.Argument(..., help="JSON value to encode")):
    """Encode connection parameters for the Sec-WebSocket-Protocol header."""
    try:
        data = json.loads(value)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON:[/red] {e}")
        raise typer.Exit(1)
    typer.echo(Base64JsonCodec().encode(data))


@app.command("decode-params")
def decode_params(value: str = typer.Argument(..., help="Encoded header value")):
    """Decode a Sec-WebSocket-Protocol parameter header back to JSON."""
    try:
        data = Base64JsonCodec().decode(value)
    except ValueError as e:
        console.print(f"[red]Cannot decode:[/red] {e}")
        raise typer.Exit(1)
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


@app.command()
def version():
    """Print the emitrpc version."""
    console.print(f"{__logo__} emitrpc v{__version__}")
