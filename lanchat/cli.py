#!/usr/bin/env python3
"""
LAN Chat CLI

Command-line interface for the peer-discoverable LAN chat node.

Usage:
    lanchat start              # Start a node with the HTTP API
    lanchat peers              # Listen for peers and list them
    lanchat config             # Show the effective configuration
"""

import asyncio
import json
import logging
import time
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.logging import RichHandler

from .config import load_config
from .discovery import PeerDiscovery
from .node import ChatNode, run_node

console = Console()


def setup_logging(verbose: bool = False, level: str = 'INFO'):
    """Configure logging with rich output."""
    log_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)]
    )


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              default=None, help='JSON config file')
@click.pass_context
def cli(ctx, verbose, config_path):
    """LAN Chat - chat over HTTP, find peers by UDP broadcast."""
    config = load_config(Path(config_path) if config_path else None)

    setup_logging(verbose, config.log_level)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config


@cli.command()
@click.option('--api-port', type=int, default=None, help='REST API port')
@click.option('--data-file', type=click.Path(dir_okay=False), default=None,
              help='Message history file')
@click.option('--no-api', is_flag=True, help='Disable REST API')
@click.option('--no-discovery', is_flag=True, help='Disable LAN discovery')
@click.option('--discovery-port', type=int, default=None, help='Discovery UDP port')
@click.pass_context
def start(ctx, api_port, data_file, no_api, no_discovery, discovery_port):
    """Start a chat node."""
    config = ctx.obj['config']
    if discovery_port is not None:
        config.discovery_port = discovery_port
    if api_port is not None:
        config.api_port = api_port
    if data_file is not None:
        config.data_file = Path(data_file)
    if no_discovery:
        config.auto_discover = False

    if no_api:
        console.print("\n[dim]Press Ctrl+C to stop[/dim]\n")
        try:
            asyncio.run(run_node(config))
        except KeyboardInterrupt:
            pass
        return

    async def run():
        node = ChatNode(config)

        try:
            await node.start()

            # Display info
            console.print(Panel.fit(
                f"[bold green]LAN Chat Node Started[/bold green]\n\n"
                f"Peer ID: [cyan]{node.peer_id}[/cyan]\n"
                f"Discovery Port: [yellow]{config.discovery_port}[/yellow]"
                f"{'' if config.auto_discover else ' [red](disabled)[/red]'}\n"
                f"Data File: [blue]{config.data_file}[/blue]",
                title="Node Info"
            ))

            console.print(f"\n[dim]REST API available at http://localhost:{config.api_port}[/dim]")
            console.print(f"[dim]API docs at http://localhost:{config.api_port}/docs[/dim]\n")

            from .api import run_api_server
            await run_api_server(node, host=config.host, port=config.api_port)

        finally:
            await node.stop()
            console.print("[green]Node stopped[/green]")

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Shutting down...[/yellow]")


@cli.command()
@click.option('--wait', default=20.0, show_default=True,
              help='Seconds to listen before listing')
@click.option('--discovery-port', type=int, default=None, help='Discovery UDP port')
@click.pass_context
def peers(ctx, wait, discovery_port):
    """Listen for peers on the LAN and list them."""
    config = ctx.obj['config']
    if discovery_port is not None:
        config.discovery_port = discovery_port

    try:
        discovery = PeerDiscovery(
            port=config.discovery_port,
            announce_interval=config.announce_interval,
            liveness_threshold=config.liveness_threshold,
            receive_timeout=config.receive_timeout,
            sweep_interval=config.sweep_interval,
            broadcast_address=config.broadcast_address,
        )
    except ValueError as e:
        raise click.ClickException(str(e))

    console.print(f"[dim]Discovering peers for {wait:.0f}s as {discovery.get_peer_id()}...[/dim]")

    with discovery:
        time.sleep(wait)
        discovered = discovery.get_active_peers()
        now = discovery.table.now()

        if not discovery.is_available:
            console.print("[red]Discovery unavailable (could not open the discovery port)[/red]")
            return

    if not discovered:
        console.print("[yellow]No peers found[/yellow]")
        return

    table = Table(title="Discovered Peers (LAN)")
    table.add_column("Peer ID", style="cyan")
    table.add_column("Address", style="yellow")
    table.add_column("Last Seen", justify="right")

    for p in sorted(discovered, key=lambda p: p.peer_id):
        table.add_row(p.peer_id, p.address, f"{p.age(now):.1f}s ago")

    console.print(table)


@cli.command('config')
@click.pass_context
def show_config(ctx):
    """Show the effective configuration."""
    console.print_json(json.dumps(ctx.obj['config'].to_dict()))


def main():
    cli(obj={})


if __name__ == '__main__':
    main()
