#!/usr/bin/env python3
"""OSC Relay client.

Bridge entre la aplicación OSC local y el Relay Hub. Sale con código 1 si
el Relay Link agota sus reintentos.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.logging_config import setup_logging, shutdown_logging
from config.paths import ProjectPaths
from core.errors import ConfigError, MaxRetriesExceeded, PortUnavailable
from modules.oscrelay_config import ClientConfig, load_client_config
from services.bridge_service import BridgeService

console = Console()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="OSC Relay client (bridge)")
    parser.add_argument("--config", default=None, help="Ruta a Client-Config.yml")
    parser.add_argument("--log-level", default=None, help="Nivel de logging (DEBUG, INFO, ...)")
    return parser.parse_args(argv)


def print_banner(config: ClientConfig, config_path: Path):
    """Muestra la configuración efectiva."""
    local = config.osc.local
    table = Table(show_header=False, box=None)
    table.add_column("Clave", style="cyan")
    table.add_column("Valor", style="green")
    table.add_row("Config", str(config_path))
    table.add_row("Relay", config.relay.url)
    table.add_row("Usuario", config.effective_user_id)
    table.add_row("OSC recibir", f"{local.ip}:{local.receive_port}")
    table.add_row("OSC enviar", f"{local.ip}:{local.send_port}")
    table.add_row("OSCQuery", str(local.query_port))
    retries = config.relay.connection.retries
    table.add_row("Reintentos", "∞" if retries == -1 else str(retries))
    console.print(Panel(table, title="[bold blue]OSC Relay Client[/bold blue]", border_style="blue"))


async def run_client(config_path: Path, config: ClientConfig) -> int:
    service = BridgeService(config_path, config=config)
    try:
        await service.run()
    except MaxRetriesExceeded as e:
        console.print(f"[red]✗[/red] {e}")
        return 1
    except PortUnavailable as e:
        console.print(f"[red]✗[/red] {e}")
        await service.stop()
        return 1
    except asyncio.CancelledError:
        await service.stop()
        raise
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    paths = ProjectPaths(Path.cwd())
    config_path = paths.resolve(args.config) if args.config else paths.CLIENT_CONFIG

    try:
        config = load_client_config(config_path)
    except ConfigError as e:
        console.print(f"[red]✗[/red] {e}")
        return 1

    setup_logging(paths.resolve(config.logging.path), args.log_level or config.logging.level, prefix="osc_relay_client")
    print_banner(config, config_path)

    try:
        return asyncio.run(run_client(config_path, config))
    except KeyboardInterrupt:
        console.print("[yellow]⏸[/yellow] Cliente detenido")
        return 0
    finally:
        shutdown_logging()


if __name__ == "__main__":
    sys.exit(main())
