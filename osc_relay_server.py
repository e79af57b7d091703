#!/usr/bin/env python3
"""OSC Relay server.

Ejecuta el Relay Hub que reparte los mensajes tunnel entre clientes.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel

from config.logging_config import setup_logging, shutdown_logging
from config.paths import ProjectPaths
from core.errors import ConfigError, PortUnavailable
from modules.oscrelay_config import load_server_config
from services.hub_service import HubService

console = Console()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="OSC Relay server (hub)")
    parser.add_argument("--config", default=None, help="Ruta a Server-Config.yml")
    parser.add_argument("--log-level", default=None, help="Nivel de logging (DEBUG, INFO, ...)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    paths = ProjectPaths(Path.cwd())
    config_path = paths.resolve(args.config) if args.config else paths.SERVER_CONFIG

    try:
        config = load_server_config(config_path)
    except ConfigError as e:
        console.print(f"[red]✗[/red] {e}")
        return 1

    setup_logging(paths.resolve(config.logging.path), args.log_level or config.logging.level, prefix="osc_relay_server")
    console.print(Panel.fit(
        f"[bold blue]OSC Relay Server[/bold blue]\n"
        f"ws://{config.server.host}:{config.server.port}",
        border_style="blue"
    ))

    service = HubService(config)
    try:
        asyncio.run(service.run())
    except PortUnavailable as e:
        console.print(f"[red]✗[/red] {e}")
        return 1
    except KeyboardInterrupt:
        console.print("[yellow]⏸[/yellow] Servidor detenido")
    finally:
        shutdown_logging()
    return 0


if __name__ == "__main__":
    sys.exit(main())
