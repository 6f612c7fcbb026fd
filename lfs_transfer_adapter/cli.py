#!/usr/bin/env python3
"""
Custom Transfer Adapter CLI

The controller launches this process and talks to it over stdin/stdout,
so standard output carries protocol lines only. Every diagnostic goes to
standard error (and optionally a log file).

Usage:
    lfs-transfer-adapter                       # Run the adapter over stdio
    lfs-transfer-adapter -v --temp-dir DIR     # Verbose, custom temp dir
    lfs-transfer-adapter config                # Show effective config
    lfs-transfer-adapter config --write FILE   # Save effective config
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from .config import EXAMPLE_CONFIG, load_config
from .session import run_adapter

# Diagnostics only; stdout belongs to the protocol
console = Console(stderr=True)


def setup_logging(verbose: bool = False, level: str = 'INFO',
                  log_file: Optional[Path] = None):
    """Configure logging with rich output on stderr."""
    log_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    handlers = [RichHandler(console=console, show_time=False, show_path=False)]
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=handlers,
    )


def _utf8(stream, errors: str = 'strict'):
    """Protocol lines are UTF-8 regardless of the locale."""
    reconfigure = getattr(stream, 'reconfigure', None)
    if reconfigure is not None:
        reconfigure(encoding='utf-8', errors=errors)
    return stream


@click.group(invoke_without_command=True)
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False, path_type=Path),
              help='JSON config file')
@click.option('--temp-dir', type=click.Path(file_okay=False, path_type=Path),
              help='Directory for downloaded temp files')
@click.option('--chunk-size', type=click.IntRange(min=1), help='I/O chunk size in bytes')
@click.pass_context
def cli(ctx, verbose, config_path, temp_dir, chunk_size):
    """Custom transfer adapter relaying object transfers to HTTP storage."""
    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.UsageError(f"Invalid configuration: {e}") from e
    if temp_dir:
        config.temp_dir = temp_dir
    if chunk_size:
        config.chunk_size = chunk_size

    ctx.ensure_object(dict)
    ctx.obj['config'] = config

    if ctx.invoked_subcommand is None:
        run(config, verbose)


def run(config, verbose: bool = False):
    """Serve the controller on stdin/stdout until terminate or EOF."""
    setup_logging(verbose, config.log_level, config.log_file)
    logger = logging.getLogger(__name__)

    # Undecodable bytes become U+FFFD instead of ending the session
    reader = _utf8(sys.stdin, errors='replace')
    writer = _utf8(sys.stdout)

    try:
        asyncio.run(run_adapter(config, reader, writer))
    except KeyboardInterrupt:
        logger.warning("Interrupted, shutting down")


@cli.command('config')
@click.option('--write', 'write_path', type=click.Path(dir_okay=False, path_type=Path),
              help='Save the effective configuration as JSON')
@click.option('--example', is_flag=True, help='Print an example config file')
@click.pass_context
def show_config(ctx, write_path, example):
    """Show the effective configuration."""
    out = Console()
    if example:
        out.print(EXAMPLE_CONFIG.strip(), highlight=False)
        return

    config = ctx.obj['config']
    if write_path:
        config.save(write_path)
        out.print(f"[green]Configuration written to {write_path}[/green]")
        return

    out.print(Panel.fit(
        json.dumps(config.to_dict(), indent=2),
        title="Adapter Configuration"
    ))


if __name__ == '__main__':
    cli()
