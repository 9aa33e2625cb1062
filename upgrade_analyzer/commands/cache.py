"""Path resolution cache commands.

The persistent cache lives at ~/.upgrade-analyzer/cache/path-resolution/
unless settings point elsewhere. The in-memory layer only lives for one
process, so these commands operate on the persistent layer.
"""

from __future__ import annotations

import json

import click
from rich.table import Table

from ..console import console
from ..path_resolution.cache import JsonFileCacheLayer
from ..paths import get_cache_dir
from ..settings import PathResolutionSettings


def _format_size(size_bytes: int) -> str:
    """Format bytes as human-readable size."""
    size_float = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB"]:
        if size_float < 1024:
            return f"{size_float:.1f} {unit}"
        size_float /= 1024
    return f"{size_float:.1f} TB"


def _settings(ctx: click.Context) -> PathResolutionSettings:
    obj = ctx.find_object(dict) or {}
    return obj.get("settings") or PathResolutionSettings()


@click.group(invoke_without_command=True)
@click.pass_context
def cache(ctx: click.Context):
    """Manage the path resolution cache."""
    if ctx.invoked_subcommand is None:
        click.echo("\n" + ctx.get_help())
        ctx.exit()


@cache.command(name="path")
@click.pass_context
def cache_path(ctx: click.Context):
    """Show the cache directory path."""
    cache_dir = get_cache_dir(_settings(ctx))
    console.print(f"[cyan]{cache_dir}[/cyan]")

    if cache_dir.exists():
        console.print("[dim]Status: exists[/dim]")
    else:
        console.print("[dim]Status: not created yet[/dim]")


@cache.command(name="stats")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def cache_stats(ctx: click.Context, as_json: bool):
    """Show persistent cache entries and disk usage."""
    layer = JsonFileCacheLayer(get_cache_dir(_settings(ctx)))
    entries = layer.entries()
    size = layer.size_bytes()

    if as_json:
        click.echo(json.dumps({"path": str(layer.cache_dir), "entries": len(entries), "size_bytes": size}))
        return

    table = Table(title="Path Resolution Cache")
    table.add_column("Property", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Path", str(layer.cache_dir))
    table.add_row("Entries", str(len(entries)))
    table.add_row("Size", _format_size(size))
    console.print(table)


@cache.command(name="clear")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def cache_clear(ctx: click.Context, yes: bool):
    """Delete all persistent cache entries."""
    layer = JsonFileCacheLayer(get_cache_dir(_settings(ctx)))
    entries = layer.entries()

    if not entries:
        console.print("[dim]Cache is already empty.[/dim]")
        return

    if not yes and not click.confirm(f"Delete {len(entries)} cached resolution(s)?"):
        console.print("[yellow]Aborted.[/yellow]")
        return

    layer.clear()
    console.print(f"[green]✓ Cleared {len(entries)} cached resolution(s)[/green]")
