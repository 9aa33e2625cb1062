"""upgrade-paths - locate canonical paths inside a TYPO3 installation."""

import json
import logging
import os
from pathlib import Path

import click
from pydantic import ValidationError
from rich.table import Table

from .commands.cache import cache as cache_group
from .console import console
from .logging_setup import init_json_logging
from .path_resolution.enums import InstallationType
from .path_resolution.enums import PathType
from .path_resolution.exceptions import ConstructionError
from .path_resolution.models import CacheOptions
from .path_resolution.models import ExtensionIdentifier
from .path_resolution.models import PathResolutionRequest
from .path_resolution.models import PathResolutionResponse
from .paths import create_installation_type_detector
from .paths import create_path_resolution_service
from .settings import AppSettings
from .settings import PathResolutionSettings
from .utils.error_format import escape_markup
from .utils.error_format import format_error_message

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    "success": "green",
    "not_found": "yellow",
    "error": "red",
}


def _get_settings(ctx: click.Context) -> PathResolutionSettings:
    obj = ctx.find_object(dict) or {}
    return obj.get("settings") or PathResolutionSettings()


def _parse_custom_paths(values: tuple[str, ...]) -> dict[str, str]:
    custom_paths = {}
    for value in values:
        name, sep, path = value.partition("=")
        if not sep or not name.strip() or not path.strip():
            raise click.BadParameter(f"Expected NAME=PATH, got '{value}'", param_hint="--custom-path")
        custom_paths[name.strip()] = path.strip()
    return custom_paths


@click.group(invoke_without_command=True)
@click.version_option(package_name="typo3-upgrade-paths")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Write structured JSONL logs to this file")
@click.option("--log-level", help="Log level for the JSONL log (default INFO)")
@click.pass_context
def cli(ctx: click.Context, log_file: str | None, log_level: str | None):
    """Locate extension, vendor, web and configuration paths in TYPO3 installations."""
    try:
        settings = AppSettings().get_path_resolution_settings()
    except ValidationError as e:
        console.print(f"[red]Invalid settings:[/red] {escape_markup(e)}")
        ctx.exit(2)

    log_path = log_file or settings.logging.path or os.environ.get("UPGRADE_ANALYZER_LOG_PATH")
    if log_path:
        init_json_logging(log_path, log_level or settings.logging.level)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.argument("path_type", type=click.Choice([p.value for p in PathType]))
@click.argument("installation", type=click.Path(file_okay=False))
@click.option(
    "--installation-type",
    "-t",
    type=click.Choice([t.value for t in InstallationType]),
    default=InstallationType.AUTO_DETECT.value,
    show_default=True,
    help="Installation layout",
)
@click.option("--extension", "-e", "extension_key", help="Extension key (required for the extension path type)")
@click.option("--composer-name", help="Composer package name of the extension (e.g. georgringer/news)")
@click.option("--search-dir", multiple=True, help="Additional extension search directory (repeatable)")
@click.option("--custom-path", multiple=True, metavar="NAME=PATH", help="Path override (repeatable)")
@click.option("--exclude", multiple=True, help="Glob pattern of paths to skip (repeatable)")
@click.option("--no-cache", is_flag=True, help="Bypass the resolution cache")
@click.option("--verbose", "-v", is_flag=True, help="Show attempted paths and strategy details")
@click.option("--json", "as_json", is_flag=True, help="Output the response as JSON")
@click.pass_context
def resolve(
    ctx: click.Context,
    path_type: str,
    installation: str,
    installation_type: str,
    extension_key: str | None,
    composer_name: str | None,
    search_dir: tuple[str, ...],
    custom_path: tuple[str, ...],
    exclude: tuple[str, ...],
    no_cache: bool,
    verbose: bool,
    as_json: bool,
):
    """Resolve PATH_TYPE inside the INSTALLATION directory.

    Exits 0 when the path was found, 1 otherwise.
    """
    settings = _get_settings(ctx)
    base = settings.path_configuration.to_path_configuration()
    configuration = base.with_changes(
        custom_paths={**base.custom_paths, **_parse_custom_paths(custom_path)},
        search_directories=(*base.search_directories, *search_dir),
        exclude_patterns=(*base.exclude_patterns, *exclude),
    )
    cache_options = CacheOptions(enabled=False) if no_cache else settings.cache.to_cache_options()

    try:
        builder = (
            PathResolutionRequest.builder()
            .path_type(PathType(path_type))
            .installation_path(installation)
            .installation_type(InstallationType(installation_type))
            .path_configuration(configuration)
            .cache_options(cache_options)
        )
        if extension_key:
            builder.extension_identifier(ExtensionIdentifier(extension_key, composer_name=composer_name))
        request = builder.build()
    except ConstructionError as e:
        console.print(f"[red]Error:[/red] {escape_markup(format_error_message(e, include_type=False))}")
        ctx.exit(1)

    response = create_path_resolution_service(settings).resolve_path(request)

    if as_json:
        click.echo(json.dumps(response.to_dict(), indent=2))
    else:
        _render_response(response, verbose)

    ctx.exit(0 if response.is_success else 1)


def _render_response(response: PathResolutionResponse, verbose: bool) -> None:
    style = STATUS_STYLES[response.status.value]
    console.print(f"[bold]{response.path_type.value}[/bold]: [{style}]{response.status.value}[/{style}]")

    if response.resolved_path is not None:
        console.print(f"  [cyan]{escape_markup(response.resolved_path)}[/cyan]")

    if response.alternative_paths:
        console.print("\n[bold]Alternatives:[/bold]")
        for path in response.alternative_paths:
            console.print(f"  • {escape_markup(path)}")

    for warning in response.warnings:
        console.print(f"[yellow]⚠ {escape_markup(warning)}[/yellow]")
    for error in response.errors:
        console.print(f"[red]✗ {escape_markup(error)}[/red]")

    if verbose:
        metadata = response.metadata
        console.print(f"\n[dim]Strategy: {escape_markup(metadata.used_strategy)}[/dim]")
        if metadata.recovery_attempts:
            console.print(f"[dim]Recovery: {escape_markup(', '.join(metadata.recovery_attempts))}[/dim]")
        console.print(f"[dim]From cache: {'yes' if metadata.was_from_cache else 'no'}[/dim]")
        for path in metadata.attempted_paths:
            console.print(f"[dim]  tried {escape_markup(path)}[/dim]")


@cli.command()
@click.argument("installation", type=click.Path(exists=True, file_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def detect(installation: str, as_json: bool):
    """Detect the layout of the INSTALLATION directory."""
    root = Path(installation).resolve()
    detected = create_installation_type_detector().detect(root)

    if as_json:
        click.echo(json.dumps({"installation_path": str(root), "installation_type": detected.value}))
        return

    console.print(f"[bold]{escape_markup(root)}[/bold]: [cyan]{detected.value}[/cyan]")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def capabilities(ctx: click.Context, as_json: bool):
    """List resolvable path types and the strategies behind them."""
    service = create_path_resolution_service(_get_settings(ctx))
    caps = service.get_resolution_capabilities()

    if as_json:
        click.echo(json.dumps(caps, indent=2))
        return

    table = Table(title="Path Resolution Capabilities")
    table.add_column("Path type", style="cyan")
    table.add_column("Strategy")
    table.add_column("Installation types", style="dim")

    for path_type, strategies in caps["strategies"]["path_types"].items():
        for strategy in strategies:
            priorities = ", ".join(f"{t} ({p})" for t, p in strategy["priorities"].items())
            table.add_row(path_type, strategy["identifier"], priorities)

    console.print(table)


cli.add_command(cache_group)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
