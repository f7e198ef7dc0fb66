"""
themesync command line interface.

Commands:
- serve:   run the webhook service
- extract: flatten a local theme file into setting rows
- resolve: pick a theme from a JSON list of themes
- config:  show configured branches and stores
- sync:    run a sync for a branch by hand
"""

from __future__ import annotations

import asyncio
import json
import logging
import platform
from pathlib import Path
from typing import Any

import typer

from themesync.core.errors import ThemeNotFoundError, ThemeSyncError
from themesync.core.extractor import SETTINGS_DATA_PATH, extract_settings
from themesync.core.models import ThemeCandidate
from themesync.core.paths import is_theme_file
from themesync.core.resolver import resolve_theme

app = typer.Typer(
    help="themesync - relay Shopify theme setting changes into a spreadsheet",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        from themesync import __version__

        typer.echo(f"themesync {__version__} (Python {platform.python_version()})")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """themesync command line."""


@app.command()
def serve(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to themesync.toml"),
    host: str = typer.Option("127.0.0.1", "--host", help="Host to bind to"),
    port: int = typer.Option(3000, "--port", "-p", help="Port to bind to"),
    log_dir: Path = typer.Option(Path(".themesync/logs"), "--log-dir", help="JSONL log directory"),
) -> None:
    """Run the webhook service."""
    from themesync.runtime.logging import setup_logging
    from themesync.runtime.server import run_app

    setup_logging(log_dir)
    try:
        run_app(config, host=host, port=port)
    except ThemeSyncError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


def _default_theme_path(file: Path) -> str:
    if file.name == Path(SETTINGS_DATA_PATH).name:
        return SETTINGS_DATA_PATH
    return "/".join(file.parts[-2:])


@app.command()
def extract(
    file: Path = typer.Argument(..., help="Local theme file to read"),
    path: str | None = typer.Option(
        None,
        "--path",
        help=(
            "Theme-relative path, e.g. templates/index.json. Defaults to the last two "
            "path parts (config/settings_data.json for a file of that name); the path "
            "decides how the file is read"
        ),
    ),
    as_json: bool = typer.Option(False, "--json", help="Print records as JSON"),
) -> None:
    """Flatten a theme file into (file, section, block, setting, value) rows."""
    if not file.exists():
        typer.echo(f"File not found: {file}", err=True)
        raise typer.Exit(code=1)

    theme_path = path or _default_theme_path(file)
    if not is_theme_file(theme_path):
        typer.echo(
            f"Warning: {theme_path} is not a theme path; reading it as a template (see --path)",
            err=True,
        )
    records = extract_settings(file.read_text(encoding="utf-8"), theme_path)

    if as_json:
        typer.echo(json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False))
        return

    for record in records:
        row = record.to_row()
        typer.echo("\t".join(str(cell) for cell in row))
    typer.echo(f"{len(records)} settings extracted from {theme_path}", err=True)


def _theme_nodes(data: Any) -> list[Any] | None:
    """Theme nodes from a plain list or a ``{"themes": {"nodes": [...]}}`` response."""
    if isinstance(data, dict):
        themes = data.get("themes")
        data = themes.get("nodes") if isinstance(themes, dict) else None
        if data is None:
            return []
    return data if isinstance(data, list) else None


@app.command()
def resolve(
    name: str = typer.Argument(..., help="Theme name to look for"),
    themes: Path = typer.Option(
        ..., "--themes", "-t", help="JSON file with a list of {id, name, role} themes"
    ),
) -> None:
    """Show which theme a name resolves to."""
    try:
        data = json.loads(themes.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        typer.echo(f"Could not read themes from {themes}: {e}", err=True)
        raise typer.Exit(code=1)

    nodes = _theme_nodes(data)
    if nodes is None:
        typer.echo(f"No theme list found in {themes}", err=True)
        raise typer.Exit(code=1)

    candidates = [ThemeCandidate.from_api(node) for node in nodes if isinstance(node, dict)]
    try:
        theme = resolve_theme(candidates, name)
    except ThemeNotFoundError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)

    typer.echo(f"{theme.name} ({theme.role_name}) - ID: {theme.id}")


@app.command(name="config")
def show_config(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to themesync.toml"),
) -> None:
    """Show configured branches and stores (secrets are never printed)."""
    from themesync.config import load_config

    try:
        summary = load_config(config).summary()
    except ThemeSyncError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo("Branches:")
    for branch in summary["branches"]:
        typer.echo(
            f"  • {branch['branch']} → {branch['store_name']} "
            f"({branch['shop_domain']}, theme {branch['theme_name']})"
        )
    typer.echo("Stores:")
    for store in summary["stores"]:
        token = "token set" if store["has_token"] else "token missing"
        typer.echo(f"  • {store['store_name']} ({store['shop_domain']}) - {token}")
    typer.echo(f"GitHub secret: {'set' if summary['has_github_secret'] else 'missing'}")
    typer.echo(f"Sheet sink: {'configured' if summary['sink_configured'] else 'not configured'}")


@app.command()
def sync(
    branch: str = typer.Argument(..., help="Configured branch to sync"),
    files: list[str] = typer.Argument(..., help="Theme-relative file paths"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to themesync.toml"),
    no_delay: bool = typer.Option(False, "--no-delay", help="Skip the pre-fetch delay"),
) -> None:
    """Run a sync for a branch by hand."""
    from themesync.config import load_config
    from themesync.runtime.logging import setup_logging
    from themesync.runtime.pipeline import ThemeSyncPipeline

    setup_logging(None, level=logging.INFO)
    try:
        app_config = load_config(config)
    except ThemeSyncError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    store = app_config.store_for_branch(branch)
    if store is None:
        typer.echo(f"No configuration found for branch: {branch}", err=True)
        raise typer.Exit(code=1)

    if no_delay:
        app_config.sync.fetch_delay_seconds = 0

    pipeline = ThemeSyncPipeline(app_config)
    try:
        result = asyncio.run(pipeline.sync_files(store, files))
    except ThemeSyncError as e:
        typer.echo(f"Sync failed: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(json.dumps(result.to_dict(), indent=2))
    if result.delivery is not None and not result.delivery.success:
        raise typer.Exit(code=2)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
