"""CLI entry point for SpeedTracker."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from speedtracker.auth import pingback_token
from speedtracker.controller import Controller, Response
from speedtracker.models.config import Profile, SpeedTrackerConfig
from speedtracker.storage.json_file import JsonFileDatabase

console = Console()


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(config: str) -> SpeedTrackerConfig:
    try:
        return SpeedTrackerConfig.load(config)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {config}[/red]")
        console.print("Run 'speedtracker init' to create a default config.")
        sys.exit(1)
    except (ValidationError, json.JSONDecodeError) as e:
        console.print(f"[red]Invalid config {config}:[/red] {escape(str(e))}")
        sys.exit(1)


def _controller(cfg: SpeedTrackerConfig) -> Controller:
    return Controller(cfg, JsonFileDatabase(cfg.database_path))


def _exit_on_error(response: Response) -> None:
    if response.status_code != 200:
        console.print(f"[red]{response.status_code}: {response.json()['error']}[/red]")
        sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Track WebPageTest results per profile"""
    setup_logging(verbose)


@cli.command()
@click.option("--base-url", "-b", prompt="Base URL", help="Public URL that receives pingbacks")
@click.option("--url", "-u", default=None, help="URL for the default profile")
@click.option("--api-key", default="env:WPT_API_KEY", show_default=True, help="WebPageTest API key")
def init(base_url: str, url: Optional[str], api_key: str) -> None:
    """Create a default configuration file."""
    config_path = Path("speedtracker.json")
    if config_path.exists():
        if not click.confirm("speedtracker.json already exists. Overwrite?"):
            return

    profiles = {}
    if url:
        profiles["default"] = Profile(name="default", parameters={"url": url})

    cfg = SpeedTrackerConfig(base_url=base_url, profiles=profiles)
    # Unvalidated so an env: reference is written to disk as-is.
    cfg = cfg.model_copy(update={"wpt_api_key": api_key})
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nYou can now start a test with:")
    console.print("  [blue]speedtracker test --profile default[/blue]")


@cli.command()
@click.option("--config", "-c", default="speedtracker.json", help="Config file path")
def profiles(config: str) -> None:
    """List configured profiles."""
    cfg = _load_config(config)
    if not cfg.profiles:
        console.print("[yellow]No profiles configured[/yellow]")
        return
    table = Table(title="Profiles")
    table.add_column("Name", style="bold")
    table.add_column("URL")
    table.add_column("Parameters")
    for name, profile in cfg.profiles.items():
        params = {k: v for k, v in profile.parameters.items() if k != "url"}
        table.add_row(name, str(profile.parameters.get("url", "")), json.dumps(params))
    console.print(table)


@cli.command()
@click.option("--profile", "-p", default="default", help="Profile to test")
@click.option("--config", "-c", default="speedtracker.json", help="Config file path")
def test(profile: str, config: str) -> None:
    """Start a WebPageTest run for a profile."""
    cfg = _load_config(config)
    response = asyncio.run(_controller(cfg).run_test(profile))
    _exit_on_error(response)
    data = response.json().get("data") or {}
    console.print(f"[green]Test started:[/green] {data.get('testId', '?')}")
    if data.get("userUrl"):
        console.print(f"  [blue]{data['userUrl']}[/blue]")


@cli.command()
@click.option("--id", "test_id", required=True, help="WebPageTest test id")
@click.option("--key", required=True, help="Pingback key")
@click.option("--profile", "-p", default="default", help="Profile the test belongs to")
@click.option("--config", "-c", default="speedtracker.json", help="Config file path")
def pingback(test_id: str, key: str, profile: str, config: str) -> None:
    """Fetch and store the results of a finished test."""
    cfg = _load_config(config)
    response = asyncio.run(_controller(cfg).process_result(id=test_id, key=key, profile=profile))
    _exit_on_error(response)
    console.print(f"[green]Stored results for {test_id} in {profile}[/green]")


@cli.command()
@click.option("--profile", "-p", required=True, help="Profile to read")
@click.option("--from", "from_", default=None, type=int, help="Earliest timestamp (epoch seconds)")
@click.option("--to", default=None, type=int, help="Latest timestamp (epoch seconds)")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
@click.option("--config", "-c", default="speedtracker.json", help="Config file path")
def results(profile: str, from_: Optional[int], to: Optional[int], as_json: bool, config: str) -> None:
    """Show stored results for a profile."""
    cfg = _load_config(config)
    response = asyncio.run(_controller(cfg).get_results(profile, from_, to))
    _exit_on_error(response)
    records = response.json()

    if as_json:
        click.echo(json.dumps(records, indent=2))
        return
    if not records:
        console.print(f"[yellow]No results for profile {profile}[/yellow]")
        return

    table = Table(title=f"Results: {profile}")
    table.add_column("Test", style="bold")
    table.add_column("Completed")
    table.add_column("Load")
    table.add_column("TTFB")
    table.add_column("Speed Index")
    table.add_column("Score")
    for r in records:
        completed = datetime.fromtimestamp(r["timestamp"], tz=timezone.utc)
        table.add_row(
            r["id"],
            completed.strftime("%Y-%m-%d %H:%M"),
            f"{r['load_time']:.0f}ms",
            f"{r['ttfb']:.0f}ms",
            f"{r['speed_index']:.0f}",
            "-" if r["score"] is None else str(r["score"]),
        )
    console.print(table)


@cli.command()
@click.option("--config", "-c", default="speedtracker.json", help="Config file path")
def token(config: str) -> None:
    """Print the pingback key derived from the configured API key."""
    cfg = _load_config(config)
    if not cfg.wpt_api_key:
        console.print("[red]No WebPageTest API key configured[/red]")
        sys.exit(1)
    click.echo(pingback_token(cfg.wpt_api_key))


if __name__ == "__main__":
    cli()
