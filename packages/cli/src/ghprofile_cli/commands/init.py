"""init command: interactive wizard that writes .ghprofile.yml."""

from __future__ import annotations

from pathlib import Path

import click
import yaml
from rich.console import Console

from ghprofile_core.config import DEFAULT_CONFIG, PROVIDER_KEY_ENV
from ghprofile_core.config import SUPPORTED_PROVIDERS

console = Console()


@click.command("init")
@click.pass_context
def init_cmd(ctx):
    """Create or update the configuration file interactively."""
    path = Path((ctx.obj or {}).get("config_path", ".ghprofile.yml"))
    console.print("\n[bold cyan]ghprofile init[/bold cyan]: configuration wizard\n")

    provider = click.prompt(
        "LLM provider",
        type=click.Choice(SUPPORTED_PROVIDERS),
        default=DEFAULT_CONFIG["provider"],
    )
    model = click.prompt("Model (empty for the provider default)", default="", show_default=False)
    repos_limit = click.prompt("Repositories to analyze", type=int, default=DEFAULT_CONFIG["repos_limit"])
    chunks = click.prompt("Files sampled per repository", type=int, default=DEFAULT_CONFIG["chunks_per_repo"])
    parallel = click.prompt("Parallel LLM requests", type=int, default=DEFAULT_CONFIG["parallel_requests"])
    rpm = click.prompt("LLM requests per minute", type=int, default=DEFAULT_CONFIG["requests_per_minute"])
    exclude_forks = click.confirm("Skip forked repositories?", default=DEFAULT_CONFIG["exclude_forks"])
    out_dir = click.prompt("Report output directory", default=DEFAULT_CONFIG["out_dir"])

    config: dict = {
        "provider": provider,
        "repos_limit": repos_limit,
        "chunks_per_repo": chunks,
        "parallel_requests": parallel,
        "requests_per_minute": rpm,
        "exclude_forks": exclude_forks,
        "out_dir": out_dir,
    }
    if model:
        config["model"] = model

    _write_config(path, config)
    console.print(f"[green]Wrote {path}[/green]")
    console.print(
        f"\n[yellow]Remember to export [bold]{PROVIDER_KEY_ENV[provider]}[/bold] "
        "and GITHUB_TOKEN (or run `gh auth login`).[/yellow]"
    )
    console.print("Profile someone with: [bold]ghprofile profile --user <handle>[/bold]")


def _write_config(path: Path, config: dict) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
