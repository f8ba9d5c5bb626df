"""CLI entry point for ghprofile.

Commands:
  profile  Analyze a GitHub user's repositories and write an HTML report
  init     Interactive wizard that writes .ghprofile.yml
"""

from __future__ import annotations

import logging

import click
from rich.logging import RichHandler

from ghprofile_cli.commands.init import init_cmd
from ghprofile_cli.commands.profile import profile_cmd


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=verbose)],
        force=True,
    )
    if not verbose:
        # PyGithub logs every retry and redirect at INFO.
        logging.getLogger("github").setLevel(logging.WARNING)


@click.group()
@click.version_option(package_name="ghprofile", prog_name="ghprofile")
@click.option(
    "--config",
    "config_path",
    default=".ghprofile.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="GHPROFILE_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """LLM-assisted profile of a developer's public GitHub work."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(profile_cmd)
main.add_command(init_cmd)
