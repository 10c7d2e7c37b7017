"""kitlock CLI --- Lockfiles for container-image kit dependencies.

Entry point for the ``kitlock`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    update --- Resolve dependencies and write Twoliter.lock.
    fetch  --- Verify the lock and unpack external kits.
    verify --- Verify the lock (or only the SDK) and write marker files.

Usage::

    kitlock update
    kitlock --log-level debug fetch --arch aarch64
    kitlock fetch -K core-kit=../core-kit
    kitlock verify --sdk-only --format json

The container image tool is taken from ``TWOLITER_KIT_IMAGE_TOOL`` or,
when unset, the first of krane, gcrane, crane or docker found on PATH.
"""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from kitlock import __version__
from kitlock.cli.fetch import fetch_command
from kitlock.cli.update import update_command
from kitlock.cli.verify import verify_command

_LOG_LEVELS = ("error", "warning", "info", "debug")


def configure_logging(level: str) -> None:
    """Route kitlock logs to stderr through rich."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default="warning",
    show_default=True,
    help="Verbosity of log output on stderr.",
)
def cli(log_level: str) -> None:
    """kitlock: Resolve, lock, verify and fetch kit dependencies.

    Reads Twoliter.toml, pins every kit and SDK image to a content digest
    in Twoliter.lock, and unpacks verified kits for builds.
    """
    configure_logging(log_level)


# Register all subcommands
cli.add_command(update_command)
cli.add_command(fetch_command)
cli.add_command(verify_command)
