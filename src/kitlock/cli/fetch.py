"""``kitlock fetch`` --- Verify Twoliter.lock and unpack external kits.

The lock is re-resolved and must match before anything is fetched; the
verified SDK and kits are tagged with marker files, then every kit is
unpacked for the requested architecture under ``build/external-kits``.

Exit Codes:
    0 --- Kits fetched.
    1 --- The lock is missing or stale, or a kit could not be fetched.
"""

from __future__ import annotations

from pathlib import Path

import click

from kitlock.cli.common import (
    handle_errors,
    load_or_find_project,
    parse_kit_override,
    project_path_option,
    run_async,
    select_image_tool,
)


@click.command("fetch")
@project_path_option
@click.option(
    "--arch",
    default="x86_64",
    show_default=True,
    help="Architecture to fetch kits for (x86_64 or aarch64).",
)
@click.option(
    "--kit-override", "-K",
    "kit_overrides",
    multiple=True,
    callback=parse_kit_override,
    metavar="NAME=PATH",
    help="Use the locally built kit NAME from project directory PATH.",
)
@handle_errors
def fetch_command(project_path: Path | None, arch: str, kit_overrides: dict[str, Path]) -> None:
    """Verify Twoliter.lock and unpack every locked kit for ARCH."""
    project = load_or_find_project(project_path)
    image_tool = select_image_tool()

    async def _fetch() -> None:
        lock = await project.load_lock(image_tool)
        await lock.fetch(project, arch, image_tool, kit_overrides=kit_overrides)

    run_async(_fetch())
    click.echo(f"Kits for {arch} fetched to: {project.external_kits_dir}")
