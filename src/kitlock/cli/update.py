"""``kitlock update`` --- Resolve dependencies and write Twoliter.lock.

Walks the project's kit graph against the registries, pins every kit and
the shared SDK to a digest, and writes ``Twoliter.lock`` next to the
project file.

Exit Codes:
    0 --- Lockfile written.
    1 --- Resolution failed (conflicts, missing SDK, registry errors).
"""

from __future__ import annotations

from pathlib import Path

import click

from kitlock.cli.common import (
    handle_errors,
    load_or_find_project,
    project_path_option,
    run_async,
    select_image_tool,
)


@click.command("update")
@project_path_option
@handle_errors
def update_command(project_path: Path | None) -> None:
    """Resolve kit and SDK dependencies and write Twoliter.lock."""
    project = load_or_find_project(project_path)
    lock = run_async(project.create_lock(select_image_tool()))

    from kitlock.cli.output import print_lock_summary

    print_lock_summary(lock)
    click.echo(f"\nLockfile written to: {project.lock_file}")
