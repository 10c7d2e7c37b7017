"""``kitlock verify`` --- Check Twoliter.lock against the live registries.

Re-resolves the project and requires the result to match the lock, then
writes the verification marker files. With ``--sdk-only`` only the
project's SDK is checked and only the SDK marker is written.

Exit Codes:
    0 --- The lock matches.
    1 --- The lock is missing, stale, or resolution failed.
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


@click.command("verify")
@project_path_option
@click.option(
    "--sdk-only",
    is_flag=True,
    default=False,
    help="Verify only the project's SDK.",
)
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
@handle_errors
def verify_command(project_path: Path | None, sdk_only: bool, output_format: str) -> None:
    """Verify that Twoliter.lock matches the project and the registries."""
    from kitlock.cli.output import print_json, print_lock_summary, print_sdk_summary

    project = load_or_find_project(project_path)
    image_tool = select_image_tool()

    if sdk_only:
        sdk = run_async(project.load_locked_sdk(image_tool))
        if output_format == "json":
            print_json({"sdk": sdk.image.to_dict()})
        else:
            print_sdk_summary(sdk)
        return

    lock = run_async(project.load_lock(image_tool))
    if output_format == "json":
        print_json(lock.to_dict())
    else:
        print_lock_summary(lock, title="Verified Twoliter.lock")
