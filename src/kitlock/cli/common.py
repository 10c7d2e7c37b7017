"""Helpers shared by the kitlock subcommands."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Callable, Coroutine
from functools import wraps
from pathlib import Path
from typing import Any, TypeVar

import click

from kitlock.core.imagetool import ImageTool, image_tool_from_environment
from kitlock.core.project import Project
from kitlock.exceptions import KitLockError

T = TypeVar("T")

project_path_option = click.option(
    "--project-path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to Twoliter.toml (default: search the current directory and its parents).",
)


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine in a synchronous context."""
    return asyncio.run(coro)


def load_or_find_project(project_path: Path | None) -> Project:
    """Load the given project file, or search upward from the working directory."""
    if project_path is None:
        return Project.find_and_load(Path.cwd())
    if project_path.is_dir():
        return Project.find_and_load(project_path)
    return Project.load(project_path)


def select_image_tool() -> ImageTool:
    return image_tool_from_environment()


def handle_errors(func: Callable[..., None]) -> Callable[..., None]:
    """Report ``KitLockError`` on stderr and exit with status 1."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> None:
        try:
            func(*args, **kwargs)
        except KitLockError as exc:
            from kitlock.cli.output import print_error

            print_error(str(exc))
            sys.exit(1)

    return wrapper


def parse_kit_override(
    ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> dict[str, Path]:
    """Parse repeated ``NAME=PATH`` options into a mapping."""
    overrides: dict[str, Path] = {}
    for value in values:
        name, sep, path = value.partition("=")
        if not sep or not name or not path:
            raise click.BadParameter(f"expected NAME=PATH, got {value!r}", ctx=ctx, param=param)
        overrides[name] = Path(path).resolve()
    return overrides
