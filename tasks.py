"""Invoke tasks for elnpack development.

Every task shells out to `uv` so the virtual environment matches `pyproject.toml`.
"""

from __future__ import annotations

import shlex
import shutil
import tempfile
from collections.abc import Sequence
from pathlib import Path

from invoke import Collection, Context, task

PROJECT_ROOT = Path(__file__).parent
DIST_DIR = PROJECT_ROOT / "dist"
SOURCES = ("src", "tests", "tasks.py")


def _uv(ctx: Context, args: Sequence[str], *, echo: bool = True, warn: bool = False) -> None:
    """Run ``uv`` with ``args`` quoted consistently."""
    ctx.run(shlex.join(("uv", *args)), echo=echo, pty=True, warn=warn)


@task(help={"dev": "Install the dev extra (tests, linting, typing)."})
def sync(ctx: Context, dev: bool = True) -> None:
    """Synchronize the virtual environment."""
    args = ["sync"]
    if dev:
        args.extend(["--extra", "dev"])
    _uv(ctx, args)


@task(help={"clean": "Remove dist/ before building."})
def build(ctx: Context, clean: bool = False) -> None:
    """Build sdist and wheel into dist/."""
    if clean and DIST_DIR.exists():
        shutil.rmtree(DIST_DIR)
    _uv(ctx, ["build"])


@task(
    help={
        "k": "pytest -k expression for test selection.",
        "path": "Path or module to test (defaults to tests/).",
        "options": "Additional flags forwarded verbatim to pytest.",
    }
)
def tests(ctx: Context, k: str = "", path: str = "tests", options: str = "") -> None:
    """Run the pytest suite.

    Args:
        ctx: Invoke execution context.
        k: `pytest -k` expression to select tests.
        path: Target path for pytest discovery.
        options: Extra CLI arguments appended to the pytest call.
    """
    args: list[str] = ["run", "pytest"]
    if k:
        args.extend(["-k", k])
    if options:
        args.extend(shlex.split(options))
    args.append(path)
    _uv(ctx, args)


@task(help={"fix": "Apply Ruff auto-fixes.", "check_format": "Run `ruff format --check` first."})
def lint(ctx: Context, fix: bool = False, check_format: bool = False) -> None:
    """Run Ruff formatting and lint checks."""
    if check_format:
        _uv(ctx, ["run", "ruff", "format", "--check", *SOURCES])
    args = ["run", "ruff", "check", *SOURCES]
    if fix:
        args.append("--fix")
    _uv(ctx, args)


@task
def mypy(ctx: Context) -> None:
    """Type-check the package."""
    _uv(ctx, ["run", "mypy", "src"])


@task(help={"keep": "Leave the generated archive in place and print its path."})
def smoke(ctx: Context, keep: bool = False) -> None:
    """Pack this repository's DESIGN.md into an archive, then inspect and verify it."""
    workdir = Path(tempfile.mkdtemp(prefix="elnpack-smoke-"))
    archive = workdir / "smoke.eln"
    _uv(
        ctx,
        [
            "run",
            "elnpack",
            "pack",
            "--title",
            "Smoke test",
            "--body",
            "# Smoke\n\nGenerated by `invoke smoke`.",
            "--attach",
            str(PROJECT_ROOT / "DESIGN.md"),
            "--keywords",
            "smoke, ci",
            "--output",
            str(archive),
        ],
    )
    _uv(ctx, ["run", "elnpack", "inspect", str(archive)])
    _uv(ctx, ["run", "elnpack", "verify", str(archive)])
    if keep:
        print(archive)
    else:
        shutil.rmtree(workdir)


@task
def ci(ctx: Context) -> None:
    """Replicate the CI workflow locally."""
    ctx.invoke(lint, check_format=True)
    ctx.invoke(mypy)
    ctx.invoke(tests)


namespace = Collection(sync, build, tests, lint, mypy, smoke, ci)
