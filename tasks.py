"""Invoke tasks for day-to-day doctable development.

Every task shells out to ``uv`` so the same environment is used locally and in
CI. Run ``invoke --list`` to see what is available.
"""

from __future__ import annotations

import shlex
import shutil
from collections.abc import Sequence
from pathlib import Path

from invoke import Collection, Context, task

PROJECT_ROOT = Path(__file__).parent
DIST_DIR = PROJECT_ROOT / "dist"
SOURCES = ("src", "tests")


def _uv(ctx: Context, *args: str) -> None:
    ctx.run(shlex.join(("uv", *args)), echo=True, pty=True)


@task
def sync(ctx: Context, dev: bool = True) -> None:
    """Install doctable into the project environment, with dev extras by default."""
    extra: Sequence[str] = ("--extra", "dev") if dev else ()
    _uv(ctx, "sync", *extra)


@task(
    help={
        "k": "pytest -k expression, e.g. 'upload and not cli'.",
        "path": "Test file or directory (defaults to tests/).",
    }
)
def tests(ctx: Context, k: str = "", path: str = "tests") -> None:
    """Run the pytest suite."""
    args = ["run", "pytest"]
    if k:
        args.extend(["-k", k])
    _uv(ctx, *args, path)


@task(help={"fix": "Let ruff rewrite fixable findings."})
def lint(ctx: Context, fix: bool = False) -> None:
    """Check formatting and lint rules with ruff."""
    _uv(ctx, "run", "ruff", "format", "--check", *SOURCES)
    _uv(ctx, "run", "ruff", "check", *SOURCES, *(("--fix",) if fix else ()))


@task(help={"clean": "Empty dist/ first."})
def build(ctx: Context, clean: bool = False) -> None:
    """Build the sdist and wheel into dist/."""
    if clean and DIST_DIR.exists():
        shutil.rmtree(DIST_DIR)
    _uv(ctx, "build")


@task
def ci(ctx: Context) -> None:
    """Run the checks CI runs: lint, then tests."""
    ctx.invoke(lint)
    ctx.invoke(tests)


namespace = Collection(sync, tests, lint, build, ci)
