"""Helpers shared by the CLI commands."""

from __future__ import annotations

import sys
from typing import NoReturn

import click

from setup_devbox.core.engine.reconciler import RunOptions
from setup_devbox.core.use_cases.apply import ApplyResult
from setup_devbox.core.use_cases.runtime import Runtime

_STATUS_COLORS = {"ok": "green", "partial": "yellow", "failed": "red"}


def runtime_from(ctx: click.Context) -> Runtime | None:
    """Collaborators injected through ``obj`` (tests), else None for defaults."""
    return ctx.obj.get("runtime")


def options_from(ctx: click.Context, update_latest: bool = False) -> RunOptions:
    clock = ctx.obj.get("clock")
    kwargs = {"clock": clock} if clock is not None else {}
    return RunOptions(
        debug=ctx.obj.get("debug", False),
        force_update_latest=update_latest,
        **kwargs,
    )


def fail(message: str) -> NoReturn:
    """Print a fatal error and exit 1."""
    click.secho(f"❌ {message}", fg="red", err=True)
    sys.exit(1)


def print_apply_result(result: ApplyResult) -> None:
    """Per-category summary of a reconciliation run; exits 1 when fatal."""
    if result.error:
        fail(result.error)

    report = result.report
    assert report is not None  # set whenever there is no error

    click.secho(f"\n⚙️  setup-devbox — {result.config_file}", fg="cyan", bold=True)
    for category, reason in result.load_errors.items():
        click.secho(f"   ⊘ {category}: skipped ({reason})", fg="yellow")

    for category, summary in report.categories.items():
        counts = ", ".join(f"{k} {v}" for k, v in summary.to_dict().items() if v)
        color = "red" if summary.failed else "green"
        click.secho(f"   {category:<9}", fg=color, bold=True, nl=False)
        click.echo(f" {counts or 'nothing to do'}")

    if report.failures:
        click.echo()
        click.secho("   Failures:", fg="red", bold=True)
        for failure in report.failures:
            click.echo(f"     • [{failure.category}] {failure.name} ({failure.kind}): {failure.message}")

    click.echo()
    click.secho(
        f"   Result: {report.status}",
        fg=_STATUS_COLORS.get(report.status, "white"),
        bold=True,
    )
    click.echo()
