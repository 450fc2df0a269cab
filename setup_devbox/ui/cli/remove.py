"""
CLI commands for removing installed items.

Thin wrappers over ``setup_devbox.core.use_cases.remove``.
"""

from __future__ import annotations

import click

from setup_devbox.core.services.removal import (
    AliasRemoval,
    FontRemoval,
    RemovalRequest,
    SettingRemoval,
    ToolRemoval,
)
from setup_devbox.ui.cli.common import fail, runtime_from


@click.group()
@click.option("--config", "config_path", default=None, help="Master config or sub-document to edit.")
@click.option("--state", "state_path", default=None, help="State file to update.")
@click.pass_context
def remove(ctx: click.Context, config_path: str | None, state_path: str | None) -> None:
    """Uninstall a tool, font, alias, or setting and forget it."""
    ctx.obj["config_path"] = config_path
    ctx.obj["state_path"] = state_path


def _run(ctx: click.Context, requests: list[RemovalRequest]) -> None:
    from setup_devbox.core.use_cases.remove import remove_items

    result = remove_items(
        requests,
        config_path=ctx.obj.get("config_path"),
        state_path=ctx.obj.get("state_path"),
        runtime=runtime_from(ctx),
    )
    if result.error:
        fail(result.error)

    summary = result.summary
    assert summary is not None
    for name in summary.removed:
        click.secho(f"   ✓ removed {name}", fg="green")
    for name in summary.not_found:
        click.secho(f"   ⊘ {name} is not installed", fg="yellow")
    for failure in summary.failed:
        click.secho(f"   ✗ {failure.name}: {failure.message}", fg="red")


@remove.command("tool")
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def remove_tool(ctx: click.Context, names: tuple[str, ...]) -> None:
    """Remove installed tools."""
    _run(ctx, [ToolRemoval(n) for n in names])


@remove.command("font")
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def remove_font(ctx: click.Context, names: tuple[str, ...]) -> None:
    """Remove installed fonts."""
    _run(ctx, [FontRemoval(n) for n in names])


@remove.command("alias")
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def remove_alias(ctx: click.Context, names: tuple[str, ...]) -> None:
    """Remove shell aliases."""
    _run(ctx, [AliasRemoval(n) for n in names])


@remove.command("setting")
@click.argument("domain")
@click.argument("key")
@click.pass_context
def remove_setting(ctx: click.Context, domain: str, key: str) -> None:
    """Remove an OS setting."""
    _run(ctx, [SettingRemoval(domain, key)])
