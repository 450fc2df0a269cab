"""
setup-devbox — CLI entrypoint.

Usage:
    setup-devbox --help
    setup-devbox now
    setup-devbox now --config ~/.setup-devbox/configs/tools.yaml
    setup-devbox sync-config --output-dir ./backup
"""

from __future__ import annotations

import click

from setup_devbox import __version__
from setup_devbox.core.observability.logging_config import setup_from_env
from setup_devbox.ui.cli.common import fail, options_from, print_apply_result, runtime_from


@click.group()
@click.version_option(version=__version__, prog_name="setup-devbox")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """setup-devbox — declarative developer workstation setup."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    # ── Logging setup (once, at process start) ──────────────────
    setup_from_env(debug=debug)


@cli.command()
def version() -> None:
    """Show the installed version."""
    click.echo(f"setup-devbox {__version__}")


@cli.command()
@click.option("--config", "config_path", default=None, help="Master config.yaml or a single sub-document.")
@click.option("--state", "state_path", default=None, help="State file (default: ~/.setup-devbox/state.json).")
@click.option("--update-latest", is_flag=True, help="Update every 'latest' tool regardless of its age.")
@click.pass_context
def now(ctx: click.Context, config_path: str | None, state_path: str | None, update_latest: bool) -> None:
    """Install and configure tools, fonts, shell and OS settings."""
    from setup_devbox.core.use_cases.apply import apply_config

    result = apply_config(
        config_path=config_path,
        state_path=state_path,
        options=options_from(ctx, update_latest=update_latest),
        runtime=runtime_from(ctx),
    )
    print_apply_result(result)


@cli.command()
@click.option("--config", "config_path", default=None, help="Where to write config.yaml.")
@click.option("--state", "state_path", default=None, help="State file location (unused by templates).")
def generate(config_path: str | None, state_path: str | None) -> None:
    """Write starter configuration files (existing files are kept)."""
    from setup_devbox.core.use_cases.generate import generate_configs

    result = generate_configs(config_path=config_path, state_path=state_path)
    if result.error:
        fail(result.error)
    templates = result.templates
    assert templates is not None

    click.secho(f"\n📝 Configuration in {result.configs_dir}", fg="cyan", bold=True)
    for path in templates.created:
        click.secho(f"   ✓ created {path.name}", fg="green")
    for path in templates.existing:
        click.secho(f"   ⊘ kept {path.name}", fg="yellow")
    click.echo()


@cli.command("sync-config")
@click.option("--state", "state_path", default=None, help="State file to read.")
@click.option("--output-dir", default=None, help="Directory for the generated files.")
def sync_config_cmd(state_path: str | None, output_dir: str | None) -> None:
    """Regenerate configuration files from the state file."""
    from setup_devbox.core.use_cases.sync import sync_config

    result = sync_config(state_path=state_path, output_dir=output_dir)
    if result.error:
        fail(result.error)

    click.secho(f"\n💾 Configuration written to {result.output_dir}", fg="cyan", bold=True)
    for path in result.written:
        click.echo(f"   • {path.name}")
    click.echo()


@cli.command()
@click.option("--state", "edit_state", is_flag=True, help="Edit the state file (use with care).")
@click.option(
    "--config",
    "config_type",
    default=None,
    type=click.Choice(["tools", "fonts", "shellrc", "settings", "config"]),
    help="Configuration document to edit.",
)
@click.pass_context
def edit(ctx: click.Context, edit_state: bool, config_type: str | None) -> None:
    """Open a configuration document or the state file in $EDITOR."""
    from setup_devbox.core.errors import DevboxError
    from setup_devbox.core.use_cases.apply import apply_config
    from setup_devbox.core.use_cases.edit import config_document, content_digest, state_document

    if edit_state == (config_type is not None):
        fail("Pass exactly one of --state or --config <type>.")

    try:
        if edit_state:
            click.secho(
                "⚠️  Editing the state file directly can make the next run reinstall or skip items.",
                fg="yellow",
            )
            click.edit(filename=str(state_document()))
            return
        assert config_type is not None
        target = config_document(config_type)
    except DevboxError as e:
        fail(str(e))

    before = content_digest(target)
    click.edit(filename=str(target))
    if content_digest(target) == before:
        click.echo(f"No changes in {target.name}.")
        return

    click.secho(f"Applying changes from {target.name}...", fg="cyan")
    print_apply_result(apply_config(options=options_from(ctx), runtime=runtime_from(ctx)))


# ── Help ────────────────────────────────────────────────────────

_EXAMPLES = {
    "now": [
        "setup-devbox now",
        "setup-devbox now --update-latest",
        "setup-devbox now --config ~/.setup-devbox/configs/tools.yaml",
    ],
    "generate": ["setup-devbox generate", "setup-devbox generate --config ./configs/config.yaml"],
    "sync-config": ["setup-devbox sync-config --output-dir ./backup"],
    "edit": ["setup-devbox edit --config tools", "setup-devbox edit --state"],
    "add": [
        "setup-devbox add tool --name ripgrep --source brew",
        "setup-devbox add alias --name ll --value 'ls -la'",
    ],
    "remove": ["setup-devbox remove tool ripgrep", "setup-devbox remove setting com.apple.finder AppleShowAllFiles"],
    "version": ["setup-devbox version"],
}


@cli.command("help")
@click.argument("topic", required=False)
@click.option("--detailed", is_flag=True, help="Include examples.")
@click.option("--filter", "name_filter", default=None, help="Only installers whose name contains this.")
@click.pass_context
def help_cmd(ctx: click.Context, topic: str | None, detailed: bool, name_filter: str | None) -> None:
    """Show help for a command, or the installer catalogue."""
    if topic is None:
        click.echo(cli.get_help(ctx.parent or ctx))
        click.echo()
        _show_installers(ctx, detailed=False, name_filter=None)
        return

    if topic == "installers":
        _show_installers(ctx, detailed=detailed, name_filter=name_filter)
        return

    topic = "sync-config" if topic == "sync_config" else topic
    command = cli.get_command(ctx, topic)
    if command is None:
        topics = ", ".join(["installers", *sorted(_EXAMPLES)])
        fail(f"Unknown help topic '{topic}'. Available topics: {topics}")

    with click.Context(command, info_name=topic, parent=ctx.parent) as sub_ctx:
        click.echo(command.get_help(sub_ctx))
    if detailed and topic in _EXAMPLES:
        click.echo()
        click.secho("Examples:", fg="yellow", bold=True)
        for example in _EXAMPLES[topic]:
            click.echo(f"  {example}")


def _show_installers(ctx: click.Context, detailed: bool, name_filter: str | None) -> None:
    from setup_devbox.adapters.registry import default_registry

    runtime = runtime_from(ctx)
    registry = runtime.registry if runtime is not None else default_registry()
    metas = registry.describe()
    if name_filter:
        metas = [m for m in metas if name_filter.lower() in m.name.lower()]

    click.secho("Supported installers:", fg="yellow", bold=True)
    if not metas:
        click.echo(f"  (no installer matches '{name_filter}')")
    for meta in metas:
        icon = "✅" if meta.available else "❌"
        click.echo(f"  {icon} {meta.name:<12} {meta.description}")
        if detailed and meta.executable:
            state = "found" if meta.available else "not found on PATH"
            click.echo(f"       requires `{meta.executable}` ({state})")


# ── Register sub-command groups from setup_devbox/ui/cli/ ─────────

from setup_devbox.ui.cli.add import add  # noqa: E402
from setup_devbox.ui.cli.remove import remove  # noqa: E402

cli.add_command(add)
cli.add_command(remove)


if __name__ == "__main__":
    cli()
