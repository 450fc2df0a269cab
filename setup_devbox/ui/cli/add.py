"""
CLI commands for declaring new items.

Thin wrappers over ``setup_devbox.core.use_cases.add``.
"""

from __future__ import annotations

import click

from setup_devbox.core.models.settings import ValueType
from setup_devbox.core.models.tools import SourceKind
from setup_devbox.ui.cli.common import fail, options_from, print_apply_result, runtime_from


@click.group()
@click.option("--config", "config_path", default=None, help="Master config or sub-document to edit.")
@click.option("--state", "state_path", default=None, help="State file to apply against.")
@click.pass_context
def add(ctx: click.Context, config_path: str | None, state_path: str | None) -> None:
    """Add a tool, font, setting, or alias, then apply."""
    ctx.obj["config_path"] = config_path
    ctx.obj["state_path"] = state_path


def _run(ctx: click.Context, kind: str, entry: dict, **kwargs) -> None:
    from setup_devbox.core.use_cases.add import add_entry

    result = add_entry(
        kind,
        entry,
        config_path=ctx.obj.get("config_path"),
        state_path=ctx.obj.get("state_path"),
        options=options_from(ctx),
        runtime=runtime_from(ctx),
        **kwargs,
    )
    if result.error:
        fail(result.error)

    verb = "Updated" if result.replaced else "Added"
    click.secho(f"✅ {verb} {kind} in {result.document}", fg="green")
    if result.applied is not None:
        print_apply_result(result.applied)


@add.command("tool")
@click.option("--name", required=True, help="Tool name.")
@click.option("--version", default="latest", show_default=True, help="Version or 'latest'.")
@click.option(
    "--source",
    required=True,
    type=click.Choice([s.value for s in SourceKind], case_sensitive=False),
    help="Installer backend.",
)
@click.option("--url", default=None, help="Download URL (url source).")
@click.option("--repo", default=None, help="owner/repo (github source).")
@click.option("--tag", default=None, help="Release tag (github source).")
@click.option("--rename-to", default=None, help="Install the binary under this name.")
@click.option("--option", "options", multiple=True, help="Installer option (repeatable).")
@click.option("--executable-path-after-extract", default=None, help="Binary path inside the archive.")
@click.option("--hook", "hooks", multiple=True, help="Post-installation command (repeatable).")
@click.option("--enable-config-manager", is_flag=True, help="Track the tool's configuration file.")
@click.option("--config-path", default=None, help="Configuration source file to track.")
@click.option("--destination-path", default=None, help="Where the tracked file is deployed.")
@click.pass_context
def add_tool(
    ctx: click.Context,
    name: str,
    version: str,
    source: str,
    url: str | None,
    repo: str | None,
    tag: str | None,
    rename_to: str | None,
    options: tuple[str, ...],
    executable_path_after_extract: str | None,
    hooks: tuple[str, ...],
    enable_config_manager: bool,
    config_path: str | None,
    destination_path: str | None,
) -> None:
    """Add a tool to tools.yaml."""
    entry: dict = {
        "name": name,
        "version": version,
        "source": source.lower(),
        "url": url,
        "repo": repo,
        "tag": tag,
        "rename_to": rename_to,
        "options": list(options),
        "executable_path_after_extract": executable_path_after_extract,
        "post_installation_hooks": list(hooks),
    }
    if enable_config_manager:
        manager = {"enabled": True, "tools_configuration_path": config_path or ""}
        if destination_path:
            manager["destination_path"] = destination_path
        entry["configuration_manager"] = manager
    _run(ctx, "tool", entry)


@add.command("font")
@click.option("--name", required=True, help="Font name (release asset <name>.zip).")
@click.option("--version", required=True, help="Font version.")
@click.option("--repo", required=True, help="owner/repo hosting the release.")
@click.option("--tag", required=True, help="Release tag.")
@click.option("--install-only", multiple=True, help="Only install files containing this (repeatable).")
@click.pass_context
def add_font(
    ctx: click.Context,
    name: str,
    version: str,
    repo: str,
    tag: str,
    install_only: tuple[str, ...],
) -> None:
    """Add a font to fonts.yaml."""
    entry = {
        "name": name,
        "version": version,
        "source": "github",
        "repo": repo,
        "tag": tag,
        "install_only": list(install_only),
    }
    _run(ctx, "font", entry)


@add.command("setting")
@click.option("--domain", required=True, help="Preference domain, e.g. com.apple.finder.")
@click.option("--key", required=True, help="Preference key.")
@click.option("--value", required=True, help="Value to write.")
@click.option(
    "--type",
    "value_type",
    default=ValueType.STRING.value,
    show_default=True,
    type=click.Choice([t.value for t in ValueType], case_sensitive=False),
)
@click.option("--os", "os_name", default="macos", show_default=True, help="OS group in settings.yaml.")
@click.pass_context
def add_setting(
    ctx: click.Context,
    domain: str,
    key: str,
    value: str,
    value_type: str,
    os_name: str,
) -> None:
    """Add an OS setting to settings.yaml."""
    entry = {"domain": domain, "key": key, "value": value, "type": value_type.lower()}
    _run(ctx, "setting", entry, os_name=os_name)


@add.command("alias")
@click.option("--name", required=True, help="Alias name.")
@click.option("--value", required=True, help="Command the alias expands to.")
@click.pass_context
def add_alias(ctx: click.Context, name: str, value: str) -> None:
    """Add a shell alias to shellrc.yaml."""
    _run(ctx, "alias", {"name": name, "value": value})
