import sys
from pathlib import Path
from typing import Tuple

import click
from rich.console import Console

from .cli_config import create_sample_config, get_config
from .environment import InstallOptions
from .error_handling import setup_error_handling
from .exceptions import DepGroupsError
from .groups import build_group_registry
from .operations import (
    ExportOptions,
    LintOptions,
    UpdateOptions,
    export_dependencies_to_file,
    lint_project,
    update_project_dependencies,
)
from .reporting import GroupReporter
from .structured_logging import configure_logging
from .workspace import Workspace

__version__ = "0.1.0"

console = Console()


def _discover_workspace() -> Workspace:
    try:
        return Workspace.discover()
    except DepGroupsError as e:
        raise click.ClickException(str(e))


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.pass_context
def cli(ctx, version):
    """
    📦 dep-groups: manage dependency groups in pyproject.toml

    Export selected groups to a requirements file and keep recorded
    versions in sync with the project's environment.
    """
    if version:
        console.print(f"dep-groups version {__version__}", style="bold blue")
        ctx.exit()

    config = get_config()
    configure_logging(config.logging.log_level, config.logging.enable_json)
    setup_error_handling(config.logging.log_level)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@cli.command()
@click.option(
    "--output-file",
    "-o",
    required=True,
    help="File to write; relative paths are resolved against the project root",
)
@click.option("--include", default=None, help="Comma-separated groups to include")
@click.option("--exclude", default=None, help="Comma-separated groups to exclude")
@click.option(
    "--force-required",
    is_flag=True,
    help="Always export required dependencies unless 'required' is excluded",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-critical output")
def export(output_file: str, include: str, exclude: str, force_required: bool, quiet: bool):
    """Export dependencies of the selected groups to a requirements file."""
    workspace = _discover_workspace()
    options = ExportOptions(
        output_file=output_file,
        include=include,
        exclude=exclude,
        force_required=force_required,
    )

    try:
        result = export_dependencies_to_file(workspace, options)
    except DepGroupsError as e:
        raise click.ClickException(str(e))

    if not quiet:
        GroupReporter(console).print_export_result(result)


@cli.command()
def groups():
    """List dependency groups declared in the manifest."""
    workspace = _discover_workspace()
    try:
        registry = build_group_registry(workspace.current_manifest())
    except DepGroupsError as e:
        raise click.ClickException(str(e))

    GroupReporter(console).print_groups(registry, str(workspace.manifest_path))


class PassThroughCommand(click.Command):
    """Command that keeps everything after ``--`` in ``ctx.meta["passthrough"]``."""

    def parse_args(self, ctx, args):
        if "--" in args:
            index = args.index("--")
            ctx.meta["passthrough"] = args[index + 1:]
            args = args[:index]
        return super().parse_args(ctx, args)


@cli.command(cls=PassThroughCommand)
@click.argument("dependencies", nargs=-1)
@click.option(
    "--installer-arg",
    "installer_args",
    multiple=True,
    help="Extra argument passed to the installer (repeatable)",
)
@click.pass_context
def update(ctx, dependencies: Tuple[str, ...], installer_args: Tuple[str, ...]):
    """
    Update DEPENDENCIES (default: all) and pin the manifest to installed versions.

    Arguments after ``--`` are passed to the installer unchanged.
    """
    workspace = _discover_workspace()
    values = list(installer_args) + list(ctx.meta.get("passthrough", []))
    options = UpdateOptions(install_options=InstallOptions(values=values))

    try:
        environment = workspace.resolve_python_environment()
        written = update_project_dependencies(
            workspace, environment, list(dependencies) or None, options
        )
    except DepGroupsError as e:
        raise click.ClickException(str(e))

    if written:
        console.print(f"📝 Updated {workspace.manifest_path}", style="green")
    else:
        console.print("ℹ️  Manifest already up to date", style="blue")


def _run_lint(values: Tuple[str, ...], types: bool, installer_args: Tuple[str, ...]) -> None:
    workspace = _discover_workspace()
    options = LintOptions(
        values=list(values),
        include_types=types,
        install_options=InstallOptions(values=list(installer_args)),
    )

    try:
        environment = workspace.resolve_python_environment()
        result = lint_project(workspace, environment, options)
    except DepGroupsError as e:
        raise click.ClickException(str(e))

    GroupReporter(console).print_lint_result(result)
    if result.exit_code != 0:
        sys.exit(result.exit_code)


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("values", nargs=-1, type=click.UNPROCESSED)
@click.option("--types", is_flag=True, help="Also run the type checker")
@click.option("--installer-arg", "installer_args", multiple=True, help="Extra installer argument")
def lint(values: Tuple[str, ...], types: bool, installer_args: Tuple[str, ...]):
    """Lint the project; extra VALUES are passed to the linter."""
    _run_lint(values, types, installer_args)


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("values", nargs=-1, type=click.UNPROCESSED)
@click.option("--types", is_flag=True, help="Also run the type checker")
@click.option("--installer-arg", "installer_args", multiple=True, help="Extra installer argument")
def fix(values: Tuple[str, ...], types: bool, installer_args: Tuple[str, ...]):
    """Lint the project and apply automatic fixes."""
    _run_lint(("--fix",) + values, types, installer_args)


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command("init")
@click.option(
    "--path",
    type=click.Path(),
    default=".dep-groups.json",
    help="Path where to create the config file",
    show_default=True,
)
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(path: str, force: bool):
    """Create a sample configuration file."""
    config_path = Path(path)

    if config_path.exists() and not force:
        console.print(f"⚠️  Config file already exists at {config_path}", style="yellow")
        console.print("Use --force to overwrite", style="dim")
        return

    try:
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_sample_config())
    except OSError as e:
        raise click.ClickException(f"Failed to create config file: {e}")

    console.print(f"✅ Created configuration file at {config_path}", style="green")


@config.command("show")
def config_show():
    """Show the effective configuration."""
    console.print_json(data=get_config().to_dict())


def main():
    cli()


if __name__ == "__main__":
    main()
