#!/usr/bin/env python
import logging
import sys

import click
from click.core import ParameterSource

from engine.diagnostics import Context, Severity
from engine.exceptions import MigrationError
from engine.pipeline import migrate_config_directory, migrate_state_file
from engine.registry import build_registry
from engine.settings import Settings, load_settings
from engine.utils.string_utils import split_csv


__version__ = "0.1"

# Settings that a command-line flag can override.
OVERRIDABLE = ("source_version", "target_version", "resources", "recursive", "backup")


def my_excepthook(exc_type, exc_value, exc_traceback):
    print(f"Unhandled error: {exc_type}, {exc_value}, {exc_traceback}")


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _fail(message: str) -> None:
    click.echo(click.style(f"\nERROR: {message}\n", fg="red", bold=True))
    sys.exit(1)


def _resolve_settings(settings_file: str, **flags) -> Settings:
    """Load the settings file and apply flags given on the command line."""
    settings = load_settings(settings_file) if settings_file else Settings()
    click_ctx = click.get_current_context()
    overrides = {}
    for name in OVERRIDABLE:
        if click_ctx.get_parameter_source(name) == ParameterSource.DEFAULT and settings_file:
            continue
        overrides[name] = flags[name]
    if "resources" in overrides:
        overrides["resources"] = split_csv(overrides["resources"])
    return settings.merged(**overrides)


def _print_diagnostics(run: Context) -> None:
    if not run.diagnostics:
        return
    click.echo(click.style("\nDiagnostics:", fg="white", bold=True))
    for diagnostic in run.diagnostics:
        colour = "red" if diagnostic.severity is Severity.ERROR else "yellow"
        click.echo(click.style(f"  {diagnostic}", fg=colour))


@click.version_option(version=__version__, prog_name="tfmigrate")
@click.group()
def cli():
    """
    tfmigrate rewrites Terraform configuration and state for a new provider major version

    For help with a specific command type:

    tfmigrate [COMMAND] --help

    """
    pass


@cli.command()
@click.option("--debug", is_flag=True, default=False, help="Verbose logging and tracebacks")
@click.option("--config-dir", default="", help="Directory containing .tf files to migrate")
@click.option("--state-file", default="", help="Path to a terraform.tfstate file to migrate")
@click.option("--source-version", default="v4", help="Provider major version migrated from")
@click.option("--target-version", default="v5", help="Provider major version migrated to")
@click.option(
    "--resources",
    default="",
    help="Comma separated resource types to migrate (default: all)",
)
@click.option(
    "--recursive", is_flag=True, default=False, help="Include .tf files in sub-directories"
)
@click.option(
    "--dry-run", is_flag=True, default=False, help="Report changes without writing files"
)
@click.option(
    "--backup/--no-backup", default=True, help="Keep a .backup copy of every rewritten file"
)
@click.option("--settings", "settings_file", default="", help="Path to a YAML settings file")
def migrate(
    debug,
    config_dir,
    state_file,
    source_version,
    target_version,
    resources,
    recursive,
    dry_run,
    backup,
    settings_file,
):
    """Migrates configuration and state"""
    if not debug:
        sys.excepthook = my_excepthook
    _configure_logging(debug)
    if not config_dir and not state_file:
        _fail("Nothing to migrate. Pass --config-dir and/or --state-file.")

    try:
        settings = _resolve_settings(
            settings_file,
            source_version=source_version,
            target_version=target_version,
            resources=resources,
            recursive=recursive,
            backup=backup,
        )
        registry = build_registry(settings.source_version, settings.target_version)
    except MigrationError as e:
        _fail(str(e))

    run = Context(settings.source_version, settings.target_version)
    prefix = "Would migrate" if dry_run else "Migrated"
    try:
        if config_dir:
            changed = migrate_config_directory(run, config_dir, registry, settings, dry_run)
            click.echo(f"{prefix} {len(changed)} configuration file(s) in {config_dir}")
            for path in changed:
                click.echo(f"  {path}")
        if state_file:
            state = migrate_state_file(run, state_file, registry, settings, dry_run)
            click.echo(f"{prefix} state file {state_file} ({len(state.get('resources', []))} resources)")
    except MigrationError as e:
        _print_diagnostics(run)
        _fail(str(e))

    _print_diagnostics(run)
    if run.has_errors():
        sys.exit(1)
    click.echo(click.style("\nCompleted!", fg="green"))


@cli.command(name="list-rules")
@click.option("--source-version", default="v4", help="Provider major version migrated from")
@click.option("--target-version", default="v5", help="Provider major version migrated to")
def list_rules(source_version, target_version):
    """Lists resource types with migration rules"""
    try:
        registry = build_registry(source_version, target_version)
    except MigrationError as e:
        _fail(str(e))
    click.echo(click.style(f"\nMigration rules {source_version} -> {target_version}:\n", fg="white", bold=True))
    for type_name in registry.source_types():
        rule = registry.lookup(type_name)
        line = f"  {type_name} -> {rule.target_type()}"
        if rule.uses_external_state_upgrader():
            line += " (state upgraded by provider)"
        click.echo(line)


if __name__ == "__main__":
    cli()
