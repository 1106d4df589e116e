"""Command-line interface for plughost."""

import importlib
import json
from pathlib import Path

import click
import yaml

from . import __version__, paths
from .config import (
    CONFIG_FILENAME,
    config_to_dict,
    configure_logging,
    create_default_config,
    find_config_file,
    load_config,
    plugin_directory_for,
)
from .context import PluginContext
from .discovery import ServiceLoader
from .errors import PlughostError
from .resources import resolve_resources
from .stylesheets import Stylesheet


def _load(ctx: click.Context):
    """Load configuration once per invocation, honoring --log-level."""
    obj = ctx.ensure_object(dict)
    if "config" not in obj:
        try:
            obj["config"] = load_config(log_level_override=obj.get("log_level"))
        except PlughostError as e:
            raise click.ClickException(str(e))
        configure_logging(obj["config"])
    return obj["config"]


def _import_capability(spec: str) -> type:
    """Import a ``module:Class`` capability reference."""
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise click.BadParameter(
            f"expected 'module:Class', got {spec!r}", param_hint="CAPABILITY"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(
            f"cannot import {module_name}: {e}", param_hint="CAPABILITY"
        )
    obj = module
    for part in attr.split("."):
        obj = getattr(obj, part, None)
        if obj is None:
            raise click.BadParameter(
                f"{module_name} has no attribute {attr!r}", param_hint="CAPABILITY"
            )
    if not isinstance(obj, type):
        raise click.BadParameter(f"{spec} is not a class", param_hint="CAPABILITY")
    return obj


@click.group()
@click.version_option(version=__version__, prog_name="plughost")
@click.option(
    "--log-level",
    type=click.Choice(
        ["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"], case_sensitive=False
    ),
    help="Logging level (overrides config and PLUGHOST_LOG_LEVEL)",
)
@click.pass_context
def main(ctx, log_level):
    """Locate the plugin directory and resolve host resources.

    \b
    Quick start:
      plughost config init               # Create .plughost.yaml
      plughost where                     # Show how the plugin directory is chosen
      plughost init                      # Create and bind the plugin directory
      plughost services mod:Capability   # List plugins implementing a capability
      plughost resources theme.css       # Show where a stylesheet comes from
    """
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def where(ctx, as_json):
    """Show the candidate plugin directories and which one wins.

    Candidates are listed in probe order. The first existing one is
    selected; if none exists the fallback is used.
    """
    cfg = _load(ctx)
    env = paths.Environment.from_process(app_name=cfg.plugins.app_name)
    resolution = paths.explain_default(env)
    override = env.getenv(cfg.plugins.override_key)

    if cfg.plugins.directory is not None:
        selected, source = cfg.plugins.directory, "config"
    elif override:
        selected, source = Path(override), cfg.plugins.override_key
    else:
        selected, source = resolution.path, resolution.label

    if as_json:
        data = {
            "selected": str(selected),
            "source": source,
            "default": str(resolution.path),
            "candidates": [
                {"label": c.label, "path": str(c.path), "found": c.found}
                for c in resolution.candidates
            ],
        }
        click.echo(json.dumps(data, indent=2))
        return

    for candidate in resolution.candidates:
        mark = "x" if candidate.found else " "
        click.echo(f"  [{mark}] {candidate.label:<20} {candidate.path}")
    click.echo(f"Default: {resolution.path} ({resolution.label})")
    click.echo(f"Selected: {selected} ({source})")


def _initialized_context(ctx, directory) -> PluginContext:
    cfg = _load(ctx)
    plugin_ctx = PluginContext()
    target = Path(directory) if directory else plugin_directory_for(cfg)
    try:
        plugin_ctx.initialize(target)
    except PlughostError as e:
        raise click.ClickException(str(e))
    return plugin_ctx


@main.command()
@click.option(
    "-d",
    "--directory",
    type=click.Path(file_okay=False),
    help="Plugin directory (default: configured or resolved)",
)
@click.pass_context
def init(ctx, directory):
    """Create the plugin directory and initialize the plugin system."""
    plugin_ctx = _initialized_context(ctx, directory)
    click.echo(f"Plugin directory: {plugin_ctx.directory}")


@main.command()
@click.argument("capability")
@click.option(
    "-d",
    "--directory",
    type=click.Path(file_okay=False),
    help="Plugin directory (default: configured or resolved)",
)
@click.pass_context
def services(ctx, capability, directory):
    """List plugins that implement CAPABILITY.

    CAPABILITY is a class reference in the form module:Class.

    \b
    Examples:
      plughost services myapp.exporters:Exporter
      plughost services myapp.api:Panel -d ./plugins
    """
    capability_cls = _import_capability(capability)
    plugin_ctx = _initialized_context(ctx, directory)
    loader = ServiceLoader(plugin_ctx)

    found = 0
    for service in loader.load_services(capability_cls):
        cls = type(service)
        click.echo(f"{cls.__module__}:{cls.__qualname__}")
        found += 1

    if not found:
        click.echo(
            f"No providers of {capability_cls.__name__} in {plugin_ctx.directory}"
        )


@main.command()
@click.argument("names", nargs=-1, required=True)
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False),
    help="Directory searched for local overrides (default: configured or cwd)",
)
@click.pass_context
def resources(ctx, names, root):
    """Show where each named stylesheet is loaded from.

    Exits with status 1 if any stylesheet cannot be found.

    \b
    Examples:
      plughost resources theme.css
      plughost resources theme.css plugins.css --root ./app
    """
    cfg = _load(ctx)
    try:
        sheets = [Stylesheet.from_name(name) for name in names]
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="NAMES")

    root_path = Path(root) if root else cfg.resources.root
    report = resolve_resources([s.descriptor for s in sheets], root_path)

    for result in report.results:
        origin = result.origin.value
        if result.scope:
            origin = f"{origin}:{result.scope}"
        click.echo(f"{result.name:<16} {origin:<20} {result.locator or '-'}")

    if report.unresolved:
        raise SystemExit(1)


@main.group()
def config():
    """Manage plughost configuration."""
    pass


@config.command("init")
@click.option(
    "-d",
    "--directory",
    type=click.Path(),
    default=".",
    help="Directory to create config in",
)
def config_init(directory):
    """Create a new .plughost.yaml configuration file."""
    try:
        config_path = create_default_config(Path(directory))
        click.echo(f"Created: {config_path}")
    except PlughostError as e:
        raise click.ClickException(str(e))


@config.command("show")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True),
    help="Config file path",
)
def config_show(config_path):
    """Display current configuration.

    Shows merged configuration from file, environment, and defaults.
    """
    try:
        cfg = load_config(config_path=Path(config_path) if config_path else None)
        data = config_to_dict(cfg)
        click.echo(yaml.dump(data, default_flow_style=False, sort_keys=False))
    except PlughostError as e:
        raise click.ClickException(str(e))


@config.command("where")
@click.option(
    "-d",
    "--directory",
    type=click.Path(exists=True),
    help="Directory to search from",
)
def config_where(directory):
    """Show which config file would be used.

    Searches up the directory tree for .plughost.yaml.
    """
    start = Path(directory) if directory else Path.cwd()
    config_path = find_config_file(start)

    if config_path:
        click.echo(f"Config file: {config_path}")
    else:
        click.echo(f"No {CONFIG_FILENAME} found (searched from {start})")


if __name__ == "__main__":
    main()
