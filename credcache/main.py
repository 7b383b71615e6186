"""CLI entry point for credcache."""

import sys

import click

from credcache.cli import delete_command, get_command, list_command, set_command, test_command
from credcache.config.settings import CacheSettings
from credcache.exceptions import ConfigurationError
from credcache.utils.logging_config import configure_logging, get_logger

log = get_logger(__name__)


@click.group()
@click.option(
    "--config",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to configuration file (default: ~/.config/credcache/config.yaml if present)",
)
@click.option("--log-level", default=None, help="Logging level (overrides configuration)")
@click.version_option(package_name="credcache")
@click.pass_context
def cli(ctx: click.Context, config: str | None, log_level: str | None) -> None:
    """credcache: local per-user credential cache for automation scripts."""
    try:
        settings = CacheSettings.load(config)
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    configure_logging(log_level or settings.log_level)
    log.debug("settings_loaded", protection=str(settings.protection), config=config)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


cli.add_command(get_command)
cli.add_command(set_command)
cli.add_command(delete_command)
cli.add_command(list_command)
cli.add_command(test_command)


if __name__ == "__main__":
    cli()
