"""crudforge CLI entry point."""

import click

from crudforge.config import EngineConfig
from crudforge.logconfig import configure_logging


@click.group()
@click.option(
    "--log-level",
    default=None,
    help="Log level (defaults to CRUDFORGE_LOG_LEVEL or WARNING).",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None):
    """crudforge - browse and edit runtime-defined schemas."""
    config = EngineConfig.from_env()
    configure_logging(log_level or config.log_level)
    ctx.obj = config


# Register subcommand groups
from crudforge.cli.data_cmd import data  # noqa: E402
from crudforge.cli.schema_cmd import schema  # noqa: E402

cli.add_command(data)
cli.add_command(schema)
