"""Schema commands - list and show."""

import click

from crudforge.cli.backend import open_backend, run_or_exit
from crudforge.config import EngineConfig
from crudforge.widgets.dispatcher import widget_for


@click.group()
def schema():
    """Schema commands."""
    pass


@schema.command("list")
@click.pass_obj
def list_cmd(config: EngineConfig):
    """List the schemas available to the tenant."""

    async def run():
        async with open_backend(config) as backend:
            return await backend.metadata.list_schemas(config.tenant)

    schemas = run_or_exit(run())

    if not schemas:
        click.echo("No schemas defined.")
        return
    for s in sorted(schemas, key=lambda s: s.name):
        click.echo(f"  {s.name} - {s.label} ({len(s.fields)} fields)")


@schema.command("show")
@click.argument("name")
@click.pass_obj
def show_cmd(config: EngineConfig, name: str):
    """Show the fields of a schema and the widget each one gets."""

    async def run():
        async with open_backend(config) as backend:
            return await backend.metadata.get_schema(config.tenant, name)

    found = run_or_exit(run())

    click.echo(f"{found.label} ({found.name})")
    for f in found.fields:
        widget = widget_for(f)
        flags = []
        if f.required:
            flags.append("required")
        if widget.disabled:
            flags.append("read-only")
        if f.related_schema:
            flags.append(f"-> {f.related_schema}.{f.related_display_field}")
        if widget.choices:
            flags.append("options: " + ", ".join(c.value for c in widget.choices))
        suffix = f"  [{'; '.join(flags)}]" if flags else ""
        click.echo(f"  {f.name:<20} {f.type:<10} {widget.component}{suffix}")
