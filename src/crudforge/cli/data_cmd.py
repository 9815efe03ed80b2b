"""Data commands - list, create, update and delete records of a schema."""

from collections.abc import Awaitable, Callable
from typing import Any

import click

from crudforge.cli.backend import open_backend, run_or_exit
from crudforge.config import EngineConfig
from crudforge.orchestrator.crud import CrudOrchestrator
from crudforge.orchestrator.state import LoadingState, MutationResult
from crudforge.query.builder import parse_filter
from crudforge.query.types import SortDirection


def _parse_assignments(pairs: tuple[str, ...]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected field=value, got {pair!r}")
        values[key] = value
    return values


def _format_table(titles: list[str], keys: list[str], rows: list[dict[str, str]]) -> list[str]:
    widths = [len(t) for t in titles]
    for row in rows:
        for i, key in enumerate(keys):
            widths[i] = max(widths[i], len(row.get(key, "")))
    lines = ["  ".join(t.ljust(w) for t, w in zip(titles, widths)).rstrip()]
    lines.append("  ".join("-" * w for w in widths))
    for row in rows:
        lines.append("  ".join(row.get(k, "").ljust(w) for k, w in zip(keys, widths)).rstrip())
    return lines


async def _with_view(
    config: EngineConfig,
    schema_name: str,
    action: Callable[[CrudOrchestrator], Awaitable[Any]],
) -> tuple[CrudOrchestrator, Any]:
    async with open_backend(config) as backend:
        view = CrudOrchestrator(
            backend.metadata, backend.data, config.tenant, page_size=config.page_size
        )
        await view.load_schema(schema_name)
        if view.loading_state is LoadingState.SCHEMA_ERROR:
            return view, None
        result = await action(view)
        await view.settle()
        return view, result


def _exit_on_schema_error(view: CrudOrchestrator) -> None:
    if view.loading_state is LoadingState.SCHEMA_ERROR:
        click.echo(click.style(f"Error: {view.error.text}", fg="red"), err=True)
        raise SystemExit(1)


def _report_mutation(result: MutationResult) -> None:
    if result.ok:
        click.echo(click.style(result.message.text if result.message else "Done", fg="green"))
        if result.record is not None:
            click.echo(f"  id: {result.record.id}")
        return
    for name, messages in result.field_errors.items():
        for message in messages:
            click.echo(click.style(f"  {name}: {message}", fg="red"), err=True)
    if result.message:
        click.echo(click.style(result.message.text, fg="red"), err=True)
    raise SystemExit(1)


@click.group()
def data():
    """Record commands."""
    pass


@data.command("list")
@click.argument("schema_name")
@click.option("--filter", "filters", multiple=True, help="field[.op]=value, e.g. price.gt=100")
@click.option("--sort", "sort_field", default=None, help="Field to sort by.")
@click.option("--desc", is_flag=True, default=False, help="Sort descending.")
@click.option("--page", default=0, type=int, help="0-based page number.")
@click.option("--size", default=None, type=int, help="Page size.")
@click.pass_obj
def list_cmd(
    config: EngineConfig,
    schema_name: str,
    filters: tuple[str, ...],
    sort_field: str | None,
    desc: bool,
    page: int,
    size: int | None,
):
    """List one page of records with resolved reference labels."""
    try:
        parsed = [parse_filter(f) for f in filters]
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--filter")

    async def action(view: CrudOrchestrator) -> None:
        view.descriptor.filters = parsed
        view.descriptor.sort_field = sort_field
        view.descriptor.sort_direction = SortDirection.DESC if desc else SortDirection.ASC
        if size:
            view.descriptor.page_size = size
        view.descriptor.page = max(0, page)
        await view.refresh()

    view, _ = run_or_exit(_with_view(config, schema_name, action))
    _exit_on_schema_error(view)
    if view.error:
        click.echo(click.style(view.error.text, fg="red"), err=True)
        raise SystemExit(1)

    columns = view.columns()
    for line in _format_table(
        [c.title for c in columns], [c.key for c in columns], view.display_rows()
    ):
        click.echo(line)
    click.echo(
        f"\nPage {view.descriptor.page + 1} of {max(1, view.total_pages)}"
        f" ({view.total_elements} records)"
    )


@data.command("create")
@click.argument("schema_name")
@click.argument("assignments", nargs=-1)
@click.pass_obj
def create_cmd(config: EngineConfig, schema_name: str, assignments: tuple[str, ...]):
    """Create a record from field=value pairs."""
    values = _parse_assignments(assignments)
    view, result = run_or_exit(
        _with_view(config, schema_name, lambda v: v.create(values))
    )
    _exit_on_schema_error(view)
    _report_mutation(result)


@data.command("update")
@click.argument("schema_name")
@click.argument("record_id")
@click.argument("assignments", nargs=-1)
@click.pass_obj
def update_cmd(
    config: EngineConfig, schema_name: str, record_id: str, assignments: tuple[str, ...]
):
    """Update a record; fields not given keep their current value."""
    changes = _parse_assignments(assignments)

    async def action(view: CrudOrchestrator) -> MutationResult | None:
        page = await view.data.search(
            config.tenant, schema_name, view.builder.build_lookup([record_id])
        )
        current = next((r for r in page.content if str(r.id) == record_id), None)
        if current is None:
            return None
        values = view.renderer().form_values(current)
        values.update(changes)
        return await view.update(record_id, values)

    view, result = run_or_exit(_with_view(config, schema_name, action))
    _exit_on_schema_error(view)
    if result is None:
        click.echo(click.style(f"Record {record_id} not found", fg="red"), err=True)
        raise SystemExit(1)
    _report_mutation(result)


@data.command("delete")
@click.argument("schema_name")
@click.argument("record_id")
@click.confirmation_option(prompt="Delete this record?")
@click.pass_obj
def delete_cmd(config: EngineConfig, schema_name: str, record_id: str):
    """Delete a record."""
    view, result = run_or_exit(
        _with_view(config, schema_name, lambda v: v.delete(record_id))
    )
    _exit_on_schema_error(view)
    _report_mutation(result)
