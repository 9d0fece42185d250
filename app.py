"""
app.py
──────
Part Lifecycle Monitor: command-line entry point.

Startup sequence (every command):
  1. Configure structured logging
  2. Open the SQLite entity store (seeded with the demo fleet when empty)
  3. Load the fleet snapshot into a FleetManager
  4. Run the command, then flush pending store writes
"""
from __future__ import annotations

from datetime import datetime
from pathlib import Path

import click

from config.settings import settings
from src.ai.narrative import MaintenanceNarrator
from src.analytics.health import sort_by_health
from src.analytics.summary import definition_health, machine_breakdown
from src.data.models import MachineStatus
from src.data.store import SQLiteEntityStore
from src.errors import BackupFormatError, ImportFormatError, LifecycleError
from src.importer.backup import backup_filename
from src.lifecycle.manager import FleetManager
from src.logger import configure_logging

_USER_ERRORS = (LifecycleError, ImportFormatError, BackupFormatError)


def _open(ctx: click.Context) -> FleetManager:
    manager = FleetManager.load(SQLiteEntityStore(ctx.obj["db"]))
    ctx.call_on_close(manager.close)
    return manager


def _fail(exc: Exception) -> click.ClickException:
    return click.ClickException(str(exc))


@click.group()
@click.option("--db", default=settings.DATABASE_URL, show_default=True, help="SQLite database path")
@click.pass_context
def cli(ctx: click.Context, db: str) -> None:
    """Track installed parts, their remaining lifetime, and replacements."""
    json_logs = {"true": True, "false": False}.get(settings.LOG_JSON.lower())
    configure_logging(settings.ENVIRONMENT, settings.LOG_LEVEL, json_logs)
    ctx.ensure_object(dict)
    ctx.obj["db"] = db


@cli.command()
@click.option("--machine", "machine_id", default=None, help="Only parts on this machine id")
@click.option("--worst-first", is_flag=True, help="Sort by health, lowest first")
@click.pass_context
def status(ctx: click.Context, machine_id: str | None, worst_first: bool) -> None:
    """Show live health of every installed part."""
    manager = _open(ctx)
    view = manager.view()
    parts = [p for p in view.parts if machine_id is None or p.machine_id == machine_id]
    if worst_first:
        parts = sort_by_health(parts)

    for p in parts:
        click.echo(
            f"{p.id}\t{p.machine_name}\t{p.definition.name}\t{p.part_number}\t"
            f"{p.current_days_used}/{p.definition.max_lifetime_days}d\t"
            f"{p.health_percentage:.1f}%\t{p.status.value}"
        )
    summary = manager.summary()
    click.echo(
        f"{summary.total_parts} parts on {summary.total_machines} machines: "
        f"{summary.good_count} good, {summary.warning_count} warning, {summary.critical_count} critical"
    )
    if view.orphaned_ids:
        click.echo(f"{len(view.orphaned_ids)} orphaned part(s) hidden: {', '.join(view.orphaned_ids)}")


@cli.command()
@click.option("--machine", "machine_id", default=None, help="Only this machine id")
@click.pass_context
def history(ctx: click.Context, machine_id: str | None) -> None:
    """List part replacements, newest first."""
    df = _open(ctx).history(machine_id)
    if df.empty:
        click.echo("No replacement history found.")
        return
    for row in df.itertuples(index=False):
        click.echo(
            f"{row.replaced_date:%Y-%m-%d %H:%M}\t{row.part_name}\t"
            f"{row.old_part_number} -> {row.new_part_number}\t{row.days_used_at_replacement} days"
        )


@cli.command()
@click.pass_context
def machines(ctx: click.Context) -> None:
    """List machines with their installed, critical and warning counts."""
    manager = _open(ctx)
    df = machine_breakdown(manager.view().parts, manager.state.machines)
    if df.empty:
        click.echo("No machines found.")
        return
    for row in df.itertuples(index=False):
        click.echo(
            f"{row.machine_id}\t{row.machine_name}\t{row.installed} installed\t"
            f"{row.critical} critical\t{row.warning} warning"
        )


@cli.command("part-types")
@click.pass_context
def part_types(ctx: click.Context) -> None:
    """List part definitions with their average health."""
    manager = _open(ctx)
    df = definition_health(manager.view().parts, manager.state.definitions)
    if df.empty:
        click.echo("No part definitions found.")
        return
    for row in df.itertuples(index=False):
        click.echo(f"{row.definition_id}\t{row.name}\t{row.installed} installed\tavg {row.avg_health:.1f}%")


@cli.command("add-machine")
@click.argument("name")
@click.option("--location", default="", help="Plant location")
@click.option("--model", default="", help="Machine model")
@click.option("--status", type=click.Choice([s.value for s in MachineStatus]), default=MachineStatus.ACTIVE.value,
              show_default=True)
@click.pass_context
def add_machine(ctx: click.Context, name: str, location: str, model: str, status: str) -> None:
    """Register a new machine."""
    machine = _open(ctx).add_machine(name=name, location=location, model=model, status=status)
    click.echo(f"Added machine {machine.name} as {machine.id}")


@cli.command("edit-machine")
@click.argument("machine_id")
@click.option("--name", default=None)
@click.option("--location", default=None)
@click.option("--model", default=None)
@click.option("--status", type=click.Choice([s.value for s in MachineStatus]), default=None)
@click.pass_context
def edit_machine(ctx: click.Context, machine_id: str, **fields: str | None) -> None:
    """Change a machine's name, location, model or status."""
    updates = {k: v for k, v in fields.items() if v is not None}
    try:
        machine = _open(ctx).update_machine(machine_id, updates)
    except _USER_ERRORS as exc:
        raise _fail(exc) from exc
    click.echo(f"Updated machine {machine.id}")


@cli.command("add-definition")
@click.argument("name")
@click.argument("category")
@click.argument("lifetime_days", type=click.IntRange(min=1))
@click.option("--cost", type=click.FloatRange(min=0), default=0.0, show_default=True)
@click.pass_context
def add_definition(ctx: click.Context, name: str, category: str, lifetime_days: int, cost: float) -> None:
    """Add a part type rated for LIFETIME_DAYS of service."""
    definition = _open(ctx).add_definition(
        name=name, category=category, max_lifetime_days=lifetime_days, cost=cost
    )
    click.echo(f"Added part type {definition.name} as {definition.id}")


@cli.command("edit-definition")
@click.argument("definition_id")
@click.option("--name", default=None)
@click.option("--category", default=None)
@click.option("--lifetime", "max_lifetime_days", type=click.IntRange(min=1), default=None)
@click.option("--cost", type=click.FloatRange(min=0), default=None)
@click.pass_context
def edit_definition(ctx: click.Context, definition_id: str, **fields) -> None:
    """Change a part type's name, category, rated lifetime or cost."""
    updates = {k: v for k, v in fields.items() if v is not None}
    try:
        definition = _open(ctx).update_definition(definition_id, updates)
    except _USER_ERRORS as exc:
        raise _fail(exc) from exc
    click.echo(f"Updated part type {definition.id}")


@cli.command()
@click.argument("machine_id")
@click.argument("definition_id")
@click.argument("serial")
@click.pass_context
def install(ctx: click.Context, machine_id: str, definition_id: str, serial: str) -> None:
    """Install a new part with SERIAL on a machine."""
    try:
        part = _open(ctx).install_part(machine_id, definition_id, serial)
    except _USER_ERRORS as exc:
        raise _fail(exc) from exc
    click.echo(f"Installed {part.part_number} as {part.id}")


@cli.command()
@click.argument("part_id")
@click.argument("serial")
@click.option("--date", "replace_date", type=click.DateTime(), default=None, help="Replacement date")
@click.pass_context
def replace(ctx: click.Context, part_id: str, serial: str, replace_date: datetime | None) -> None:
    """Swap an installed part for a new unit with SERIAL."""
    try:
        part, log = _open(ctx).replace_part(part_id, serial, replace_date)
    except _USER_ERRORS as exc:
        raise _fail(exc) from exc
    click.echo(
        f"Replaced {log.old_part_number} after {log.days_used_at_replacement} days; "
        f"{part.part_number} installed as {part.id}"
    )


@cli.command("edit-part")
@click.argument("part_id")
@click.option("--serial", "part_number", default=None, help="Corrected serial number")
@click.option("--installed", "install_date", type=click.DateTime(), default=None, help="Corrected install date")
@click.option("--days-used", "current_days_used", type=click.IntRange(min=0), default=None)
@click.option("--machine", "machine_id", default=None, help="Move to this machine id")
@click.option("--definition", "definition_id", default=None, help="Change to this part definition id")
@click.pass_context
def edit_part(ctx: click.Context, part_id: str, **fields) -> None:
    """Correct an installed part in place; no history entry is written."""
    updates = {k: v for k, v in fields.items() if v is not None}
    if not updates:
        raise click.UsageError("Nothing to change")
    try:
        part = _open(ctx).update_part(part_id, updates)
    except _USER_ERRORS as exc:
        raise _fail(exc) from exc
    click.echo(f"Updated {part.id} ({part.part_number})")


@cli.command("delete-machine")
@click.argument("machine_id")
@click.confirmation_option(prompt="Delete the machine and every part installed on it?")
@click.pass_context
def delete_machine(ctx: click.Context, machine_id: str) -> None:
    """Delete a machine and its installed parts."""
    removed = _open(ctx).delete_machine(machine_id)
    click.echo(f"Deleted machine {machine_id} and {len(removed)} installed part(s)")


@cli.command("delete-definition")
@click.argument("definition_id")
@click.confirmation_option(prompt="Delete this part definition?")
@click.pass_context
def delete_definition(ctx: click.Context, definition_id: str) -> None:
    """Delete an unused part definition."""
    try:
        _open(ctx).delete_definition(definition_id)
    except _USER_ERRORS as exc:
        raise _fail(exc) from exc
    click.echo(f"Deleted part definition {definition_id}")


@cli.command("import-csv")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--dry-run", is_flag=True, help="Show what would be added without saving")
@click.pass_context
def import_csv(ctx: click.Context, path: Path, dry_run: bool) -> None:
    """Merge a batch CSV of installed parts into the catalog."""
    manager = _open(ctx)
    try:
        result = manager.preview_import(path.read_text(encoding="utf-8"))
    except _USER_ERRORS as exc:
        raise _fail(exc) from exc

    counts = result.counts
    click.echo(
        f"{counts['machines']} new machine(s), {counts['definitions']} new part type(s), "
        f"{counts['parts']} new part(s), {counts['skipped']} row(s) skipped"
    )
    for issue in result.skipped:
        click.echo(f"  line {issue.line_number}: {issue.reason} {issue.detail}".rstrip())
    if dry_run:
        click.echo("Dry run: nothing saved")
        return
    manager.commit_import(result)


@cli.command()
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path), required=False)
@click.pass_context
def export(ctx: click.Context, path: Path | None) -> None:
    """Write a JSON backup of all collections."""
    target = path or Path(backup_filename())
    target.write_text(_open(ctx).export_backup(), encoding="utf-8")
    click.echo(f"Backup written to {target}")


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.confirmation_option(prompt="This will overwrite your current data. Are you sure?")
@click.pass_context
def restore(ctx: click.Context, path: Path) -> None:
    """Replace all collections with a JSON backup."""
    try:
        state = _open(ctx).restore_backup(path.read_text(encoding="utf-8"))
    except _USER_ERRORS as exc:
        raise _fail(exc) from exc
    click.echo(f"Restored {len(state.machines)} machines and {len(state.parts)} installed parts")


@cli.command()
@click.pass_context
def report(ctx: click.Context) -> None:
    """Generate an AI maintenance summary (HTML)."""
    click.echo(_open(ctx).generate_report(MaintenanceNarrator()))


if __name__ == "__main__":
    cli()
