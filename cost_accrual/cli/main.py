"""
CLI interface for Cost Accrual.

Provides command-line access to fixed-cost management and accrual totals.
"""

import sqlite3
import sys
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from cost_accrual.config.loader import AppConfig, default_config, load_config
from cost_accrual.core.accrual import AccrualResult
from cost_accrual.core.costs import (
    CostAccrualError,
    FixedCostInput,
    FixedCostUpdate,
    Session,
    calculate_fixed_cost_for_date,
    create_fixed_cost,
    delete_fixed_cost,
    get_fixed_costs,
    update_fixed_cost,
)
from cost_accrual.observability.logger import setup_logging
from cost_accrual.storage.models import EntityType, Frequency, OwnerKey
from cost_accrual.storage.repository import CostRepository

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

DATE_FORMATS = ["%Y-%m-%d"]


@dataclass
class CliState:
    """Collaborators built from global options, shared by all commands."""
    config: AppConfig
    repository: CostRepository
    session: Session
    owner: OwnerKey


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML configuration file"
    ),
    db: Optional[str] = typer.Option(
        None,
        "--db",
        help="SQLite database path (overrides config)"
    ),
    user: Optional[str] = typer.Option(
        None,
        "--user",
        "-u",
        help="User id to act as (overrides config)"
    ),
    entity_type: Optional[EntityType] = typer.Option(
        None,
        "--entity-type",
        case_sensitive=False,
        help="Scope to a business entity type"
    ),
    entity_id: Optional[str] = typer.Option(
        None,
        "--entity-id",
        help="Scope to a business entity id"
    ),
):
    """Cost Accrual CLI."""
    try:
        config = load_config(str(config_path)) if config_path else default_config()
        owner = _owner_from_options(entity_type, entity_id)
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    setup_logging(config.logging.level, config.logging.json)

    ctx.obj = CliState(
        config=config,
        repository=CostRepository(db or config.storage.db_path),
        session=Session(user_id=user or config.session.user_id),
        owner=owner,
    )

    if ctx.invoked_subcommand is None:
        console.print("Cost Accrual - Use --help to see available commands")


def _owner_from_options(entity_type: Optional[EntityType], entity_id: Optional[str]) -> OwnerKey:
    if entity_type is None and entity_id is None:
        return OwnerKey.personal()
    if entity_type is EntityType.USER and entity_id is None:
        return OwnerKey.personal()
    if entity_type is None or entity_id is None:
        raise ValueError("--entity-type and --entity-id must be given together")
    return OwnerKey.entity(entity_type, entity_id)


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/] {message}")
    sys.exit(EXIT_CODE_FAIL)


def _handle_storage_error(e: sqlite3.Error) -> None:
    if "no such table" in str(e).lower():
        _fail("Database is not initialized. Run `cost-accrual init` first.")
    _fail(str(e))


def _format_currency(amount: Decimal, symbol: str) -> str:
    """Format currency with symbol, thousands separator and two decimals."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


@app.command()
def init(ctx: typer.Context):
    """Initialize the fixed-cost database."""
    state = _state(ctx)
    try:
        state.repository.initialize_schema()
    except sqlite3.Error as e:
        _fail(f"Could not initialize database: {e}")
    console.print(f"[green]✓[/] Database initialized at {state.repository.db_path}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Short label for the cost"),
    amount: str = typer.Argument(..., help="Amount charged per occurrence"),
    frequency: str = typer.Option(
        Frequency.DAILY.value,
        "--frequency",
        "-f",
        help="DAILY, WEEKLY, MONTHLY or ONCE"
    ),
    once: bool = typer.Option(
        False,
        "--once",
        help="Apply the cost a single time (same as --frequency ONCE)"
    ),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
    inactive: bool = typer.Option(False, "--inactive", help="Store the cost as inactive"),
    created_at: Optional[datetime] = typer.Option(
        None,
        "--created-at",
        formats=DATE_FORMATS,
        help="Start date of the cost (defaults to now)"
    ),
):
    """Add a fixed cost."""
    state = _state(ctx)
    data = FixedCostInput(
        name=name,
        amount=amount,
        frequency=Frequency.ONCE if once else frequency,
        description=description,
        active=not inactive,
        owner=state.owner,
        created_at=created_at,
    )
    try:
        record = create_fixed_cost(state.session, state.repository, data)
    except CostAccrualError as e:
        _fail(str(e))
    except sqlite3.Error as e:
        _handle_storage_error(e)

    symbol = state.config.display.currency_symbol
    console.print(
        f"[green]✓[/] Added {record.name} "
        f"({_format_currency(record.amount, symbol)} {record.frequency.value}) "
        f"id={record.id}"
    )
    sys.exit(EXIT_CODE_PASS)


@app.command("list")
def list_costs(
    ctx: typer.Context,
    show_all: bool = typer.Option(False, "--all", "-a", help="Include inactive costs"),
):
    """List fixed costs for the selected owner."""
    state = _state(ctx)
    try:
        records = get_fixed_costs(state.session, state.repository, state.owner)
    except CostAccrualError as e:
        _fail(str(e))
    except sqlite3.Error as e:
        _handle_storage_error(e)

    if not show_all:
        records = [r for r in records if r.active]
    if not records:
        console.print("[dim]No fixed costs found.[/]")
        sys.exit(EXIT_CODE_PASS)

    symbol = state.config.display.currency_symbol
    table = Table(title="Fixed Costs")
    table.add_column("ID", no_wrap=True)
    table.add_column("Name")
    table.add_column("Amount", justify="right")
    table.add_column("Frequency")
    table.add_column("Active")
    table.add_column("Since")
    for record in records:
        frequency = record.frequency.value
        if record.is_one_time and record.frequency is not Frequency.ONCE:
            frequency += " (once)"
        table.add_row(
            record.id,
            record.name,
            _format_currency(record.amount, symbol),
            frequency,
            "yes" if record.active else "no",
            record.created_at.date().isoformat(),
        )
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def update(
    ctx: typer.Context,
    cost_id: str = typer.Argument(..., help="Id of the cost to change"),
    name: Optional[str] = typer.Option(None, "--name"),
    amount: Optional[str] = typer.Option(None, "--amount"),
    frequency: Optional[str] = typer.Option(None, "--frequency", "-f"),
    recurring: Optional[bool] = typer.Option(None, "--recurring/--not-recurring"),
    active: Optional[bool] = typer.Option(None, "--active/--inactive"),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
):
    """Update fields of a fixed cost."""
    state = _state(ctx)
    changes = FixedCostUpdate(
        name=name,
        amount=amount,
        frequency=frequency,
        is_recurring=recurring,
        description=description,
        active=active,
    )
    try:
        record = update_fixed_cost(state.session, state.repository, cost_id, changes)
    except CostAccrualError as e:
        _fail(str(e))
    except ValueError as e:
        _fail(f"Stored cost {cost_id} is unreadable: {e}")
    except sqlite3.Error as e:
        _handle_storage_error(e)

    console.print(f"[green]✓[/] Updated {record.name} id={record.id}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def remove(
    ctx: typer.Context,
    cost_id: str = typer.Argument(..., help="Id of the cost to delete"),
):
    """Delete a fixed cost."""
    state = _state(ctx)
    try:
        delete_fixed_cost(state.session, state.repository, cost_id)
    except CostAccrualError as e:
        _fail(str(e))
    except sqlite3.Error as e:
        _handle_storage_error(e)

    console.print(f"[green]✓[/] Removed {cost_id}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def total(
    ctx: typer.Context,
    on: Optional[datetime] = typer.Option(
        None,
        "--date",
        formats=DATE_FORMATS,
        help="Reference date (defaults to today)"
    ),
    breakdown: bool = typer.Option(
        False,
        "--breakdown",
        "-b",
        help="Show each cost's contribution"
    ),
):
    """Show the fixed cost accrued as of a date."""
    state = _state(ctx)
    reference = on.date() if on else date.today()
    try:
        result = calculate_fixed_cost_for_date(
            state.session, state.repository, reference, state.owner
        )
    except CostAccrualError as e:
        _fail(str(e))
    except sqlite3.Error as e:
        _handle_storage_error(e)

    _display_accrual_result(result, state.config.display.currency_symbol, breakdown)
    sys.exit(EXIT_CODE_PASS)


def _display_accrual_result(result: AccrualResult, symbol: str, breakdown: bool):
    """Display the accrued total and, optionally, the per-cost table."""
    console.print(
        f"\n[bold]Accrued fixed cost as of {result.reference_date.isoformat()}:[/bold] "
        f"{_format_currency(result.total, symbol)}"
    )
    if not breakdown or not result.items:
        return

    table = Table()
    table.add_column("Name")
    table.add_column("Kind")
    table.add_column("Frequency")
    table.add_column("Since")
    table.add_column("Units", justify="right")
    table.add_column("Accrued", justify="right")
    for item in result.items:
        table.add_row(
            item.name,
            item.kind.value,
            item.frequency.value,
            item.anchor_date.isoformat() if item.anchor_date else "-",
            str(item.units),
            _format_currency(item.contribution, symbol),
        )
    console.print(table)


if __name__ == "__main__":
    app()
