"""Command-line interface for the OpEx planner."""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import Config, ensure_directories, load_config
from .db.repository import Database
from .dimensions import ALL, LIVE_FORECAST
from .errors import PlannerError
from .logging import configure_logging
from .periods import FULL_YEAR, MONTHLY
from .planner import (
    NOTICE_SUCCESS,
    ExpenseDataService,
    ExpensePlanner,
    PlannerVendor,
    build_grid,
)

# Create Typer app with subcommands
app = typer.Typer(
    name="opex-planner",
    help="Operating expense planning: vendor forecasts, budgets and product allocation.",
    no_args_is_help=True,
)

# Subcommand groups
vendors_app = typer.Typer(help="Manage vendors.")
expenses_app = typer.Typer(help="View and edit expense figures.")
tags_app = typer.Typer(help="Manage vendor product tags.")

app.add_typer(vendors_app, name="vendors")
app.add_typer(expenses_app, name="expenses")
app.add_typer(tags_app, name="tags")

console = Console()

# Global options
ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file"),
]
VersionOption = Annotated[
    str,
    typer.Option("--version", "-v", help="Actuals, Live Forecast or Budget"),
]


def get_config(config_path: Path | None) -> Config:
    """Load configuration and set up logging."""
    config = load_config(config_path)
    configure_logging(config)
    return config


def get_db(config: Config) -> Database:
    """Get database connection and ensure it's initialized."""
    ensure_directories(config)
    db = Database(config.database.path)
    db.initialize()
    return db


def load_planner(config: Config, db: Database) -> tuple[ExpensePlanner, ExpenseDataService]:
    """Load the planner from the database; exits if the database can't be read."""
    service = ExpenseDataService(db, batch_size=config.planning.batch_size)
    planner = ExpensePlanner(config.planning)
    notice = planner.load(service)
    if notice is not None:
        console.print(f"[red]{notice.message}: {notice.details}[/red]")
        raise typer.Exit(1)
    return planner, service


def find_vendor(planner: ExpensePlanner, ref: str) -> PlannerVendor:
    """Resolve a vendor by id, vendor code or exact name."""
    if ref in planner.registry:
        return planner.registry[ref]
    for vendor in planner.registry.values():
        if vendor.vendor_code.upper() == ref.upper() or vendor.name.casefold() == ref.casefold():
            return vendor
    console.print(f"[red]Vendor {ref} not found[/red]")
    raise typer.Exit(1)


def save_planner(planner: ExpensePlanner, service: ExpenseDataService, confirm_empty: bool = False) -> None:
    notice = planner.save(service, confirm_empty=lambda: confirm_empty)
    if notice.is_error:
        console.print(f"[red]{notice.message}[/red]")
        raise typer.Exit(1)
    style = "green" if notice.code == NOTICE_SUCCESS else "yellow"
    console.print(f"[{style}]{notice.message}[/{style}]")
    if notice.details:
        console.print(f"[yellow]{notice.details}[/yellow]")


def money(value: float) -> str:
    return f"${value:,.2f}"


@app.command()
def version():
    """Show version information."""
    console.print(f"opex-planner version {__version__}")


@app.command()
def seed(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Don't ask for confirmation")] = False,
    config_path: ConfigOption = None,
):
    """Replace all data with ten sample vendors and random figures."""
    from .seed import seed_database

    if not yes:
        typer.confirm("This deletes every vendor, figure, tag and allocation. Continue?", abort=True)

    config = get_config(config_path)
    db = get_db(config)

    try:
        result = seed_database(
            db,
            year=config.planning.fiscal_year,
            closed_months=config.planning.closed_months,
        )
        if not result.success:
            console.print(f"[red]{result.message}[/red]")
            raise typer.Exit(1)
        console.print(
            f"[green]{result.message}[/green] "
            f"({result.vendor_count} vendors, {result.row_count} rows)"
        )
    finally:
        db.close()


@app.command("import")
def import_expenses(
    file: Annotated[Path, typer.Argument(help="CSV file of vendor, month and amount lines")],
    version: VersionOption = LIVE_FORECAST,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Parse and validate without committing to database"),
    ] = False,
    config_path: ConfigOption = None,
):
    """Import expense figures from a CSV file."""
    from .ingest import ExpenseCsvIngester

    config = get_config(config_path)

    if dry_run:
        console.print("[yellow]DRY RUN - no changes will be made[/yellow]")

    db = get_db(config)

    try:
        result = ExpenseCsvIngester(config, db=db, dry_run=dry_run).ingest(file, version)

        table = Table(title="Import Summary")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("File", str(file))
        table.add_row("Version(s)", ", ".join(result.versions))
        table.add_row("Total Rows", str(result.total_rows))
        table.add_row("Total Amount", money(result.total_amount))
        if not dry_run:
            table.add_row("Saved Rows", str(result.saved_rows))
            table.add_row("Skipped Rows", str(result.skipped_rows))

        console.print(table)

        if result.errors:
            console.print(f"\n[red]Errors ({len(result.errors)}):[/red]")
            for error in result.errors[:10]:  # Show first 10
                console.print(f"  - {error}")
            if len(result.errors) > 10:
                console.print(f"  ... and {len(result.errors) - 10} more")
    finally:
        db.close()


@app.command()
def summary(
    period: Annotated[str, typer.Option("--period", "-p", help="Full Year, Q1-Q4 or a month")] = FULL_YEAR,
    gl_account: Annotated[str, typer.Option("--gl-account", "-g", help="GL account filter")] = ALL,
    cost_center: Annotated[
        Optional[list[str]],
        typer.Option("--cost-center", help="Cost center filter (repeatable)"),
    ] = None,
    config_path: ConfigOption = None,
):
    """Compare the Live Forecast against the Budget."""
    from .web.services import DashboardService

    config = get_config(config_path)
    db = get_db(config)

    try:
        planner, _ = load_planner(config, db)
        try:
            data = DashboardService(planner).forecast_vs_budget(period, gl_account, cost_center)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)

        totals = data["totals"]
        console.print(
            f"Forecast {money(totals['forecast'])}  Budget {money(totals['budget'])}  "
            f"Variance {money(totals['variance'])} ({totals['variance_percent']:+.1f}%)"
        )

        rows = data["vendors"] if gl_account != ALL else data["gl_breakdown"]
        table = Table(title=f"Forecast vs Budget - {period}")
        table.add_column("Vendor" if gl_account != ALL else "GL Account", style="cyan")
        table.add_column("Forecast", justify="right")
        table.add_column("Budget", justify="right")
        table.add_column("Variance", justify="right")
        table.add_column("%", justify="right")
        for row in rows:
            style = "red" if row["variance"] > 0 else "green"
            table.add_row(
                row["name"],
                money(row["forecast"]),
                money(row["budget"]),
                f"[{style}]{money(row['variance'])}[/{style}]",
                f"{row['variance_percent']:+.1f}%",
            )
        console.print(table)
    finally:
        db.close()


# Vendors subcommands


@vendors_app.command("list")
def vendors_list(config_path: ConfigOption = None):
    """List all vendors."""
    config = get_config(config_path)
    db = get_db(config)

    try:
        vendors = db.get_vendors()
        if not vendors:
            console.print("[yellow]No vendors found[/yellow]")
            raise typer.Exit(0)

        table = Table(title="Vendors")
        table.add_column("Code", style="cyan")
        table.add_column("Name", style="white")
        table.add_column("GL Account", style="green")
        table.add_column("Cost Center", style="yellow")
        table.add_column("ID", style="dim")

        for vendor in vendors:
            table.add_row(vendor.vendor_code, vendor.name, vendor.gl_account, vendor.cost_center, vendor.id)

        console.print(table)
    finally:
        db.close()


@vendors_app.command("add")
def vendors_add(
    name: Annotated[str, typer.Argument(help="Vendor name")],
    gl_account: Annotated[str, typer.Option("--gl-account", "-g", help="GL account")],
    cost_center: Annotated[str, typer.Option("--cost-center", help="Cost center")],
    config_path: ConfigOption = None,
):
    """Add a vendor with zero figures in every version."""
    config = get_config(config_path)
    db = get_db(config)

    try:
        planner, service = load_planner(config, db)
        try:
            vendor_id = planner.add_vendor(name, gl_account, cost_center)
        except PlannerError as e:
            console.print(f"[red]{e.message}[/red]")
            raise typer.Exit(1)
        save_planner(planner, service)
        console.print(f"Vendor {planner.registry[vendor_id].vendor_code} ({vendor_id})")
    finally:
        db.close()


@vendors_app.command("edit")
def vendors_edit(
    vendor: Annotated[str, typer.Argument(help="Vendor id, code or name")],
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="New name")] = None,
    gl_account: Annotated[Optional[str], typer.Option("--gl-account", "-g", help="New GL account")] = None,
    cost_center: Annotated[Optional[str], typer.Option("--cost-center", help="New cost center")] = None,
    config_path: ConfigOption = None,
):
    """Rename a vendor or move it to another GL account or cost center."""
    config = get_config(config_path)
    db = get_db(config)

    try:
        planner, service = load_planner(config, db)
        current = find_vendor(planner, vendor)
        try:
            planner.edit_vendor(
                current.id,
                name or current.name,
                gl_account or current.gl_account,
                cost_center or current.cost_center,
            )
        except PlannerError as e:
            console.print(f"[red]{e.message}[/red]")
            raise typer.Exit(1)
        save_planner(planner, service)
    finally:
        db.close()


@vendors_app.command("delete")
def vendors_delete(
    vendor: Annotated[str, typer.Argument(help="Vendor id, code or name")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Don't ask for confirmation")] = False,
    config_path: ConfigOption = None,
):
    """Delete a vendor and all of its figures, tags and allocations."""
    config = get_config(config_path)
    db = get_db(config)

    try:
        planner, service = load_planner(config, db)
        target = find_vendor(planner, vendor)
        if not yes:
            typer.confirm(f"Delete {target.name} and all of its figures?", abort=True)
        planner.delete_vendor(target.id)
        save_planner(planner, service, confirm_empty=True)
    finally:
        db.close()


# Expenses subcommands


@expenses_app.command("show")
def expenses_show(
    version: VersionOption = LIVE_FORECAST,
    granularity: Annotated[
        str, typer.Option("--granularity", help="Monthly, Quarterly or Annual")
    ] = MONTHLY,
    gl_account: Annotated[str, typer.Option("--gl-account", "-g", help="GL account filter")] = ALL,
    cost_center: Annotated[
        Optional[list[str]],
        typer.Option("--cost-center", help="Cost center filter (repeatable)"),
    ] = None,
    search: Annotated[Optional[str], typer.Option("--search", "-s", help="Vendor name or code")] = None,
    config_path: ConfigOption = None,
):
    """Show the expense grid for a version."""
    config = get_config(config_path)
    db = get_db(config)

    try:
        planner, _ = load_planner(config, db)
        try:
            planner.set_version(version)
            planner.set_time_granularity(granularity)
            planner.set_gl_account(gl_account)
            planner.set_selected_cost_centers(cost_center or [])
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)

        grid = build_grid(planner, search=search, sort_key="name")
        if not grid.rows:
            console.print("[yellow]No vendors match the filters[/yellow]")
            raise typer.Exit(0)

        table = Table(title=f"{grid.version} - {grid.granularity}")
        table.add_column("Vendor", style="cyan")
        for column in grid.columns:
            table.add_column(column, justify="right")
        table.add_column("Total", justify="right", style="green")

        for row in grid.rows:
            table.add_row(
                row.vendor.name,
                *(f"{row.values[column]:,.0f}" for column in grid.columns),
                f"{row.total:,.0f}",
            )
        table.add_row(
            "[bold]Total[/bold]",
            *(f"{grid.column_totals[column]:,.0f}" for column in grid.columns),
            f"[bold]{grid.grand_total:,.0f}[/bold]",
            end_section=True,
        )
        console.print(table)
    finally:
        db.close()


@expenses_app.command("set")
def expenses_set(
    vendor: Annotated[str, typer.Argument(help="Vendor id, code or name")],
    column: Annotated[str, typer.Argument(help="Month (Jan'25), quarter (Q1'25) or FY 2025")],
    amount: Annotated[float, typer.Argument(help="Amount; quarters and years are spread evenly")],
    version: VersionOption = LIVE_FORECAST,
    granularity: Annotated[
        str, typer.Option("--granularity", help="Monthly, Quarterly or Annual")
    ] = MONTHLY,
    config_path: ConfigOption = None,
):
    """Set one figure and save it."""
    config = get_config(config_path)
    db = get_db(config)

    try:
        planner, service = load_planner(config, db)
        target = find_vendor(planner, vendor)
        try:
            planner.set_version(version)
            planner.set_time_granularity(granularity)
            changed = planner.set_period_value(target.id, column, amount)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        if not changed:
            console.print("[yellow]Value unchanged[/yellow]")
            raise typer.Exit(0)
        save_planner(planner, service)
    finally:
        db.close()


@expenses_app.command("sync")
def expenses_sync(
    source: Annotated[str, typer.Option("--from", help="Version to copy from")] = LIVE_FORECAST,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Don't ask for confirmation")] = False,
    config_path: ConfigOption = None,
):
    """Copy one version's figures onto the other two versions and save."""
    config = get_config(config_path)
    db = get_db(config)

    try:
        planner, service = load_planner(config, db)
        try:
            planner.set_version(source)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        if not yes:
            typer.confirm(f"Overwrite the other versions with {source}?", abort=True)
        planner.synchronize_versions()
        console.print(planner.notice.message)
        save_planner(planner, service)
    finally:
        db.close()


# Tags subcommands


@tags_app.command("list")
def tags_list(config_path: ConfigOption = None):
    """List vendor product tags."""
    config = get_config(config_path)
    db = get_db(config)

    try:
        tags = db.get_product_tags()
        if not tags:
            console.print("[yellow]No product tags found[/yellow]")
            raise typer.Exit(0)

        names = {vendor.id: vendor.name for vendor in db.get_vendors()}
        table = Table(title="Product Tags")
        table.add_column("Vendor", style="cyan")
        table.add_column("Products", style="green")
        for vendor_id, products in sorted(tags.items(), key=lambda item: names.get(item[0], "")):
            table.add_row(names.get(vendor_id, vendor_id), ", ".join(products))
        console.print(table)
    finally:
        db.close()


@tags_app.command("set")
def tags_set(
    vendor: Annotated[str, typer.Argument(help="Vendor id, code or name")],
    product: Annotated[str, typer.Argument(help="Product name")],
    remove: Annotated[bool, typer.Option("--remove", help="Remove the tag instead")] = False,
    config_path: ConfigOption = None,
):
    """Tag a vendor with a product (or remove the tag)."""
    from .tagging import ProductTagger

    config = get_config(config_path)
    db = get_db(config)

    try:
        planner, _ = load_planner(config, db)
        target = find_vendor(planner, vendor)
        tagger = ProductTagger(config.planning.products)
        tagger.load(db)
        try:
            tagger.set_tag(target.id, product, not remove)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        tagger.save(db)
        console.print(f"{target.name}: {', '.join(tagger.tags_for(target.id)) or '(no products)'}")
    finally:
        db.close()


# Web server command


@app.command()
def serve(
    host: Annotated[
        Optional[str],
        typer.Option("--host", "-h", help="Host to bind to"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Port to bind to"),
    ] = None,
    reload: Annotated[
        bool,
        typer.Option("--reload", help="Enable auto-reload for development"),
    ] = False,
    config_path: ConfigOption = None,
):
    """Start the web server."""
    import uvicorn

    from .web import create_app

    config = get_config(config_path)
    ensure_directories(config)

    # Use config values if not overridden by CLI
    server_host = host or config.web.host or "127.0.0.1"
    server_port = port or config.web.port or 8000

    console.print("[cyan]Starting OpEx Planner web server...[/cyan]")
    console.print(f"  Host: {server_host}")
    console.print(f"  Port: {server_port}")
    console.print(f"  Config: {config_path or 'config.yaml'}")

    if not config.web.secret_key:
        console.print(
            "\n[yellow]Warning: No web.secret_key configured. "
            "Sessions will not survive a restart.[/yellow]"
        )

    console.print(f"\n[green]Open http://{server_host}:{server_port} in your browser[/green]\n")

    app_instance = create_app(config_path)

    uvicorn.run(
        app_instance,
        host=server_host,
        port=server_port,
        reload=reload,
    )


if __name__ == "__main__":
    app()
