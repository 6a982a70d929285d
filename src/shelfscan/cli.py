"""CLI for Shelfscan barcode decoding and product lookup."""

from datetime import date
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from shelfscan.catalog_io import CatalogFormatError, load_catalog_file
from shelfscan.config import configure_logging, get_settings
from shelfscan.core.barcode_parser import decode_barcode
from shelfscan.core.expiry import ExpiryInfo, expiry_from_iso, resolve_expiry
from shelfscan.core.match_service import MatchService
from shelfscan.core.models import DecodedBarcode, ExpiryStatus, MatchKind

app = typer.Typer(
    name="shelfscan",
    help="Shelfscan CLI - decode barcodes and look up products",
    add_completion=False,
)
console = Console()

_STATUS_STYLES = {
    ExpiryStatus.EXPIRED: "red",
    ExpiryStatus.EXPIRING: "yellow",
    ExpiryStatus.OK: "green",
    ExpiryStatus.UNKNOWN: "dim",
}

CatalogOption = typer.Option(
    None,
    "--catalog",
    "-c",
    help="Catalog CSV/TSV/JSON file (defaults to CATALOG_PATH)",
)
TodayOption = typer.Option(
    None,
    "--today",
    help="Reference date for expiry status, YYYY-MM-DD",
)


@app.callback()
def main(
    log_level: str = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    """Configure logging before any command runs."""
    configure_logging(log_level)


def _parse_today(value: str | None) -> date | None:
    if not value:
        return None
    parsed = expiry_from_iso(value)
    if parsed is None:
        console.print(f"[red]✗ Invalid --today date: {value}[/red]")
        raise typer.Exit(1)
    return parsed


def _load_service(catalog: Path | None) -> MatchService:
    """Build a match service from a catalog file."""
    settings = get_settings()
    path = catalog or (Path(settings.catalog.path) if settings.catalog.is_configured else None)
    if path is None:
        console.print("[red]✗ No catalog given. Pass --catalog or set CATALOG_PATH.[/red]")
        raise typer.Exit(1)

    try:
        records = load_catalog_file(path)
    except (CatalogFormatError, OSError) as e:
        console.print(f"[red]✗ Error loading catalog: {e}[/red]")
        raise typer.Exit(1)

    service = MatchService()
    service.load_catalog(records)
    return service


def _decoded_panel(decoded: DecodedBarcode, expiry: ExpiryInfo, title: str) -> Panel:
    style = _STATUS_STYLES[expiry.status]
    return Panel.fit(
        f"[bold]GTIN-14:[/bold] {decoded.gtin14 or '-'}\n"
        f"[bold]GTIN-13:[/bold] {decoded.gtin13 or '-'}\n"
        f"[bold]Batch:[/bold] {escape(decoded.batch or '-')}\n"
        f"[bold]Serial:[/bold] {escape(decoded.serial or '-')}\n"
        f"[bold]Quantity:[/bold] {decoded.quantity}\n"
        f"[bold]Expiry:[/bold] [{style}]{expiry.display or 'N/A'} ({expiry.status.value})[/{style}]\n"
        f"[bold]GS1:[/bold] {'yes' if decoded.is_structured else 'no'}",
        title=title,
    )


@app.command()
def decode(
    barcode: str = typer.Argument(..., help="Raw barcode string"),
    today: str = TodayOption,
):
    """Decode a barcode without looking it up."""
    settings = get_settings().matching
    decoded = decode_barcode(barcode)
    expiry = resolve_expiry(decoded.expiry, _parse_today(today), settings.soon_threshold_days)
    console.print(_decoded_panel(decoded, expiry, "Decoded Barcode"))

    if not decoded.has_gtin and not decoded.is_structured:
        console.print("[yellow]No barcode format recognized[/yellow]")


@app.command()
def scan(
    barcodes: list[str] = typer.Argument(..., help="One or more raw barcode strings"),
    catalog: Path = CatalogOption,
    today: str = TodayOption,
):
    """Decode barcodes and match them against a catalog."""
    service = _load_service(catalog)
    reference = _parse_today(today)

    for barcode in barcodes:
        outcome = service.scan(barcode, today=reference)
        console.print(_decoded_panel(outcome.decoded, outcome.expiry, barcode))

        match = outcome.match
        if match.match_kind is MatchKind.NONE:
            console.print("[yellow]  Unknown product - add details to the catalog[/yellow]\n")
        elif match.product is not None:
            console.print(
                f"[green]✓ {match.product.display_name}[/green] "
                f"[dim]({match.match_kind.value})[/dim]\n"
            )
        else:
            console.print(f"[yellow]  {len(match.candidates)} candidates ({match.match_kind.value}):[/yellow]")
            for product in match.candidates:
                console.print(f"    • {product.display_name} [dim]{product.primary_code}[/dim]")
            console.print()


@app.command()
def search(
    query: str = typer.Argument(..., help="Barcode digits or product name"),
    catalog: Path = CatalogOption,
    limit: int = typer.Option(None, "--limit", "-n", min=1, help="Maximum results"),
):
    """Look up products by barcode or name."""
    service = _load_service(catalog)
    result = service.search(query, limit=limit)

    if not result.results:
        console.print(f"[yellow]No match for '{query}'[/yellow]")
        raise typer.Exit(0)

    table = Table(title=f"{result.kind.value} ({len(result.results)})")
    table.add_column("Code", style="cyan")
    table.add_column("Name")
    table.add_column("Secondary", style="dim")
    for product in result.results:
        table.add_row(product.primary_code, product.display_name, product.secondary_code or "")
    console.print(table)


@app.command()
def catalog_stats(
    catalog: Path = CatalogOption,
):
    """Show how a catalog file indexes."""
    service = _load_service(catalog)
    index = service.index

    ambiguous = sum(1 for candidates in index.by_last_eight.values() if len(candidates) > 1)
    console.print(Panel.fit(
        f"[bold]Products:[/bold] {len(index.products)}\n"
        f"[bold]Lookup codes:[/bold] {len(index.exact_by_code)}\n"
        f"[bold]Secondary codes:[/bold] {len(index.by_secondary_code)}\n"
        f"[bold]Ambiguous 8-digit suffixes:[/bold] {ambiguous}",
        title="Catalog Index",
    ))


if __name__ == "__main__":
    app()
