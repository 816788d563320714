"""
Rendering functions for releasedrift output.

This module handles all pretty-printing and table formatting.
Core functions return data, this module makes it human-readable.
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from .domain import Snapshot, ReleaseCatalog, MANIFEST, STATUS_NOT_FOUND

console = Console()


def format_time(epoch: float) -> str:
    """Render epoch seconds as a UTC date, ``-`` for 0."""
    if not epoch:
        return "-"
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime('%Y-%m-%d %H:%M')


def _table(title: str) -> Table:
    return Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )


def render_catalog_table(catalogs: Iterable[ReleaseCatalog], title: str, out: Optional[Console] = None) -> None:
    """
    Render release catalogs, one row per source.

    Args:
        catalogs: Catalogs to render
        title: Table title
        out: Console to print on (module console if None)
    """
    out = out or console
    catalogs = list(catalogs)
    if not catalogs:
        out.print(f"[yellow]No {title.lower()} configured.[/yellow]")
        return

    table = _table(title)
    table.add_column("Name", style="cyan")
    table.add_column("Repository", style="dim")
    table.add_column("Latest", style="green")
    table.add_column("Published")
    table.add_column("Versions", justify="right")
    table.add_column("BOSH releases", justify="right")
    table.add_column("Status")

    for catalog in catalogs:
        latest = catalog.latest
        if catalog.has_error:
            status = f"[red]error[/red] {catalog.error or ''}".rstrip()
        else:
            status = "[green]ok[/green]"
        table.add_row(
            catalog.name,
            f"{catalog.owner}/{catalog.repo}",
            latest.version if latest else "-",
            format_time(latest.time) if latest else "-",
            str(len(catalog.versions)),
            str(len(catalog.releases)) if catalog.kind == MANIFEST else "",
            status,
        )

    out.print(table)


def render_drift_table(snapshot: Snapshot, out: Optional[Console] = None) -> None:
    """Render deployment drift, one row per deployment."""
    out = out or console
    if not snapshot.deployments:
        out.print("[yellow]No deployments found.[/yellow]")
        return

    table = _table("Deployments")
    table.add_column("Deployment", style="cyan")
    table.add_column("Manifest", style="dim")
    table.add_column("Current")
    table.add_column("Latest", style="green")
    table.add_column("Out of date since")

    drifts = {d.deployment: d for d in snapshot.drifts}
    for record in snapshot.deployments:
        if record.has_error:
            table.add_row(record.deployment, record.manifest_name or "-", "-", "-", "[red]error[/red]")
            continue
        drift = drifts.get(record.deployment)
        if drift is None:
            continue
        if drift.status == STATUS_NOT_FOUND:
            since = "[yellow]not found[/yellow]"
        elif drift.expired_since:
            since = f"[red]{format_time(drift.expired_since)}[/red]"
        else:
            since = "[green]up to date[/green]"
        table.add_row(drift.deployment, drift.manifest_name, drift.current_version, drift.latest_version, since)

    out.print(table)


def render_component_table(snapshot: Snapshot, out: Optional[Console] = None) -> None:
    """Render outdated or unknown BOSH releases of deployments."""
    out = out or console
    rows: List[List[str]] = []
    for component in snapshot.component_drifts:
        if component.status == STATUS_NOT_FOUND:
            since = "[yellow]not found[/yellow]"
        elif component.expired_since:
            since = f"[red]{format_time(component.expired_since)}[/red]"
        else:
            continue
        rows.append([
            component.deployment,
            component.component_name,
            component.component_current,
            component.component_latest,
            since,
        ])

    if not rows:
        return

    table = _table("Outdated BOSH releases")
    for header in ("Deployment", "BOSH release", "Current", "Latest", "Out of date since"):
        table.add_column(header)
    for row in rows:
        table.add_row(*row)
    out.print(table)


def render_snapshot(snapshot: Snapshot, out: Optional[Console] = None) -> None:
    """Render every table of a snapshot followed by a summary line."""
    out = out or console
    render_catalog_table(snapshot.manifests, "Manifest releases", out)
    render_catalog_table(snapshot.generic, "Generic releases", out)
    render_drift_table(snapshot, out)
    render_component_table(snapshot, out)

    if snapshot.deployments_error:
        out.print("[red]Unable to list BOSH deployments.[/red]")
    summary = f"Refreshed in {snapshot.duration:.1f}s"
    if snapshot.error_count:
        out.print(f"[red]{summary} with {snapshot.error_count} error(s)[/red]")
    else:
        out.print(f"[green]{summary}[/green]")
