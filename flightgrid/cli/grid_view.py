"""
Rich renderables for the reservation grid and the day agenda.
"""

from typing import Dict, List, Optional, Sequence

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..domain.closure import weekday_name
from ..domain.models import Reservation, Resource, status_style
from ..domain.occupancy import OccupiedCell, OutOfHoursCell
from ..domain.selection import SelectionState
from ..services.reservation_board import BoardSnapshot

CELL_WIDTH = 6


def _occupied_text(cell: OccupiedCell, reservation: Optional[Reservation]) -> Text:
    status = reservation.status if reservation else None
    style = status_style(status)
    if not cell.is_head:
        # Continuation of the merged span started in an earlier column
        return Text("━" * CELL_WIDTH, style=style.color)
    title = reservation.purpose if reservation and reservation.purpose else style.label
    return Text(title[:CELL_WIDTH], style=f"bold {style.color}")


def render_grid(snapshot: BoardSnapshot, selection: Optional[SelectionState] = None) -> Table:
    """
    Build the aircraft x slot table for one day.

    Reservations spanning several slots are drawn as one labelled head cell
    followed by continuation bars in the status colour. Free cells inside
    an ongoing drag ``selection`` are shaded.
    """
    locale = snapshot.calendar.locale if snapshot.calendar else "fr"
    day_title = f"{weekday_name(snapshot.day, locale).capitalize()} {snapshot.day.format('DD/MM/YYYY')}"
    table = Table(title=day_title, show_header=True, header_style="bold cyan", show_lines=True)
    table.add_column("Avion", style="bold yellow", no_wrap=True)
    for slot in snapshot.slots:
        table.add_column(slot.label, justify="center", min_width=CELL_WIDTH, no_wrap=True)

    for resource in snapshot.resources:
        row: List[Text] = [Text(resource.label)]
        for slot, cell in zip(snapshot.slots, snapshot.grid.row(resource.id)):
            if isinstance(cell, OccupiedCell):
                row.append(_occupied_text(cell, snapshot.grid.reservation(cell.reservation_id)))
            elif isinstance(cell, OutOfHoursCell):
                row.append(Text("·", style="dim"))
            elif selection is not None and selection.highlights(resource.id, slot.label):
                row.append(Text("░" * CELL_WIDTH, style="cyan"))
            else:
                row.append(Text(""))
        table.add_row(*row)

    return table


def render_closed_banner(snapshot: BoardSnapshot) -> Panel:
    locale = snapshot.calendar.locale if snapshot.calendar else "fr"
    return Panel.fit(
        f"[bold red]L'aéroclub est fermé le {weekday_name(snapshot.day, locale)}.[/bold red]\n"
        "Aucune réservation n'est possible ce jour-là.",
        title="Fermé",
    )


def render_agenda(reservations: Sequence[Reservation], resources: Sequence[Resource]) -> Table:
    """List reservations of the day, one line each, in start order."""
    labels: Dict[int, str] = {resource.id: resource.label for resource in resources}

    table = Table(title="Réservations du jour", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Avion", style="bold yellow")
    table.add_column("Horaire")
    table.add_column("Catégorie")
    table.add_column("Pilote")
    table.add_column("Objet")
    table.add_column("Statut")

    for reservation in reservations:
        style = status_style(reservation.status)
        table.add_row(
            str(reservation.id),
            reservation.resource_label or labels.get(reservation.resource_id, str(reservation.resource_id)),
            f"{reservation.start.format('HH:mm')} – {reservation.end.format('HH:mm')}",
            reservation.category.label if reservation.category else "",
            reservation.user_name,
            reservation.purpose,
            Text(style.label, style=style.color),
        )

    return table
