"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, NoReturn, Optional, Tuple, Union

import pendulum
import typer
from pendulum import DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from ..adapters.graphql_client import GraphQLClient
from ..adapters.mock_backend import MockBackend
from ..config import AppConfig
from ..domain.clock import slot_instant
from ..domain.closure import next_open_day, shift_day, shift_week
from ..domain.exceptions import FlightgridError
from ..domain.models import FlightCategory, Reservation, Resource
from ..domain.validator import ValidationResult
from ..services.reservation_board import BoardSnapshot, ReservationBoard
from .grid_view import render_agenda, render_closed_banner, render_grid

app = typer.Typer(
    name="flightgrid",
    help="Consult and book aircraft on the aeroclub reservation grid",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")
]
MockOption = Annotated[
    bool,
    typer.Option("--mock", help="Utiliser les données de démonstration au lieu de l'API.")
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Afficher les journaux de débogage.")
]
DateArgument = Annotated[
    Optional[str],
    typer.Argument(help="Date (YYYY-MM-DD). Par défaut : aujourd'hui.")
]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config = AppConfig.load(config_file)
    pendulum.set_locale(config.locale)
    return config


def _build_backend(config: AppConfig, mock: bool) -> Union[MockBackend, GraphQLClient]:
    if mock:
        console.print("[yellow]⚠  MODE DÉMO : données de test[/yellow]\n")
        return MockBackend(
            data_file=config.mock_data_file,
            timezone=config.timezone,
            locale=config.locale,
        )
    return GraphQLClient(
        api_url=config.api_url,
        api_token=config.api_token,
        timezone=config.timezone,
        locale=config.locale,
    )


def _build_board(config: AppConfig, mock: bool) -> ReservationBoard:
    backend = _build_backend(config, mock)
    return ReservationBoard(
        backend,
        backend,
        backend,
        backend,
        use_slot_duration=config.grid.use_slot_duration,
    )


def _parse_day(value: Optional[str], tz: str) -> DateTime:
    if not value:
        return pendulum.now(tz).start_of("day")
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).start_of("day")
    except ValueError as exc:
        raise ValueError(f"Date invalide '{value}' (format attendu : YYYY-MM-DD)") from exc


def _resolve_resource(snapshot: BoardSnapshot, identifier: str) -> Resource:
    """Find an aircraft by registration (any case) or numeric id."""
    for resource in snapshot.resources:
        if resource.label.lower() == identifier.lower() or str(resource.id) == identifier:
            return resource
    raise ValueError(f"Avion inconnu : '{identifier}'")


def _parse_drag(value: str) -> Tuple[str, str]:
    """Split 'HH:mm-HH:mm' into the first and last dragged cells."""
    first, sep, last = value.partition("-")
    if not sep or not first.strip() or not last.strip():
        raise ValueError(f"Sélection invalide '{value}' (format attendu : HH:mm-HH:mm)")
    return first.strip(), last.strip()


def _parse_category(value: Optional[str]) -> Optional[FlightCategory]:
    if not value:
        return None
    category = FlightCategory.parse(value)
    if category is None:
        raise ValueError(f"Catégorie de vol inconnue : '{value}'")
    return category


def _print_validation(result: Optional[ValidationResult]) -> None:
    if result is None:
        console.print("[yellow]La cellule de départ n'est pas libre, aucune sélection.[/yellow]")
    elif result.accepted:
        console.print(
            f"[green]✓ Créneau libre :[/green] {result.start.format('HH:mm')} – {result.end.format('HH:mm')} "
            f"({result.estimated_flight_hours:.1f} h)"
        )
    else:
        console.print(f"[red]✗ Créneau indisponible :[/red] {result.describe()}")


def _find_owned_reservation(
    board: ReservationBoard,
    reservation_id: int,
    user_id: Optional[int]
) -> Reservation:
    reservation = board.find_reservation(reservation_id)
    if reservation is None:
        raise ValueError(f"Réservation {reservation_id} introuvable à cette date.")
    if not board.can_edit(reservation, user_id):
        raise ValueError("Seul le pilote ayant créé la réservation peut la modifier.")
    return reservation


async def _load(board: ReservationBoard, day: DateTime) -> BoardSnapshot:
    snapshot = await board.load_day(day)
    if snapshot is None:
        raise FlightgridError("Le chargement a été remplacé par une requête plus récente.")
    return snapshot


def _fail(error: Exception) -> NoReturn:
    console.print(f"[bold red]Erreur :[/bold red] {error}")
    raise typer.Exit(1)


@app.command()
def show(
    date: DateArgument = None,
    next_open: Annotated[bool, typer.Option("--next-open", help="Passer au prochain jour d'ouverture si la date est fermée.")] = False,
    offset: Annotated[int, typer.Option("--offset", "-o", help="Décaler la date d'un nombre de jours (négatif pour reculer).")] = 0,
    weeks: Annotated[int, typer.Option("--weeks", "-w", help="Décaler la date d'un nombre de semaines (négatif pour reculer).")] = 0,
    aircraft: Annotated[Optional[str], typer.Option("--aircraft", "-a", help="Avion de la sélection à prévisualiser")] = None,
    drag: Annotated[Optional[str], typer.Option("--drag", help="Prévisualiser une sélection de cellules HH:mm-HH:mm")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Show the reservation grid of a day.

    Examples:

        flightgrid show
        flightgrid show 2024-10-22 --mock
        flightgrid show 2024-10-26 --next-open
        flightgrid show 2024-10-22 --weeks 1
        flightgrid show 2024-10-22 --aircraft ABC123 --drag 16:00-17:00
    """
    _configure_logging(verbose)

    try:
        config = _load_config(config_file)
        board = _build_board(config, mock)
        if drag and not aircraft:
            raise ValueError("--drag nécessite --aircraft")
        day = shift_week(shift_day(_parse_day(date, config.timezone), offset), weeks)
        snapshot = asyncio.run(_load(board, day))

        if snapshot.closed and next_open:
            following = next_open_day(snapshot.day, snapshot.calendar)
            if following is not None:
                snapshot = asyncio.run(_load(board, following))

        if snapshot.is_loading:
            console.print("[yellow]Paramètres de réservation non disponibles, grille en attente.[/yellow]")
            return

        if snapshot.closed:
            console.print(render_closed_banner(snapshot))
            return

        if drag:
            resource = _resolve_resource(snapshot, aircraft)
            first, last = _parse_drag(drag)
            board.pointer_down(resource.id, first)
            board.pointer_enter(resource.id, last)

        console.print()
        console.print(render_grid(snapshot, board.selection))
        console.print()

        if drag:
            _print_validation(board.pointer_up())

    except (FlightgridError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def agenda(
    date: DateArgument = None,
    aircraft: Annotated[Optional[str], typer.Option("--aircraft", "-a", help="Immatriculation ou identifiant de l'avion")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    List the reservations of a day, optionally for one aircraft.
    """
    _configure_logging(verbose)

    try:
        config = _load_config(config_file)
        board = _build_board(config, mock)
        snapshot = asyncio.run(_load(board, _parse_day(date, config.timezone)))

        resource_id = _resolve_resource(snapshot, aircraft).id if aircraft else None
        reservations = board.agenda(resource_id)

        if not reservations:
            console.print("[yellow]Aucune réservation pour cette journée.[/yellow]")
            return

        console.print()
        console.print(render_agenda(reservations, snapshot.resources))
        console.print()

    except (FlightgridError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def book(
    aircraft: Annotated[str, typer.Argument(help="Immatriculation ou identifiant de l'avion")],
    start: Annotated[str, typer.Argument(help="Heure de début (HH:mm)")],
    end: Annotated[str, typer.Argument(help="Heure de fin (HH:mm)")],
    date: Annotated[Optional[str], typer.Option("--date", "-d", help="Date (YYYY-MM-DD)")] = None,
    purpose: Annotated[str, typer.Option("--purpose", "-p", help="Objet du vol")] = "",
    notes: Annotated[str, typer.Option("--notes", help="Remarques")] = "",
    category: Annotated[Optional[str], typer.Option("--category", help="Catégorie de vol (code ou libellé)")] = None,
    user_id: Annotated[Optional[int], typer.Option("--user-id", help="Identifiant du pilote (sinon celui de la config)")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Book an aircraft between two times of a day.

    Examples:

        flightgrid book F-GKQB 13:00 15:00 --date 2024-10-22 --purpose "Navigation"
    """
    _configure_logging(verbose)

    try:
        config = _load_config(config_file)
        board = _build_board(config, mock)

        flight_category = _parse_category(category)

        async def _book() -> Reservation:
            snapshot = await _load(board, _parse_day(date, config.timezone))
            resource = _resolve_resource(snapshot, aircraft)
            return await board.create_reservation(
                (resource.id, slot_instant(snapshot.day, start), slot_instant(snapshot.day, end)),
                user_id=user_id if user_id is not None else config.user_id,
                purpose=purpose,
                notes=notes,
                category=flight_category,
            )

        reservation = asyncio.run(_book())

        console.print(Panel.fit(
            f"[bold green]✓ Réservation enregistrée[/bold green]\n\n"
            f"[bold]Avion :[/bold] {reservation.resource_label or reservation.resource_id}\n"
            f"[bold]Créneau :[/bold] {reservation.format_display()}\n"
            f"[bold]Heures de vol estimées :[/bold] {reservation.time_range.duration_hours():.1f}",
            title=f"Réservation #{reservation.id}"
        ))

    except (FlightgridError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def edit(
    reservation_id: Annotated[int, typer.Argument(help="Identifiant de la réservation")],
    date: Annotated[Optional[str], typer.Option("--date", "-d", help="Date de la réservation (YYYY-MM-DD)")] = None,
    purpose: Annotated[Optional[str], typer.Option("--purpose", "-p", help="Nouvel objet du vol")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", help="Nouvelles remarques")] = None,
    category: Annotated[Optional[str], typer.Option("--category", help="Nouvelle catégorie de vol")] = None,
    user_id: Annotated[Optional[int], typer.Option("--user-id", help="Identifiant du pilote (sinon celui de la config)")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Change the purpose, notes or category of one of your reservations.
    """
    _configure_logging(verbose)

    try:
        config = _load_config(config_file)
        board = _build_board(config, mock)
        owner = user_id if user_id is not None else config.user_id
        flight_category = _parse_category(category)

        async def _edit() -> Reservation:
            await _load(board, _parse_day(date, config.timezone))
            reservation = _find_owned_reservation(board, reservation_id, owner)
            return await board.update_reservation(
                reservation,
                purpose=purpose,
                notes=notes,
                category=flight_category,
            )

        updated = asyncio.run(_edit())
        console.print(f"[green]✓ Réservation {updated.id} mise à jour :[/green] {updated.format_display()}")

    except (FlightgridError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def cancel(
    reservation_id: Annotated[int, typer.Argument(help="Identifiant de la réservation")],
    date: Annotated[Optional[str], typer.Option("--date", "-d", help="Date de la réservation (YYYY-MM-DD)")] = None,
    user_id: Annotated[Optional[int], typer.Option("--user-id", help="Identifiant du pilote (sinon celui de la config)")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Delete one of your reservations.
    """
    _configure_logging(verbose)

    try:
        config = _load_config(config_file)
        board = _build_board(config, mock)
        owner = user_id if user_id is not None else config.user_id

        async def _cancel() -> None:
            await _load(board, _parse_day(date, config.timezone))
            _find_owned_reservation(board, reservation_id, owner)
            await board.delete_reservation(reservation_id)

        asyncio.run(_cancel())
        console.print(f"[green]✓ Réservation {reservation_id} supprimée.[/green]")

    except (FlightgridError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]flightgrid[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
