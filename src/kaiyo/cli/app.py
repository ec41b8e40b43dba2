"""Main CLI application using Typer."""
import asyncio
import json
import uuid

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import Settings
from ..conversation import Itinerary
from ..errors import ConfigurationError, GeocodingError, KaiyoError
from ..log import configure_logging
from ..orchestrator import CollectingSink
from ..runtime import build_runtime
from ..streaming import StreamEvent
from ..tools import Geocoder, LocationQuery, create_default_registry

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="kaiyo",
    help="AI travel-planning chat backend",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()


def _load_settings() -> Settings:
    try:
        return Settings()
    except ValueError as e:
        console.print(f"[red]Error: invalid settings: {e}[/red]")
        raise typer.Exit(code=1)


def _render_itinerary(itinerary: Itinerary) -> None:
    dates = " to ".join(d for d in (itinerary.start_date, itinerary.end_date) if d)
    table = Table(title=f"{itinerary.destination} {dates}".strip())
    table.add_column("Day", style="cyan", justify="right")
    table.add_column("Time", style="magenta")
    table.add_column("Activity", style="bold")
    table.add_column("Place")
    table.add_column("Coordinates", style="dim")

    for day in itinerary.days:
        label = f"{day.day}" + (f" ({day.label})" if day.label else "")
        if not day.items:
            table.add_row(label, "", "[dim]free day[/dim]", "", "")
        for index, item in enumerate(day.items):
            times = "-".join(t for t in (item.start_time, item.end_time) if t)
            coords = f"{item.lat:.4f}, {item.lon:.4f}" if item.lat is not None and item.lon is not None else ""
            table.add_row(
                label if index == 0 else "",
                times,
                item.title,
                item.place or item.city or "",
                coords,
            )

    console.print(table)


@app.command()
def serve(
    host: str | None = typer.Option(
        None,
        "--host",
        help="Interface to bind (default: KAIYO_HOST or 127.0.0.1)"
    ),
    port: int | None = typer.Option(
        None,
        "--port",
        "-p",
        help="Port to listen on (default: KAIYO_PORT or 8080)"
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="debug, info, warning or error (default: KAIYO_LOG_LEVEL)"
    )
):
    """Run the HTTP API server."""
    import uvicorn

    from ..api import create_app

    settings = _load_settings()
    level = (log_level or settings.log_level).upper()
    configure_logging(level)

    console.print(
        f"[dim]Serving Kaiyo on http://{host or settings.host}:{port or settings.port} "
        f"(provider: {settings.llm_provider})[/dim]"
    )
    uvicorn.run(
        create_app(settings=settings),
        host=host or settings.host,
        port=port or settings.port,
        log_level=level.lower(),
    )


@app.command()
def chat(
    max_iterations: int | None = typer.Option(
        None,
        "--max-iterations",
        "-i",
        min=1,
        help="Maximum tool-calling rounds per turn"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logs"
    )
):
    """Interactive chat with the travel planner."""
    configure_logging("DEBUG" if verbose else "WARNING")

    async def _chat():
        settings = _load_settings()
        if max_iterations is not None:
            settings.max_planning_iterations = max_iterations

        try:
            runtime = build_runtime(settings)
        except (ConfigurationError, TypeError) as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)

        try:
            state = await runtime.store.get_or_create(str(uuid.uuid4()))

            console.print("[bold cyan]Kaiyo Travel Planner[/bold cyan]")
            console.print(f"[dim]Model: {runtime.profile.model_name}. Type 'exit', 'quit', or 'q' to leave[/dim]\n")

            def _print_event(event: StreamEvent) -> None:
                if event.event == "notice":
                    console.print(f"\n[yellow]{event.data}[/yellow]")
                else:
                    console.print(event.data, end="", markup=False, highlight=False)

            while True:
                try:
                    user_input = console.input("[bold yellow]You:[/bold yellow] ")

                    if not user_input.strip():
                        continue

                    if user_input.strip().lower() in ('exit', 'quit', 'q'):
                        console.print("[dim]Goodbye![/dim]")
                        break

                    console.print("[bold green]Kaiyo:[/bold green] ", end="")
                    sink = CollectingSink(on_event=_print_event)
                    report = await runtime.orchestrator.run_turn(state, user_input, sink)
                    console.print()

                    if report.narration_error:
                        console.print(f"[red]{report.narration_error}[/red]")
                    if report.itinerary_updated and state.itinerary is not None:
                        _render_itinerary(state.itinerary)
                    console.print(
                        f"[dim]{report.planning_iterations} planning round(s), "
                        f"{report.tool_calls} tool call(s), "
                        f"{report.processing_time_seconds:.1f}s[/dim]\n"
                    )

                except KaiyoError as e:
                    console.print(f"\n[red]Error: {e}[/red]\n")
                except KeyboardInterrupt:
                    console.print("\n[dim]Goodbye![/dim]")
                    break
                except EOFError:
                    console.print("\n[dim]Goodbye![/dim]")
                    break
        finally:
            await runtime.aclose()

    asyncio.run(_chat())


@app.command()
def tools():
    """List the tools offered to the model while planning."""
    async def _tools():
        settings = _load_settings()
        registry, geocoder = create_default_registry(
            geocode_base_url=settings.geocode_base_url,
            geocode_user_agent=settings.geocode_user_agent,
        )
        try:
            for spec in registry.specs():
                console.print(Panel(
                    json.dumps(spec.parameters, indent=2),
                    title=f"[bold cyan]{spec.name}[/bold cyan]",
                    subtitle=spec.description,
                    border_style="dim",
                ))
        finally:
            await geocoder.aclose()

    asyncio.run(_tools())


@app.command()
def geocode(
    city: str = typer.Option(..., "--city", help="City or town"),
    country: str = typer.Option(..., "--country", help="Country"),
    amenity: str | None = typer.Option(None, "--amenity", help="Venue or building name"),
    street: str | None = typer.Option(None, "--street", help="Street address"),
    state: str | None = typer.Option(None, "--state", help="State or province")
):
    """Geocode one location and print the hits."""
    async def _geocode():
        settings = _load_settings()
        geocoder = Geocoder(
            base_url=settings.geocode_base_url,
            user_agent=settings.geocode_user_agent,
            timeout=settings.geocode_timeout,
        )
        query = LocationQuery(amenity=amenity, street=street, city=city, state=state, country=country)
        try:
            results = await geocoder.lookup(query)
        except GeocodingError as e:
            console.print(f"[red]Error: {e.location}: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await geocoder.aclose()

        table = Table(title=query.label())
        table.add_column("Name", style="cyan")
        table.add_column("Lat", justify="right")
        table.add_column("Lon", justify="right")
        table.add_column("Type", style="dim")
        for hit in results:
            table.add_row(
                str(hit.get("display_name", "")),
                str(hit.get("lat", "")),
                str(hit.get("lon", "")),
                str(hit.get("type", "")),
            )
        console.print(table)

    asyncio.run(_geocode())
