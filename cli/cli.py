"""CLI for the adaptive engine.

Developer CLI to run the engine locally against the configured database
(DATABASE_URL) and inspect stored daily states.
"""

import json
from datetime import date, datetime

import typer
import uvicorn
from loguru import logger
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.table import Table

from empathy.adaptive.errors import AthleteNotFoundError
from empathy.adaptive.repository import load_recent_daily_states
from empathy.adaptive.service import get_state, run_adaptive_engine
from empathy.config.settings import settings
from empathy.core.logger import setup_logger
from empathy.db.session import get_session, init_db

app = typer.Typer(
    name="empathy-cli",
    help="Empathy adaptive engine CLI - compute and inspect daily athlete states",
    add_completion=False,
)

console = Console()


def _parse_date(value: str | None) -> date:
    if not value:
        return date.today()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as e:
        console.print(f"[red]Invalid date '{value}', expected YYYY-MM-DD[/red]")
        raise typer.Exit(2) from e


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    setup_logger(
        level="DEBUG" if verbose else settings.log_level,
        log_file=settings.log_file or None,
        serialize=settings.log_json,
    )


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
) -> None:
    """Run the HTTP API."""
    console.print(f"[green]Serving adaptive engine API on http://{host}:{port}[/green]")
    uvicorn.run("empathy.main:app", host=host, port=port, reload=reload)


@app.command("init-db")
def init_db_command() -> None:
    """Create database tables."""
    init_db()
    console.print("[green]Database tables ready[/green]")


@app.command()
def calculate(
    athlete_id: str = typer.Argument(..., help="Athlete identifier"),
    state_date: str | None = typer.Option(None, "--date", "-d", help="State date (YYYY-MM-DD), default today"),
) -> None:
    """Run the adaptive engine for an athlete and store the daily state."""
    target_date = _parse_date(state_date)

    with get_session() as session:
        try:
            result = run_adaptive_engine(session, athlete_id, target_date)
        except AthleteNotFoundError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1) from e

        daily_state = result.state
        console.print(
            Panel(
                f"[bold]{daily_state.ai_notes}[/bold]\n\n"
                f"fatigue={daily_state.fatigue_score}  recovery={daily_state.recovery_need}  glycogen={daily_state.glycogen_status}\n"
                f"zone={daily_state.recommended_zone} (max {daily_state.max_zone_today})  "
                f"tss_capacity={daily_state.tss_capacity} ({daily_state.tss_adjustment_percent}%)  kcal={daily_state.kcal_target}",
                title=f"Daily state {athlete_id} {target_date.isoformat()}",
                border_style="green" if result.saved else "yellow",
            )
        )
        console.print(JSON(json.dumps(result.adaptations.model_dump(mode="json"))))
        if not result.saved:
            logger.warning("Daily state was calculated but could not be saved")


@app.command()
def state(
    athlete_id: str = typer.Argument(..., help="Athlete identifier"),
    state_date: str | None = typer.Option(None, "--date", "-d", help="State date (YYYY-MM-DD), default today"),
) -> None:
    """Show the stored daily state for a date."""
    target_date = _parse_date(state_date)

    with get_session() as session:
        daily_state = get_state(session, athlete_id, target_date)

    if daily_state is None:
        console.print(f"[yellow]No state stored for {athlete_id} on {target_date.isoformat()}[/yellow]")
        raise typer.Exit(1)

    console.print(Panel(JSON(daily_state.model_dump_json()), title=f"Daily state {target_date.isoformat()}"))


@app.command()
def history(athlete_id: str = typer.Argument(..., help="Athlete identifier")) -> None:
    """List the stored daily states of the current year, most recent first."""
    with get_session() as session:
        states = load_recent_daily_states(session, athlete_id)

    table = Table(title=f"Daily states {athlete_id}")
    for column in ("date", "fatigue", "recovery", "glycogen", "zone", "kcal"):
        table.add_column(column)
    for daily_state in states:
        table.add_row(
            daily_state.state_date.isoformat(),
            str(daily_state.fatigue_score),
            daily_state.recovery_need.value,
            daily_state.glycogen_status.value,
            f"{daily_state.recommended_zone}/{daily_state.max_zone_today}",
            str(daily_state.kcal_target),
        )
    console.print(table)


if __name__ == "__main__":
    app()
