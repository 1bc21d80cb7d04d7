from __future__ import annotations

import logging
import random
from datetime import datetime
from typing import Optional, Tuple

import click

from . import db, report, seeder
from .booking import book_flight
from .config import get_settings
from .errors import PricingError
from .gateway import PricingGateway
from .scheduler import PriceScheduler
from .search import search_flights

logger = logging.getLogger(__name__)

LOG_FILE = "surge_pricing.log"


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        handlers=[logging.FileHandler(LOG_FILE), logging.StreamHandler()],
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _gateway(ctx: click.Context) -> PricingGateway:
    return PricingGateway.from_settings(ctx.obj["settings"], ctx.obj["db_path"])


@click.group()
@click.option("--db", "db_path", default=db.DB_FILE, show_default=True, help="SQLite database file")
@click.pass_context
def cli(ctx: click.Context, db_path: str) -> None:
    """Flight search with surge pricing."""
    settings = get_settings()
    _configure_logging(settings.log_level)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["db_path"] = db_path
    db.migrate(db_path=db_path)


@cli.command("init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """(Re)create the schema."""
    db.init_db(ctx.obj["db_path"])
    click.echo(f"Initialized {ctx.obj['db_path']}")


@cli.command()
@click.option("--count", default=200, show_default=True, help="Flights to generate")
@click.option("--seed", "rng_seed", type=int, help="Random seed for reproducible data")
@click.pass_context
def seed(ctx: click.Context, count: int, rng_seed: Optional[int]) -> None:
    """Insert sample flights."""
    rng = random.Random(rng_seed)
    inserted = seeder.seed(count, db_path=ctx.obj["db_path"], rng=rng)
    click.echo(f"Inserted {inserted} flights")


@cli.command()
@click.argument("origin")
@click.argument("destination")
@click.argument("day", type=click.DateTime(formats=["%Y-%m-%d"]))
@click.option("--user", "user_id", help="Searching user; counts towards surge pricing")
@click.pass_context
def search(
    ctx: click.Context,
    origin: str,
    destination: str,
    day: datetime,
    user_id: Optional[str],
) -> None:
    """Search flights ORIGIN ➔ DESTINATION from DAY (YYYY-MM-DD)."""
    flights = search_flights(
        _gateway(ctx), origin.upper(), destination.upper(), day.date(), user_id
    )
    if not flights:
        click.echo("No flights found")
    for f in flights:
        click.echo(
            f"{f.id:>5} {f.flight_number} {f.airline:<10} "
            f"{f.departure_airport_code} ➔ {f.arrival_airport_code} "
            f"{f.departure_time:%Y-%m-%d %H:%M} {f.current_price}"
        )


@cli.command()
@click.argument("flight_id", type=int)
@click.pass_context
def price(ctx: click.Context, flight_id: int) -> None:
    """Show the current price of FLIGHT_ID."""
    try:
        click.echo(_gateway(ctx).current_price(flight_id))
    except PricingError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command()
@click.argument("flight_id", type=int)
@click.option("--user", "user_id", required=True)
@click.option("--passenger", "passengers", multiple=True, required=True, help="Passenger name (repeatable)")
@click.pass_context
def book(
    ctx: click.Context, flight_id: int, user_id: str, passengers: Tuple[str, ...]
) -> None:
    """Book FLIGHT_ID at its current price."""
    try:
        booking = book_flight(
            flight_id, user_id, list(passengers), db_path=ctx.obj["db_path"]
        )
    except PricingError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"{booking.pnr} total {booking.total_price}")


@cli.command()
@click.pass_context
def sweep(ctx: click.Context) -> None:
    """Revert every surge whose cooldown has elapsed."""
    try:
        reverted = _gateway(ctx).sweep()
    except PricingError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Reverted {reverted} flights")


@cli.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Run the price reset scheduler until interrupted."""
    settings = ctx.obj["settings"]
    scheduler = PriceScheduler(_gateway(ctx), settings.sweep_interval_s)
    scheduler.run_forever()


@cli.command("report")
@click.pass_context
def report_cmd(ctx: click.Context) -> None:
    """Print the pricing state of all flights."""
    gateway = _gateway(ctx)
    df = report.pricing_snapshot(
        ctx.obj["db_path"],
        lookback=gateway.policy.lookback_window,
        cooldown=gateway.policy.cooldown_window,
    )
    if df.empty:
        click.echo("No flights")
        return
    click.echo(df.to_string(index=False))
    totals = report.summary(df)
    click.echo(
        f"{totals['flights']} flights, {totals['surged']} surged, "
        f"surcharge {totals['surcharge_total']}"
    )


if __name__ == "__main__":
    cli()
