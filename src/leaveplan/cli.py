"""Typer CLI for the Leave Day Optimizer."""

from __future__ import annotations

import datetime
import json
import logging
import pathlib
import sys

import typer

from leaveplan.holidays import (
    PRESETS,
    HolidayRecord,
    get_holidays,
    load_holiday_file,
    parse_holiday_records,
)
from leaveplan.optimizer import (
    LeaveOptimizer,
    LeavePlan,
    OptimizerConfig,
    format_calendar_view,
    format_plan,
    parse_priority,
)

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="leaveplan",
    help="Leave Day Optimizer: pick the workdays that bridge weekends and "
    "public holidays into the longest breaks.",
    add_completion=False,
)

STRATEGY_CHOICES = ["all", "max", "first-half", "second-half", "quarterly"]


def _fail(message: str) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(code=1)


def _parse_date(value: str) -> datetime.date:
    """Parse a YYYY-MM-DD date string."""
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Invalid date format {value!r}. Use YYYY-MM-DD.") from None


def _current_year() -> int:
    return datetime.date.today().year


# ---------------------------------------------------------------------------
# Input helpers
# ---------------------------------------------------------------------------


def _load_config(path: str) -> dict[str, object]:
    """Load a JSON config file (year, budget, holidays, quarter, tuning, ...)."""
    p = pathlib.Path(path)
    if not p.exists():
        raise _fail(f"Config file not found: {path}")

    try:
        data = json.loads(p.read_text())
    except json.JSONDecodeError as exc:
        raise _fail(f"Invalid JSON in config file: {exc}") from None

    if not isinstance(data, dict):
        raise _fail("Config file must contain a JSON object.")
    if "tuning" in data and not isinstance(data["tuning"], dict):
        raise _fail("'tuning' must be a JSON object.")

    return data


def _collect_holidays(
    year: int,
    country: str,
    extra: list[str] | None,
    holiday_file: str | None,
    config_holidays: object,
) -> list[HolidayRecord]:
    """Gather holidays from the preset, config, file and --holiday options."""
    records: list[HolidayRecord] = []

    if country and country != "none":
        try:
            records.extend(get_holidays(country, year))
        except KeyError as exc:
            raise _fail(str(exc.args[0])) from None

    try:
        if config_holidays:
            if not isinstance(config_holidays, list):
                raise ValueError("'holidays' in the config file must be a list.")
            records.extend(parse_holiday_records(config_holidays))
        if holiday_file is not None:
            records.extend(load_holiday_file(holiday_file))
    except OSError as exc:
        raise _fail(f"Cannot read holiday file: {exc}") from None
    except ValueError as exc:
        raise _fail(str(exc)) from None

    for h in extra or []:
        d = _parse_date(h)
        records.append(HolidayRecord(d, d.strftime("%b %d")))

    # Deduplicate and sort; first name seen for a date wins
    in_year = [r for r in records if r.date.year == year]
    if len(in_year) < len(records):
        logger.warning("Ignoring %d holiday(s) outside %d", len(records) - len(in_year), year)
    return parse_holiday_records(in_year)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def optimize(
    year: int = typer.Option(
        None,
        "--year",
        "-y",
        help="Target year. Defaults to the current year.",
    ),
    budget: int = typer.Option(
        None,
        "--budget",
        "-b",
        help="Number of leave days available.",
        min=0,
    ),
    country: str | None = typer.Option(
        None,
        "--country",
        "-c",
        help=f"Holiday preset ({', '.join(sorted(PRESETS))}). Use 'none' to skip. "
        "Defaults to 'us'.",
    ),
    holiday: list[str] | None = typer.Option(  # noqa: B008
        None,
        "--holiday",
        "-H",
        help="Additional holiday date (YYYY-MM-DD). Repeatable.",
    ),
    holiday_file: str | None = typer.Option(
        None,
        "--holiday-file",
        help="JSON list of holidays, e.g. a Nager.Date PublicHolidays export.",
    ),
    quarter: str | None = typer.Option(
        None,
        "--quarter",
        "-q",
        help="Priority period: any, q1-q4 or START:END (YYYY-MM-DD:YYYY-MM-DD).",
    ),
    today: str | None = typer.Option(
        None,
        "--today",
        help="Never suggest leave before this date (YYYY-MM-DD).",
    ),
    exclude_past: bool = typer.Option(
        False,
        "--exclude-past",
        help="When planning the current year, skip dates before today.",
    ),
    strategy: str = typer.Option(
        "all",
        "--strategy",
        "-s",
        help="Strategy to run: all, max, first-half, second-half, quarterly.",
    ),
    calendar: bool = typer.Option(
        True,
        "--calendar/--no-calendar",
        help="Show month-by-month calendar view.",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        help="Output results as JSON.",
    ),
    config: str | None = typer.Option(
        None,
        "--config",
        help="Path to a JSON config file. Command-line options take precedence.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log optimizer decisions to stderr.",
    ),
) -> None:
    """Recommend leave days for maximum time off."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(name)-12s: %(levelname)-8s %(message)s"
        )

    data = _load_config(config) if config is not None else {}

    if strategy not in STRATEGY_CHOICES:
        raise _fail(
            f"Invalid strategy {strategy!r}. Choose from: {', '.join(STRATEGY_CHOICES)}"
        )

    raw_budget = budget if budget is not None else data.get("budget")
    if raw_budget is None:
        raise _fail("--budget is required (or set 'budget' in --config).")
    try:
        resolved_budget = int(raw_budget)  # type: ignore[call-overload]
        resolved_year = year if year is not None else int(data.get("year", _current_year()))  # type: ignore[call-overload]
    except (TypeError, ValueError):
        raise _fail("'budget' and 'year' must be integers.") from None
    if resolved_budget < 0:
        raise _fail("Leave budget must be non-negative.")

    try:
        tuning = OptimizerConfig.from_mapping(data.get("tuning", {}))  # type: ignore[arg-type]
        priority = parse_priority(quarter or str(data.get("quarter", "any")), resolved_year)
    except ValueError as exc:
        raise _fail(str(exc)) from None

    records = _collect_holidays(
        resolved_year,
        country if country is not None else str(data.get("country", "us")),
        holiday,
        holiday_file,
        data.get("holidays"),
    )

    cutoff: datetime.date | None = None
    if today is not None:
        cutoff = _parse_date(today)
    elif data.get("today"):
        cutoff = _parse_date(str(data["today"]))
    elif exclude_past and resolved_year == _current_year():
        cutoff = datetime.date.today()

    optimizer = LeaveOptimizer(
        resolved_year,
        records,
        resolved_budget,
        priority=priority,
        today=cutoff,
        config=tuning,
    )

    strategy_map = {
        "max": optimizer.optimize_max_time_off,
        "first-half": optimizer.optimize_first_half,
        "second-half": optimizer.optimize_second_half,
        "quarterly": optimizer.optimize_quarterly,
    }

    plans = optimizer.generate_all_plans() if strategy == "all" else [strategy_map[strategy]()]

    if output_json:
        _print_json(plans, optimizer)
    else:
        _print_text(plans, optimizer, records, calendar)


def _print_text(
    plans: list[LeavePlan],
    optimizer: LeaveOptimizer,
    records: list[HolidayRecord],
    show_calendar: bool,
) -> None:
    w = 64
    typer.echo("=" * w)
    typer.echo("  LEAVE DAY OPTIMIZER")
    typer.echo("=" * w)
    typer.echo(f"  Year:            {optimizer.year}")
    typer.echo(f"  Leave budget:    {optimizer.leave_budget} days")
    typer.echo(f"  Priority period: {optimizer.priority.label if optimizer.priority else 'any'}")
    if optimizer.today is not None:
        typer.echo(f"  Plan from:       {optimizer.today.isoformat()}")
    typer.echo(f"  Public holidays: {len(records)}")
    typer.echo()
    for rec in records:
        typer.echo(f"    {rec.date.strftime('%a, %b %d'):>12}  {rec.name}")

    for plan in plans:
        typer.echo(format_plan(plan, optimizer))
        if show_calendar:
            typer.echo(format_calendar_view(plan, optimizer))

    typer.echo()
    typer.echo("=" * w)
    typer.echo(f"  Generated {len(plans)} leave plan option{'s' if len(plans) != 1 else ''}.")
    typer.echo("=" * w)


def _print_json(plans: list[LeavePlan], optimizer: LeaveOptimizer) -> None:
    def _serialize_plan(plan: LeavePlan) -> dict[str, object]:
        return {
            "name": plan.name,
            "description": plan.description,
            "mode": plan.mode,
            "score": plan.score,
            "leave_dates": plan.iso_dates(),
            "breaks": [
                {
                    "start_date": b.start_date.isoformat(),
                    "end_date": b.end_date.isoformat(),
                    "duration": b.duration,
                    "leave_days": b.leave_days,
                    "holidays": b.holidays,
                    "weekend_days": b.weekend_days,
                }
                for b in plan.leave_breaks
            ],
            "summary": {
                "total_days_off": plan.total_days_off,
                "days_off_around_leave": sum(b.duration for b in plan.leave_breaks),
                "leave_days_used": len(plan.leave_dates),
            },
        }

    output = {
        "year": optimizer.year,
        "leave_budget": optimizer.leave_budget,
        "priority": optimizer.priority.label if optimizer.priority else None,
        "today": optimizer.today.isoformat() if optimizer.today else None,
        "holidays": sorted(d.isoformat() for d in optimizer.holidays),
        "plans": [_serialize_plan(p) for p in plans],
    }
    json.dump(output, sys.stdout, indent=2)
    typer.echo()


@app.command()
def holidays(
    country: str = typer.Option(
        "us",
        "--country",
        "-c",
        help=f"Country preset ({', '.join(sorted(PRESETS))}).",
    ),
    year: int = typer.Option(
        None,
        "--year",
        "-y",
        help="Year to list holidays for. Defaults to the current year.",
    ),
) -> None:
    """List holidays for a country preset."""
    resolved_year = year if year is not None else _current_year()

    try:
        preset = get_holidays(country, resolved_year)
    except KeyError as exc:
        raise _fail(str(exc.args[0])) from None

    typer.echo(f"  {PRESETS[country.lower()]} — {resolved_year}")
    typer.echo()
    for rec in preset:
        typer.echo(f"    {rec.date.strftime('%a, %b %d'):>12}  {rec.name}")


def main() -> None:
    """Entry point for the CLI."""
    app()
