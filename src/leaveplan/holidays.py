"""Holiday inputs for the leave optimizer.

Holidays reach the engine as :class:`HolidayRecord` values.  This module
builds them from the built-in country presets or from already-fetched
holiday data (e.g. a Nager.Date ``PublicHolidays`` JSON export).  Nothing
here touches the network.

Preset rules: a holiday falling on Saturday is *observed* on the preceding
Friday; one falling on Sunday is observed on the following Monday.
"""

from __future__ import annotations

import datetime
import json
import pathlib
from collections.abc import Callable, Iterable, Mapping
from typing import NamedTuple


class HolidayRecord(NamedTuple):
    """A public holiday.  Only ``date`` matters to the optimizer."""

    date: datetime.date
    name: str
    nationwide: bool = True


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _nth_weekday(year: int, month: int, weekday: int, n: int) -> datetime.date:
    """Return the *n*-th occurrence of *weekday* in *month* of *year*.

    *weekday* follows ``datetime`` convention: 0 = Monday … 6 = Sunday.
    *n* is 1-based (1 = first, 2 = second, …).
    """
    first = datetime.date(year, month, 1)
    delta = (weekday - first.weekday()) % 7
    return first + datetime.timedelta(days=delta, weeks=n - 1)


def _last_weekday(year: int, month: int, weekday: int) -> datetime.date:
    """Return the last occurrence of *weekday* in *month* of *year*."""
    if month == 12:
        last = datetime.date(year, 12, 31)
    else:
        last = datetime.date(year, month + 1, 1) - datetime.timedelta(days=1)
    return last - datetime.timedelta(days=(last.weekday() - weekday) % 7)


def _observed(d: datetime.date) -> datetime.date:
    """Shift a holiday to its *observed* date (Sat→Fri, Sun→Mon)."""
    if d.weekday() == 5:
        return d - datetime.timedelta(days=1)
    if d.weekday() == 6:
        return d + datetime.timedelta(days=1)
    return d


def parse_date(value: str) -> datetime.date:
    """Parse a ``YYYY-MM-DD`` string, raising ``ValueError`` with context."""
    try:
        return datetime.date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid date {value!r}. Use YYYY-MM-DD.") from None


# ---------------------------------------------------------------------------
# Country presets
# ---------------------------------------------------------------------------

PRESETS: dict[str, str] = {
    "us": "United States federal holidays",
}


def us_holidays(year: int) -> list[HolidayRecord]:
    """US federal holidays (observed) for *year*."""
    return sorted(
        [
            HolidayRecord(_observed(datetime.date(year, 1, 1)), "New Year's Day"),
            HolidayRecord(_nth_weekday(year, 1, 0, 3), "Martin Luther King Jr. Day"),
            HolidayRecord(_nth_weekday(year, 2, 0, 3), "Presidents' Day"),
            HolidayRecord(_last_weekday(year, 5, 0), "Memorial Day"),
            HolidayRecord(_observed(datetime.date(year, 6, 19)), "Juneteenth"),
            HolidayRecord(_observed(datetime.date(year, 7, 4)), "Independence Day"),
            HolidayRecord(_nth_weekday(year, 9, 0, 1), "Labor Day"),
            HolidayRecord(_nth_weekday(year, 11, 3, 4), "Thanksgiving"),
            HolidayRecord(_observed(datetime.date(year, 12, 25)), "Christmas Day"),
        ]
    )


_PRESET_FNS: dict[str, Callable[[int], list[HolidayRecord]]] = {
    "us": us_holidays,
}


def get_holidays(country: str, year: int) -> list[HolidayRecord]:
    """Return the preset holidays for *country* in *year*.

    Raises ``KeyError`` if the country is not supported.
    """
    fn = _PRESET_FNS.get(country.lower())
    if fn is None:
        supported = ", ".join(sorted(PRESETS))
        msg = f"Unknown country preset {country!r}. Supported: {supported}"
        raise KeyError(msg)
    return fn(year)


# ---------------------------------------------------------------------------
# Already-fetched holiday data
# ---------------------------------------------------------------------------


def parse_holiday_records(items: Iterable[object]) -> list[HolidayRecord]:
    """Convert raw holiday entries into sorted, de-duplicated records.

    Accepts ISO date strings, ``datetime.date`` values and mappings in the
    Nager.Date shape (``date``, ``name`` / ``localName``, ``global``).
    Extra keys are ignored.  Raises ``ValueError`` on malformed entries.
    """
    records: dict[datetime.date, HolidayRecord] = {}
    for item in items:
        if isinstance(item, HolidayRecord):
            rec = item
        elif isinstance(item, datetime.date):
            rec = HolidayRecord(item, item.strftime("%b %d"))
        elif isinstance(item, str):
            d = parse_date(item)
            rec = HolidayRecord(d, d.strftime("%b %d"))
        elif isinstance(item, Mapping):
            if "date" not in item:
                raise ValueError(f"Holiday entry is missing a 'date': {item!r}")
            d = parse_date(item["date"])
            name = item.get("name") or item.get("localName") or d.strftime("%b %d")
            rec = HolidayRecord(d, str(name), bool(item.get("global", True)))
        else:
            raise ValueError(f"Unsupported holiday entry: {item!r}")
        # First record wins for a date; later duplicates are dropped
        records.setdefault(rec.date, rec)
    return sorted(records.values())


def load_holiday_file(path: str | pathlib.Path) -> list[HolidayRecord]:
    """Read a JSON list of holidays (see :func:`parse_holiday_records`)."""
    p = pathlib.Path(path)
    data = json.loads(p.read_text())
    if not isinstance(data, list):
        raise ValueError(f"Holiday file {str(p)!r} must contain a JSON list.")
    return parse_holiday_records(data)
