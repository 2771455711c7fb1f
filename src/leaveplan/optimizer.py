"""Leave Day Optimizer

Recommend which workdays to take as leave so that, together with weekends
and public holidays, they form the longest and most efficient breaks.

Weekends and holidays split the year into *free blocks*.  The workdays
between two adjacent blocks form a *gap*; taking the whole gap as leave
*bridges* the blocks into one longer break.

Two selection modes sit behind one entry point:

  1. Exact     - enumerate every combination of ``budget`` workdays and keep
                 the one whose realised breaks score best (small inputs only)
  2. Heuristic - score each bridge on its own (days off per leave day) and
                 commit the best affordable bridges greedily
"""

from __future__ import annotations

import calendar
import datetime
import itertools
import logging
import math
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import NamedTuple

from leaveplan.holidays import HolidayRecord, parse_date

logger = logging.getLogger(__name__)

ONE_DAY = datetime.timedelta(days=1)

# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


class FreeBlock(NamedTuple):
    """A maximal run of consecutive free days."""

    start_date: datetime.date
    end_date: datetime.date
    length: int


class BridgeCandidate(NamedTuple):
    """The workdays between two adjacent free blocks, scored as a bridge."""

    block_before: FreeBlock
    block_after: FreeBlock
    gap_days: tuple[datetime.date, ...]
    merged_length: int
    score: float

    @property
    def gap_length(self) -> int:
        return len(self.gap_days)

    @property
    def first_day(self) -> datetime.date:
        return self.gap_days[0]

    @property
    def representative_day(self) -> datetime.date:
        """Gap day at index ``len // 2``; used for the priority check."""
        return self.gap_days[len(self.gap_days) // 2]


class Break(NamedTuple):
    """A run of two or more consecutive days off in the final calendar."""

    start_date: datetime.date
    end_date: datetime.date
    duration: int
    leave_days: int
    holidays: int
    weekend_days: int


class LeavePlan(NamedTuple):
    """A complete leave recommendation."""

    name: str
    description: str
    leave_dates: list[datetime.date]
    breaks: list[Break]
    total_days_off: int
    score: float
    mode: str

    @property
    def leave_breaks(self) -> list[Break]:
        """Breaks that consume at least one leave day."""
        return [b for b in self.breaks if b.leave_days > 0]

    def iso_dates(self) -> list[str]:
        return [d.isoformat() for d in self.leave_dates]


class PriorityPeriod(NamedTuple):
    """An inclusive date range whose candidates receive a scoring bonus."""

    start: datetime.date
    end: datetime.date
    label: str = ""

    def contains(self, d: datetime.date) -> bool:
        return self.start <= d <= self.end

    @classmethod
    def quarter(cls, year: int, n: int) -> PriorityPeriod:
        if not 1 <= n <= 4:
            raise ValueError(f"Quarter must be between 1 and 4, got {n}.")
        first_month = 3 * (n - 1) + 1
        start = datetime.date(year, first_month, 1)
        if n == 4:
            end = datetime.date(year, 12, 31)
        else:
            end = datetime.date(year, first_month + 3, 1) - ONE_DAY
        return cls(start, end, f"Q{n}")


class OptimizerConfig(NamedTuple):
    """Tuning values for scoring and mode selection.

    ``priority_bonus`` multiplies a bridge's score in heuristic mode;
    ``priority_day_bonus`` is added per chosen day in exact mode.  Exact
    search runs only while all three ``exact_max_*`` limits hold.
    """

    priority_bonus: float = 1.5
    priority_day_bonus: float = 5.0
    exact_max_budget: int = 10
    exact_max_workdays: int = 252
    exact_max_combinations: int = 100_000

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> OptimizerConfig:
        unknown = sorted(set(data) - set(cls._fields))
        if unknown:
            raise ValueError(f"Unknown tuning option(s): {', '.join(unknown)}")
        values: dict[str, object] = {}
        for key, value in data.items():
            kind = type(cls._field_defaults[key])
            try:
                values[key] = kind(value)
            except (TypeError, ValueError):
                raise ValueError(f"Invalid value for {key!r}: {value!r}") from None
        return cls(**values)  # type: ignore[arg-type]


def parse_priority(value: str | None, year: int) -> PriorityPeriod | None:
    """Parse ``any``, ``q1``..``q4`` (or ``1``..``4``) or ``START:END``."""
    if value is None:
        return None
    text = value.strip().lower()
    if text in ("", "any", "none"):
        return None
    if ":" in text:
        first, last = (parse_date(part.strip()) for part in text.split(":", 1))
        if last < first:
            raise ValueError(f"Priority period {value!r} ends before it starts.")
        return PriorityPeriod(first, last, f"{first.isoformat()}..{last.isoformat()}")
    if text.startswith("q"):
        text = text[1:]
    if text.isdigit():
        return PriorityPeriod.quarter(year, int(text))
    raise ValueError(f"Invalid priority period {value!r}. Use any, q1-q4 or START:END.")


# ---------------------------------------------------------------------------
# Calendar classification and segmentation
# ---------------------------------------------------------------------------


def _year_dates(year: int) -> list[datetime.date]:
    start = datetime.date(year, 1, 1)
    num_days = 366 if calendar.isleap(year) else 365
    return [start + datetime.timedelta(days=d) for d in range(num_days)]


def _holiday_dates(
    holidays: Iterable[HolidayRecord | datetime.date],
) -> set[datetime.date]:
    return {h.date if isinstance(h, HolidayRecord) else h for h in holidays}


def classify_free_days(
    year: int, holidays: Iterable[HolidayRecord | datetime.date]
) -> frozenset[datetime.date]:
    """Every date of *year* that is a Saturday, a Sunday or a holiday."""
    holiday_set = _holiday_dates(holidays)
    return frozenset(d for d in _year_dates(year) if d.weekday() >= 5 or d in holiday_set)


def _make_block(start: datetime.date, end: datetime.date) -> FreeBlock:
    return FreeBlock(start, end, (end - start).days + 1)


def find_free_blocks(dates: Iterable[datetime.date]) -> list[FreeBlock]:
    """Group *dates* into maximal runs of consecutive calendar days."""
    sorted_dates = sorted(set(dates))
    if not sorted_dates:
        return []

    blocks: list[FreeBlock] = []
    start = prev = sorted_dates[0]

    for d in sorted_dates[1:]:
        if (d - prev).days == 1:
            prev = d
        else:
            blocks.append(_make_block(start, prev))
            start = prev = d

    blocks.append(_make_block(start, prev))
    return blocks


# ---------------------------------------------------------------------------
# Bridges (heuristic mode)
# ---------------------------------------------------------------------------


def score_bridge(
    merged_length: int,
    gap_days: Sequence[datetime.date],
    priority: PriorityPeriod | None = None,
    bonus: float = 1.5,
) -> float:
    """Days off unlocked per leave day, boosted inside the priority period."""
    score = merged_length / len(gap_days)
    if priority is not None and priority.contains(gap_days[len(gap_days) // 2]):
        score *= bonus
    return score


def find_bridge_candidates(
    blocks: Sequence[FreeBlock],
    free_days: frozenset[datetime.date] | set[datetime.date],
    *,
    priority: PriorityPeriod | None = None,
    priority_bonus: float = 1.5,
    today: datetime.date | None = None,
    window: tuple[datetime.date, datetime.date] | None = None,
) -> list[BridgeCandidate]:
    """Score the gap between every pair of chronologically adjacent blocks.

    Parameters
    ----------
    blocks : chronologically ordered free blocks
    free_days : the free-day set the blocks were built from
    priority, priority_bonus : optional soft preference for a date range
    today : skip bridges whose preceding block ended before this date
    window : keep only gaps lying entirely inside ``(start, end)``
    """
    candidates: list[BridgeCandidate] = []

    for before, after in zip(blocks, blocks[1:]):
        if today is not None and before.end_date < today:
            continue

        distance = (after.start_date - before.end_date).days
        if distance <= 1:
            continue

        gap = tuple(before.end_date + datetime.timedelta(days=k) for k in range(1, distance))
        if any(d in free_days for d in gap):
            logger.debug("Gap %s..%s contains free days; skipped", gap[0], gap[-1])
            continue
        if window is not None and not (window[0] <= gap[0] and gap[-1] <= window[1]):
            continue

        merged = before.length + len(gap) + after.length
        candidates.append(
            BridgeCandidate(
                block_before=before,
                block_after=after,
                gap_days=gap,
                merged_length=merged,
                score=score_bridge(merged, gap, priority, priority_bonus),
            )
        )

    return candidates


def select_bridges(
    candidates: Iterable[BridgeCandidate],
    budget: int,
    today: datetime.date | None = None,
) -> tuple[list[datetime.date], list[BridgeCandidate]]:
    """Greedily commit the best affordable bridges.

    Candidates are ranked by score (descending), then gap length, then
    first gap day.  A skipped candidate is never revisited.

    Returns
    -------
    (sorted leave dates, committed candidates in commit order)
    """
    ranked = sorted(candidates, key=lambda c: (-c.score, c.gap_length, c.first_day))
    claimed: set[datetime.date] = set()
    committed: list[BridgeCandidate] = []
    remaining = budget

    for cand in ranked:
        if remaining <= 0:
            break
        if cand.gap_length > remaining:
            continue
        if today is not None and cand.first_day < today:
            continue
        if any(d in claimed for d in cand.gap_days):
            continue

        claimed.update(cand.gap_days)
        remaining -= cand.gap_length
        committed.append(cand)

    return sorted(claimed), committed


# ---------------------------------------------------------------------------
# Combinations (exact mode)
# ---------------------------------------------------------------------------

CombinationScorer = Callable[[Sequence[datetime.date]], float]
"""Signature: scorer(sorted_leave_dates) -> plan score."""


def make_combination_scorer(
    blocks: Sequence[FreeBlock],
    priority: PriorityPeriod | None = None,
    day_bonus: float = 5.0,
) -> CombinationScorer:
    """Build a scorer for sorted leave-date combinations.

    The score is the total length of every run of two or more days off once
    the leave is taken, plus *day_bonus* for each leave day inside
    *priority*.  Only the blocks touching a leave day change, so each call
    costs O(len(leave)) rather than a rescan of the year.
    """
    by_end = {b.end_date: b for b in blocks}
    by_start = {b.start_date: b for b in blocks}
    base_total = sum(b.length for b in blocks if b.length >= 2)

    def days_off(chosen: Sequence[datetime.date]) -> int:
        total = base_total
        i, k = 0, len(chosen)
        while i < k:
            # One cluster: leave days joined to each other through free blocks
            first = chosen[i]
            left = by_end.get(first - ONE_DAY)
            start = left.start_date if left is not None else first
            absorbed = left.length if left is not None and left.length >= 2 else 0
            last = first
            while True:
                right = by_start.get(last + ONE_DAY)
                if right is not None:
                    end = right.end_date
                    if right.length >= 2:
                        absorbed += right.length
                else:
                    end = last
                if i + 1 < k and chosen[i + 1] == end + ONE_DAY:
                    i += 1
                    last = chosen[i]
                else:
                    break
            run = (end - start).days + 1
            if run >= 2:
                total += run
            total -= absorbed
            i += 1
        return total

    def scorer(chosen: Sequence[datetime.date]) -> float:
        score = float(days_off(chosen))
        if priority is not None:
            score += day_bonus * sum(1 for d in chosen if priority.contains(d))
        return score

    return scorer


def score_combination(
    blocks: Sequence[FreeBlock],
    leave_dates: Iterable[datetime.date],
    priority: PriorityPeriod | None = None,
    day_bonus: float = 5.0,
) -> float:
    """Score one complete set of leave dates (see :func:`make_combination_scorer`)."""
    return make_combination_scorer(blocks, priority, day_bonus)(sorted(set(leave_dates)))


def search_exact(
    pool: Sequence[datetime.date],
    budget: int,
    scorer: CombinationScorer,
) -> tuple[float, list[datetime.date]] | None:
    """Evaluate every *budget*-subset of the sorted *pool*.

    Combinations are visited in lexicographic order and only a strictly
    better score replaces the incumbent, so ties go to the earliest dates.
    Returns ``None`` when no combination exists.
    """
    best_score = -math.inf
    best: tuple[datetime.date, ...] | None = None

    for combo in itertools.combinations(pool, budget):
        score = scorer(combo)
        if score > best_score:
            best_score = score
            best = combo

    if best is None:
        return None
    return best_score, list(best)


# ---------------------------------------------------------------------------
# Break reconstruction
# ---------------------------------------------------------------------------


def reconstruct_breaks(
    free_days: Iterable[datetime.date],
    leave_dates: Iterable[datetime.date],
    holidays: Iterable[HolidayRecord | datetime.date] = (),
) -> list[Break]:
    """Runs of two or more days off once *leave_dates* are taken."""
    leave_set = set(leave_dates)
    holiday_set = _holiday_dates(holidays)
    breaks: list[Break] = []

    for blk in find_free_blocks(set(free_days) | leave_set):
        if blk.length < 2:
            continue
        days = [blk.start_date + datetime.timedelta(days=i) for i in range(blk.length)]
        breaks.append(
            Break(
                start_date=blk.start_date,
                end_date=blk.end_date,
                duration=blk.length,
                leave_days=sum(1 for d in days if d in leave_set),
                holidays=sum(
                    1 for d in days if d in holiday_set and d.weekday() < 5 and d not in leave_set
                ),
                weekend_days=sum(1 for d in days if d.weekday() >= 5),
            )
        )

    return breaks


# ---------------------------------------------------------------------------
# Optimizer
# ---------------------------------------------------------------------------

MAX_TIME_OFF = (
    "Maximum Time Off",
    "Bridges the most efficient gaps between weekends and holidays "
    "across the whole year.",
)


def _empty_plan(name: str, description: str) -> LeavePlan:
    return LeavePlan(
        name=name,
        description=description,
        leave_dates=[],
        breaks=[],
        total_days_off=0,
        score=0.0,
        mode="none",
    )


class LeaveOptimizer:
    """Chooses leave days that bridge weekends and holidays into long breaks.

    Free days (weekends and holidays) are fixed for the year.  The optimizer
    spends at most ``leave_budget`` workdays, never before ``today`` when a
    cutoff is given, and favours ``priority`` when one is set.  No state is
    kept between calls, so repeated calls return identical plans.
    """

    def __init__(
        self,
        year: int,
        holidays: Iterable[HolidayRecord | datetime.date],
        leave_budget: int,
        *,
        priority: PriorityPeriod | None = None,
        today: datetime.date | None = None,
        config: OptimizerConfig | None = None,
    ):
        if leave_budget < 0:
            raise ValueError(f"Leave budget must be non-negative, got {leave_budget}.")

        self.year = year
        self.leave_budget = leave_budget
        self.priority = priority
        self.today = today
        self.config = config or OptimizerConfig()

        self.start_date = datetime.date(year, 1, 1)
        self.end_date = datetime.date(year, 12, 31)
        self.dates = _year_dates(year)
        self.num_days = len(self.dates)

        # Holidays outside the year cannot affect it
        self.holidays: set[datetime.date] = {
            d for d in _holiday_dates(holidays) if d.year == year
        }
        self.free_days = classify_free_days(year, self.holidays)
        self.workdays: list[datetime.date] = [d for d in self.dates if d not in self.free_days]
        self.blocks = find_free_blocks(self.free_days)

        self._scorer = make_combination_scorer(
            self.blocks, priority, self.config.priority_day_bonus
        )

    # ------------------------------------------------------------------
    # Mode selection
    # ------------------------------------------------------------------

    def _leave_pool(
        self, window: tuple[datetime.date, datetime.date] | None
    ) -> list[datetime.date]:
        return [
            d
            for d in self.workdays
            if (self.today is None or d >= self.today)
            and (window is None or window[0] <= d <= window[1])
        ]

    def _use_exact(self, pool_size: int, budget: int) -> bool:
        cfg = self.config
        return (
            budget <= cfg.exact_max_budget
            and pool_size <= cfg.exact_max_workdays
            and math.comb(pool_size, budget) <= cfg.exact_max_combinations
        )

    def _solve_heuristic(
        self, budget: int, window: tuple[datetime.date, datetime.date] | None
    ) -> list[datetime.date]:
        candidates = find_bridge_candidates(
            self.blocks,
            self.free_days,
            priority=self.priority,
            priority_bonus=self.config.priority_bonus,
            today=self.today,
            window=window,
        )
        leave, committed = select_bridges(candidates, budget, today=self.today)
        logger.debug(
            "Heuristic committed %d of %d bridges (%d leave days)",
            len(committed),
            len(candidates),
            len(leave),
        )
        return leave

    def optimize(
        self,
        *,
        budget: int | None = None,
        window: tuple[datetime.date, datetime.date] | None = None,
        name: str = MAX_TIME_OFF[0],
        description: str = MAX_TIME_OFF[1],
    ) -> LeavePlan:
        """Compute a leave plan.

        Parameters
        ----------
        budget : int, optional
            Override the optimizer's leave budget.
        window : (start, end), optional
            Restrict leave to this inclusive date range.
        """
        budget = self.leave_budget if budget is None else budget
        if budget <= 0:
            return _empty_plan(name, description)

        if not any(self.today is None or d >= self.today for d in self.holidays):
            logger.debug("No upcoming holidays in %d; nothing to bridge", self.year)
            return _empty_plan(name, description)

        if len(self.blocks) < 2:
            logger.debug("Fewer than two free blocks in %d; no bridges possible", self.year)
            return _empty_plan(name, description)

        pool = self._leave_pool(window)
        if budget > len(pool):
            logger.debug("Capping leave budget %d to %d available workdays", budget, len(pool))
            budget = len(pool)
        if budget == 0:
            return _empty_plan(name, description)

        leave: list[datetime.date] | None = None
        mode = "heuristic"

        if self._use_exact(len(pool), budget):
            logger.debug("Exact search: %d workdays, budget %d", len(pool), budget)
            result = search_exact(pool, budget, self._scorer)
            if result is None:
                logger.debug("Exact search found no combination; using heuristic")
            else:
                leave = result[1]
                mode = "exact"

        if leave is None:
            leave = self._solve_heuristic(budget, window)

        return self._make_plan(name, description, leave, mode)

    # ------------------------------------------------------------------
    # Plan assembly
    # ------------------------------------------------------------------

    def _make_plan(
        self,
        name: str,
        description: str,
        leave: Iterable[datetime.date],
        mode: str,
    ) -> LeavePlan:
        leave_dates = sorted(set(leave))
        if not leave_dates:
            return _empty_plan(name, description)

        breaks = reconstruct_breaks(self.free_days, leave_dates, self.holidays)
        return LeavePlan(
            name=name,
            description=description,
            leave_dates=leave_dates,
            breaks=breaks,
            total_days_off=sum(b.duration for b in breaks),
            score=self._scorer(leave_dates),
            mode=mode,
        )

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def optimize_max_time_off(self) -> LeavePlan:
        """Spend the whole budget anywhere in the year."""
        return self.optimize()

    def optimize_first_half(self) -> LeavePlan:
        """Spend half the budget between January and June."""
        return self.optimize(
            budget=self.leave_budget // 2,
            window=(self.start_date, datetime.date(self.year, 6, 30)),
            name="First Half",
            description="Uses half of the leave budget on breaks between January and June.",
        )

    def optimize_second_half(self) -> LeavePlan:
        """Spend half the budget between July and December."""
        return self.optimize(
            budget=self.leave_budget // 2,
            window=(datetime.date(self.year, 7, 1), self.end_date),
            name="Second Half",
            description="Uses half of the leave budget on breaks between July and December.",
        )

    def optimize_quarterly(self) -> LeavePlan:
        """Split the budget evenly across quarters and combine the results."""
        per_quarter = self.leave_budget // 4
        leave: list[datetime.date] = []
        modes: set[str] = set()

        for q in range(1, 5):
            period = PriorityPeriod.quarter(self.year, q)
            plan = self.optimize(budget=per_quarter, window=(period.start, period.end))
            leave.extend(plan.leave_dates)
            if plan.mode != "none":
                modes.add(plan.mode)

        mode = modes.pop() if len(modes) == 1 else "mixed"
        return self._make_plan(
            "Quarterly Balance",
            "Spreads the leave budget evenly over the four quarters for "
            "regular breaks year-round.",
            leave,
            mode,
        )

    def generate_all_plans(self) -> list[LeavePlan]:
        """Run every strategy; best score first."""
        plans = [
            self.optimize_max_time_off(),
            self.optimize_first_half(),
            self.optimize_second_half(),
            self.optimize_quarterly(),
        ]
        return sorted(plans, key=lambda p: -p.score)


def optimize(
    year: int,
    holidays: Iterable[HolidayRecord | datetime.date],
    leave_budget: int,
    priority: PriorityPeriod | None = None,
    today: datetime.date | None = None,
    config: OptimizerConfig | None = None,
) -> LeavePlan:
    """Recommend leave dates for *year*; pure, no I/O.

    Returns the plan whose ``leave_dates`` are sorted and unique, never
    exceed *leave_budget* and never fall before *today*.
    """
    if leave_budget < 0:
        raise ValueError(f"Leave budget must be non-negative, got {leave_budget}.")
    if leave_budget == 0:
        return _empty_plan(*MAX_TIME_OFF)
    optimizer = LeaveOptimizer(
        year, holidays, leave_budget, priority=priority, today=today, config=config
    )
    return optimizer.optimize()


# ---------------------------------------------------------------------------
# Output formatting
# ---------------------------------------------------------------------------


def format_plan(plan: LeavePlan, optimizer: LeaveOptimizer) -> str:
    """Return a human-readable summary of a leave plan."""
    lines: list[str] = []
    w = 64

    lines.append("")
    lines.append("=" * w)
    lines.append(f"  OPTION: {plan.name}")
    lines.append(f"  {plan.description}")
    lines.append("=" * w)

    used = len(plan.leave_dates)
    around_leave = sum(b.duration for b in plan.leave_breaks)

    lines.append(f"  Leave days used: {used} / {optimizer.leave_budget}")
    lines.append(f"  Total days off: {plan.total_days_off}")
    lines.append(f"  Days off around leave: {around_leave}")
    if used > 0:
        lines.append(f"  Efficiency: {around_leave / used:.1f}x (days off per leave day)")
    lines.append(f"  Search: {plan.mode}  Score: {plan.score:.1f}")
    lines.append("")

    lines.append("  Breaks:")
    lines.append("  " + "-" * (w - 4))

    for i, brk in enumerate(plan.leave_breaks, 1):
        dr = f"{brk.start_date.strftime('%a, %b %d')} -> {brk.end_date.strftime('%a, %b %d')}"
        lines.append(f"  {i:>2}. {dr}  ({brk.duration} days)")

        parts = [f"{brk.leave_days} leave"]
        if brk.holidays:
            parts.append(f"{brk.holidays} holiday{'s' if brk.holidays > 1 else ''}")
        if brk.weekend_days:
            parts.append(f"{brk.weekend_days} weekend")
        lines.append(f"      {' + '.join(parts)}")
        lines.append("")

    lines.append("  Days to request off:")
    if not plan.leave_dates:
        lines.append("    (none)")
    for d in plan.leave_dates:
        lines.append(f"    -> {d.strftime('%A, %B %d, %Y')}")

    return "\n".join(lines)


def format_calendar_view(plan: LeavePlan, optimizer: LeaveOptimizer) -> str:
    """Return a month-by-month calendar highlighting leave and holidays."""
    leave_set = set(plan.leave_dates)
    holiday_set = optimizer.holidays
    year = optimizer.year

    active_months = {d.month for d in leave_set} | {d.month for d in holiday_set}
    if not active_months:
        return ""

    lines: list[str] = [
        "",
        f"  Calendar View {year}",
        "  Legend: L=Leave  H=Holiday",
        "",
    ]

    cal = calendar.Calendar(firstweekday=0)

    for month in sorted(active_months):
        lines.append(f"  {calendar.month_name[month]} {year}")
        lines.append("  Mo  Tu  We  Th  Fr  Sa  Su")

        row = ""
        for day_num, weekday in cal.itermonthdays2(year, month):
            if day_num == 0:
                row += "    "
            else:
                d = datetime.date(year, month, day_num)
                if d in leave_set:
                    cell = f" {day_num:>2}L"
                elif d in holiday_set:
                    cell = f" {day_num:>2}H"
                else:
                    cell = f"  {day_num:>2}"
                row += cell

            if weekday == 6:
                lines.append(row)
                row = ""

        if row.strip():
            lines.append(row)
        lines.append("")

    return "\n".join(lines)
