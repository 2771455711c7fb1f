from __future__ import annotations

import datetime
import json
import os
import tempfile

import pytest
from typer.testing import CliRunner

from leaveplan.cli import app
from leaveplan.holidays import (
    HolidayRecord,
    get_holidays,
    load_holiday_file,
    parse_holiday_records,
    us_holidays,
)

runner = CliRunner()


def _write_json(data: object) -> str:
    """Write JSON to a temp file and return its path."""
    fd, path = tempfile.mkstemp(suffix=".json")
    with os.fdopen(fd, "w") as f:
        json.dump(data, f)
    return path


class TestOptimizeCommand:
    def test_optimize_basic(self) -> None:
        result = runner.invoke(
            app, ["optimize", "--budget", "10", "--year", "2025", "--no-calendar"]
        )
        assert result.exit_code == 0
        assert "LEAVE DAY OPTIMIZER" in result.output
        assert "Maximum Time Off" in result.output
        assert "Generated 4 leave plan options." in result.output

    def test_optimize_single_strategy(self) -> None:
        result = runner.invoke(
            app,
            [
                "optimize",
                "--budget",
                "5",
                "--year",
                "2025",
                "--strategy",
                "max",
                "--no-calendar",
            ],
        )
        assert result.exit_code == 0
        assert "Maximum Time Off" in result.output
        assert "Generated 1 leave plan option." in result.output

    def test_optimize_json_output(self) -> None:
        result = runner.invoke(
            app, ["optimize", "--budget", "5", "--year", "2025", "--strategy", "max", "--json"]
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["year"] == 2025
        assert data["leave_budget"] == 5
        assert data["priority"] is None
        assert len(data["holidays"]) == 9
        assert len(data["plans"]) == 1
        plan = data["plans"][0]
        assert plan["name"] == "Maximum Time Off"
        assert plan["mode"] == "heuristic"
        assert plan["summary"]["leave_days_used"] == len(plan["leave_dates"])
        assert sum(b["leave_days"] for b in plan["breaks"]) == len(plan["leave_dates"])

    def test_optimize_half_year_strategies(self) -> None:
        for strategy, name in (("first-half", "First Half"), ("second-half", "Second Half")):
            result = runner.invoke(
                app,
                ["optimize", "--budget", "8", "--year", "2025", "--strategy", strategy, "--json"],
            )
            assert result.exit_code == 0
            plan = json.loads(result.output)["plans"][0]
            assert plan["name"] == name
            assert len(plan["leave_dates"]) <= 4

    def test_optimize_quarterly(self) -> None:
        result = runner.invoke(
            app,
            ["optimize", "--budget", "8", "--year", "2025", "--strategy", "quarterly", "--json"],
        )
        assert result.exit_code == 0
        plan = json.loads(result.output)["plans"][0]
        assert plan["name"] == "Quarterly Balance"
        assert len(plan["leave_dates"]) == 8

    def test_optimize_with_calendar(self) -> None:
        result = runner.invoke(
            app,
            ["optimize", "--budget", "5", "--year", "2025", "--strategy", "max", "--calendar"],
        )
        assert result.exit_code == 0
        assert "Calendar View" in result.output

    def test_optimize_invalid_strategy(self) -> None:
        result = runner.invoke(app, ["optimize", "--budget", "5", "--strategy", "bogus"])
        assert result.exit_code == 1
        assert "Invalid strategy" in result.output

    def test_optimize_no_country(self) -> None:
        result = runner.invoke(
            app,
            [
                "optimize",
                "--budget",
                "5",
                "--year",
                "2025",
                "--country",
                "none",
                "--holiday",
                "2025-12-25",
                "--no-calendar",
            ],
        )
        assert result.exit_code == 0
        assert "Public holidays: 1" in result.output

    def test_optimize_custom_holiday(self) -> None:
        result = runner.invoke(
            app,
            [
                "optimize",
                "--budget",
                "5",
                "--year",
                "2025",
                "--holiday",
                "2025-03-17",
                "--no-calendar",
            ],
        )
        assert result.exit_code == 0
        # 9 US holidays + 1 custom = 10
        assert "Public holidays: 10" in result.output

    def test_optimize_holiday_outside_year_ignored(self) -> None:
        result = runner.invoke(
            app,
            [
                "optimize",
                "--budget",
                "5",
                "--year",
                "2025",
                "--holiday",
                "2024-12-24",
                "--strategy",
                "max",
                "--no-calendar",
            ],
        )
        assert result.exit_code == 0
        assert "Public holidays: 9" in result.output

    def test_optimize_invalid_holiday_date(self) -> None:
        result = runner.invoke(
            app, ["optimize", "--budget", "5", "--year", "2025", "--holiday", "12/25/2025"]
        )
        assert result.exit_code != 0
        assert "Invalid date format" in result.output

    def test_optimize_invalid_country(self) -> None:
        result = runner.invoke(app, ["optimize", "--budget", "5", "--country", "zz"])
        assert result.exit_code == 1
        assert "Unknown country preset" in result.output

    def test_optimize_budget_required(self) -> None:
        result = runner.invoke(app, ["optimize"])
        assert result.exit_code != 0
        assert "--budget is required" in result.output

    def test_optimize_negative_budget(self) -> None:
        result = runner.invoke(app, ["optimize", "--budget", "-1"])
        assert result.exit_code != 0

    def test_optimize_zero_budget(self) -> None:
        result = runner.invoke(
            app, ["optimize", "--budget", "0", "--year", "2025", "--strategy", "max", "--json"]
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["plans"][0]["leave_dates"] == []
        assert data["plans"][0]["mode"] == "none"

    def test_optimize_zero_budget_text(self) -> None:
        result = runner.invoke(
            app,
            ["optimize", "--budget", "0", "--year", "2025", "--strategy", "max", "--no-calendar"],
        )
        assert result.exit_code == 0
        assert "(none)" in result.output


class TestPriorityAndCutoff:
    def test_quarter_priority(self) -> None:
        result = runner.invoke(
            app,
            [
                "optimize",
                "--budget",
                "1",
                "--year",
                "2025",
                "--quarter",
                "q3",
                "--strategy",
                "max",
                "--json",
            ],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["priority"] == "Q3"
        assert data["plans"][0]["leave_dates"] == ["2025-07-03"]
        assert data["plans"][0]["mode"] == "exact"

    def test_quarter_priority_text(self) -> None:
        result = runner.invoke(
            app,
            ["optimize", "--budget", "5", "--year", "2025", "-q", "q4", "--no-calendar"],
        )
        assert result.exit_code == 0
        assert "Priority period: Q4" in result.output

    def test_invalid_quarter(self) -> None:
        result = runner.invoke(
            app, ["optimize", "--budget", "5", "--year", "2025", "--quarter", "summer"]
        )
        assert result.exit_code == 1
        assert "Invalid priority period" in result.output

    def test_today_cutoff(self) -> None:
        result = runner.invoke(
            app,
            [
                "optimize",
                "--budget",
                "10",
                "--year",
                "2025",
                "--today",
                "2025-07-01",
                "--strategy",
                "max",
                "--json",
            ],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["today"] == "2025-07-01"
        dates = data["plans"][0]["leave_dates"]
        assert dates
        assert all(d >= "2025-07-01" for d in dates)

    def test_exclude_past_other_year_has_no_cutoff(self) -> None:
        result = runner.invoke(
            app,
            [
                "optimize",
                "--budget",
                "5",
                "--year",
                "1999",
                "--exclude-past",
                "--strategy",
                "max",
                "--json",
            ],
        )
        assert result.exit_code == 0
        assert json.loads(result.output)["today"] is None


class TestHolidayInputs:
    def test_holiday_file_nager_format(self) -> None:
        path = _write_json(
            [
                {"date": "2024-03-12", "localName": "Feiertag", "name": "Holiday A", "global": True},
                {"date": "2024-03-14", "localName": "Feiertag", "name": "Holiday B", "global": False},
            ]
        )
        try:
            result = runner.invoke(
                app,
                [
                    "optimize",
                    "--budget",
                    "3",
                    "--year",
                    "2024",
                    "--country",
                    "none",
                    "--holiday-file",
                    path,
                    "--strategy",
                    "max",
                    "--json",
                ],
            )
            assert result.exit_code == 0
            data = json.loads(result.output)
            assert data["holidays"] == ["2024-03-12", "2024-03-14"]
            assert data["plans"][0]["leave_dates"] == ["2024-03-11", "2024-03-13", "2024-03-15"]
        finally:
            os.unlink(path)

    def test_holiday_file_missing(self) -> None:
        result = runner.invoke(
            app, ["optimize", "--budget", "3", "--holiday-file", "/nonexistent/holidays.json"]
        )
        assert result.exit_code == 1
        assert "Cannot read holiday file" in result.output

    def test_holiday_file_not_a_list(self) -> None:
        path = _write_json({"date": "2024-03-12"})
        try:
            result = runner.invoke(app, ["optimize", "--budget", "3", "--holiday-file", path])
            assert result.exit_code == 1
            assert "must contain a JSON list" in result.output
        finally:
            os.unlink(path)


class TestConfigFile:
    def test_config_supplies_inputs(self) -> None:
        path = _write_json(
            {
                "year": 2024,
                "budget": 3,
                "country": "none",
                "holidays": ["2024-03-12", "2024-03-14"],
            }
        )
        try:
            result = runner.invoke(
                app, ["optimize", "--config", path, "--strategy", "max", "--json"]
            )
            assert result.exit_code == 0
            data = json.loads(result.output)
            assert data["year"] == 2024
            assert data["leave_budget"] == 3
            assert data["plans"][0]["leave_dates"] == ["2024-03-11", "2024-03-13", "2024-03-15"]
        finally:
            os.unlink(path)

    def test_cli_overrides_config(self) -> None:
        path = _write_json({"year": 2024, "budget": 3})
        try:
            result = runner.invoke(
                app,
                [
                    "optimize",
                    "--config",
                    path,
                    "--year",
                    "2025",
                    "--budget",
                    "2",
                    "--strategy",
                    "max",
                    "--json",
                ],
            )
            assert result.exit_code == 0
            data = json.loads(result.output)
            assert data["year"] == 2025
            assert data["leave_budget"] == 2
        finally:
            os.unlink(path)

    def test_config_tuning(self) -> None:
        path = _write_json({"year": 2025, "budget": 1, "tuning": {"exact_max_budget": 0}})
        try:
            result = runner.invoke(
                app, ["optimize", "--config", path, "--strategy", "max", "--json"]
            )
            assert result.exit_code == 0
            plan = json.loads(result.output)["plans"][0]
            assert plan["mode"] == "heuristic"
            assert plan["leave_dates"] == ["2025-06-20"]
        finally:
            os.unlink(path)

    def test_config_unknown_tuning_key(self) -> None:
        path = _write_json({"budget": 1, "tuning": {"turbo": True}})
        try:
            result = runner.invoke(app, ["optimize", "--config", path])
            assert result.exit_code == 1
            assert "Unknown tuning option" in result.output
        finally:
            os.unlink(path)

    def test_config_file_not_found(self) -> None:
        result = runner.invoke(app, ["optimize", "--config", "/nonexistent/config.json"])
        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_config_invalid_json(self) -> None:
        fd, path = tempfile.mkstemp(suffix=".json")
        with os.fdopen(fd, "w") as f:
            f.write("not json{{{")
        try:
            result = runner.invoke(app, ["optimize", "--config", path])
            assert result.exit_code == 1
            assert "Invalid JSON" in result.output
        finally:
            os.unlink(path)

    def test_config_not_an_object(self) -> None:
        path = _write_json([2025, 10])
        try:
            result = runner.invoke(app, ["optimize", "--config", path])
            assert result.exit_code == 1
            assert "JSON object" in result.output
        finally:
            os.unlink(path)

    def test_config_bad_budget(self) -> None:
        path = _write_json({"budget": "plenty"})
        try:
            result = runner.invoke(app, ["optimize", "--config", path])
            assert result.exit_code == 1
            assert "must be integers" in result.output
        finally:
            os.unlink(path)


class TestHolidaysCommand:
    def test_holidays_default(self) -> None:
        result = runner.invoke(app, ["holidays", "--year", "2025"])
        assert result.exit_code == 0
        assert "United States federal holidays" in result.output
        assert "New Year" in result.output
        assert "Christmas" in result.output

    def test_holidays_invalid_country(self) -> None:
        result = runner.invoke(app, ["holidays", "--country", "zz"])
        assert result.exit_code == 1
        assert "Unknown country preset" in result.output


class TestHolidayPresets:
    def test_us_holidays_count(self) -> None:
        holidays = us_holidays(2025)
        assert len(holidays) == 9

    def test_us_holidays_sorted(self) -> None:
        holidays = us_holidays(2025)
        dates = [h.date for h in holidays]
        assert dates == sorted(dates)

    def test_us_holidays_observed_saturday(self) -> None:
        # July 4, 2026 falls on Saturday -> observed Friday July 3
        dates = {h.date for h in us_holidays(2026)}
        assert datetime.date(2026, 7, 3) in dates

    def test_us_holidays_observed_sunday(self) -> None:
        # July 4, 2021 falls on Sunday -> observed Monday July 5
        dates = {h.date for h in us_holidays(2021)}
        assert datetime.date(2021, 7, 5) in dates

    def test_get_holidays_unknown_country(self) -> None:
        with pytest.raises(KeyError):
            get_holidays("xx", 2025)

    def test_get_holidays_case_insensitive(self) -> None:
        assert get_holidays("US", 2025) == us_holidays(2025)


class TestHolidayParsing:
    def test_mixed_entries(self) -> None:
        records = parse_holiday_records(
            [
                "2025-12-25",
                datetime.date(2025, 1, 1),
                {"date": "2025-07-04", "localName": "Independence Day", "global": False},
                HolidayRecord(datetime.date(2025, 11, 27), "Thanksgiving"),
            ]
        )
        assert [r.date.month for r in records] == [1, 7, 11, 12]
        assert records[1].name == "Independence Day"
        assert records[1].nationwide is False

    def test_first_name_wins(self) -> None:
        records = parse_holiday_records(
            [
                {"date": "2025-12-25", "name": "Christmas Day"},
                {"date": "2025-12-25", "name": "Duplicate"},
            ]
        )
        assert records == [HolidayRecord(datetime.date(2025, 12, 25), "Christmas Day")]

    def test_malformed_entries(self) -> None:
        for bad in (["2025-13-01"], [{"name": "No date"}], [42]):
            with pytest.raises(ValueError):
                parse_holiday_records(bad)

    def test_load_holiday_file(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        path = tmp_path / "holidays.json"
        path.write_text(json.dumps([{"date": "2025-05-26", "name": "Memorial Day"}]))
        records = load_holiday_file(path)
        assert records == [HolidayRecord(datetime.date(2025, 5, 26), "Memorial Day")]
