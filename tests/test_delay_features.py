import pandas as pd
import pytest

from ttc_subway_delays.config import CANONICAL_LINES
from ttc_subway_delays.delay_features import (
    build_dow_mean_delay,
    build_line_delay_counts,
    build_line_mean_delay,
    build_line_mode_table,
    build_line_summary,
    build_report_tables,
    build_station_ranking,
    mean_delay_for_line,
    mode_delay_for_line,
)
from ttc_subway_delays.errors import EmptyInputError, SchemaError, UndefinedModeError

YELLOW = "Line 01 Yellow"
GREEN = "Line 02 Green"
SHEPPARD = "Line 04 Sheppard"


# ---------------------------------------------------------------------
# scenario: three Yellow delays and one zero-minute Green record
# ---------------------------------------------------------------------


def test_scenario_line_mean(scenario_delays):
    out = build_line_mean_delay(scenario_delays)
    assert out["line"].tolist() == [YELLOW]
    assert out.loc[0, "mean_delay_minutes"] == 3.67
    assert out.loc[0, "n_delays"] == 3


def test_scenario_line_mode(scenario_delays):
    assert mode_delay_for_line(scenario_delays, YELLOW) == 3


def test_scenario_green_has_no_data(scenario_delays):
    with pytest.raises(EmptyInputError):
        mean_delay_for_line(scenario_delays, GREEN)
    with pytest.raises(UndefinedModeError) as excinfo:
        mode_delay_for_line(scenario_delays, GREEN)
    assert excinfo.value.line == GREEN


# ---------------------------------------------------------------------
# thresholds
# ---------------------------------------------------------------------


def test_one_minute_delay_counts_for_mean_but_not_for_counts(make_delays):
    delays = make_delays(
        [
            {"Line": "YU", "Min Delay": 0},
            {"Line": "YU", "Min Delay": 1},
            {"Line": "YU", "Min Delay": 2},
        ]
    )

    means = build_line_mean_delay(delays)
    counts = build_line_delay_counts(delays)

    assert means.loc[0, "n_delays"] == 2
    assert means.loc[0, "mean_delay_minutes"] == 1.5
    assert counts["line"].tolist() == [YELLOW, "Total"]
    assert counts["n_delays"].tolist() == [1, 1]


def test_line_tables_skip_composite_and_blank_lines(make_delays):
    delays = make_delays(
        [
            {"Line": "SHP", "Min Delay": 4},
            {"Line": "YU/BD", "Min Delay": 9},
            {"Line": "", "Min Delay": 9},
            {"Line": "BD", "Min Delay": 6},
            {"Line": "YU", "Min Delay": 2},
        ]
    )

    means = build_line_mean_delay(delays)
    counts = build_line_delay_counts(delays)

    assert means["line"].tolist() == [YELLOW, GREEN, SHEPPARD]
    assert counts["line"].tolist() == [YELLOW, GREEN, SHEPPARD, "Total"]
    assert counts["n_delays"].tolist() == [1, 1, 1, 3]


def test_line_mean_rounds_to_two_decimals(make_delays):
    delays = make_delays([{"Min Delay": 1}, {"Min Delay": 1}, {"Min Delay": 2}])
    assert build_line_mean_delay(delays).loc[0, "mean_delay_minutes"] == 1.33
    assert mean_delay_for_line(delays, YELLOW) == 1.33


def test_line_tables_raise_on_empty_input(make_delays):
    delays = make_delays([{"Min Delay": 0}, {"Min Delay": 1, "Line": "YU/BD"}])
    with pytest.raises(EmptyInputError):
        build_line_mean_delay(delays)
    with pytest.raises(EmptyInputError):
        build_line_delay_counts(delays)


# ---------------------------------------------------------------------
# mode
# ---------------------------------------------------------------------


@pytest.mark.parametrize(
    "values, expected",
    [
        ([3, 5, 3, 5], 3),
        ([5, 3, 3, 5], 5),
        ([2, 7, 7, 2, 7], 7),
        ([0, 0, 0, 4], 4),
    ],
)
def test_mode_ties_go_to_first_value_seen(make_delays, values, expected):
    delays = make_delays([{"Min Delay": v} for v in values])
    assert mode_delay_for_line(delays, YELLOW) == expected


def test_mode_table_reports_lines_without_data(scenario_delays):
    out = build_line_mode_table(scenario_delays)

    assert out["line"].tolist() == list(CANONICAL_LINES)
    yellow = out[out["line"] == YELLOW].iloc[0]
    assert bool(yellow["has_data"]) is True
    assert yellow["mode_delay_minutes"] == 3
    assert yellow["n_delays"] == 3

    missing = out[~out["has_data"]]
    assert set(missing["line"]) == set(CANONICAL_LINES) - {YELLOW}
    assert missing["mode_delay_minutes"].isna().all()


def test_mode_table_raises_when_no_line_has_data(make_delays):
    with pytest.raises(EmptyInputError):
        build_line_mode_table(make_delays([{"Min Delay": 0}]))


def test_line_summary_marks_no_data(scenario_delays):
    out = build_line_summary(scenario_delays).set_index("line")
    assert out.loc[YELLOW, "status"] == "ok"
    assert out.loc[YELLOW, "mean_delay_minutes"] == 3.67
    assert out.loc[YELLOW, "mode_delay_minutes"] == 3
    assert out.loc[GREEN, "status"] == "no data"
    assert pd.isna(out.loc[GREEN, "mean_delay_minutes"])


# ---------------------------------------------------------------------
# station ranking
# ---------------------------------------------------------------------


def test_station_ranking_keeps_input_order_on_ties(make_delays):
    rows = (
        [{"Station": "C STATION", "Min Delay": 2}] * 30
        + [{"Station": "A STATION", "Min Delay": 2}] * 50
        + [{"Station": "B STATION", "Min Delay": 4}] * 50
    )
    out = build_station_ranking(make_delays(rows))

    assert out["station"].tolist() == ["A STATION", "B STATION", "C STATION"]
    assert out["n_delays"].tolist() == [50, 50, 30]
    assert out["rank"].tolist() == [1, 2, 3]
    assert out["mean_delay_minutes"].tolist() == [2.0, 4.0, 2.0]


def test_station_ranking_groups_by_station_line_and_bound(make_delays):
    delays = make_delays(
        [
            {"Station": "KENNEDY", "Line": "BD", "Bound": "E", "Min Delay": 3},
            {"Station": "KENNEDY", "Line": "BD", "Bound": "W", "Min Delay": 5},
            {"Station": "KENNEDY", "Line": "SRT", "Bound": "", "Min Delay": 6},
            {"Station": "KENNEDY", "Line": "SRT", "Bound": "", "Min Delay": 7},
            {"Station": "KENNEDY", "Line": "BD", "Bound": "E", "Min Delay": 0},
        ]
    )

    out = build_station_ranking(delays)

    assert len(out) == 3
    top = out.iloc[0]
    assert top["line"] == "Line 03 Scarborough"
    assert pd.isna(top["bound"])
    assert top["n_delays"] == 2
    assert top["mean_delay_minutes"] == 6.5
    # the zero-minute record does not count
    assert out["n_delays"].tolist() == [2, 1, 1]


def test_station_ranking_takes_top_k(make_delays):
    rows = []
    for i in range(12):
        rows += [{"Station": f"STATION {i:02d}", "Min Delay": 1}] * (i + 1)
    delays = make_delays(rows)

    out = build_station_ranking(delays)
    assert len(out) == 10
    assert out["rank"].tolist() == list(range(1, 11))
    assert out.loc[0, "station"] == "STATION 11"

    assert len(build_station_ranking(delays, k=3)) == 3


def test_station_ranking_raises_on_empty_input(make_delays):
    with pytest.raises(EmptyInputError):
        build_station_ranking(make_delays([{"Min Delay": 0}]))


# ---------------------------------------------------------------------
# day of week
# ---------------------------------------------------------------------


def test_dow_mean_includes_zero_minute_records(make_delays):
    delays = make_delays(
        [
            {"Day": "Tuesday", "Min Delay": 3},
            {"Day": "Monday", "Min Delay": 4},
            {"Day": "Monday", "Min Delay": 0},
            {"Day": "Monday", "Min Delay": "n/a"},
            {"Day": "Sunday", "Min Delay": 0, "Line": "YU/BD"},
        ]
    )

    out = build_dow_mean_delay(delays)

    assert out["day_of_week"].tolist() == ["Monday", "Tuesday", "Sunday"]
    assert out["n_records"].tolist() == [2, 1, 1]
    assert out["mean_delay_minutes"].tolist() == [2.0, 3.0, 0.0]


def test_dow_mean_raises_on_empty_input(make_delays):
    delays = make_delays([{"Min Delay": 1}]).iloc[0:0]
    with pytest.raises(EmptyInputError):
        build_dow_mean_delay(delays)


# ---------------------------------------------------------------------
# report bundle
# ---------------------------------------------------------------------


def test_report_tables_isolate_empty_tables(make_delays):
    delays = make_delays([{"Min Delay": 0, "Day": "Friday"}, {"Min Delay": 0, "Line": "BD"}])

    tables = build_report_tables(delays)

    assert list(tables) == [
        "line_mean_delay",
        "line_delay_counts",
        "station_ranking",
        "line_mode_delay",
        "dow_mean_delay",
    ]
    for name in ["line_mean_delay", "line_delay_counts", "station_ranking", "line_mode_delay"]:
        assert not tables[name].ok
        assert tables[name].error
    assert tables["dow_mean_delay"].ok
    assert tables["dow_mean_delay"].frame["mean_delay_minutes"].tolist() == [0.0, 0.0]


def test_report_tables_do_not_modify_input(make_delays):
    delays = make_delays(
        [{"Min Delay": 3, "Line": "BD"}, {"Min Delay": 0}, {"Min Delay": 7, "Bound": ""}]
    )
    before = delays.copy()

    tables = build_report_tables(delays, k=2)

    pd.testing.assert_frame_equal(delays, before)
    assert all(t.ok for t in tables.values())
    assert len(tables["station_ranking"].frame) == 2


def test_missing_columns_raise_schema_error(scenario_delays):
    with pytest.raises(SchemaError, match="station"):
        build_station_ranking(scenario_delays.drop(columns=["station"]))
    with pytest.raises(SchemaError):
        build_report_tables(scenario_delays.drop(columns=["min_delay"]))
