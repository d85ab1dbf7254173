from datetime import date

import pandas as pd

from devstats.csv_parser import parse_csv, records_to_frame
from devstats.filters import (
    ALL,
    FilterCriteria,
    date_cutoff,
    filter_options,
    filter_records,
    normalize_criteria,
    parse_date,
)


def test_normalize_criteria_defaults():
    assert normalize_criteria({}) == FilterCriteria()
    assert normalize_criteria(None) == FilterCriteria()


def test_normalize_criteria_coerces_loose_values():
    f = normalize_criteria({"date_window": "30", "device_model": "Pixel6", "android_version": "", "device_query": "bbb"})
    assert f.date_window == 30
    assert f.window_days == 30
    assert f.device_model == "Pixel6"
    assert f.android_version == ALL
    assert f.device_query == "bbb"


def test_normalize_criteria_bad_window_falls_back_to_all():
    assert normalize_criteria({"date_window": "soon"}).date_window == ALL
    assert normalize_criteria({"date_window": "ALL"}).window_days is None
    assert normalize_criteria({"date_window": -3}).date_window == 0


def test_parse_date():
    assert parse_date("2024-01-02") == date(2024, 1, 2)
    assert parse_date("2024-01-02 23:59:00") == date(2024, 1, 2)
    assert parse_date("xyz") is None
    assert parse_date("") is None
    assert parse_date(None) is None


def test_date_cutoff_uses_whole_days():
    assert date_cutoff(7, date(2024, 3, 10)) == date(2024, 3, 3)


def test_window_all_returns_input_unchanged(full_session):
    out = filter_records(full_session.records, FilterCriteria())
    pd.testing.assert_frame_equal(out, full_session.records)


def test_date_window_keeps_records_on_or_after_cutoff(full_session, today):
    out = filter_records(full_session.records, FilterCriteria(date_window=1), today=today)
    assert out["date"].tolist() == ["2024-03-10", "2024-03-09", "2024-03-09"]

    out = filter_records(full_session.records, FilterCriteria(date_window=0), today=today)
    assert out["date"].tolist() == ["2024-03-10"]


def test_unparseable_dates_fail_an_active_window(today):
    frame = records_to_frame(parse_csv("date,device_id,open_count\nxyz,A,1\n2024-03-09,B,1\n"))
    assert filter_records(frame, FilterCriteria(date_window=30), today=today)["device_id"].tolist() == ["B"]
    assert filter_records(frame, FilterCriteria(), today=today)["device_id"].tolist() == ["A", "B"]


def test_device_model_filter(scenario_session):
    out = filter_records(scenario_session.records, FilterCriteria(device_model="Galaxy"))
    assert out["device_id"].tolist() == ["CCC333"]


def test_android_version_filter_is_exact(full_session):
    out = filter_records(full_session.records, FilterCriteria(android_version="1"))
    assert out.empty
    out = filter_records(full_session.records, FilterCriteria(android_version="14"))
    assert out["device_id"].tolist() == ["dev-aaa-0001", "dev-aaa-0001"]


def test_device_query_is_case_insensitive(scenario_session):
    out = filter_records(scenario_session.records, FilterCriteria(device_query="bbb"))
    assert out["device_id"].tolist() == ["BBB222"]


def test_device_query_is_literal_substring():
    frame = records_to_frame(parse_csv("date,device_id,open_count\n2024-01-01,a.b,1\n2024-01-01,axb,1\n"))
    assert filter_records(frame, FilterCriteria(device_query="a.b"))["device_id"].tolist() == ["a.b"]


def test_empty_query_never_filters(full_session):
    out = filter_records(full_session.records, FilterCriteria(device_query=""))
    assert len(out) == len(full_session.records)


def test_whitespace_query_is_matched_literally(full_session):
    assert normalize_criteria({"device_query": " "}).device_query == " "
    assert filter_records(full_session.records, FilterCriteria(device_query=" ")).empty


def test_predicates_are_anded_and_order_preserved(full_session, today):
    f = FilterCriteria(date_window=30, device_model="Pixel 8", device_query="AAA")
    out = filter_records(full_session.records, f, today=today)
    assert out["date"].tolist() == ["2024-03-10", "2024-03-09"]


def test_filter_empty_frame(full_session):
    empty = full_session.records.iloc[0:0]
    assert filter_records(empty, FilterCriteria(date_window=7)).empty


def test_filter_options_in_first_seen_order(full_session):
    assert filter_options(full_session.records) == {
        "device_models": ["Pixel 8", "SM-S918B", "Mi 11"],
        "android_versions": ["14", "13", "12"],
    }


def test_date_cutoff_past_year_one_clamps_to_min():
    assert date_cutoff(1_000_000, date(2024, 3, 1)) == date.min
    assert date_cutoff(10**12, date(2024, 3, 1)) == date.min


def test_huge_window_keeps_every_dated_record(full_session):
    out = filter_records(full_session.records, FilterCriteria(date_window=1_000_000), today=date(2024, 3, 1))
    assert len(out) == len(full_session.records)
