import io
import math
from datetime import date

import pandas as pd

from core.data import (
    RECORD_COLUMNS,
    SALE_WINDOW_END,
    SALE_WINDOW_START,
    clear_dashboard_cache,
    empty_records,
    load_car_data,
    load_car_data_with_report,
    load_dashboard_data,
    parse_sale_day,
    prepare_context,
)
from core.filters import FilterSelection


def test_parse_sale_day_keeps_local_calendar_date():
    assert parse_sale_day("Mon Aug 31 2015 23:30:00 GMT-0700 (PDT)") == date(2015, 8, 31)
    assert parse_sale_day("Tue Dec 16 2014 12:30:00 GMT-0800 (PST)") == date(2014, 12, 16)


def test_parse_sale_day_accepts_iso_and_rejects_garbage():
    assert parse_sale_day("2015-01-15") == date(2015, 1, 15)
    assert parse_sale_day("not a date") is None
    assert parse_sale_day("") is None
    assert parse_sale_day(None) is None


def test_load_normalizes_case_and_date(write_csv):
    path = write_csv([{}])
    records = load_car_data(path)
    assert len(records) == 1
    row = records.iloc[0]
    assert row["make"] == "FORD"
    assert row["model"] == "FUSION"
    assert row["body"] == "SEDAN"
    assert row["state"] == "CA"
    assert row["saledate"] == "2015-01-15"
    assert row["trim"] == "SE"
    assert row["sellingprice"] == 14600.0
    assert list(records.columns) == RECORD_COLUMNS


def test_retained_records_are_inside_window_and_uppercase(write_csv):
    path = write_csv(
        [
            {"saledate": "Sat Nov 01 2014 09:00:00 GMT-0700 (PDT)"},
            {"saledate": "Mon Aug 31 2015 23:30:00 GMT-0700 (PDT)"},
            {"saledate": "Fri Oct 31 2014 23:00:00 GMT-0700 (PDT)"},
            {"saledate": "Tue Sep 01 2015 00:30:00 GMT-0700 (PDT)"},
            {"make": "bmw", "model": "x5", "body": "suv", "saledate": "2015-03-01"},
        ]
    )
    records, report = load_car_data_with_report(path)
    assert sorted(records["saledate"]) == ["2014-11-01", "2015-03-01", "2015-08-31"]
    assert report.dropped_date == 2
    for day in records["saledate"]:
        assert SALE_WINDOW_START <= date.fromisoformat(day) <= SALE_WINDOW_END
    for col in ["make", "model", "body"]:
        assert (records[col] == records[col].str.upper()).all()


def test_row_with_empty_odometer_is_dropped(write_csv):
    path = write_csv([{"odometer": ""}, {"vin": "keep-me"}])
    records, report = load_car_data_with_report(path)
    assert records["vin"].tolist() == ["keep-me"]
    assert report.raw_rows == 2
    assert report.dropped_missing == 1
    assert report.retained == 1


def test_blank_text_field_counts_as_missing(write_csv):
    path = write_csv([{"transmission": "   "}])
    records = load_car_data(path)
    assert records.empty


def test_unparseable_date_is_dropped(write_csv):
    path = write_csv([{"saledate": "sometime in spring"}])
    records, report = load_car_data_with_report(path)
    assert records.empty
    assert report.dropped_date == 1


def test_non_numeric_value_is_kept_as_nan(write_csv):
    path = write_csv([{"odometer": "unknown"}])
    records = load_car_data(path)
    assert len(records) == 1
    assert math.isnan(records.iloc[0]["odometer"])


def test_missing_file_resolves_to_empty_records(tmp_path):
    records, report = load_car_data_with_report(tmp_path / "nope.csv")
    assert records.empty
    assert list(records.columns) == RECORD_COLUMNS
    assert not report.ok


def test_missing_column_resolves_to_empty_records(write_csv):
    path = write_csv([{}], columns=[c for c in RECORD_COLUMNS if c != "mmr"])
    records, report = load_car_data_with_report(path)
    assert records.empty
    assert "mmr" in report.error


def test_empty_buffer_resolves_to_empty_records():
    records, report = load_car_data_with_report(io.StringIO(""))
    assert records.empty
    assert report.error is not None


def test_load_dashboard_data_is_cached_per_file_version(write_csv):
    path = write_csv([{}, {"make": "Kia", "model": "Sorento", "body": "SUV"}])
    clear_dashboard_cache()
    first = load_dashboard_data(path)
    second = load_dashboard_data(path)
    assert first is second
    assert sorted(first["records"]["make"].unique()) == ["FORD", "KIA"]
    assert set(first) == {"source", "records", "report"}


def test_load_dashboard_data_missing_file(tmp_path):
    ctx = load_dashboard_data(tmp_path / "missing.csv")
    assert ctx["records"].empty
    assert ctx["report"].error == "file not found"


def test_prepare_context_accepts_raw_dict(fleet):
    ctx = prepare_context({"make": "bmw"}, {"records": fleet})
    assert ctx["filters"] == FilterSelection(make="BMW")
    assert set(ctx["filtered_records"]["make"]) == {"BMW"}
    assert "options" not in ctx


def test_empty_records_shape():
    df = empty_records()
    assert df.empty
    assert pd.api.types.is_float_dtype(df["sellingprice"])


def test_line_with_extra_field_is_skipped_not_fatal(write_csv):
    path = write_csv([{}, {"vin": "ragged"}])
    lines = path.read_text().splitlines()
    lines[2] += ",unexpected"
    path.write_text("\n".join(lines) + "\n")
    records, report = load_car_data_with_report(path)
    assert report.ok
    assert records["vin"].tolist() == ["3fa6p0h75er208976"]
    assert report.dropped_malformed == 1
    assert report.raw_rows == 2
    assert report.retained == 1


def test_text_values_are_kept_as_written(write_csv):
    path = write_csv([{"trim": " SE ", "seller": "hertz  ", "make": " Ford", "odometer": " 12818 "}])
    row = load_car_data(path).iloc[0]
    assert row["trim"] == " SE "
    assert row["seller"] == "hertz  "
    assert row["make"] == "FORD"
    assert row["odometer"] == 12818.0
