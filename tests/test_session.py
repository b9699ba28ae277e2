from core.data import empty_records
from core.filters import ALL, FilterSelection
from core.session import DashboardSession


def test_initial_payloads_cover_every_view(fleet):
    session = DashboardSession(fleet)
    payloads = session.payloads
    assert set(payloads) == {"ranking", "trend", "dimensions", "debug"}
    assert payloads["ranking"]["title"] == "Top Models by Sales Count (Max 10)"
    assert "bar" in payloads["ranking"]["charts"]
    assert "line" in payloads["trend"]["charts"]
    assert "parallel" in payloads["dimensions"]["charts"]
    assert payloads["debug"]["row_counts"] == {"records": 6, "filtered_records": 6}


def test_select_recomputes_payloads(fleet):
    session = DashboardSession(fleet)
    session.select("make", "BMW")
    ranking = session.payloads["ranking"]
    assert [row["model"] for row in ranking["rows"]] == ["X5", "328I"]
    assert ranking["filters"] == {"make": "BMW", "body": ALL, "state": ALL}
    assert session.payloads["dimensions"]["granularity"] == "body"


def test_returning_to_a_selection_reuses_payloads(fleet):
    session = DashboardSession(fleet)
    first = session.payloads
    session.select("state", "TX")
    assert session.payloads is not first
    session.select("state", ALL)
    assert session.payloads is first


def test_body_reset_notifies_once_with_corrected_selection(fleet):
    session = DashboardSession(fleet)
    session.select("body", "SUPERCREW")
    seen = []
    session.subscribe(lambda payloads: seen.append(payloads["ranking"]["filters"]))
    session.select("make", "TOYOTA")
    assert seen == [{"make": "TOYOTA", "body": ALL, "state": ALL}]
    assert session.selection == FilterSelection(make="TOYOTA")


def test_trend_payload_lists_gap_months(make_records):
    session = DashboardSession(make_records([{"saledate": "2015-01-05"}, {"saledate": "2015-03-10"}]))
    assert session.payloads["trend"]["gap_months"] == ["2015-02"]


def test_stale_load_is_discarded(fleet, make_records):
    session = DashboardSession()
    slow = session.begin_load()
    fast = session.begin_load()
    assert session.finish_load(fast, fleet)
    assert not session.finish_load(slow, make_records([{"make": "KIA"}]))
    assert session.records is fleet
    assert session.options.makes == [ALL, "BMW", "FORD", "TOYOTA"]


def test_load_from_csv(write_csv):
    path = write_csv([{}, {"make": "Kia", "model": "Optima"}])
    session = DashboardSession()
    assert session.load(path)
    assert session.report is not None and session.report.retained == 2
    assert session.options.makes == [ALL, "FORD", "KIA"]
    assert session.payloads["debug"]["load"]["retained"] == 2
    assert session.payloads["debug"]["load"]["dropped_malformed"] == 0


def test_new_records_clear_cached_payloads(fleet, make_records):
    session = DashboardSession(fleet)
    before = session.payloads
    session.set_records(make_records([{"make": "KIA"}]))
    assert session.payloads is not before
    assert session.payloads["ranking"]["rows"][0]["make"] == "KIA"


def test_empty_records_give_empty_views():
    session = DashboardSession(empty_records())
    payloads = session.payloads
    assert payloads["ranking"]["rows"] == []
    assert payloads["ranking"]["charts"] == {}
    assert payloads["trend"]["rows"] == []
    assert payloads["dimensions"]["charts"] == {}
    assert payloads["debug"]["sale_date_range"] is None
    assert session.options.makes == [ALL]


def test_close_stops_recomputing(fleet):
    session = DashboardSession(fleet)
    before = session.payloads
    session.close()
    session.state.set("make", "BMW")
    assert session.payloads is before
