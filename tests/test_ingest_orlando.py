"""Tests for the Orlando permit fetcher. The Socrata client is always faked."""
import logging

import pytest
import requests
from pydantic import ValidationError

import ingest_orlando
from ingest_orlando import (
    LOT_PATHS_QUERY,
    PERMITS_DATASET_ID,
    CancelToken,
    build_query_params,
    fetch_lot_permits,
    fetch_permits,
    get_lot_data,
    get_lot_ids,
    load_permits,
)


def record(raw_permit, **fields):
    return {**raw_permit, **fields}


class TestBuildQueryParams:

    def test_values_become_strings(self):
        assert build_query_params({"worktype": "New", "of_cycles": 1, "estimated_cost": 2.5}) == {
            "worktype": "New",
            "of_cycles": "1",
            "estimated_cost": "2.5",
        }


class TestFetchPermits:

    def test_queries_dataset_with_string_filters(self, fake_client, raw_permit):
        client = fake_client([raw_permit])
        permits = fetch_permits({"worktype": "New", "of_cycles": 1}, client=client)
        assert client.calls == [(PERMITS_DATASET_ID, {"worktype": "New", "of_cycles": "1"})]
        assert [p.permit_number for p in permits] == ["BLD2023-12771"]

    def test_blocklisted_parcels_are_dropped(self, fake_client, raw_permit):
        client = fake_client([
            record(raw_permit, permit_number="OK"),
            record(raw_permit, permit_number="BAD", parcel_number="312431779300120"),
        ])
        assert [p.permit_number for p in fetch_permits({}, client=client)] == ["OK"]

    def test_injected_client_is_left_open(self, fake_client):
        client = fake_client([])
        fetch_permits({}, client=client)
        assert not client.closed

    def test_own_client_is_closed(self, fake_client, monkeypatch):
        client = fake_client([])
        monkeypatch.setattr(ingest_orlando, "get_client", lambda: client)
        assert fetch_permits({}) == []
        assert client.closed

    def test_errors_propagate(self, fake_client):
        client = fake_client(error=requests.ConnectionError("down"))
        with pytest.raises(requests.ConnectionError):
            fetch_permits({}, client=client)

    def test_missing_parcel_number_is_a_validation_error(self, fake_client, raw_permit):
        del raw_permit["parcel_number"]
        with pytest.raises(ValidationError):
            fetch_permits({}, client=fake_client([raw_permit]))


class TestLoadPermits:

    def test_sorted_oldest_first_undated_last(self, fake_client, raw_permit):
        undated = record(raw_permit, permit_number="UNDATED")
        del undated["processed_date"]
        client = fake_client([
            record(raw_permit, permit_number="NEW", processed_date="2023-06-01T00:00:00.000"),
            undated,
            record(raw_permit, permit_number="OLD", processed_date="2023-01-01T00:00:00.000"),
        ])
        result = load_permits({}, client=client)
        assert [p.permit_number for p in result.permits] == ["OLD", "NEW", "UNDATED"]
        assert result.is_loading is False
        assert result.cancelled is False

    def test_network_error_becomes_empty_result(self, fake_client, caplog):
        client = fake_client(error=requests.ConnectionError("down"))
        with caplog.at_level(logging.ERROR, logger="ingest_orlando"):
            result = load_permits({"worktype": "New"}, client=client)
        assert result.permits == []
        assert result.is_loading is False
        assert "down" in caplog.text

    def test_bad_json_becomes_empty_result(self, fake_client):
        client = fake_client(error=ValueError("Expecting value: line 1 column 1"))
        result = load_permits({}, client=client)
        assert result.permits == []
        assert result.is_loading is False

    def test_malformed_record_becomes_empty_result(self, fake_client, raw_permit):
        del raw_permit["parcel_number"]
        result = load_permits({}, client=fake_client([raw_permit]))
        assert result.permits == []
        assert result.is_loading is False

    def test_cancelled_token_discards_results(self, fake_client, raw_permit):
        token = CancelToken()
        client = fake_client([raw_permit])
        original_get = client.get

        def get_then_close_view(*args, **kwargs):
            rows = original_get(*args, **kwargs)
            token.cancel()
            return rows

        client.get = get_then_close_view
        result = load_permits({}, cancel_token=token, client=client)
        assert result.cancelled is True
        assert result.permits == []
        assert result.is_loading is False

    def test_live_token_keeps_results(self, fake_client, raw_permit):
        result = load_permits({}, cancel_token=CancelToken(), client=fake_client([raw_permit]))
        assert len(result.permits) == 1


class TestLotQueries:

    def test_fetch_lot_permits_filters_by_parcel(self, fake_client, raw_permit):
        client = fake_client([raw_permit])
        result = fetch_lot_permits("312431779300010", client=client)
        assert client.calls == [(PERMITS_DATASET_ID, {"parcel_number": "312431779300010"})]
        assert len(result.permits) == 1

    def test_get_lot_ids_unique_in_order(self, fake_client, raw_permit):
        client = fake_client([
            record(raw_permit, permit_number="A", parcel_number="312431779300020"),
            record(raw_permit, permit_number="B", parcel_number="312431779300010"),
            record(raw_permit, permit_number="C", parcel_number="312431779300020"),
        ])
        assert get_lot_ids(client=client) == ["312431779300020", "312431779300010"]
        assert client.calls[0][1] == LOT_PATHS_QUERY

    def test_get_lot_data_aggregates_and_searches(self, fake_client, raw_permit):
        client = fake_client([
            record(raw_permit, permit_number="A", parcel_number="312431779300010"),
            record(raw_permit, permit_number="B", parcel_number="312431779300020", permit_address="18411 SUMMERDALE DR"),
        ])
        lots, is_loading = get_lot_data("summerdale", client=client)
        assert is_loading is False
        assert [lot.number for lot in lots] == [2]
        assert client.calls[0][1] == {"worktype": "New"}
