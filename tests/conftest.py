"""Shared fixtures: a fake Socrata client and a permit factory."""
import pytest

from permit_models import Permit

# A real record from the Orlando dataset
RAW_PERMIT = {
    "application_type": "Building Permit",
    "contractor_name": "DREAM FINDERS HOMES LLC",
    "contractor_address": "14701 PHILIPS HWY,JACKSONVILLE, FL 32256",
    "contractor_phone_number": "(407)757-0206",
    "estimated_cost": "277800",
    "of_cycles": "1",
    "of_pdoxwkflw": "0",
    "parcel_number": "312431779300010",
    "parcel_owner_name": " DREAM FINDERS HOMES LLC",
    "permit_address": "18303 MOWRY CT",
    "permit_number": "BLD2023-12771",
    "plan_review_type": "Residential 1/2",
    "prescreen_completed_date": "2023-03-07T00:00:00.000",
    "processed_date": "2023-03-07T00:00:00.000",
    "property_owner_name": " TDCP LLC",
    "under_review_date": "2023-03-07T00:00:00.000",
    "worktype": "New",
}


class FakeSocrata:
    """Stands in for sodapy.Socrata: records calls and returns canned rows."""

    def __init__(self, data=None, error=None):
        self.data = data if data is not None else []
        self.error = error
        self.calls = []
        self.closed = False

    def get(self, dataset_identifier, **kwargs):
        self.calls.append((dataset_identifier, kwargs))
        if self.error is not None:
            raise self.error
        return self.data

    def close(self):
        self.closed = True


@pytest.fixture
def raw_permit():
    return dict(RAW_PERMIT)


@pytest.fixture
def make_permit():
    """Builds a Permit from the sample record; pass field=None to drop a field."""
    def _make(**fields):
        record = {**RAW_PERMIT, **fields}
        record = {k: v for k, v in record.items() if v is not None}
        return Permit.model_validate(record)
    return _make


@pytest.fixture
def fake_client():
    return FakeSocrata
