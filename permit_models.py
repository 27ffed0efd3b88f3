"""
Data models for the Summerdale lot tracker.

A `Permit` is one record of the City of Orlando permit dataset (Socrata `5pzm-dn5w`).
A `Lot` groups the permits that share a lot number. Both are rebuilt on every fetch.
"""
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ApplicationCategory(str, Enum):
    """Coarse buckets derived from the free-text `application_type`."""
    BUILDING = "building"
    ELECTRICAL = "electrical"
    MECHANICAL = "mechanical"
    PLUMBING = "plumbing"


class LotStatus(str, Enum):
    READY_TO_MOVE = "Ready to move"
    READY_SOON = "Ready soon"
    IN_CONSTRUCTION = "In construction"
    OTHER = "Other"


class StepState(str, Enum):
    DONE = "done"
    CURRENT = "current"
    UPCOMING = "upcoming"


class Permit(BaseModel):
    """
    One permit record as returned by the open data portal.
    Unknown keys are kept so the raw record can still be shown in the detail view.
    """
    model_config = ConfigDict(frozen=True, extra="allow")

    # --- Core Identity ---
    permit_number: str
    parcel_number: str

    # --- Classifiers (free text upstream) ---
    application_type: str = ""
    worktype: Optional[str] = None

    # --- Milestone dates, in lifecycle order ---
    processed_date: Optional[datetime] = None
    under_review_date: Optional[datetime] = None
    prescreen_completed_date: Optional[datetime] = None
    review_started_including: Optional[datetime] = None
    review_started_date_excluding: Optional[datetime] = None
    collect_permit_fees_date: Optional[datetime] = None
    pending_issuance_date: Optional[datetime] = None
    issue_permit_date: Optional[datetime] = None
    pdoxbatch_date: Optional[datetime] = None
    final_date: Optional[datetime] = None
    coo_date: Optional[datetime] = None

    # --- Context ---
    permit_address: Optional[str] = None
    property_owner_name: Optional[str] = None
    parcel_owner_name: Optional[str] = None
    contractor: Optional[str] = None
    contractor_name: Optional[str] = None
    contractor_address: Optional[str] = None
    contractor_phone_number: Optional[str] = None
    plan_review_type: Optional[str] = None
    estimated_cost: Optional[str] = None
    of_cycles: Optional[str] = None
    of_pdoxwkflw: Optional[str] = None

    # Socrata sends floating timestamps like "2023-03-07T00:00:00.000"
    @field_validator(
        'processed_date', 'under_review_date', 'prescreen_completed_date',
        'review_started_including', 'review_started_date_excluding',
        'collect_permit_fees_date', 'pending_issuance_date', 'issue_permit_date',
        'pdoxbatch_date', 'final_date', 'coo_date',
        mode='before',
    )
    @classmethod
    def parse_dates(cls, v):
        if not v:
            return None
        if isinstance(v, datetime):
            return v
        if isinstance(v, date):
            return datetime(v.year, v.month, v.day)
        if isinstance(v, str):
            try:
                return datetime.fromisoformat(v)
            except ValueError:
                try:
                    return datetime.strptime(v[:10], '%Y-%m-%d')
                except ValueError:
                    return None
        return v

    @field_validator('estimated_cost', 'of_cycles', 'of_pdoxwkflw', mode='before')
    @classmethod
    def stringify_numbers(cls, v):
        if isinstance(v, (int, float)):
            return str(v)
        return v


class Lot(BaseModel):
    """
    A physical lot. `id` and `address` come from the first permit seen for the lot.
    """
    id: str
    number: int
    address: Optional[str] = None
    permits: list[Permit] = Field(default_factory=list)
    search_index: str = ""


class TimelineStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    label: str
    rank: int
    reached_at: Optional[datetime] = None
    state: StepState = StepState.UPCOMING
