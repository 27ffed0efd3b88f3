"""
Derives the status of a lot and the progress timeline of a single permit.
"""
from typing import NamedTuple, Optional, Sequence, Union

from lot_aggregator import permit_category
from permit_models import ApplicationCategory, Lot, LotStatus, Permit, StepState, TimelineStep


class Milestone(NamedTuple):
    field: str
    rank: int
    label: str


# Lifecycle order of the dataset's date fields.
# The two "review started" spellings share a rank and render as one step.
MILESTONES = (
    Milestone("processed_date", 1, "Processed"),
    Milestone("under_review_date", 2, "Under review"),
    Milestone("prescreen_completed_date", 3, "Prescreen completed"),
    Milestone("review_started_including", 4, "Review started"),
    Milestone("review_started_date_excluding", 4, "Review started"),
    Milestone("collect_permit_fees_date", 5, "Fees collected"),
    Milestone("pending_issuance_date", 6, "Pending issuance"),
    Milestone("issue_permit_date", 7, "Permit issued"),
    Milestone("final_date", 8, "Final inspection"),
    Milestone("coo_date", 9, "Certificate of occupancy"),
)

BUILDING_COMPLETION_FIELDS = ("final_date", "coo_date")

TRADE_CATEGORIES = (
    ApplicationCategory.ELECTRICAL.value,
    ApplicationCategory.MECHANICAL.value,
    ApplicationCategory.PLUMBING.value,
)


# --- LOT STATUS ---

def _is_complete(permit: Permit) -> bool:
    return any(getattr(permit, name) is not None for name in BUILDING_COMPLETION_FIELDS)


def derive_lot_status(permits: Union[Lot, Sequence[Permit]]) -> LotStatus:
    """
    Classifies a lot from its permits.

    Only a single, unambiguous building permit is trusted. With no building permit, or
    with several of them, the lot stays in the generic OTHER bucket.
    """
    if isinstance(permits, Lot):
        permits = permits.permits

    building = [p for p in permits if permit_category(p) == ApplicationCategory.BUILDING.value]
    if len(building) != 1:
        return LotStatus.OTHER

    if _is_complete(building[0]):
        return LotStatus.READY_TO_MOVE

    trades_done = any(
        permit_category(p) in TRADE_CATEGORIES and p.final_date is not None
        for p in permits
    )
    if trades_done:
        return LotStatus.READY_SOON

    return LotStatus.IN_CONSTRUCTION


# --- PERMIT TIMELINE ---

def _sort_key(permit: Permit, milestone: Milestone) -> float:
    # Adding the rank breaks same-timestamp ties in favour of the later step
    reached_at = getattr(permit, milestone.field)
    return reached_at.timestamp() * 1000 + milestone.rank


def latest_milestone(permit: Permit) -> Optional[Milestone]:
    """The most recently reached milestone, or None when the permit has no dates."""
    reached = [m for m in MILESTONES if getattr(permit, m.field) is not None]
    if not reached:
        return None
    return max(reached, key=lambda m: _sort_key(permit, m))


def build_timeline(permit: Permit) -> list[TimelineStep]:
    """
    Steps to render for a permit, in milestone order.

    Reached milestones are always shown. Milestones ranked after the latest reached one are
    shown as upcoming. Missing milestones ranked before it are skipped.
    """
    latest = latest_milestone(permit)
    latest_rank = latest.rank if latest else 0

    selected = [
        m for m in MILESTONES
        if getattr(permit, m.field) is not None or m.rank > latest_rank
    ]

    # Equal-rank spellings collapse to the one reached last, the one latest_milestone picks
    collapsed: list[Milestone] = []
    for milestone in selected:
        if collapsed and collapsed[-1].rank == milestone.rank:
            previous = collapsed[-1]
            if getattr(permit, milestone.field) is not None and (
                getattr(permit, previous.field) is None
                or _sort_key(permit, milestone) > _sort_key(permit, previous)
            ):
                collapsed[-1] = milestone
            continue
        collapsed.append(milestone)

    steps = []
    for milestone in collapsed:
        reached_at = getattr(permit, milestone.field)
        if latest is not None and milestone.rank == latest.rank and reached_at is not None:
            state = StepState.CURRENT
        elif reached_at is not None:
            state = StepState.DONE
        else:
            state = StepState.UPCOMING
        steps.append(TimelineStep(
            name=milestone.field,
            label=milestone.label,
            rank=milestone.rank,
            reached_at=reached_at,
            state=state,
        ))
    return steps
