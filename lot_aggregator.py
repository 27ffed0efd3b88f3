"""
Groups permits into lots.

The lot number is encoded in the parcel number: it is the 4 characters in front of the
last one ("312431779300010" -> lot 1).

Ordering contract of `aggregate_lots`:
- Lots come out in the order their lot number first appears in the input.
- A lot's id and address come from the first permit seen for it.
- Under EARLIEST_PER_CATEGORY, permits with the same category and the same
  processed_date keep the one encountered first.
Callers that want the address of the oldest permit must sort the input by
processed_date first (`ingest_orlando.load_permits` does).
"""
import logging
from enum import Enum
from typing import Iterable, Optional

from permit_models import Lot, Permit

logger = logging.getLogger(__name__)


class AggregationPolicy(str, Enum):
    ALL_PERMITS = "all_permits"
    EARLIEST_PER_CATEGORY = "earliest_per_category"


# Parcel numbers whose lot slice is not a number all land on this lot
UNKNOWN_LOT_NUMBER = -1


def parcel_number_to_lot_number(parcel_number: str) -> int:
    """
    Characters -5..-1 (last one excluded) of the parcel number, as an int.
    An empty slice gives 0 and a non-numeric one gives UNKNOWN_LOT_NUMBER.
    """
    digits = parcel_number[-5:-1]
    if not digits:
        return 0
    try:
        return int(digits)
    except ValueError:
        logger.warning(f"⚠️ Parcel number {parcel_number!r} has no numeric lot part.")
        return UNKNOWN_LOT_NUMBER


def compress_application_type(application_type: str) -> str:
    """'Building Permit' -> 'building', 'Electrical Permit' -> 'electrical'."""
    snake = (application_type or "").lower().replace(" ", "_")
    if snake.endswith("_permit"):
        snake = snake[: -len("_permit")]
    return snake


def permit_category(permit: Permit) -> str:
    return compress_application_type(permit.application_type)


def permits_by_category(lot: Lot) -> dict[str, Permit]:
    """First permit of each category, in the order the categories appear on the lot."""
    by_category: dict[str, Permit] = {}
    for permit in lot.permits:
        by_category.setdefault(permit_category(permit), permit)
    return by_category


def _is_older(candidate: Permit, current: Permit) -> bool:
    # Strict comparison: ties keep the permit already on the lot
    if candidate.processed_date is None:
        return False
    if current.processed_date is None:
        return True
    return candidate.processed_date < current.processed_date


def _keep_earliest(lot: Lot, permit: Permit) -> None:
    category = permit_category(permit)
    for index, current in enumerate(lot.permits):
        if permit_category(current) != category:
            continue
        if _is_older(permit, current):
            lot.permits[index] = permit
        return
    lot.permits.append(permit)


def aggregate_lots(
    permits: Iterable[Permit],
    policy: AggregationPolicy = AggregationPolicy.EARLIEST_PER_CATEGORY,
) -> list[Lot]:
    """
    Builds one Lot per distinct lot number.

    Args:
        permits: Permits in the order they should be considered.
        policy: ALL_PERMITS keeps every permit in input order.
            EARLIEST_PER_CATEGORY keeps the oldest permit (by processed_date) of each
            application category; the oldest one is taken as the source of truth.

    Returns:
        Lots in order of first appearance.
    """
    lots: dict[int, Lot] = {}
    for permit in permits:
        lot_number = parcel_number_to_lot_number(permit.parcel_number)
        lot = lots.get(lot_number)
        if lot is None:
            address = permit.permit_address
            lots[lot_number] = Lot(
                id=permit.parcel_number,
                number=lot_number,
                address=address,
                permits=[permit],
                search_index=f"{lot_number} {address or ''}".strip().lower(),
            )
        elif policy == AggregationPolicy.ALL_PERMITS:
            lot.permits.append(permit)
        else:
            _keep_earliest(lot, permit)

    logger.debug(f"Aggregated lots: {len(lots)} ({policy.value})")
    return list(lots.values())


def first_address(permits: Iterable[Permit]) -> Optional[str]:
    """Address of the first permit that has one."""
    return next((p.permit_address for p in permits if p.permit_address), None)


def lot_for_parcel(
    permits: Iterable[Permit],
    parcel_number: str,
    policy: AggregationPolicy = AggregationPolicy.EARLIEST_PER_CATEGORY,
) -> Optional[Lot]:
    """
    The lot a parcel belongs to, aggregated with the same policy as the lot list so the
    detail page and the list agree on its status.
    """
    lot_number = parcel_number_to_lot_number(parcel_number)
    return next((lot for lot in aggregate_lots(permits, policy) if lot.number == lot_number), None)


def search_lots(lots: Iterable[Lot], search_value: Optional[str]) -> list[Lot]:
    """
    Keeps the lots whose search index contains ANY of the whitespace separated tokens.
    A blank search returns every lot.
    """
    lots = list(lots)
    tokens = (search_value or "").lower().split()
    if not tokens:
        return lots
    return [lot for lot in lots if any(token in lot.search_index for token in tokens)]
