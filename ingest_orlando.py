"""
Ingestion spoke for Orlando, FL (Socrata API) using sodapy.

Fetches building permit records from the City of Orlando open data portal.
Endpoint: https://data.cityoforlando.net/resource/5pzm-dn5w.json
Docs: https://dev.socrata.com/foundry/data.cityoforlando.net/5pzm-dn5w

Key Logic:
- Query parameters are plain equality filters on record fields (e.g. worktype=New).
- No $limit/$offset is sent: the portal returns the whole matching set in one response.
- Known-bad records are dropped by parcel number.
- `load_permits` is the error boundary: failures are logged and come back as an empty result.
"""
import logging
import os
import sys
import threading
from datetime import datetime
from typing import Mapping, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field
from sodapy import Socrata

from lot_aggregator import AggregationPolicy, aggregate_lots, search_lots
from permit_models import Lot, Permit

logger = logging.getLogger(__name__)

load_dotenv()

# --- CONFIG ---
ORLANDO_DOMAIN = os.getenv("ORLANDO_DOMAIN", "data.cityoforlando.net")
PERMITS_DATASET_ID = os.getenv("ORLANDO_PERMITS_DATASET", "5pzm-dn5w")
SOCRATA_TOKEN = os.getenv("SOCRATA_APP_TOKEN") or None
REQUEST_TIMEOUT = int(os.getenv("ORLANDO_TIMEOUT", "30"))

# Records that are known to be wrong upstream
BLOCKLIST_BY_PARCEL_NUMBER = {
    "312431779300120",  # lot 12
}

LOT_QUERY = {"worktype": "New"}
LOT_PATHS_QUERY = {"application_type": "Building Permit", "worktype": "New"}

PermitParams = Mapping[str, Union[str, int, float]]


class CancelToken:
    """Set by the view that started a fetch when it goes away. Late results are dropped."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class LoadResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    permits: list[Permit] = Field(default_factory=list)
    is_loading: bool = False
    cancelled: bool = False


def get_client(app_token: Optional[str] = SOCRATA_TOKEN) -> Socrata:
    return Socrata(ORLANDO_DOMAIN, app_token, timeout=REQUEST_TIMEOUT)


def build_query_params(params: PermitParams) -> dict[str, str]:
    """Socrata filters are strings on the wire; numbers are coerced here."""
    return {name: str(value) for name, value in params.items()}


def fetch_permits(params: PermitParams, client: Optional[Socrata] = None) -> list[Permit]:
    """
    Fetches and validates permits matching `params`, minus the blocklisted parcels.

    Args:
        params: Field name -> value equality filters.
        client: Socrata client to use. A new one is opened (and closed) when omitted.

    Returns:
        A list of `Permit` objects in the order the portal returned them.

    Raises:
        requests.RequestException, ValueError or pydantic.ValidationError on failure.
    """
    query = build_query_params(params)
    logger.info(f"🍊 Fetching Orlando permits {query}...")

    owns_client = client is None
    if owns_client:
        client = get_client()
    try:
        data = client.get(PERMITS_DATASET_ID, **query)
    finally:
        if owns_client:
            client.close()

    if not data:
        logger.warning("⚠️ No Orlando data returned.")
        return []

    permits = [
        Permit.model_validate(item)
        for item in data
        if str(item.get("parcel_number")) not in BLOCKLIST_BY_PARCEL_NUMBER
    ]
    logger.info(f"✅ Orlando: Retrieved {len(permits)} permits ({len(data) - len(permits)} blocklisted).")
    return permits


def _processed_order(permit: Permit):
    return (permit.processed_date is None, permit.processed_date or datetime.min)


def load_permits(
    params: PermitParams,
    cancel_token: Optional[CancelToken] = None,
    client: Optional[Socrata] = None,
) -> LoadResult:
    """
    Loads permits for a view, oldest processed first.

    Never raises: any failure is logged and reported as an empty, finished load.
    If `cancel_token` was cancelled while the request was in flight the data is dropped.
    """
    try:
        permits = fetch_permits(params, client=client)
        permits = sorted(permits, key=_processed_order)
    except Exception as e:
        logger.error(f"❌ Orlando API Error: {e}")
        return LoadResult(permits=[], is_loading=False)

    if cancel_token is not None and cancel_token.cancelled:
        logger.info(f"🚫 Discarding {len(permits)} permits for a closed view.")
        return LoadResult(permits=[], is_loading=False, cancelled=True)

    return LoadResult(permits=permits, is_loading=False)


def fetch_lot_permits(
    parcel_number: str,
    cancel_token: Optional[CancelToken] = None,
    client: Optional[Socrata] = None,
) -> LoadResult:
    """All permits filed against one parcel (lot detail view)."""
    return load_permits({"parcel_number": parcel_number}, cancel_token=cancel_token, client=client)


def get_lot_ids(client: Optional[Socrata] = None) -> list[str]:
    """Parcel numbers that have a new building permit, i.e. the lot pages worth rendering."""
    result = load_permits(LOT_PATHS_QUERY, client=client)
    return list(dict.fromkeys(permit.parcel_number for permit in result.permits))


def get_lot_data(
    search_value: str = "",
    policy: AggregationPolicy = AggregationPolicy.EARLIEST_PER_CATEGORY,
    cancel_token: Optional[CancelToken] = None,
    client: Optional[Socrata] = None,
) -> tuple[list[Lot], bool]:
    """Lots with a new-construction permit, filtered by `search_value`. Returns (lots, is_loading)."""
    result = load_permits(LOT_QUERY, cancel_token=cancel_token, client=client)
    lots = aggregate_lots(result.permits, policy=policy)
    return search_lots(lots, search_value), result.is_loading


if __name__ == "__main__":
    from lot_views import lot_table_frame

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    search = " ".join(sys.argv[1:])

    print(f"--- Summerdale lots (search: '{search}') ---")
    lots, _ = get_lot_data(search)
    if not lots:
        print("⚠️ No lots found.")
    else:
        print(lot_table_frame(lots).to_string(index=False))
        print(f"✅ {len(lots)} lots.")
