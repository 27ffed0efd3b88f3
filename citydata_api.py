"""
JSON API over the Orlando permit dataset.

/api/citydata is a straight proxy of the dataset; /api/lots serves the aggregated lots and
/api/lot-ids the parcels that have a new building permit.
Run with `uvicorn citydata_api:app`.
"""
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException

from ingest_orlando import LOT_QUERY, fetch_lot_permits, get_client, get_lot_ids, load_permits
from lot_aggregator import (
    AggregationPolicy,
    aggregate_lots,
    first_address,
    lot_for_parcel,
    parcel_number_to_lot_number,
    search_lots,
)
from lot_status import build_timeline, derive_lot_status
from permit_models import LotStatus

app = FastAPI(title="Summerdale lot tracker")


def socrata_client():
    client = get_client()
    try:
        yield client
    finally:
        client.close()


@app.get("/api/citydata")
def citydata(
    worktype: Optional[str] = None,
    application_type: Optional[str] = None,
    client=Depends(socrata_client),
):
    params = {}
    if worktype:
        params["worktype"] = worktype
    if application_type:
        params["application_type"] = application_type
    result = load_permits(params, client=client)
    return [permit.model_dump(mode="json") for permit in result.permits]


@app.get("/api/lots")
def lots(
    search: str = "",
    policy: AggregationPolicy = AggregationPolicy.EARLIEST_PER_CATEGORY,
    client=Depends(socrata_client),
):
    result = load_permits(LOT_QUERY, client=client)
    return [
        {
            "id": lot.id,
            "number": lot.number,
            "address": lot.address,
            "status": derive_lot_status(lot).value,
            "permits": [permit.permit_number for permit in lot.permits],
        }
        for lot in search_lots(aggregate_lots(result.permits, policy), search)
    ]


@app.get("/api/lot-ids")
def lot_ids(client=Depends(socrata_client)):
    return get_lot_ids(client=client)


@app.get("/api/lots/{parcel_number}")
def lot_detail(
    parcel_number: str,
    policy: AggregationPolicy = AggregationPolicy.EARLIEST_PER_CATEGORY,
    client=Depends(socrata_client),
):
    result = fetch_lot_permits(parcel_number, client=client)
    if not result.permits:
        raise HTTPException(status_code=404, detail=f"No permits for parcel {parcel_number}")

    permits = result.permits
    lot = lot_for_parcel(permits, parcel_number, policy)
    status = derive_lot_status(lot) if lot is not None else LotStatus.OTHER
    return {
        "id": parcel_number,
        "number": parcel_number_to_lot_number(parcel_number),
        "address": first_address(permits),
        "status": status.value,
        "permits": [
            {
                **permit.model_dump(mode="json"),
                "timeline": [step.model_dump(mode="json") for step in build_timeline(permit)],
            }
            for permit in permits
        ],
    }
