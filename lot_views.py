"""
Presentation helpers shared by the dashboard, the API and the CLI.
Nothing here talks to the network.
"""
from datetime import datetime
from html import escape
from typing import Iterable, Optional, Union

import pandas as pd

from color_bag import ColorBag
from lot_status import MILESTONES, build_timeline, derive_lot_status
from permit_models import Lot, Permit, StepState

# Chakra 500 shades, so the palette names render the same as on the old site
COLOR_HEX = {
    "red": "#E53E3E",
    "orange": "#DD6B20",
    "yellow": "#D69E2E",
    "green": "#38A169",
    "teal": "#319795",
    "blue": "#3182CE",
    "cyan": "#00B5D8",
    "purple": "#805AD5",
    "pink": "#D53F8C",
    "linkedin": "#0077B5",
    "facebook": "#385898",
    "whatsapp": "#22C35E",
    "twitter": "#1DA1F2",
    "telegram": "#0088CC",
    "gray": "#718096",
}

STEP_ICONS = {
    StepState.DONE: "✅",
    StepState.CURRENT: "🔶",
    StepState.UPCOMING: "⚪",
}

LOT_TABLE_COLUMNS = ["Lot", "Address", "Status", "Permits", "Parcel"]

# Both review-started spellings are shown separately in the detail table
DETAIL_DATE_LABELS = {
    "review_started_including": "Review started (including)",
    "review_started_date_excluding": "Review started (excluding)",
}


def format_date(value: Optional[datetime]) -> Optional[str]:
    """datetime(2023, 3, 7) -> 'March 7, 2023'."""
    if value is None:
        return None
    return f"{value:%B} {value.day}, {value.year}"


def format_currency(amount: Union[str, int, float, None]) -> Optional[str]:
    """'277800' -> '$277,800.00'. Blank or non-numeric amounts give None."""
    if amount is None or (isinstance(amount, str) and not amount.strip()):
        return None
    try:
        value = float(str(amount).replace("$", "").replace(",", ""))
    except ValueError:
        return None
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def lot_table_frame(lots: Iterable[Lot]) -> pd.DataFrame:
    rows = []
    for lot in lots:
        rows.append({
            "Lot": lot.number,
            "Address": lot.address or "",
            "Status": derive_lot_status(lot).value,
            "Permits": ", ".join(p.application_type for p in lot.permits),
            "Parcel": lot.id,
        })
    return pd.DataFrame(rows, columns=LOT_TABLE_COLUMNS)


def permit_detail_rows(permit: Permit) -> list[tuple[str, str]]:
    """Label/value pairs for the permit detail table. Empty values are left out."""
    rows = [
        ("Application type", permit.application_type or None),
        ("Work type", permit.worktype),
        ("Contractor name", permit.contractor_name),
        ("Contractor address", permit.contractor_address),
        ("Contractor phone number", permit.contractor_phone_number),
        ("Estimated cost", format_currency(permit.estimated_cost)),
        ("Parcel owner name", permit.parcel_owner_name),
        ("Property owner name", permit.property_owner_name),
    ]
    for milestone in MILESTONES:
        label = DETAIL_DATE_LABELS.get(milestone.field, milestone.label)
        rows.append((label, format_date(getattr(permit, milestone.field))))
        if milestone.field == "issue_permit_date":
            rows.append(("PDOX batch", format_date(permit.pdoxbatch_date)))
    return [(label, value) for label, value in rows if value is not None]


def timeline_rows(permit: Permit) -> list[dict]:
    return [
        {
            "": STEP_ICONS[step.state],
            "Step": step.label,
            "Date": format_date(step.reached_at) or "",
            "State": step.state.value,
        }
        for step in build_timeline(permit)
    ]


def badge_html(label: str, color_bag: ColorBag) -> str:
    color = color_bag.reserve_color_for_id(label)
    hex_color = COLOR_HEX.get(color, COLOR_HEX["gray"])
    return (
        f'<span style="background-color:{hex_color};color:white;border-radius:4px;'
        f'padding:1px 6px;font-size:0.75em;font-weight:700;text-transform:uppercase;">'
        f'{escape(label)}</span>'
    )
