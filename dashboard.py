"""
The Streamlit dashboard: a searchable table of Summerdale Park lots and a per-lot detail page.

Run with `streamlit run dashboard.py`. The detail page is addressed by parcel number: `?lot=<parcel_number>`.
"""
import streamlit as st
import streamlit.components.v1 as components
import pandas as pd
import altair as alt

from color_bag import ColorBag
from ingest_orlando import LOT_QUERY, CancelToken, fetch_lot_permits, get_lot_ids, load_permits
from lot_aggregator import (
    AggregationPolicy,
    aggregate_lots,
    first_address,
    lot_for_parcel,
    parcel_number_to_lot_number,
    search_lots,
)
from lot_status import derive_lot_status
from permit_models import LotStatus
from lot_views import badge_html, lot_table_frame, permit_detail_rows, timeline_rows

# --- 1. PAGE CONFIG ---
st.set_page_config(
    page_title="Summerdale Park building status",
    page_icon="🏗️",
    layout="wide",
)

SEARCH_LABEL = "Search lots"
LOT_POLICY = AggregationPolicy.EARLIEST_PER_CATEGORY

# Cmd/Ctrl+K focuses the search box
SEARCH_SHORTCUT = f"""
<script>
const doc = window.parent.document;
if (!doc.__lotSearchShortcut) {{
    doc.__lotSearchShortcut = true;
    doc.addEventListener('keydown', (event) => {{
        if ((event.metaKey || event.ctrlKey) && event.key.toLowerCase() === 'k') {{
            const input = doc.querySelector('input[aria-label="{SEARCH_LABEL}"]');
            if (input) {{
                event.preventDefault();
                input.focus();
            }}
        }}
    }});
}}
</script>
"""


# --- 2. VIEW LIFECYCLE ---
def mount_view(view_key):
    """
    Returns the (CancelToken, ColorBag) of the current view, creating fresh ones when the
    user switched views. The previous view's token is cancelled and its data dropped.
    """
    state = st.session_state
    if state.get("view_key") != view_key:
        previous = state.get("cancel_token")
        if previous is not None:
            previous.cancel()
        state["view_key"] = view_key
        state["cancel_token"] = CancelToken()
        state["color_bag"] = ColorBag()
        state.pop("load_result", None)
        state.pop("lot_ids", None)
    return state["cancel_token"], state["color_bag"]


def load_once(loader):
    """Fetches once per view mount; reruns inside the same view reuse the result."""
    if "load_result" not in st.session_state:
        with st.spinner("Fetching permits from the City of Orlando..."):
            st.session_state["load_result"] = loader()
    return st.session_state["load_result"]


def render_lot_picker():
    """Sidebar shortcut to every lot that has a new building permit."""
    if "lot_ids" not in st.session_state:
        st.session_state["lot_ids"] = get_lot_ids()
    lot_ids = st.session_state["lot_ids"]
    if not lot_ids:
        return
    choice = st.sidebar.selectbox(
        "Jump to lot",
        [None] + lot_ids,
        format_func=lambda parcel: "Choose a lot" if parcel is None else f"Lot {parcel_number_to_lot_number(parcel)} ({parcel})",
    )
    if choice:
        st.query_params["lot"] = choice
        st.rerun()


# --- 3. INDEX VIEW ---
def render_index():
    cancel_token, _ = mount_view("index")

    st.title("Explore status updates for the Summerdale community")
    st.markdown("A status page to help Summerdale Park home owners stay up to date with their homes.")

    search = st.text_input(SEARCH_LABEL, placeholder="Search for a lot number or address  (⌘/Ctrl + K)")
    components.html(SEARCH_SHORTCUT, height=0)
    render_lot_picker()

    result = load_once(lambda: load_permits(LOT_QUERY, cancel_token=cancel_token))
    lots = search_lots(aggregate_lots(result.permits, LOT_POLICY), search)

    if not lots:
        st.warning("No lots to show.")
        return

    df = lot_table_frame(lots)
    df["Parcel"] = "?lot=" + df["Parcel"]

    c_table, c_chart = st.columns([3, 1])
    with c_table:
        st.dataframe(
            df,
            column_config={
                "Lot": st.column_config.NumberColumn("Lot #", format="%d"),
                "Parcel": st.column_config.LinkColumn("Details", display_text=r"\?lot=(.*)"),
            },
            hide_index=True,
            use_container_width=True,
        )
    with c_chart:
        st.markdown("#### Status mix")
        pie_chart = alt.Chart(df).mark_arc(innerRadius=40).encode(
            theta=alt.Theta("count()", stack=True),
            color=alt.Color("Status", legend=alt.Legend(title="Status")),
            tooltip=["Status", "count()"],
        ).properties(height=300)
        st.altair_chart(pie_chart, use_container_width=True)


# --- 4. LOT DETAIL VIEW ---
def render_lot(parcel_number):
    cancel_token, color_bag = mount_view(f"lot:{parcel_number}")

    st.markdown("[← All lots](./)")
    result = load_once(lambda: fetch_lot_permits(parcel_number, cancel_token=cancel_token))
    permits = result.permits

    st.markdown(f"**LOT #:** {parcel_number_to_lot_number(parcel_number)}")
    address = first_address(permits)
    if address is not None:
        st.markdown(f"**Address:** {address}")

    if not permits:
        st.warning("No permits found for this lot.")
        return

    lot = lot_for_parcel(permits, parcel_number, LOT_POLICY)
    status = derive_lot_status(lot) if lot is not None else LotStatus.OTHER
    st.markdown(f"**Status:** {status.value}")
    st.markdown("**Permits:**")

    for permit in permits:
        with st.expander(permit.permit_number):
            st.markdown(badge_html(permit.application_type, color_bag), unsafe_allow_html=True)
            st.dataframe(pd.DataFrame(timeline_rows(permit)), hide_index=True, use_container_width=True)
            details = pd.DataFrame(permit_detail_rows(permit), columns=["Field", "Value"])
            st.table(details.set_index("Field"))
            st.json(permit.model_dump(mode="json"), expanded=False)


def main():
    parcel_number = st.query_params.get("lot")
    if parcel_number:
        render_lot(parcel_number)
    else:
        render_index()

    st.markdown("---")
    st.caption("Created by Agnel Nieves, Fabio Costa and Bruno Albuquerque")


if __name__ == "__main__":
    main()
