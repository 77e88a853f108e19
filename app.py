# app.py
"""
DebtSentry Aged Debt Dashboard - Main Entry Point

Version: 1.0.0
"""

import logging

import pandas as pd
import streamlit as st

from debtsentry.aged_debt import AgedDebtError, AgedDebtService, AgedDebtFilters
from debtsentry.aged_debt.constants import (
    ADID_ORDER,
    AGING_BUCKETS,
    BUSINESS_AREA_NAMES,
    SMER_SEGMENT_ORDER,
)
from debtsentry.aged_debt.listing import scoped_cursor
from debtsentry.config import config
from debtsentry.db import check_db_connection

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ==================== PAGE CONFIGURATION ====================

APP_NAME = "Aged Debt"
APP_ICON = "💰"
APP_VERSION = "1.0.0"

CACHE_TTL_SECONDS = config.get_app_setting("CACHE_TTL_SECONDS", 300)

DIMENSIONS = ["Station", "AccountClass", "ADID", "Staff", "SmerSegment"]

st.set_page_config(
    page_title=f"{APP_NAME} - DebtSentry",
    page_icon=APP_ICON,
    layout="wide",
    initial_sidebar_state="expanded"
)


# ==================== CACHED SERVICE CALLS ====================

@st.cache_resource
def get_service() -> AgedDebtService:
    return AgedDebtService()


@st.cache_data(ttl=CACHE_TTL_SECONDS)
def load_rollup(request: dict, dimension: str) -> dict:
    return get_service().aggregate(request, dimension)


@st.cache_data(ttl=CACHE_TTL_SECONDS)
def load_summary_cards(dataset_id: str) -> dict:
    return get_service().summary_cards(dataset_id)


@st.cache_data(ttl=CACHE_TTL_SECONDS)
def load_detail_page(request: dict, cursor: str = None) -> dict:
    return get_service().list_detailed(request, cursor=cursor)


# ==================== SIDEBAR ====================

def render_sidebar(datasets) -> dict:
    """Collect the request dict from sidebar widgets."""
    with st.sidebar:
        st.header("🔍 Filters")

        dataset_id = st.selectbox("Dataset", datasets)
        view = st.radio("View", ["AgedDebt", "TradeReceivable"], horizontal=True)

        account_class_type = st.selectbox("Account class type", ["ALL", "GOVERNMENT", "NON_GOVERNMENT"])
        mit_type = st.selectbox("MIT", ["ALL", "MIT", "NON_MIT"])

        business_areas = st.multiselect(
            "Business areas",
            options=list(BUSINESS_AREA_NAMES),
            format_func=lambda code: f"{code} - {BUSINESS_AREA_NAMES[code]}",
        )
        adids = st.multiselect("ADID", options=list(ADID_ORDER))
        balance = st.selectbox("Balance", ["All", "Positive", "Negative", "Zero"])
        aging = st.selectbox("Months outstanding", ["All", *AGING_BUCKETS])
        segments = st.multiselect("SMER segment", options=[*SMER_SEGMENT_ORDER[:-1], "Blanks"])

        col1, col2 = st.columns(2)
        with col1:
            range_min = st.text_input("Min outstanding", "")
        with col2:
            range_max = st.text_input("Max outstanding", "")

    request = {
        'datasetId': dataset_id,
        'view': view,
        'accountClassType': account_class_type,
        'mitType': mit_type,
        'businessAreas': business_areas,
        'adids': adids,
        'balanceSign': None if balance == "All" else balance,
        'agingBucket': None if aging == "All" else aging,
        'smerSegments': segments,
    }
    if range_min or range_max:
        request['outstandingRange'] = {'min': range_min or None, 'max': range_max or None}
    return request


# ==================== MAIN ====================

def main():
    st.title(f"{APP_ICON} {APP_NAME}")

    if config.get_db_config()['url']:
        db_ok, db_error = check_db_connection()
        if not db_ok:
            st.warning(f"🔌 SQL ledger unavailable: {db_error}")

    service = get_service()
    datasets = service.registry.list_datasets()
    if not datasets:
        st.info(f"📂 No datasets found in {service.registry.data_dir}")
        return

    request = render_sidebar(datasets)
    dimension = st.radio("Group by", DIMENSIONS, horizontal=True)

    try:
        filters = AgedDebtFilters.parse_filters(request)
        st.caption(AgedDebtFilters.get_filter_summary(filters, dict(service.catalog.business_area_names)))

        cards = load_summary_cards(request['datasetId'])
        trade = cards['tradeReceivable']
        col1, col2, col3 = st.columns(3)
        col1.metric("Total outstanding", f"RM{trade['totalOutstandingAmount']:,.2f}")
        col2.metric("Accounts", f"{trade['numberOfAccounts']:,}")
        col3.metric("Total trade receivable", f"RM{trade['totalTradeReceivable']:,.2f}")

        response = load_rollup(request, dimension)
        st.subheader(f"By {dimension}")
        st.dataframe(pd.DataFrame(response['rows']), use_container_width=True, hide_index=True)

        st.subheader("Business area totals")
        st.dataframe(pd.DataFrame(response['parentTotals']), use_container_width=True, hide_index=True)
        st.json(response['grandTotal'])

        with st.expander("📋 Account details"):
            cursor = scoped_cursor(st.session_state, request)
            page = load_detail_page(request, cursor)
            st.dataframe(pd.DataFrame(page['items']), use_container_width=True, hide_index=True)
            if page['pagination']['hasMore'] and st.button("Next page"):
                st.session_state['detail_cursor'] = page['pagination']['nextCursor']
                st.rerun()

    except AgedDebtError as e:
        logger.error(f"Request failed: {e}")
        st.error(f"⚠️ {e}")

    st.caption(f"DebtSentry v{APP_VERSION}")


if __name__ == "__main__":
    main()
