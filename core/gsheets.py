import json
import logging

import gspread
import streamlit as st
from google.oauth2.service_account import Credentials

from utils.config import GOOGLE_SCOPES

logger = logging.getLogger(__name__)


def load_service_account_info():
    """Service-account dict from secrets (accepts a JSON string or a TOML table)."""
    creds_entry = st.secrets["connections"]["gsheets"]["service_account"]
    if isinstance(creds_entry, str):
        return json.loads(creds_entry, strict=False)
    return dict(creds_entry)


def get_credentials(scopes=None):
    """google-auth credentials for Drive / export calls."""
    return Credentials.from_service_account_info(
        load_service_account_info(),
        scopes=scopes or GOOGLE_SCOPES,
    )


@st.cache_resource
def get_client():
    """Initialize gspread client from secrets (Cached)."""
    try:
        return gspread.service_account_from_dict(load_service_account_info())
    except Exception as e:
        logger.error(f"gspread init failed: {e}")
        return None


def get_spreadsheet_id():
    return st.secrets["connections"]["gsheets"]["spreadsheet"]


def open_worksheet(spreadsheet_id, worksheet_name, gc=None):
    """Open a specific worksheet. Returns None when the sheet cannot be opened."""
    gc = gc or get_client()
    if not gc:
        return None
    try:
        sh = gc.open_by_key(spreadsheet_id)
        return sh.worksheet(worksheet_name)
    except Exception as e:
        logger.error(f"Cannot open sheet '{worksheet_name}': {e}")
        return None


def append_raw_row(worksheet, row):
    """
    Append one row exactly as given.

    RAW keeps ids and order numbers as typed (no leading-zero loss, no
    date/number coercion by Sheets).
    """
    worksheet.append_row(row, value_input_option="RAW")
