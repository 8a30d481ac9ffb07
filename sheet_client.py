"""
Read order rows from Google Sheets and export stats tables back to Sheets.
"""

import os
import time
import pickle
import logging
from io import StringIO
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd
import requests
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from fields import ORDER_ID_FIELDS

logger = logging.getLogger(__name__)

SCOPES = ['https://www.googleapis.com/auth/spreadsheets']
BROKEN_REF = "#REF!"


def get_google_creds(
    service_account_file: Optional[str] = None,
    client_secrets_file: Optional[str] = None,
    token_file: Optional[str] = None,
):
    """Get or refresh Google credentials.

    A service account file wins when given. Otherwise the installed-app flow
    is used and its token cached in `token_file`.
    """
    if service_account_file:
        return service_account.Credentials.from_service_account_file(service_account_file, scopes=SCOPES)

    if not client_secrets_file:
        raise ValueError("A service account file or client secrets file is required")

    creds = None
    if token_file and os.path.exists(token_file):
        with open(token_file, 'rb') as token:
            creds = pickle.load(token)

    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            creds.refresh(Request())
        else:
            flow = InstalledAppFlow.from_client_secrets_file(client_secrets_file, SCOPES)
            creds = flow.run_local_server(port=0)

        if token_file:
            with open(token_file, 'wb') as token:
                pickle.dump(creds, token)

    return creds


def rows_to_records(values: List[List[Any]]) -> List[Dict[str, Any]]:
    """Turn a header row plus data rows into dicts. Short rows are padded with ""."""
    if not values:
        return []
    headers = [str(h).strip() for h in values[0]]
    records = []
    for row in values[1:]:
        padded = list(row) + [""] * (len(headers) - len(row))
        records.append({h: v for h, v in zip(headers, padded) if h})
    return records


def clean_sheet_rows(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Drop rows whose order id is a broken #REF! formula or an explicit null,
    and rows with no values at all. The id is looked up under every alias
    in ORDER_ID_FIELDS; rows without an id column are kept.
    """
    cleaned = []
    for row in rows:
        if not any(str(v).strip() for v in row.values() if v is not None):
            continue
        present = [name for name in ORDER_ID_FIELDS if name in row]
        if present:
            order_id = row[present[0]]
            if order_id is None or str(order_id).strip() == BROKEN_REF:
                continue
        cleaned.append(row)
    dropped = len(rows) - len(cleaned)
    if dropped:
        logger.info("Dropped %d sheet rows without a valid order id", dropped)
    return cleaned


def fetch_published_sheet(url: str, session: Optional[requests.Session] = None) -> List[Dict[str, Any]]:
    """Fetch a published CSV export of a sheet. Every cell is read as text."""
    http = session or requests
    separator = "&" if "?" in url else "?"
    response = http.get(
        f"{url}{separator}_={int(time.time())}",
        allow_redirects=True,
        headers={'Cache-Control': 'no-cache'},
        timeout=30,
    )
    response.raise_for_status()
    df = pd.read_csv(StringIO(response.text), dtype=str, keep_default_na=False)
    return clean_sheet_rows(df.to_dict(orient="records"))


class GoogleSheetClient:
    """Sheets API access for one spreadsheet."""

    def __init__(self, spreadsheet_id: Optional[str] = None, creds=None, service=None):
        self.spreadsheet_id = spreadsheet_id
        self.service = service or build('sheets', 'v4', credentials=creds)

    def fetch_rows(self, range_name: str = "Orders!A1:Z") -> List[Dict[str, Any]]:
        if not self.spreadsheet_id:
            raise ValueError("No spreadsheet id configured")
        result = self.service.spreadsheets().values().get(
            spreadsheetId=self.spreadsheet_id,
            range=range_name,
        ).execute()
        values = result.get('values', [])
        logger.debug("Read %d rows from %s", len(values), range_name)
        return clean_sheet_rows(rows_to_records(values))

    def export_rows(self, df: pd.DataFrame, title: Optional[str] = None, sheet_title: str = "Stats") -> str:
        """Write a table to a new spreadsheet and return its URL."""
        if not title:
            title = f"Order Stats - {datetime.now().strftime('%Y-%m-%d %H:%M')}"
        return export_rows_to_sheet(self.service, df, title, sheet_title)


def export_rows_to_sheet(service, df: pd.DataFrame, title: str, sheet_title: str = "Stats") -> str:
    rows = [list(df.columns)] + df.astype(str).values.tolist()

    spreadsheet = service.spreadsheets().create(body={
        'properties': {'title': title},
        'sheets': [{'properties': {'title': sheet_title}}]
    }).execute()

    spreadsheet_id = spreadsheet['spreadsheetId']
    sheet_id = spreadsheet['sheets'][0]['properties'].get('sheetId', 0) if spreadsheet.get('sheets') else 0

    service.spreadsheets().values().update(
        spreadsheetId=spreadsheet_id,
        range=f'{sheet_title}!A1',
        valueInputOption='RAW',
        body={'values': rows}
    ).execute()

    # Bold, frozen header row
    service.spreadsheets().batchUpdate(
        spreadsheetId=spreadsheet_id,
        body={
            'requests': [
                {
                    'repeatCell': {
                        'range': {'sheetId': sheet_id, 'startRowIndex': 0, 'endRowIndex': 1},
                        'cell': {'userEnteredFormat': {'textFormat': {'bold': True}}},
                        'fields': 'userEnteredFormat.textFormat',
                    }
                },
                {
                    'updateSheetProperties': {
                        'properties': {'sheetId': sheet_id, 'gridProperties': {'frozenRowCount': 1}},
                        'fields': 'gridProperties.frozenRowCount',
                    }
                },
            ]
        }
    ).execute()

    logger.info("Exported %d rows to spreadsheet %s", len(rows) - 1, spreadsheet_id)
    return f"https://docs.google.com/spreadsheets/d/{spreadsheet_id}"
