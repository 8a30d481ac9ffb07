from unittest.mock import MagicMock

import pandas as pd
import pytest

from sheet_client import (
    GoogleSheetClient,
    clean_sheet_rows,
    export_rows_to_sheet,
    fetch_published_sheet,
    get_google_creds,
    rows_to_records,
)


def test_rows_to_records_pads_short_rows():
    values = [["Order ID", "STATUS", "City"], ["1", "Delivered"], ["2", "Returned", "Rabat"]]
    assert rows_to_records(values) == [
        {"Order ID": "1", "STATUS": "Delivered", "City": ""},
        {"Order ID": "2", "STATUS": "Returned", "City": "Rabat"},
    ]


def test_rows_to_records_empty():
    assert rows_to_records([]) == []
    assert rows_to_records([["Order ID"]]) == []


def test_clean_sheet_rows():
    rows = [
        {"Order ID": "1"}, {"Order ID": "#REF!"}, {"Order ID": " #REF! "},
        {"Order ID": None, "STATUS": "x"}, {"Order ID": "", "STATUS": "x"},
        {"STATUS": "y"}, {"Order ID": 7}, {"Order ID": "", "STATUS": " "},
    ]
    assert clean_sheet_rows(rows) == [
        {"Order ID": "1"}, {"Order ID": "", "STATUS": "x"}, {"STATUS": "y"}, {"Order ID": 7},
    ]


def test_clean_sheet_rows_reads_order_id_alias():
    rows = [{"Order Id": "1", "STATUS": "Delivered"}, {"Order Id": "#REF!", "STATUS": "Delivered"}]
    assert clean_sheet_rows(rows) == [{"Order Id": "1", "STATUS": "Delivered"}]


def test_fetch_published_sheet_reads_text_cells():
    session = MagicMock()
    session.get.return_value.text = "Order ID,Cod Amount,City\n1,150,Rabat\n#REF!,10,\n2,,Fes\n"
    rows = fetch_published_sheet("https://docs.google.com/spreadsheets/d/x/export?format=csv", session=session)

    assert rows == [
        {"Order ID": "1", "Cod Amount": "150", "City": "Rabat"},
        {"Order ID": "2", "Cod Amount": "", "City": "Fes"},
    ]
    url = session.get.call_args[0][0]
    assert url.startswith("https://docs.google.com/spreadsheets/d/x/export?format=csv&_=")
    assert session.get.call_args[1]["headers"] == {"Cache-Control": "no-cache"}


def test_fetch_rows_from_sheets_api():
    service = MagicMock()
    service.spreadsheets().values().get().execute.return_value = {
        "values": [["Order ID", "STATUS"], ["1", "Delivered"], ["#REF!", "Returned"]],
    }
    client = GoogleSheetClient("sheet-id", service=service)
    assert client.fetch_rows("Orders!A1:Z") == [{"Order ID": "1", "STATUS": "Delivered"}]
    service.spreadsheets().values().get.assert_called_with(spreadsheetId="sheet-id", range="Orders!A1:Z")


def test_fetch_rows_needs_spreadsheet_id():
    with pytest.raises(ValueError):
        GoogleSheetClient(service=MagicMock()).fetch_rows()


def test_export_rows_to_sheet():
    service = MagicMock()
    service.spreadsheets().create().execute.return_value = {
        "spreadsheetId": "new-id",
        "sheets": [{"properties": {"sheetId": 42}}],
    }
    df = pd.DataFrame([{"Product": "TOTAL", "Total Leads": 3}, {"Product": "A", "Total Leads": 3}])

    url = export_rows_to_sheet(service, df, "Stats export")

    assert url == "https://docs.google.com/spreadsheets/d/new-id"
    update_kwargs = service.spreadsheets().values().update.call_args[1]
    assert update_kwargs["range"] == "Stats!A1"
    assert update_kwargs["body"]["values"] == [["Product", "Total Leads"], ["TOTAL", "3"], ["A", "3"]]
    batch = service.spreadsheets().batchUpdate.call_args[1]["body"]["requests"]
    assert batch[0]["repeatCell"]["range"]["sheetId"] == 42
    assert batch[1]["updateSheetProperties"]["properties"]["gridProperties"] == {"frozenRowCount": 1}


def test_creds_need_a_source():
    with pytest.raises(ValueError):
        get_google_creds()
