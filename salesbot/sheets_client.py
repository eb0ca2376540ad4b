"""Google Sheets access for the product catalog and the order ledger."""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .catalog import Product, parse_products
from .config import Settings
from .errors import SheetsError
from .orders import OrderRecord

logger = logging.getLogger("salesbot.sheets")

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
PRODUCTS_COLUMNS = "A:F"
ORDERS_COLUMNS = "A:I"

# Raised by execute() and credential refresh; MalformedError is also a ValueError.
SHEETS_FAILURES = (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError, ValueError)


class SheetsClient:
    """Thin wrapper around the Sheets v4 values API with a lazily built service."""

    def __init__(self, settings: Settings, service: Optional[Any] = None) -> None:
        """Purpose: Configure the client with spreadsheet id, tab names and credentials.
        Inputs/Outputs: Input is Settings and an optional prebuilt service; no return.
        Side Effects / State: Stores settings; the API service is built on first use.
        Dependencies: Uses google-auth service account credentials and googleapiclient.
        Failure Modes: None at init; credential errors surface on first call as SheetsError.
        If Removed: The catalog and the order ledger are unreachable.
        Testing Notes: Inject a fake service exposing spreadsheets().values().
        """
        # Keep settings; defer credential parsing so the app can boot without them.
        self._settings = settings
        self._service = service

    def _values(self) -> Any:
        if self._service is None:
            self._service = self._build_service()
        return self._service.spreadsheets().values()

    def _build_service(self) -> Any:
        if not self._settings.google_credentials_json:
            raise SheetsError("GOOGLE_CREDENTIALS_JSON is required")
        if not self._settings.sheets_id:
            raise SheetsError("GOOGLE_SHEETS_ID is required")
        try:
            info = json.loads(self._settings.google_credentials_json)
        except json.JSONDecodeError as exc:
            raise SheetsError("GOOGLE_CREDENTIALS_JSON is not valid JSON") from exc
        try:
            credentials = service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
        except (GoogleAuthError, ValueError) as exc:
            raise SheetsError(f"GOOGLE_CREDENTIALS_JSON is not a usable service account: {exc}") from exc
        return build("sheets", "v4", credentials=credentials, cache_discovery=False)

    def fetch_products(self) -> List[Product]:
        """Purpose: Read the products tab and return a fresh catalog snapshot.
        Inputs/Outputs: No inputs; returns Products in sheet order (possibly empty).
        Side Effects / State: One Sheets API read per call; nothing is cached.
        Dependencies: Uses parse_products for header mapping.
        Failure Modes: API or transport errors are raised as SheetsError.
        If Removed: Lookups have no catalog to resolve against.
        Testing Notes: Fake a values().get() response with a header and two rows.
        """
        # Read the fixed column window and hand rows to the parser.
        range_name = f"{self._settings.tab_products}!{PRODUCTS_COLUMNS}"
        try:
            response = self._values().get(spreadsheetId=self._settings.sheets_id, range=range_name).execute()
        except SHEETS_FAILURES as exc:
            raise SheetsError(f"failed to read {range_name}: {exc}") from exc
        rows = response.get("values", [])
        products = parse_products(rows)
        logger.info("catalog range=%s rows=%d products=%d", range_name, len(rows), len(products))
        return products

    def append_order(self, record: OrderRecord) -> None:
        """Purpose: Append one order row to the orders tab.
        Inputs/Outputs: Input is an OrderRecord; no return value.
        Side Effects / State: Writes a row to the spreadsheet.
        Dependencies: Uses OrderRecord.to_row and the values().append() API.
        Failure Modes: API or transport errors are raised as SheetsError.
        If Removed: Orders are confirmed to users but never recorded.
        Testing Notes: Verify the body carries exactly one row with nine cells.
        """
        # USER_ENTERED lets the sheet parse timestamps and numbers.
        range_name = f"{self._settings.tab_orders}!{ORDERS_COLUMNS}"
        try:
            self._values().append(
                spreadsheetId=self._settings.sheets_id,
                range=range_name,
                valueInputOption="USER_ENTERED",
                body={"values": [record.to_row()]},
            ).execute()
        except SHEETS_FAILURES as exc:
            raise SheetsError(f"failed to append order {record.order_id}: {exc}") from exc
        logger.info("order appended order_id=%s code=%s qty=%s", record.order_id, record.product_code, record.quantity)
