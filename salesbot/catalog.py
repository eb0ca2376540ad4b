"""Catalog records and spreadsheet row parsing.

Rows arrive from the products tab as lists of cell strings with a header row on
top. Header cells are matched by synonym so the sheet owner can label columns in
either Chinese or English.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .utils import normalize_header

logger = logging.getLogger("salesbot.catalog")

CODE_KEYS = ["code", "sku", "編號", "代碼", "商品編號"]
NAME_KEYS = ["name", "品名", "書名", "商品名稱", "product name"]
PRICE_KEYS = ["price", "定價", "價格", "售價"]
STOCK_KEYS = ["stock", "庫存", "inventory"]
RESTOCK_KEYS = ["restock_eta", "restock eta", "補貨日", "預計補貨日"]
REMARKS_KEYS = ["remarks", "備註", "note", "notes"]

FIELD_KEYS = {
    "code": CODE_KEYS,
    "name": NAME_KEYS,
    "price": PRICE_KEYS,
    "stock": STOCK_KEYS,
    "restock_eta": RESTOCK_KEYS,
    "remarks": REMARKS_KEYS,
}


@dataclass(frozen=True)
class Product:
    """One catalog row; immutable for the lifetime of a request."""
    code: str
    name: str
    price: float = 0.0
    stock: str = ""
    restock_eta: str = ""
    remarks: str = ""

    @property
    def label(self) -> str:
        """Code and name joined for candidate lists, name only when code is blank."""
        if self.code:
            return f"{self.code}｜{self.name}"
        return self.name


def build_header_index(header: Sequence[Any]) -> Dict[str, int]:
    """Purpose: Map Product field names to column positions using header synonyms.
    Inputs/Outputs: Input is the header row; output maps field name -> column index.
    Side Effects / State: None.
    Dependencies: Uses normalize_header and FIELD_KEYS.
    Failure Modes: Fields without a matching header are left out of the mapping.
    If Removed: Rows cannot be decoded when the sheet reorders columns.
    Testing Notes: Shuffle headers and verify indices follow the labels.
    """
    # First matching synonym wins; exact header match only.
    positions = {normalize_header(cell): index for index, cell in enumerate(header)}
    index: Dict[str, int] = {}
    for field_name, synonyms in FIELD_KEYS.items():
        for synonym in synonyms:
            key = normalize_header(synonym)
            if key in positions:
                index[field_name] = positions[key]
                break
    return index


def _cell(row: Sequence[Any], position: Optional[int]) -> str:
    # Sheets API trims trailing empty cells, so short rows are normal.
    if position is None or position >= len(row):
        return ""
    value = row[position]
    if value is None:
        return ""
    return str(value).strip()


def parse_price(value: str) -> float:
    """Parse a price cell; blanks, thousands separators and junk become 0."""
    cleaned = value.replace(",", "").replace("$", "").strip()
    if not cleaned:
        return 0.0
    try:
        price = float(cleaned)
    except ValueError:
        logger.warning("unparseable price cell=%r, using 0", value)
        return 0.0
    return max(price, 0.0)


def parse_products(rows: Sequence[Sequence[Any]]) -> List[Product]:
    """Purpose: Convert raw sheet values (header + data rows) into Product records.
    Inputs/Outputs: Input is a list of rows; output is a list of Product in sheet order.
    Side Effects / State: Logs skipped rows at debug level.
    Dependencies: Uses build_header_index, _cell, parse_price.
    Failure Modes: Missing header returns []; rows without a name and code are skipped.
    If Removed: The catalog provider has no way to build a snapshot.
    Testing Notes: Validate short rows, blank prices and missing optional columns.
    """
    # Header first, then map each data row through it.
    if not rows:
        return []
    header, *data = rows
    index = build_header_index(header)
    if "name" not in index and "code" not in index:
        logger.warning("products header has no name/code column: %s", list(header))
        return []

    products: List[Product] = []
    for line_no, row in enumerate(data, start=2):
        code = _cell(row, index.get("code"))
        name = _cell(row, index.get("name"))
        if not code and not name:
            logger.debug("skip empty product row=%s", line_no)
            continue
        products.append(
            Product(
                code=code,
                name=name,
                price=parse_price(_cell(row, index.get("price"))),
                stock=_cell(row, index.get("stock")),
                restock_eta=_cell(row, index.get("restock_eta")),
                remarks=_cell(row, index.get("remarks")),
            )
        )
    return products
