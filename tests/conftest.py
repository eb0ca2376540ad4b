from __future__ import annotations

from typing import List, Optional

import pytest

from salesbot.catalog import Product
from salesbot.errors import SheetsError
from salesbot.models import UserProfile
from salesbot.orders import OrderRecord


class FakeSheets:
    """In-memory catalog provider and order ledger."""

    def __init__(self, products: List[Product], fail_fetch: bool = False, fail_append: bool = False) -> None:
        self.products = products
        self.fail_fetch = fail_fetch
        self.fail_append = fail_append
        self.orders: List[OrderRecord] = []
        self.fetch_count = 0

    def fetch_products(self) -> List[Product]:
        self.fetch_count += 1
        if self.fail_fetch:
            raise SheetsError("sheet unavailable")
        return list(self.products)

    def append_order(self, record: OrderRecord) -> None:
        if self.fail_append:
            raise SheetsError("append failed")
        self.orders.append(record)


def fake_profile(user_id: Optional[str]) -> UserProfile:
    return UserProfile(user_id=user_id or "", display_name="小明")


@pytest.fixture
def catalog() -> List[Product]:
    return [
        Product(code="A123", name="Fish Tank Kit", price=1200, stock="5"),
        Product(code="B1", name="Calendar", price=350, stock="有"),
        Product(code="B2", name="Calendar Deluxe", price=520, stock="無", restock_eta="2026-11-01"),
        Product(code="C1", name="Curious Frog", price=280, stock="調貨中"),
        Product(code="", name="好奇青蛙繪本", price=300, stock=""),
    ]


@pytest.fixture
def sheets(catalog: List[Product]) -> FakeSheets:
    return FakeSheets(catalog)
