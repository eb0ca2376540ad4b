from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Union

from .catalog import Product
from .models import UserProfile

ORDER_STATUS_NEW = "NEW"


@dataclass(frozen=True)
class OrderRecord:
    """One row of the order ledger, in sheet column order."""
    timestamp: str
    order_id: str
    user_id: str
    display_name: str
    product_code: str
    product_name: str
    quantity: int
    price: float
    status: str = ORDER_STATUS_NEW

    def to_row(self) -> List[Union[str, int, float]]:
        return [
            self.timestamp,
            self.order_id,
            self.user_id,
            self.display_name,
            self.product_code,
            self.product_name,
            self.quantity,
            self.price,
            self.status,
        ]


def new_order_id(now: datetime, rng: Optional[random.Random] = None) -> str:
    """Order id like ORD-20261019-4821; the suffix is random in 1000-9999."""
    suffix = (rng or random).randint(1000, 9999)
    return f"ORD-{now:%Y%m%d}-{suffix}"


def build_order(
    product: Product,
    quantity: int,
    profile: UserProfile,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> OrderRecord:
    """Purpose: Assemble a ledger row for a resolved product and validated quantity.
    Inputs/Outputs: Inputs are Product, quantity, sender profile and optional clock/rng;
        output is an OrderRecord.
    Side Effects / State: None; callers append the record themselves.
    Dependencies: Uses new_order_id.
    Failure Modes: Non-positive quantity raises ValueError (the handler checks first).
    If Removed: Orders cannot be written to the ledger.
    Testing Notes: Pass a fixed datetime and seeded Random for a stable order id.
    """
    # Quantity is validated upstream; keep the invariant here too.
    if quantity <= 0:
        raise ValueError("quantity must be positive")
    moment = now or datetime.now()
    return OrderRecord(
        timestamp=f"{moment:%Y-%m-%d %H:%M:%S}",
        order_id=new_order_id(moment, rng),
        user_id=profile.user_id,
        display_name=profile.display_name,
        product_code=product.code,
        product_name=product.name,
        quantity=quantity,
        price=product.price,
    )
