"""Synthetic order data for accounts that can connect but lack the Orders role."""

import random
import string
from datetime import date, timedelta

from .models import OrderRecord

DEMO_MESSAGE = "Using demo data - Orders API requires additional approval"
DEMO_STATUSES = ("Shipped", "Pending", "Delivered", "Cancelled")


def generate_demo_orders(
    currency: str = "INR",
    window_days: int = 30,
    today: date | None = None,
    rng: random.Random | None = None,
) -> list[OrderRecord]:
    """Return 5-29 plausible orders dated within the window, newest first."""
    rng = rng or random.Random()
    today = today or date.today()
    prefix = currency[:2].upper()
    alphabet = string.ascii_uppercase + string.digits

    orders = []
    for _ in range(rng.randint(5, 29)):
        suffix = "".join(rng.choice(alphabet) for _ in range(9))
        orders.append(
            OrderRecord(
                order_id=f"{prefix}-{suffix}",
                order_date=today - timedelta(days=rng.randrange(max(window_days, 1))),
                status=rng.choice(DEMO_STATUSES),
                amount=f"{currency} {rng.uniform(100, 5100):.2f}",
            )
        )

    orders.sort(key=lambda o: o.order_date, reverse=True)
    return orders
