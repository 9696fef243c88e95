"""Price allocation used when an order has no priced line items."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PriceShare:
    unit_price: float
    total_price: float


def allocate_proportionally(total_amount: float, quantities: list[int | None]) -> list[PriceShare]:
    """
    Split ``total_amount`` across parts weighted by quantity.

    When every quantity is zero the total is split evenly. Shares are rounded
    to cents and the rounding remainder goes to the last part, so the shares
    always sum to ``total_amount``.

    >>> [s.total_price for s in allocate_proportionally(100, [2, 3, 5])]
    [20.0, 30.0, 50.0]
    """
    if not quantities:
        return []

    qty = [q or 0 for q in quantities]
    total_quantity = sum(qty)

    if total_quantity > 0:
        raw = [total_amount * q / total_quantity for q in qty]
    else:
        raw = [total_amount / len(qty) for _ in qty]

    totals = [round(share, 2) for share in raw]
    totals[-1] = round(totals[-1] + (total_amount - sum(totals)), 2)

    return [
        PriceShare(
            unit_price=round(share / q, 2) if q > 0 else share,
            total_price=share,
        )
        for share, q in zip(totals, qty)
    ]
