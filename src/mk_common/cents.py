"""Integer arithmetic utilities for cents-based money.

All prices, amounts, and balances use int (cents). No float, no Decimal.
"""


def line_total(quantity: int, unit_price: int) -> int:
    """Order total = quantity * unit price, both validated."""
    if quantity <= 0:
        raise ValueError(f"Quantity must be positive, got {quantity}")
    if unit_price < 0:
        raise ValueError(f"Unit price must be >= 0, got {unit_price}")
    return quantity * unit_price


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 6500 -> 'R$65.00', -1200 -> '-R$12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-R${abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"R${cents // 100:,}.{cents % 100:02d}"
