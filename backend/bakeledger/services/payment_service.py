# Overview: Service-layer operations for payment splits; encapsulates business logic and database work.

"""
Payment Split

WHY: A worker settles the day with cash, online transfer, or both. Whichever
field was typed last is the single source of truth; the other fills in the
rest of the day's amount.

- other = max(total_amount - typed, 0)
- remaining = total_due - cash - online (negative means overpaid, no clamp)
"""

from __future__ import annotations

from dataclasses import dataclass

from ..validation import ValidationError, coerce_number


# =============================================================================
# TENDER TYPES (CONSTANTS)
# =============================================================================

TENDER_CASH = "cash"
TENDER_ONLINE = "online"


@dataclass(frozen=True)
class PaymentSplit:
    cash: float
    online: float
    total_due: float
    remaining_due: float

    def to_dict(self) -> dict:
        return {
            "cash": self.cash,
            "online": self.online,
            "total_due": self.total_due,
            "remaining_due": self.remaining_due,
        }


def total_due(previous_balance, total_amount) -> float:
    return coerce_number(previous_balance, "previous_balance", default=0) + coerce_number(
        total_amount, "total_amount", default=0
    )


def split_payment(total_amount, total_due, cash=None, online=None) -> PaymentSplit:
    """
    Derive the cash/online split from the field that was just typed.

    Pass exactly one of cash or online.

    Raises:
        ValidationError: neither or both given, or a non-numeric value
    """
    if (cash is None) == (online is None):
        raise ValidationError("Pass exactly one of cash or online")

    amount = coerce_number(total_amount, "total_amount", default=0)
    due = coerce_number(total_due, "total_due", default=0)

    if cash is not None:
        cash_value = coerce_number(cash, TENDER_CASH, default=0)
        online_value = max(amount - cash_value, 0.0)
    else:
        online_value = coerce_number(online, TENDER_ONLINE, default=0)
        cash_value = max(amount - online_value, 0.0)

    return PaymentSplit(
        cash=cash_value,
        online=online_value,
        total_due=due,
        remaining_due=due - cash_value - online_value,
    )
