"""Payment status derivation."""

from __future__ import annotations

PENDING = "pending"
PARTIAL = "partial"
PAID = "paid"

STATUSES = (PENDING, PARTIAL, PAID)

STATUS_LABELS = {
    PAID: "PAID",
    PARTIAL: "PARTIAL",
    PENDING: "PENDING",
}


def compute_status(fee: float, paid: float) -> str:
    """Classify a participant's payment.

    Anything at or below zero is pending, anything covering the fee
    (including overpayment) is paid, the rest is partial.
    """
    if paid <= 0:
        return PENDING
    if paid >= fee:
        return PAID
    return PARTIAL


def remaining(fee: float, paid: float) -> float:
    """Return the outstanding balance. Negative on overpayment."""
    return fee - paid
