"""Roster-related utility functions."""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING, Any, Iterable
from urllib.parse import quote

from squadpay.core.constants import (
    MIN_PHONE_DIGITS,
    UNNAMED_TOURNAMENT,
    WHATSAPP_BASE_URL,
)
from squadpay.errors import ValidationError
from squadpay.payments import compute_status, remaining

from .models import Participant, Reminder, RosterTotals, Tournament

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot

_NON_DIGITS = re.compile(r"\D")


def parse_amount(raw: Any) -> float | int | None:
    """Parse a form value into a number, or None if it is not one.

    Integral values come back as int so they display as ``1000`` rather
    than ``1000.0``.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    if math.isnan(value) or math.isinf(value):
        return None
    return int(value) if value.is_integer() else value


def clean_optional(value: str | None) -> str | None:
    """Trim a free-text field, storing blanks as absent."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def format_amount(value: float | int) -> str:
    """Render an amount without a trailing ``.0``."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value}"


def tournament_from_doc(doc: DocumentSnapshot) -> Tournament:
    """Build a Tournament from a Firestore snapshot."""
    data = doc.to_dict() or {}
    return {
        "id": doc.id,
        "name": data.get("name") or UNNAMED_TOURNAMENT,
        "createdAt": data.get("createdAt"),
    }


def participant_from_doc(doc: DocumentSnapshot) -> Participant:
    """Build a Participant from a Firestore snapshot.

    Status is recomputed from the amounts so a stale stored value never
    reaches the page.
    """
    data = doc.to_dict() or {}
    amount_due = data.get("amountDue") or 0
    amount_paid = data.get("amountPaid") or 0
    status = compute_status(amount_due, amount_paid)
    return {
        "id": doc.id,
        "name": data.get("name") or "",
        "teamName": data.get("teamName") or None,
        "contact": data.get("contact") or None,
        "amountDue": amount_due,
        "amountPaid": amount_paid,
        "status": status,
        "remaining": remaining(amount_due, amount_paid),
        "paymentRef": data.get("paymentRef") or None,
        "createdAt": data.get("createdAt"),
    }


def compute_totals(participants: Iterable[Participant]) -> RosterTotals:
    """Sum fees and payments across a roster."""
    total_fee: float = 0
    total_paid: float = 0
    for p in participants:
        total_fee += p.get("amountDue") or 0
        total_paid += p.get("amountPaid") or 0
    return {
        "total_fee": total_fee,
        "total_paid": total_paid,
        "total_remaining": total_fee - total_paid,
    }


def validate_tournament_name(name: str | None) -> str:
    """Return the trimmed tournament name or raise ValidationError."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Tournament name is required")
    return name


def validate_participant(
    name: str | None,
    fee: Any,
    team_name: str | None = None,
    contact: str | None = None,
) -> dict[str, Any]:
    """Check the add-participant inputs and return the cleaned fields."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required")

    fee_value = parse_amount(fee)
    if fee_value is None or fee_value <= 0:
        raise ValidationError("Fee must be a positive number")

    return {
        "name": name,
        "teamName": clean_optional(team_name),
        "contact": clean_optional(contact),
        "amountDue": fee_value,
    }


def validate_paid_amount(raw: Any) -> float | int:
    """Parse a paid amount, which must be zero or more."""
    value = parse_amount(raw)
    if value is None or value < 0:
        raise ValidationError("Paid amount must be 0 or a positive number")
    return value


def sanitize_phone(contact: str | None) -> str:
    """Strip everything but digits and require a plausible phone number."""
    phone = _NON_DIGITS.sub("", contact or "")
    if len(phone) < MIN_PHONE_DIGITS:
        raise ValidationError("Invalid phone number")
    return phone


def display_name(participant: Participant) -> str:
    """Participant name with the team in parentheses when there is one."""
    if participant.get("teamName"):
        return f"{participant['name']} ({participant['teamName']})"
    return participant.get("name") or ""


def compose_reminder(
    participant: Participant,
    currency: str = "₹",
    country_code: str = "",
    brand: str = "SquadPay",
) -> Reminder:
    """Build the WhatsApp reminder for a participant's outstanding fee.

    A bare ten digit number is treated as local and gets ``country_code``
    prefixed; longer numbers are assumed to carry their own.
    """
    phone = sanitize_phone(participant.get("contact"))
    if len(phone) == MIN_PHONE_DIGITS and country_code:
        phone = f"{country_code}{phone}"

    fee = participant.get("amountDue") or 0
    paid = participant.get("amountPaid") or 0
    message = (
        f"Hello {display_name(participant)},\n\n"
        "Your tournament fee is pending.\n"
        f"Fee: {currency}{format_amount(fee)}\n"
        f"Paid: {currency}{format_amount(paid)}\n"
        f"Remaining: {currency}{format_amount(remaining(fee, paid))}\n\n"
        "Please clear the payment at the earliest.\n\n"
        f"- {brand}"
    )
    return {
        "phone": phone,
        "message": message,
        "url": f"{WHATSAPP_BASE_URL}/{phone}?text={quote(message, safe='')}",
    }
