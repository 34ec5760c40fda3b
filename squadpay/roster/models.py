"""Data models for the roster blueprint."""

from __future__ import annotations

from typing import TypedDict

from squadpay.core.types import FirestoreDocument


class Tournament(FirestoreDocument, total=False):
    """A tournament document in Firestore."""

    name: str


class Participant(FirestoreDocument, total=False):
    """A participant document under tournaments/{id}/participants."""

    name: str
    teamName: str | None
    contact: str | None
    amountDue: float
    amountPaid: float
    status: str
    paymentRef: str | None

    # UI and calculated fields
    remaining: float


class RosterTotals(TypedDict):
    """Aggregate amounts for the loaded participant list."""

    total_fee: float
    total_paid: float
    total_remaining: float


class Reminder(TypedDict):
    """A payment reminder ready to hand to the messaging deep link."""

    phone: str
    message: str
    url: str
