"""Common utilities for tests."""

from __future__ import annotations

import datetime
from typing import Any
from unittest.mock import MagicMock

SERVER_TIMESTAMP = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)

ORGANIZER_ID = "organizer1"
ORGANIZER_EMAIL = "organizer@example.com"


def mock_firestore_module(db: Any) -> MagicMock:
    """Stand-in for firebase_admin.firestore backed by a MockFirestore."""
    module = MagicMock()
    module.client.return_value = db
    module.SERVER_TIMESTAMP = SERVER_TIMESTAMP
    return module


def seed_tournament(
    db: Any, tournament_id: str, name: str, day: int = 1
) -> Any:
    """Create a tournament document. Seed tournaments before their participants."""
    ref = db.collection("tournaments").document(tournament_id)
    ref.set(
        {
            "name": name,
            "createdAt": datetime.datetime(2024, 5, day, tzinfo=datetime.timezone.utc),
        }
    )
    return ref


def seed_participant(
    db: Any,
    tournament_id: str,
    participant_id: str,
    minute: int = 0,
    **fields: Any,
) -> Any:
    """Create a participant document with sensible defaults."""
    data = {
        "name": "Player",
        "teamName": None,
        "contact": None,
        "amountDue": 1000,
        "amountPaid": 0,
        "status": "pending",
        "createdAt": datetime.datetime(
            2024, 5, 1, 10, minute, tzinfo=datetime.timezone.utc
        ),
    }
    data.update(fields)
    ref = (
        db.collection("tournaments")
        .document(tournament_id)
        .collection("participants")
        .document(participant_id)
    )
    ref.set(data)
    return ref


def sign_in(client: Any) -> None:
    """Put an authenticated organizer in the test client's session."""
    with client.session_transaction() as sess:
        sess["user_id"] = ORGANIZER_ID
        sess["email"] = ORGANIZER_EMAIL
        sess["auth_state"] = "authenticated"
