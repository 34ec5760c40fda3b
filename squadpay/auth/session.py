"""Organizer sign-in state kept in the Flask session."""

from __future__ import annotations

from typing import Any, Callable, MutableMapping, TypedDict

from firebase_admin import auth
from flask import current_app, session

from squadpay.errors import AppError, AuthenticationError

UNAUTHENTICATED = "unauthenticated"
AUTHENTICATING = "authenticating"
AUTHENTICATED = "authenticated"
SIGNING_OUT = "signing_out"

TRANSITIONS = {
    UNAUTHENTICATED: {AUTHENTICATING},
    AUTHENTICATING: {AUTHENTICATED, UNAUTHENTICATED},
    AUTHENTICATED: {SIGNING_OUT},
    SIGNING_OUT: {UNAUTHENTICATED},
}

STATE_KEY = "auth_state"


class Identity(TypedDict):
    """The signed-in organizer."""

    uid: str
    email: str | None


IdentityListener = Callable[["Identity | None"], None]


class IdentitySession:
    """Sign-in state machine for one browser session.

    Only the ``authenticated`` state exposes an identity; every
    data-bearing route checks :attr:`is_authenticated` first.
    """

    def __init__(
        self,
        store: MutableMapping[str, Any] | None = None,
        verify_token: Callable[[str], dict[str, Any]] | None = None,
    ) -> None:
        self._store = session if store is None else store
        self._verify_token = verify_token or auth.verify_id_token
        self._listeners: list[IdentityListener] = []

    @property
    def state(self) -> str:
        return self._store.get(STATE_KEY, UNAUTHENTICATED)

    @property
    def is_authenticated(self) -> bool:
        return self.state == AUTHENTICATED and "user_id" in self._store

    @property
    def identity(self) -> Identity | None:
        if not self.is_authenticated:
            return None
        return {"uid": self._store["user_id"], "email": self._store.get("email")}

    def subscribe(self, on_change: IdentityListener) -> Callable[[], None]:
        """Call ``on_change`` with the identity (or None) after every sign-in or sign-out."""
        self._listeners.append(on_change)

        def unsubscribe() -> None:
            if on_change in self._listeners:
                self._listeners.remove(on_change)

        return unsubscribe

    def _move(self, target: str) -> None:
        current = self.state
        if target not in TRANSITIONS[current]:
            raise AppError(f"Cannot go from {current} to {target}.", 409)
        self._store[STATE_KEY] = target

    def _notify(self) -> None:
        identity = self.identity
        for listener in list(self._listeners):
            listener(identity)

    def sign_in(self, id_token: str | None) -> Identity:
        """Verify a Firebase ID token and start an authenticated session."""
        if self.state == AUTHENTICATED:
            self.sign_out()

        self._move(AUTHENTICATING)
        try:
            if not id_token:
                raise ValueError("Missing ID token.")
            decoded = self._verify_token(id_token)
        except Exception as e:
            current_app.logger.error(f"Error during session login: {e}")
            self._move(UNAUTHENTICATED)
            raise AuthenticationError() from e

        self._store["user_id"] = decoded["uid"]
        self._store["email"] = decoded.get("email")
        self._move(AUTHENTICATED)
        self._notify()
        return {"uid": decoded["uid"], "email": decoded.get("email")}

    def sign_out(self) -> None:
        """End the session. Signing out while signed out is a no-op."""
        if self.state != AUTHENTICATED:
            self._store.pop("user_id", None)
            self._store.pop("email", None)
            self._store[STATE_KEY] = UNAUTHENTICATED
            return
        self._move(SIGNING_OUT)
        self._store.pop("user_id", None)
        self._store.pop("email", None)
        self._move(UNAUTHENTICATED)
        self._notify()
