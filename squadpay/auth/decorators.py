"""Decorators for the auth blueprint."""

from functools import wraps

from flask import redirect, url_for

from .session import IdentitySession


def login_required(f):
    """Redirect to the login page unless the organizer is signed in.

    Usage:
    @login_required
    def protected_view():
        ...
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not IdentitySession().is_authenticated:
            return redirect(url_for("auth.login"))
        return f(*args, **kwargs)

    return decorated_function
