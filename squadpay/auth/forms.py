"""Forms for the auth blueprint."""

from flask_wtf import FlaskForm
from wtforms import SubmitField


class LogoutForm(FlaskForm):
    """Confirmation form for signing out."""

    submit = SubmitField("Yes, sign out")
