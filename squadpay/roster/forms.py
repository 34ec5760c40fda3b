"""Forms for the roster blueprint."""

from flask_wtf import FlaskForm
from wtforms import StringField
from wtforms.validators import DataRequired, Optional


class TournamentForm(FlaskForm):
    """Form for creating a tournament."""

    name = StringField(
        "Tournament Name",
        validators=[DataRequired(message="Tournament name is required")],
    )


class ParticipantForm(FlaskForm):
    """Form for registering a squad or player."""

    name = StringField("Name", validators=[DataRequired(message="Name is required")])

    team_name = StringField("Team Name", validators=[Optional()])

    contact = StringField("Contact", validators=[Optional()])

    # Parsed by the service so "abc" and "-5" get the same message as blanks.
    fee = StringField(
        "Fee", validators=[DataRequired(message="Fee must be a positive number")]
    )


class PaidAmountForm(FlaskForm):
    """Form for recording how much a participant has paid."""

    amount_paid = StringField(
        "Paid",
        validators=[
            DataRequired(message="Paid amount must be 0 or a positive number")
        ],
    )

    payment_ref = StringField("Payment Ref", validators=[Optional()])
