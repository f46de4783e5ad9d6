"""Account forms."""

from __future__ import annotations

from flask_wtf import FlaskForm
from wtforms import EmailField, PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length

from gms.security.config import PASSWORD_MIN_LENGTH


class LoginForm(FlaskForm):
    email = EmailField("Email", validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired()])


class RegisterForm(FlaskForm):
    email = EmailField("Email", validators=[DataRequired(), Email(), Length(max=255)])
    password = PasswordField(
        "Password",
        validators=[
            DataRequired(),
            Length(min=PASSWORD_MIN_LENGTH, message=f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"),
        ],
    )
    name = StringField("Name", validators=[DataRequired(), Length(max=255)])


class AcceptInvitationForm(FlaskForm):
    """New account details supplied when accepting an invitation."""

    name = StringField("Name", validators=[DataRequired(), Length(max=255)])
    password = PasswordField(
        "Password",
        validators=[
            DataRequired(),
            Length(min=PASSWORD_MIN_LENGTH, message=f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"),
        ],
    )
