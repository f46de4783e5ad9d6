"""Workspace and membership forms."""

from __future__ import annotations

from flask_wtf import FlaskForm
from wtforms import EmailField, StringField, TextAreaField
from wtforms.validators import DataRequired, Email, Length, Optional, ValidationError

from gms.models import WorkspaceRole

ROLE_NAMES = [role.value for role in WorkspaceRole]


def _role_name(value):
    return value.strip().upper() if isinstance(value, str) else value


class WorkspaceUpdateForm(FlaskForm):
    name = StringField("Name", validators=[Optional(), Length(max=255)])
    description = TextAreaField("Description", validators=[Optional()])


class WorkspaceForm(WorkspaceUpdateForm):
    name = StringField("Name", validators=[DataRequired(), Length(max=255)])


class MemberForm(FlaskForm):
    """Add an existing user, or invite an email address."""

    email = EmailField("Email", validators=[DataRequired(), Email()])
    role = StringField("Role", filters=[_role_name], validators=[Optional()])

    def validate_role(self, field):
        if field.data and field.data not in ROLE_NAMES:
            raise ValidationError(f"Role must be one of {', '.join(ROLE_NAMES)}")


class RoleForm(FlaskForm):
    role = StringField("Role", filters=[_role_name], validators=[DataRequired()])

    def validate_role(self, field):
        if field.data not in ROLE_NAMES:
            raise ValidationError(f"Role must be one of {', '.join(ROLE_NAMES)}")
