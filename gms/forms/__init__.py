"""WTForms bound to JSON request bodies.

The API receives camelCase JSON. ``bind_json`` converts the keys to the
snake_case field names used by the forms, feeds the scalar values through
WTForms as form data and raises ``ValidationFailed`` with the field errors
when validation fails.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Iterable, TypeVar

from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms.fields import DateField, DateTimeField

from gms.errors import BadRequest, ValidationFailed

F = TypeVar('F', bound=FlaskForm)

_CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')


def snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub('_', key).lower()


class IsoDateField(DateField):
    """Accepts ``YYYY-MM-DD`` or a full ISO timestamp and keeps the date part."""

    def process_formdata(self, valuelist):
        if not valuelist or not valuelist[0].strip():
            self.data = None
            return
        raw = valuelist[0].strip()
        try:
            self.data = date.fromisoformat(raw[:10])
        except ValueError:
            self.data = None
            raise ValueError(self.gettext("Not a valid date value.")) from None


class IsoDateTimeField(DateTimeField):
    """ISO 8601 timestamp, normalised to UTC; a bare date means midnight UTC."""

    def process_formdata(self, valuelist):
        if not valuelist or not valuelist[0].strip():
            self.data = None
            return
        raw = valuelist[0].strip().replace('Z', '+00:00')
        try:
            value = datetime.fromisoformat(raw)
        except ValueError:
            self.data = None
            raise ValueError(self.gettext("Not a valid datetime value.")) from None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        self.data = value.astimezone(timezone.utc)


def json_payload() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise BadRequest("Request body must be a JSON object")
    return payload


def _formdata(payload: dict[str, Any]) -> MultiDict:
    formdata = MultiDict()
    for key, value in payload.items():
        if value is None or isinstance(value, (dict, list)):
            continue
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        formdata.add(snake_case(key), str(value))
    return formdata


def bind_json(form_class: type[F], payload: dict[str, Any] | None = None) -> tuple[F, set[str]]:
    """Validate a JSON body with ``form_class``.

    Returns the validated form and the snake_case names of the keys that
    were present in the body (including explicit nulls), so partial updates
    can tell "absent" from "cleared".
    """
    if payload is None:
        payload = json_payload()
    form = form_class(formdata=_formdata(payload), meta={'csrf': False})
    if not form.validate():
        raise ValidationFailed(form.errors)
    return form, {snake_case(key) for key in payload}


def collect_changes(form: FlaskForm, present: Iterable[str], required: Iterable[str] = ()) -> dict[str, Any]:
    """Values of the form fields the caller actually sent.

    Fields listed in ``required`` may be omitted but never cleared.
    """
    present = set(present)
    changes: dict[str, Any] = {}
    errors: dict[str, list[str]] = {}
    for name, field in form._fields.items():
        if name not in present:
            continue
        value = field.data
        if isinstance(value, str):
            value = value.strip()
        if name in required and (value is None or value == ''):
            errors[name] = ["This field cannot be empty."]
            continue
        changes[name] = value
    if errors:
        raise ValidationFailed(errors)
    return changes


def string_list(payload: dict[str, Any], key: str) -> list[str] | None:
    """A JSON array of strings, or None when the key is absent."""
    if key not in payload or payload[key] is None:
        return None
    value = payload[key]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValidationFailed({snake_case(key): ["Must be a list of strings."]})
    return value


__all__ = [
    'IsoDateField',
    'IsoDateTimeField',
    'snake_case',
    'json_payload',
    'bind_json',
    'collect_changes',
    'string_list',
]
