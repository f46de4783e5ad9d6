"""Forms for workspace content: games, puzzles, hints, maintenance, reports, images.

Each ``*UpdateForm`` accepts any subset of fields; the create form narrows
the required ones.
"""

from __future__ import annotations

from flask_wtf import FlaskForm
from wtforms import BooleanField, IntegerField, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, InputRequired, Length, NumberRange, Optional

from gms.forms import IsoDateField, IsoDateTimeField
from gms.models import MaintenanceStatus, PuzzleStatus, ReportPriority, ReportStatus


def _values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class GameUpdateForm(FlaskForm):
    name = StringField("Name", validators=[Optional(), Length(max=255)])
    genre = StringField("Genre", validators=[Optional(), Length(max=128)])
    release_date = IsoDateField("Release date", validators=[Optional()])
    purchase_date = IsoDateField("Purchase date", validators=[Optional()])
    description = TextAreaField("Description", validators=[Optional()])
    image_url = StringField("Image URL", validators=[Optional(), Length(max=512)])


class GameForm(GameUpdateForm):
    name = StringField("Name", validators=[DataRequired(message="Name is required"), Length(max=255)])
    genre = StringField("Genre", validators=[DataRequired(message="Genre is required"), Length(max=128)])


class PuzzleUpdateForm(FlaskForm):
    title = StringField("Title", validators=[Optional(), Length(max=255)])
    description = TextAreaField("Description", validators=[Optional()])
    status = StringField("Status", validators=[Optional(), AnyOf(_values(PuzzleStatus))])
    difficulty = IntegerField(
        "Difficulty",
        validators=[Optional(), NumberRange(min=1, max=5, message="Difficulty must be between 1 and 5")],
    )
    image_url = StringField("Image URL", validators=[Optional(), Length(max=512)])


class PuzzleForm(PuzzleUpdateForm):
    game_id = IntegerField("Game", validators=[InputRequired(message="Game ID must be an integer")])
    title = StringField("Title", validators=[DataRequired(message="Title is required"), Length(max=255)])


class HintUpdateForm(FlaskForm):
    content = TextAreaField("Content", validators=[Optional()])
    is_premium = BooleanField("Premium")
    is_used = BooleanField("Used")


class HintForm(HintUpdateForm):
    puzzle_id = IntegerField("Puzzle", validators=[InputRequired(message="Puzzle ID must be an integer")])
    content = TextAreaField("Content", validators=[DataRequired(message="Content is required")])


class MaintenanceUpdateForm(FlaskForm):
    description = TextAreaField("Description", validators=[Optional()])
    status = StringField("Status", validators=[Optional(), AnyOf(_values(MaintenanceStatus))])
    fix_date = IsoDateField("Fix date", validators=[Optional()])


class MaintenanceForm(MaintenanceUpdateForm):
    puzzle_id = IntegerField("Puzzle", validators=[InputRequired(message="Puzzle ID must be an integer")])
    description = TextAreaField("Description", validators=[DataRequired(message="Description is required")])
    fix_date = IsoDateField("Fix date", validators=[InputRequired(message="Fix date is required")])


class ReportUpdateForm(FlaskForm):
    title = StringField("Title", validators=[Optional(), Length(max=255)])
    description = TextAreaField("Description", validators=[Optional()])
    status = StringField("Status", validators=[Optional(), AnyOf(_values(ReportStatus))])
    priority = StringField("Priority", validators=[Optional(), AnyOf(_values(ReportPriority))])
    resolution = TextAreaField("Resolution", validators=[Optional()])
    report_date = IsoDateTimeField("Report date", validators=[Optional()])
    puzzle_id = IntegerField("Puzzle", validators=[Optional()])


class ReportForm(FlaskForm):
    game_id = IntegerField("Game", validators=[InputRequired(message="Game ID must be an integer")])
    puzzle_id = IntegerField("Puzzle", validators=[Optional()])
    title = StringField("Title", validators=[DataRequired(message="Title is required"), Length(max=255)])
    description = TextAreaField("Description", validators=[DataRequired(message="Description is required")])
    report_date = IsoDateTimeField("Report date", validators=[Optional()])
    priority = StringField("Priority", validators=[Optional(), AnyOf(_values(ReportPriority))])


class PuzzleImageUpdateForm(FlaskForm):
    caption = StringField("Caption", validators=[Optional(), Length(max=512)])
    is_primary = BooleanField("Primary")
