"""Create, update and list workspace content (games, puzzles, hints, maintenance)."""

from __future__ import annotations

from enum import Enum
from typing import Any, Generic, TypeVar

from flask import current_app

from gms.extensions import db
from gms.models import (
    Game,
    Hint,
    Maintenance,
    MaintenanceStatus,
    Puzzle,
    PuzzleStatus,
)
from gms.services.db import atomic
from gms.services.ownership import workspace_query

Model = TypeVar("Model", Game, Puzzle, Hint, Maintenance)


class ContentService(Generic[Model]):
    """Field-level create/update for one resource type.

    ``fields`` lists the attributes callers may set; the parent reference is
    given once at creation and is never among them.
    """

    def __init__(
        self,
        model: type[Model],
        parent: str,
        fields: tuple[str, ...],
        enums: dict[str, type[Enum]] | None = None,
        order_by=None,
        cleared: dict[str, Any] | None = None,
    ):
        self.model = model
        self.model_name = model.__tablename__
        self.parent = parent
        self.fields = fields
        self.enums = enums or {}
        self.order_by = order_by if order_by is not None else model.id
        # Value stored when a caller clears a non-nullable field
        self.cleared = cleared or {}

    def _coerce(self, field: str, value: Any) -> Any:
        enum_cls = self.enums.get(field)
        if enum_cls is not None and value is not None:
            return enum_cls(value)
        if value is None:
            return self.cleared.get(field)
        return value

    def create(self, parent_id: int, values: dict[str, Any]) -> Model:
        data = {
            field: self._coerce(field, value)
            for field, value in values.items()
            if field in self.fields and value is not None
        }
        data[self.parent] = parent_id
        with atomic():
            instance = self.model(**data)
            db.session.add(instance)
        current_app.logger.info(f"Created {self.model_name} {instance.id} under {self.parent}={parent_id}")
        return instance

    def update(self, instance: Model, changes: dict[str, Any]) -> Model:
        """Apply the given field changes; unknown fields are ignored."""
        with atomic():
            for field, value in changes.items():
                if field in self.fields:
                    setattr(instance, field, self._coerce(field, value))
        return instance

    def list_for_workspace(self, workspace_id: int, **filters: Any) -> list[Model]:
        query = workspace_query(self.model, workspace_id)
        for field, value in filters.items():
            if value is not None:
                query = query.where(getattr(self.model, field) == value)
        return list(db.session.execute(query.order_by(self.order_by)).scalars())


games = ContentService(
    Game,
    parent='workspace_id',
    fields=('name', 'genre', 'release_date', 'purchase_date', 'description', 'image_url'),
    order_by=Game.name,
)

puzzles = ContentService(
    Puzzle,
    parent='game_id',
    fields=('title', 'description', 'status', 'difficulty', 'image_url'),
    enums={'status': PuzzleStatus},
    cleared={'description': ''},
)

hints = ContentService(
    Hint,
    parent='puzzle_id',
    fields=('content', 'is_premium', 'is_used'),
)

maintenance = ContentService(
    Maintenance,
    parent='puzzle_id',
    fields=('description', 'status', 'fix_date'),
    enums={'status': MaintenanceStatus},
    order_by=Maintenance.fix_date,
)


__all__ = ['ContentService', 'games', 'puzzles', 'hints', 'maintenance']
