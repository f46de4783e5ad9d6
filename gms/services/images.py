"""Puzzle image gallery.

At most one image per puzzle is primary. Every write that can change which
image is primary runs in a single transaction with the puzzle's image rows
locked.
"""

from __future__ import annotations

from typing import Iterable

from flask import current_app
from sqlalchemy import select, update

from gms.errors import ValidationFailed
from gms.extensions import db
from gms.models import Puzzle, PuzzleImage
from gms.services.db import atomic, for_update


def list_puzzle_images(puzzle_id: int) -> list[PuzzleImage]:
    """Primary image first, then upload order."""
    return list(
        db.session.execute(
            select(PuzzleImage)
            .where(PuzzleImage.puzzle_id == puzzle_id)
            .order_by(PuzzleImage.is_primary.desc(), PuzzleImage.id)
        ).scalars()
    )


def _locked_images(puzzle_id: int) -> list[PuzzleImage]:
    return list(
        db.session.execute(
            for_update(
                select(PuzzleImage)
                .where(PuzzleImage.puzzle_id == puzzle_id)
                .order_by(PuzzleImage.id)
            )
        ).scalars()
    )


def add_puzzle_images(puzzle: Puzzle, images: Iterable[dict]) -> list[PuzzleImage]:
    """Attach images to a puzzle.

    ``images`` holds ``{"image_url": ..., "caption": ...}`` items. When the
    puzzle has no primary image yet, the first new image becomes primary.
    """
    items = list(images)
    if not items:
        raise ValidationFailed({'images': ["At least one image is required"]})

    created: list[PuzzleImage] = []
    with atomic():
        existing = _locked_images(puzzle.id)
        needs_primary = not any(image.is_primary for image in existing)

        for index, item in enumerate(items):
            image_url = (item.get('image_url') or '').strip()
            if not image_url:
                raise ValidationFailed({'images': [f"Image {index + 1} is missing imageUrl"]})
            image = PuzzleImage(
                puzzle_id=puzzle.id,
                image_url=image_url,
                caption=item.get('caption'),
                is_primary=needs_primary and index == 0,
            )
            db.session.add(image)
            created.append(image)

    current_app.logger.info(f"Added {len(created)} image(s) to puzzle {puzzle.id}")
    return created


def update_puzzle_image(
    image: PuzzleImage,
    caption: str | None = None,
    caption_provided: bool = False,
    is_primary: bool | None = None,
) -> PuzzleImage:
    """Update caption and/or primary flag.

    Making an image primary clears the flag on every other image of the same
    puzzle. The current primary cannot be unflagged directly; another image
    has to be made primary instead, so a puzzle with images always keeps one.
    """
    if is_primary is False and image.is_primary:
        raise ValidationFailed({'is_primary': [
            "The primary image cannot be unset; make another image primary instead"
        ]})
    puzzle_id = image.puzzle_id
    with atomic():
        _locked_images(puzzle_id)
        if caption_provided:
            image.caption = caption
        if is_primary:
            db.session.execute(
                update(PuzzleImage)
                .where(PuzzleImage.puzzle_id == puzzle_id, PuzzleImage.id != image.id)
                .values(is_primary=False),
                execution_options={"synchronize_session": "fetch"},
            )
            image.is_primary = True
    return image


def delete_puzzle_image(image: PuzzleImage) -> PuzzleImage | None:
    """Delete an image; when it was primary, promote the lowest-id survivor.

    Returns the newly promoted image, if any.
    """
    puzzle_id = image.puzzle_id
    promoted = None
    with atomic():
        remaining = [other for other in _locked_images(puzzle_id) if other.id != image.id]
        was_primary = image.is_primary
        db.session.delete(image)
        if was_primary and remaining:
            promoted = remaining[0]
            promoted.is_primary = True

    if promoted is not None:
        current_app.logger.info(f"Image {promoted.id} promoted to primary for puzzle {puzzle_id}")
    return promoted


__all__ = [
    'list_puzzle_images',
    'add_puzzle_images',
    'update_puzzle_image',
    'delete_puzzle_image',
]
