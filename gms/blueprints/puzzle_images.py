"""Puzzle image gallery endpoints."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from gms.blueprints.common.serializers import serialize_puzzle_image
from gms.blueprints.common.tenant import coerce_id
from gms.errors import ValidationFailed
from gms.forms import bind_json, collect_changes, json_payload
from gms.forms.resources import PuzzleImageUpdateForm
from gms.models import Puzzle, PuzzleImage
from gms.services.images import (
    add_puzzle_images,
    delete_puzzle_image,
    list_puzzle_images,
    update_puzzle_image,
)
from gms.services.ownership import authorize_resource

puzzle_images_bp = Blueprint("puzzle_images", __name__)


def _image_items(payload: dict) -> list[dict]:
    images = payload.get('images')
    if not isinstance(images, list) or not images:
        raise ValidationFailed({'images': ["At least one image is required"]})
    items = []
    for index, image in enumerate(images):
        if not isinstance(image, dict) or not isinstance(image.get('imageUrl'), str):
            raise ValidationFailed({'images': [f"Image {index + 1} must have an imageUrl"]})
        caption = image.get('caption')
        items.append({
            'image_url': image['imageUrl'],
            'caption': caption if isinstance(caption, str) and caption.strip() else None,
        })
    return items


@puzzle_images_bp.route("/puzzle/<int:puzzle_id>", methods=["GET"])
@login_required
def puzzle_gallery(puzzle_id: int):
    puzzle = authorize_resource(Puzzle, puzzle_id)
    return jsonify([serialize_puzzle_image(i) for i in list_puzzle_images(puzzle.id)])


@puzzle_images_bp.route("", methods=["POST"])
@login_required
def add_images():
    payload = json_payload()
    puzzle_id = coerce_id(payload.get('puzzleId'))
    if puzzle_id is None:
        raise ValidationFailed({'puzzle_id': ["Puzzle ID is required"]})
    puzzle = authorize_resource(Puzzle, puzzle_id)
    created = add_puzzle_images(puzzle, _image_items(payload))
    return jsonify([serialize_puzzle_image(i) for i in created]), 201


@puzzle_images_bp.route("/<int:image_id>", methods=["PUT"])
@login_required
def update_image(image_id: int):
    image = authorize_resource(PuzzleImage, image_id)
    form, present = bind_json(PuzzleImageUpdateForm)
    changes = collect_changes(form, present)
    image = update_puzzle_image(
        image,
        caption=changes.get('caption') or None,
        caption_provided='caption' in changes,
        is_primary=changes.get('is_primary'),
    )
    return jsonify(serialize_puzzle_image(image))


@puzzle_images_bp.route("/<int:image_id>", methods=["DELETE"])
@login_required
def delete_image(image_id: int):
    promoted = delete_puzzle_image(authorize_resource(PuzzleImage, image_id))
    return jsonify({
        'message': 'Image deleted successfully',
        'promotedImageId': promoted.id if promoted is not None else None,
    })
