"""Image upload endpoints backed by the configured blob store."""

from __future__ import annotations

from flask import Blueprint, jsonify, request, send_file
from flask_login import login_required

from gms.errors import ValidationFailed
from gms.services.ownership import authorize_blob
from gms.services.storage import StoredBlob, get_storage

uploads_bp = Blueprint("uploads", __name__)

MAX_FILES = 10


def _describe(blob: StoredBlob) -> dict:
    return {
        'filePath': get_storage().url(blob.key),
        'filename': blob.key,
        'originalname': blob.original_name,
        'size': blob.size,
    }


@uploads_bp.route("", methods=["POST"])
@login_required
def upload_image():
    blob = get_storage().save(request.files.get('image'), field='image')
    return jsonify(_describe(blob)), 201


@uploads_bp.route("/multiple", methods=["POST"])
@login_required
def upload_images():
    files = request.files.getlist('images')
    if not files:
        raise ValidationFailed({'images': ["No files uploaded"]})
    if len(files) > MAX_FILES:
        raise ValidationFailed({'images': [f"At most {MAX_FILES} files can be uploaded at once"]})

    store = get_storage()
    # Reject the whole batch before anything is written
    for file in files:
        store.validate(file, field='images')
    return jsonify([_describe(store.save(file, field='images')) for file in files]), 201


@uploads_bp.route("/<key>", methods=["GET"])
def fetch_upload(key: str):
    """Serve an upload. Keys are random, so reads need no login."""
    return send_file(get_storage().open(key), download_name=key, max_age=86400)


@uploads_bp.route("/<key>", methods=["DELETE"])
@login_required
def delete_upload(key: str):
    store = get_storage()
    authorize_blob(store.url(key))
    store.delete(key)
    return jsonify({'message': 'File deleted successfully'})
