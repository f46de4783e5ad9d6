"""Blob storage for uploaded images.

Uploads are stored under an opaque key and referenced by the URL returned
from ``BlobStore.url``. The store is chosen once in the application factory
and kept in ``app.extensions['gms_storage']``.
"""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from gms.errors import NotFound, ValidationFailed

ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}
URL_PREFIX = '/api/uploads'


@dataclass(frozen=True)
class StoredBlob:
    key: str
    original_name: str
    size: int


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def _determine_size(stream: BinaryIO) -> int:
    current = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(current)
    return size


class BlobStore:
    """Store and retrieve blobs by key."""

    def __init__(self, max_size: int) -> None:
        self.max_size = max_size

    def validate(self, file: FileStorage, field: str = 'image') -> int:
        """Return the upload's size or raise ``ValidationFailed``."""
        if file is None or not file.filename:
            raise ValidationFailed({field: ["No file uploaded"]})
        if not allowed_file(file.filename):
            allowed = ', '.join(sorted(ALLOWED_EXTENSIONS))
            raise ValidationFailed({field: [f"Only image files are allowed ({allowed})"]})
        size = _determine_size(file.stream)
        if size > self.max_size:
            raise ValidationFailed({field: [f"File exceeds the {self.max_size} byte limit"]})
        return size

    def save(self, file: FileStorage, field: str = 'image') -> StoredBlob:
        raise NotImplementedError

    def open(self, key: str) -> BinaryIO:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def url(self, key: str) -> str:
        return f"{URL_PREFIX}/{key}"


class LocalBlobStore(BlobStore):
    """Blobs kept as files in a single directory."""

    def __init__(self, root: str | Path, max_size: int) -> None:
        super().__init__(max_size)
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        # Keys are generated by ``save``; anything else cannot name a stored blob
        if not key or secure_filename(key) != key or not allowed_file(key):
            raise NotFound("File not found")
        path = (self.root / key).resolve()
        if path.parent != self.root.resolve():
            raise NotFound("File not found")
        return path

    def save(self, file: FileStorage, field: str = 'image') -> StoredBlob:
        size = self.validate(file, field)
        self.root.mkdir(parents=True, exist_ok=True)

        ext = file.filename.rsplit('.', 1)[1].lower()
        key = f"image-{uuid.uuid4().hex}.{ext}"
        file.stream.seek(0)
        file.save(self.root / key)

        current_app.logger.info(f"Stored upload {key} ({size} bytes)")
        return StoredBlob(key=key, original_name=file.filename, size=size)

    def path_for(self, key: str) -> Path:
        path = self._path(key)
        if not path.is_file():
            raise NotFound("File not found")
        return path

    def open(self, key: str) -> BinaryIO:
        return self.path_for(key).open('rb')

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        path.unlink()
        current_app.logger.info(f"Deleted upload {key}")


def init_storage(app) -> BlobStore:
    root = Path(app.config.get('UPLOAD_FOLDER', 'uploads'))
    if not root.is_absolute():
        root = Path(app.root_path).parent / root
    store = LocalBlobStore(root, int(app.config.get('MAX_UPLOAD_SIZE', 5 * 1024 * 1024)))
    app.extensions['gms_storage'] = store
    return store


def get_storage() -> BlobStore:
    return current_app.extensions['gms_storage']


__all__ = [
    'ALLOWED_EXTENSIONS',
    'StoredBlob',
    'BlobStore',
    'LocalBlobStore',
    'allowed_file',
    'init_storage',
    'get_storage',
]
