"""Content hashing and the sharded object store."""

import hashlib
import logging
from pathlib import Path
from typing import BinaryIO

from .constants import HASH_CHARSET, HASH_LENGTH, SHARD_PREFIX_LENGTH
from .objects import Blob

logger = logging.getLogger(__name__)


class ObjectStoreError(Exception):
    """Exception raised when an object cannot be read from or written to the store."""


class ObjectNotFoundError(ObjectStoreError):
    """Exception raised when no object is stored under a hash."""


def hash_string(content: str | bytes) -> str:
    """Compute the content hash used for every object identity.

    :param content: The content to hash. Strings are encoded as UTF-8.
    :return: The 40 character hex digest of the content."""
    if isinstance(content, str):
        content = content.encode('utf-8')

    return hashlib.sha1(content).hexdigest()


def validate_hash(object_hash: str) -> None:
    """Reject anything that is not a full-width lowercase hex hash.

    :raises ValueError: If the hash is malformed."""
    if len(object_hash) != HASH_LENGTH or any(c not in HASH_CHARSET for c in object_hash):
        msg = f'Invalid object hash: {object_hash!r}'
        raise ValueError(msg)


def get_content_path(objects_dir: str | Path, object_hash: str) -> Path:
    """Get the sharded path of an object: the first two hash characters name the directory.

    :param objects_dir: The objects directory of the repository.
    :param object_hash: The hash of the object.
    :return: The path the object is stored at.
    :raises ValueError: If the hash is malformed."""
    validate_hash(object_hash)
    return Path(objects_dir) / object_hash[:SHARD_PREFIX_LENGTH] / object_hash[SHARD_PREFIX_LENGTH:]


def open_content_for_reading(objects_dir: str | Path, object_hash: str) -> BinaryIO:
    """Open a stored object for binary reading.

    :raises ObjectNotFoundError: If the object does not exist.
    :raises ObjectStoreError: If the object exists but cannot be opened."""
    content_path = get_content_path(objects_dir, object_hash)
    try:
        return content_path.open('rb')
    except FileNotFoundError as e:
        msg = f'Object {object_hash} not found at {content_path}'
        raise ObjectNotFoundError(msg) from e
    except OSError as e:
        msg = f'Cannot open object {object_hash} at {content_path} for reading'
        raise ObjectStoreError(msg) from e


def open_content_for_writing(objects_dir: str | Path, object_hash: str) -> BinaryIO:
    """Open the path of an object for binary writing, creating its shard directory.

    An existing object is truncated and overwritten.

    :raises ObjectStoreError: If the object cannot be opened."""
    content_path = get_content_path(objects_dir, object_hash)
    try:
        content_path.parent.mkdir(parents=True, exist_ok=True)
        return content_path.open('wb')
    except OSError as e:
        msg = f'Cannot open object {object_hash} at {content_path} for writing'
        raise ObjectStoreError(msg) from e


class ObjectStore:
    """Content-addressed storage of blobs, trees and commits.

    Objects are written in place with no temporary file, so an interrupted write can leave a
    truncated object behind. Nothing is ever deleted."""

    def __init__(self, objects_dir: str | Path) -> None:
        self.objects_dir = Path(objects_dir)

    def path_for(self, object_hash: str) -> Path:
        return get_content_path(self.objects_dir, object_hash)

    def exists(self, object_hash: str) -> bool:
        return self.path_for(object_hash).is_file()

    def put(self, object_hash: str, content: bytes | str) -> None:
        """Store content under the given hash.

        :param object_hash: The hash to store the content under.
        :param content: The content. Strings are encoded as UTF-8.
        :raises ObjectStoreError: If the object cannot be written."""
        if isinstance(content, str):
            content = content.encode('utf-8')

        with open_content_for_writing(self.objects_dir, object_hash) as handle:
            try:
                handle.write(content)
            except OSError as e:
                msg = f'Error writing object {object_hash}'
                raise ObjectStoreError(msg) from e

        logger.debug('Stored object %s (%d bytes)', object_hash, len(content))

    def get(self, object_hash: str) -> bytes:
        """Read the content stored under a hash.

        :raises ObjectNotFoundError: If the object does not exist.
        :raises ObjectStoreError: If the object cannot be read."""
        with open_content_for_reading(self.objects_dir, object_hash) as handle:
            try:
                return handle.read()
            except OSError as e:
                msg = f'Error reading object {object_hash}'
                raise ObjectStoreError(msg) from e

    def get_text(self, object_hash: str) -> str:
        return self.get(object_hash).decode('utf-8')

    def save_blob(self, content: bytes) -> Blob:
        """Hash and store raw content as a blob."""
        blob_hash = hash_string(content)
        self.put(blob_hash, content)
        return Blob(blob_hash)

    def save_file_content(self, file: Path) -> Blob:
        """Save the content of a file as a blob.

        :param file: The path to the file to save.
        :return: The stored blob.
        :raises ValueError: If the file does not exist."""
        if not file.is_file():
            msg = f'File {file} does not exist'
            raise ValueError(msg)

        return self.save_blob(file.read_bytes())
