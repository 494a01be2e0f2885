"""Filesystem-backed object storage."""

from __future__ import annotations

import logging
from pathlib import Path

LOGGER = logging.getLogger(__name__)


class ObjectNotFoundError(LookupError):
    """Raised when a bucket/key pair does not resolve to a stored object."""


class FileSystemObjectStore:
    """Object store where each bucket is a subdirectory of ``root``.

    Keys may contain ``/`` and map onto nested directories. Paths that would
    escape the bucket directory are rejected.
    """

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        """Directory holding all buckets."""
        return self._root

    def _resolve(self, bucket: str, key: str) -> Path:
        bucket_dir = (self._root / bucket).resolve()
        target = (bucket_dir / key).resolve()
        if not bucket or not key or not target.is_relative_to(bucket_dir):
            raise ObjectNotFoundError(f"Invalid object location {bucket!r}/{key!r}")
        return target

    def get_object(self, bucket: str, key: str) -> bytes:
        """Return the bytes stored under ``bucket``/``key``."""
        target = self._resolve(bucket, key)
        if not target.is_file():
            raise ObjectNotFoundError(f"Object {bucket}/{key} does not exist")
        LOGGER.debug("Reading object %s/%s", bucket, key)
        return target.read_bytes()

    def put_object(self, bucket: str, key: str, body: bytes) -> None:
        """Store ``body`` under ``bucket``/``key``, creating directories."""
        target = self._resolve(bucket, key)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(body)


__all__ = ["FileSystemObjectStore", "ObjectNotFoundError"]
