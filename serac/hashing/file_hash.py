"""
Content hashes of artifacts on local storage.
"""

import base64
import hashlib
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable

from serac.errors import ArtifactReadError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def _read_chunks(path: str | os.PathLike):
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                yield chunk
    except OSError as e:
        raise ArtifactReadError(f"Could not add file content to hash: {e}") from e


class FileHasher:
    """
    Base64 SHA-256 of file contents, memoised per instance.

    One hasher lives for one compilation run; nothing is cached across runs.
    """

    def __init__(self):
        self._cache: dict[str, str] = {}
        self._lock = threading.Lock()

    def clear(self) -> None:
        """Forget every memoised hash."""
        with self._lock:
            self._cache.clear()

    def hash(self, path: str | os.PathLike) -> str:
        """
        Hash a file.

        Raises:
            ArtifactReadError: If the file cannot be read
        """
        key = os.fspath(path)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        digest = hashlib.sha256()
        for chunk in _read_chunks(key):
            digest.update(chunk)
        value = base64.b64encode(digest.digest()).decode("ascii")

        with self._lock:
            self._cache[key] = value
        return value

    def stream_into(self, path: str | os.PathLike, digest: "hashlib._Hash") -> None:
        """Feed the raw bytes of a file into a running digest."""
        for chunk in _read_chunks(path):
            digest.update(chunk)

    def warm(self, paths: Iterable[str | os.PathLike], max_workers: int | None = None) -> dict[str, str]:
        """
        Hash several files concurrently.

        Each file is hashed sequentially; only different files run in
        parallel. Later ``hash`` calls for these paths hit the cache.
        Unreadable files are left out and not cached, so their error is
        raised when they are hashed on their own.
        """
        unique = sorted({os.fspath(p) for p in paths})
        if not unique:
            return {}
        logger.debug("Hashing %d artifact(s)", len(unique))
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            hashes = dict(zip(unique, pool.map(self._hash_if_readable, unique)))
        return {path: value for path, value in hashes.items() if value is not None}

    def _hash_if_readable(self, path: str) -> str | None:
        try:
            return self.hash(path)
        except ArtifactReadError as e:
            logger.debug("Deferring unreadable artifact %s: %s", path, e)
            return None
