"""Artifact hashing and version digests."""

from serac.hashing.file_hash import FileHasher
from serac.hashing.strategies import (
    HashingStrategy,
    LegacyHashing,
    CurrentHashing,
    LayerSnapshot,
    deep_sort,
    select_strategy,
)
from serac.hashing.version import VersionDigest, VersionEngine

__all__ = [
    "FileHasher",
    "HashingStrategy",
    "LegacyHashing",
    "CurrentHashing",
    "LayerSnapshot",
    "deep_sort",
    "select_strategy",
    "VersionDigest",
    "VersionEngine",
]
