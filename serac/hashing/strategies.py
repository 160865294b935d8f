"""
Version hash algorithms.

Two generations exist and produce different digests for the same input.
Deployed stacks depend on whichever one minted their version ids, so the
generation is chosen once per service and never mixed.

- ``LegacyHashing`` (20200924): raw artifact bytes go into the digest, and
  only top-level keys (of the function and of each layer) are sorted, in
  locale order rather than code point order.
- ``CurrentHashing`` (20201221): per-file hashes go into the digest, and
  every mapping is sorted at every level.
"""

import hashlib
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from serac.config.provider import (
    CURRENT_HASHING_VERSION,
    LEGACY_HASHING_VERSION,
    ProviderConfig,
)
from serac.hashing.file_hash import FileHasher


@dataclass
class LayerSnapshot:
    """Configuration of a layer defined in the same template."""

    name: str
    ref: str
    properties: dict[str, Any]
    artifact: str | None = None
    """Local code artifact, when the layer is packaged by the service"""


def deep_sort(value: Any) -> Any:
    """Recursively order every mapping by key. Sequences keep their order."""
    if isinstance(value, dict):
        return {k: deep_sort(value[k]) for k in sorted(value)}
    if isinstance(value, list):
        return [deep_sort(v) for v in value]
    return value


def locale_order(key: str) -> tuple[str, str]:
    """
    Sort key approximating locale collation: case-insensitive, with lower
    case first on ties, so ``layerConfigurations`` sorts between
    ``KmsKeyArn`` and ``MemorySize``.
    """
    return key.lower(), key.swapcase()


def to_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class HashingStrategy(ABC):
    """One generation of the version hash algorithm."""

    version: str

    @abstractmethod
    def add_file(self, hasher: FileHasher, path: str, digest: "hashlib._Hash") -> None:
        """Feed an artifact into the running digest."""

    @abstractmethod
    def serialize(self, properties: dict[str, Any], layers: list[LayerSnapshot]) -> str:
        """Render the canonical configuration snapshot as text."""


class LegacyHashing(HashingStrategy):
    version = LEGACY_HASHING_VERSION

    def add_file(self, hasher: FileHasher, path: str, digest: "hashlib._Hash") -> None:
        hasher.stream_into(path, digest)

    def serialize(self, properties: dict[str, Any], layers: list[LayerSnapshot]) -> str:
        snapshot = dict(properties)
        snapshot["layerConfigurations"] = {
            layer.name: {
                k: layer.properties[k] for k in sorted(layer.properties, key=locale_order)
            }
            for layer in layers
        }
        return to_json({k: snapshot[k] for k in sorted(snapshot, key=locale_order)})


class CurrentHashing(HashingStrategy):
    version = CURRENT_HASHING_VERSION

    def add_file(self, hasher: FileHasher, path: str, digest: "hashlib._Hash") -> None:
        digest.update(hasher.hash(path).encode("utf-8"))

    def serialize(self, properties: dict[str, Any], layers: list[LayerSnapshot]) -> str:
        snapshot = dict(properties)
        snapshot["layerConfigurations"] = [
            {"name": layer.name, "ref": layer.ref, "properties": layer.properties}
            for layer in layers
        ]
        return to_json(deep_sort(snapshot))


def select_strategy(provider: ProviderConfig, enforce_hash_update: bool = False) -> HashingStrategy:
    """
    Pick the hash generation for a service.

    ``enforce_hash_update`` moves services pinned to the legacy generation
    onto the current one.
    """
    if provider.uses_legacy_hashing() and not enforce_hash_update:
        return LegacyHashing()
    return CurrentHashing()
