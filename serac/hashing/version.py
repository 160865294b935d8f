"""
Version engine: content-addressed ids for immutable function versions.

A version resource cannot be updated in place, so its logical id embeds a
digest of everything that defines the version: the code artifact, the code
of layers defined in the same template, and the function and layer
configuration. Unchanged input yields the same id on every compile;
any relevant change yields a new id and so a new version.
"""

import base64
import copy
import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Callable

from serac.hashing.file_hash import FileHasher
from serac.hashing.strategies import HashingStrategy, LayerSnapshot
from serac.naming import Naming
from serac.template.graph import RETAIN, Resource, ResourceGraph
from serac.template.intrinsics import ref

logger = logging.getLogger(__name__)

# Applied to the function as a whole, not to a version or alias.
GLOBAL_ONLY_PROPERTIES = ("ReservedConcurrentExecutions", "Tags")


@dataclass(frozen=True)
class VersionDigest:
    value: str
    """Base64 SHA-256 over code and configuration"""

    code_sha256: str
    """CodeSha256 of the deployed code (file hash or image digest)"""


class VersionEngine:
    """
    Computes version digests and builds version resources.

    Example:
        engine = VersionEngine(CurrentHashing(), FileHasher(), Naming(), resolve_layer)
        digest = engine.digest(function_resource.properties, graph, artifact_path="app.zip")
        logical_id, version = engine.build_version("api", digest)
    """

    def __init__(
        self,
        strategy: HashingStrategy,
        hasher: FileHasher,
        naming: Naming,
        resolve_layer_artifact: Callable[[str], str],
    ):
        self.strategy = strategy
        self.hasher = hasher
        self.naming = naming
        self.resolve_layer_artifact = resolve_layer_artifact

    def layer_snapshots(self, properties: dict[str, Any], graph: ResourceGraph) -> list[LayerSnapshot]:
        """
        Configuration of every referenced layer defined in this template.

        Layers referenced by ARN live outside the template and are ignored.
        The layer's storage key is dropped: only its configuration and code
        matter, not where the code is stored.
        """
        snapshots = []
        for layer in properties.get("Layers") or []:
            if not isinstance(layer, dict) or "Ref" not in layer:
                continue
            resource = graph.get(layer["Ref"])
            if resource is None:
                logger.info("Could not find reference to layer: %s.", layer["Ref"])
                continue
            layer_properties = copy.deepcopy(resource.properties)
            layer_properties.get("Content", {}).pop("S3Key", None)
            snapshots.append(LayerSnapshot(
                name=resource.source_name or layer["Ref"],
                ref=layer["Ref"],
                properties=layer_properties,
                artifact=(
                    self.resolve_layer_artifact(resource.source_name)
                    if resource.source_name else None
                ),
            ))
        return snapshots

    def canonical_properties(self, properties: dict[str, Any], is_image: bool) -> dict[str, Any]:
        snapshot = copy.deepcopy(properties)
        # For images the code reference is the image digest itself.
        if not is_image:
            snapshot.pop("Code", None)
        for key in GLOBAL_ONLY_PROPERTIES:
            snapshot.pop(key, None)
        return snapshot

    def digest(
        self,
        properties: dict[str, Any],
        graph: ResourceGraph,
        artifact_path: str | None = None,
        image_sha: str | None = None,
    ) -> VersionDigest:
        """
        Digest the final property bag of a compute resource.

        Args:
            properties: Compute resource properties
            graph: Graph holding any referenced layers
            artifact_path: Local code artifact (handler functions)
            image_sha: Image content digest (image functions)

        Raises:
            ArtifactReadError: If an artifact cannot be read
        """
        running = hashlib.sha256()
        layers = self.layer_snapshots(properties, graph)

        if image_sha:
            code_sha = image_sha
        else:
            code_sha = self.hasher.hash(artifact_path)
            self.strategy.add_file(self.hasher, artifact_path, running)

        for path in sorted(layer.artifact for layer in layers if layer.artifact):
            self.strategy.add_file(self.hasher, path, running)

        snapshot = self.canonical_properties(properties, is_image=image_sha is not None)
        running.update(self.strategy.serialize(snapshot, layers).encode("utf-8"))

        return VersionDigest(
            value=base64.b64encode(running.digest()).decode("ascii"),
            code_sha256=code_sha,
        )

    def build_version(
        self,
        function_name: str,
        digest: VersionDigest,
        description: str | None = None,
    ) -> tuple[str, Resource]:
        """
        Version resource for a digest.

        Versions are retained on delete; they only go away together with
        their function.
        """
        properties: dict[str, Any] = {
            "FunctionName": ref(self.naming.lambda_logical_id(function_name)),
            "CodeSha256": digest.code_sha256,
        }
        if description:
            properties["Description"] = description
        resource = Resource(
            type="AWS::Lambda::Version",
            properties=properties,
            deletion_policy=RETAIN,
            source_name=function_name,
        )
        return self.naming.version_logical_id(function_name, digest.value), resource
