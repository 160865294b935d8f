"""
Tests for artifact hashing and version digests.
"""

import base64
import hashlib
import json

import pytest

from serac.config import ProviderConfig
from serac.errors import ArtifactReadError
from serac.hashing import (
    CurrentHashing,
    FileHasher,
    LegacyHashing,
    VersionEngine,
    deep_sort,
    select_strategy,
)
from serac.naming import Naming
from serac.template import Resource, ResourceGraph


def _properties(**overrides):
    properties = {
        "Code": {"S3Bucket": {"Ref": "ServerlessDeploymentBucket"}, "S3Key": "k/orders.zip"},
        "Handler": "index.handler",
        "Runtime": "python3.12",
        "FunctionName": "orders-dev-api",
        "MemorySize": 1024,
        "Timeout": 6,
    }
    properties.update(overrides)
    return properties


class TestFileHasher:
    """Tests for FileHasher."""

    def test_hash_is_base64_sha256(self, tmp_path):
        """Test the digest format."""
        path = tmp_path / "a.zip"
        path.write_bytes(b"hello")

        expected = base64.b64encode(hashlib.sha256(b"hello").digest()).decode("ascii")
        assert FileHasher().hash(path) == expected

    def test_missing_file_raises(self, tmp_path):
        """Test unreadable paths raise ArtifactReadError."""
        with pytest.raises(ArtifactReadError) as exc_info:
            FileHasher().hash(tmp_path / "missing.zip")

        assert exc_info.value.code == "ARTIFACT_READ_ERROR"

    def test_hash_is_memoised(self, tmp_path):
        """Test a hasher does not re-read a file it already hashed."""
        path = tmp_path / "a.zip"
        path.write_bytes(b"v1")
        hasher = FileHasher()

        first = hasher.hash(path)
        path.write_bytes(b"v2")

        assert hasher.hash(path) == first
        assert FileHasher().hash(path) != first

    def test_warm_hashes_every_file(self, tmp_path):
        """Test warm returns a hash per unique path."""
        paths = []
        for i in range(3):
            path = tmp_path / f"{i}.zip"
            path.write_bytes(bytes([i]))
            paths.append(str(path))
        hasher = FileHasher()

        result = hasher.warm(paths + paths[:1], max_workers=2)

        assert sorted(result) == sorted(paths)
        assert result[paths[0]] == hasher.hash(paths[0])

    def test_clear_forgets_hashes(self, tmp_path):
        """Test a cleared hasher reads changed files again."""
        path = tmp_path / "a.zip"
        path.write_bytes(b"v1")
        hasher = FileHasher()
        first = hasher.hash(path)
        path.write_bytes(b"v2")

        hasher.clear()

        assert hasher.hash(path) != first

    def test_warm_leaves_unreadable_files_for_later(self, tmp_path):
        """Test warm skips missing files and hash still reports them."""
        present = tmp_path / "a.zip"
        present.write_bytes(b"a")
        missing = str(tmp_path / "missing.zip")
        hasher = FileHasher()

        result = hasher.warm([str(present), missing])

        assert list(result) == [str(present)]
        with pytest.raises(ArtifactReadError):
            hasher.hash(missing)


class TestStrategies:
    """Tests for hashing strategy selection and serialization."""

    def test_default_is_current(self):
        """Test services without a pinned version use the current algorithm."""
        assert isinstance(select_strategy(ProviderConfig()), CurrentHashing)

    def test_pinned_legacy(self):
        """Test the legacy version is honoured."""
        provider = ProviderConfig(lambda_hashing_version="20200924")

        assert isinstance(select_strategy(provider), LegacyHashing)

    def test_enforce_hash_update_moves_to_current(self):
        """Test enforcing a hash update overrides a legacy pin."""
        provider = ProviderConfig(lambda_hashing_version="20200924")

        assert isinstance(select_strategy(provider, enforce_hash_update=True), CurrentHashing)

    def test_deep_sort(self):
        """Test mappings are sorted at every level, lists keep their order."""
        value = {"b": {"y": 1, "x": 2}, "a": [{"d": 1, "c": 2}, 3]}

        assert list(deep_sort(value)) == ["a", "b"]
        assert list(deep_sort(value)["b"]) == ["x", "y"]
        assert list(deep_sort(value)["a"][0]) == ["c", "d"]

    def test_legacy_sorts_only_top_level(self):
        """Test legacy serialization leaves nested key order alone."""
        text = LegacyHashing().serialize({"b": {"z": 1, "a": 2}, "a": 1}, [])

        assert text == '{"a":1,"b":{"z":1,"a":2},"layerConfigurations":{}}'

    def test_legacy_key_order_ignores_case(self):
        """Test legacy keys sort case-insensitively, lower case first on ties."""
        text = LegacyHashing().serialize(
            {"MemorySize": 128, "KmsKeyArn": "k", "Handler": "h", "handler": "x"}, []
        )

        assert list(json.loads(text)) == [
            "handler", "Handler", "KmsKeyArn", "layerConfigurations", "MemorySize",
        ]

    def test_current_sorts_nested(self):
        """Test current serialization sorts nested mappings."""
        text = CurrentHashing().serialize({"b": {"z": 1, "a": 2}, "a": 1}, [])

        assert text == '{"a":1,"b":{"a":2,"z":1},"layerConfigurations":[]}'


class TestVersionEngine:
    """Tests for version digests."""

    @pytest.fixture
    def artifact(self, tmp_path):
        path = tmp_path / "orders.zip"
        path.write_bytes(b"code-v1")
        return path

    def _engine(self, strategy=None, layers=None):
        layers = layers or {}
        return VersionEngine(strategy or CurrentHashing(), FileHasher(), Naming(),
                             lambda name: layers[name])

    def test_idempotent(self, artifact):
        """Test unchanged input yields the same digest."""
        first = self._engine().digest(_properties(), ResourceGraph(), artifact_path=str(artifact))
        second = self._engine().digest(_properties(), ResourceGraph(), artifact_path=str(artifact))

        assert first == second

    def test_sensitive_to_memory(self, artifact):
        """Test a versioned property changes the digest."""
        engine = self._engine()

        base = engine.digest(_properties(), ResourceGraph(), artifact_path=str(artifact))
        changed = engine.digest(_properties(MemorySize=512), ResourceGraph(),
                                artifact_path=str(artifact))

        assert base.value != changed.value

    def test_ignores_reserved_concurrency_and_tags(self, artifact):
        """Test properties of the function as a whole do not change the digest."""
        engine = self._engine()

        base = engine.digest(_properties(), ResourceGraph(), artifact_path=str(artifact))
        changed = engine.digest(
            _properties(ReservedConcurrentExecutions=5, Tags=[{"Key": "team", "Value": "data"}]),
            ResourceGraph(),
            artifact_path=str(artifact),
        )

        assert base == changed

    def test_ignores_code_location(self, artifact):
        """Test moving the artifact in the bucket does not change the digest."""
        engine = self._engine()
        moved = _properties(Code={"S3Bucket": "other", "S3Key": "elsewhere/orders.zip"})

        base = engine.digest(_properties(), ResourceGraph(), artifact_path=str(artifact))
        changed = engine.digest(moved, ResourceGraph(), artifact_path=str(artifact))

        assert base == changed

    def test_sensitive_to_artifact_bytes(self, tmp_path):
        """Test changed code yields a new digest."""
        old = tmp_path / "old.zip"
        old.write_bytes(b"code-v1")
        new = tmp_path / "new.zip"
        new.write_bytes(b"code-v2")
        engine = self._engine()

        first = engine.digest(_properties(), ResourceGraph(), artifact_path=str(old))
        second = engine.digest(_properties(), ResourceGraph(), artifact_path=str(new))

        assert first.value != second.value
        assert first.code_sha256 != second.code_sha256

    @pytest.mark.parametrize("strategy", [LegacyHashing, CurrentHashing])
    def test_each_strategy_is_deterministic(self, artifact, strategy):
        """Test both generations are internally stable."""
        first = self._engine(strategy()).digest(_properties(), ResourceGraph(),
                                                artifact_path=str(artifact))
        second = self._engine(strategy()).digest(_properties(), ResourceGraph(),
                                                 artifact_path=str(artifact))

        assert first == second

    def test_generations_differ(self, artifact):
        """Test legacy and current digests are not interchangeable."""
        legacy = self._engine(LegacyHashing()).digest(_properties(), ResourceGraph(),
                                                      artifact_path=str(artifact))
        current = self._engine(CurrentHashing()).digest(_properties(), ResourceGraph(),
                                                        artifact_path=str(artifact))

        assert legacy.value != current.value
        assert legacy.code_sha256 == current.code_sha256

    def test_image_digest_skips_file_hashing(self):
        """Test image functions use the image digest as their code hash."""
        properties = _properties(Code={"ImageUri": "repo@sha256:abc"}, PackageType="Image")

        digest = self._engine().digest(properties, ResourceGraph(), image_sha="abc")

        assert digest.code_sha256 == "abc"

    def test_local_layer_changes_digest(self, artifact, tmp_path):
        """Test a change in a layer of the same template re-versions the function."""
        layer_zip = tmp_path / "deps.zip"
        layer_zip.write_bytes(b"deps-v1")
        graph = ResourceGraph()
        graph.add("DepsLambdaLayer", Resource(
            type="AWS::Lambda::LayerVersion",
            properties={"Content": {"S3Bucket": "b", "S3Key": "k/deps.zip"}, "LayerName": "deps"},
            source_name="deps",
        ))
        properties = _properties(Layers=[{"Ref": "DepsLambdaLayer"}])

        first = self._engine(layers={"deps": str(layer_zip)}).digest(
            properties, graph, artifact_path=str(artifact)
        )
        layer_zip.write_bytes(b"deps-v2")
        second = self._engine(layers={"deps": str(layer_zip)}).digest(
            properties, graph, artifact_path=str(artifact)
        )

        assert first.value != second.value

    def test_external_layers_ignored(self, artifact):
        """Test layers referenced by ARN do not need resolving."""
        properties = _properties(Layers=["arn:aws:lambda:us-east-1:000000000000:layer:x:1"])

        digest = self._engine().digest(properties, ResourceGraph(), artifact_path=str(artifact))

        assert digest.value

    def test_build_version_is_retained(self, artifact):
        """Test version resources carry delete retention."""
        engine = self._engine()
        digest = engine.digest(_properties(), ResourceGraph(), artifact_path=str(artifact))

        logical_id, version = engine.build_version("api", digest, "First release")

        assert logical_id.startswith("ApiLambdaFunctionVersion")
        assert version.retained
        assert version.properties == {
            "FunctionName": {"Ref": "ApiLambdaFunction"},
            "CodeSha256": digest.code_sha256,
            "Description": "First release",
        }
