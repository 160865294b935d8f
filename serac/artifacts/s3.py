"""
Remote artifact retrieval.

Artifacts given as ``s3://bucket/key`` are downloaded before compilation,
because the version digest is computed from local file contents. Every
download finishes (or the first failure is raised) before any function is
compiled.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, TimeoutError, as_completed
from pathlib import Path
from typing import Any

from serac.config.function import PackageConfig
from serac.config.service import ServiceConfig
from serac.errors import ArtifactDownloadError, CompilationError

logger = logging.getLogger(__name__)

S3_SCHEME = "s3://"


def is_s3_uri(value: str | None) -> bool:
    return bool(value) and value.startswith(S3_SCHEME)


def parse_s3_uri(uri: str) -> tuple[str, str]:
    """
    Split ``s3://bucket/key`` into bucket and key.

    Raises:
        ArtifactDownloadError: If the URI has no bucket or no key
    """
    bucket, _, key = uri[len(S3_SCHEME):].partition("/")
    if not bucket or not key:
        raise ArtifactDownloadError(f"Invalid S3 artifact location: {uri}")
    return bucket, key


def _s3_client(connect_timeout: int, read_timeout: int):
    try:
        import boto3
        from botocore.config import Config
    except ImportError:
        raise CompilationError(
            "boto3 required to download S3 artifacts. "
            "Install with: pip install serac[aws]"
        )
    return boto3.client(
        "s3",
        config=Config(
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            retries={"max_attempts": 3},
        ),
    )


class ArtifactFetcher:
    """
    Downloads the remote artifacts of a service to local storage.

    Example:
        fetcher = ArtifactFetcher()
        fetcher.fetch(service)   # package.artifact now points at local files
    """

    def __init__(
        self,
        client: Any = None,
        download_dir: str | os.PathLike | None = None,
        max_workers: int = 4,
        timeout: float = 300,
        connect_timeout: int = 10,
        read_timeout: int = 60,
    ):
        """
        Args:
            client: S3 client; created with boto3 when omitted
            download_dir: Where artifacts are written (default: the packaging dir)
            max_workers: Concurrent downloads
            timeout: Seconds the whole batch may take
            connect_timeout: Per-request connect timeout of the default client
            read_timeout: Per-request read timeout of the default client
        """
        self._client = client
        self.download_dir = Path(download_dir) if download_dir else None
        self.max_workers = max_workers
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout

    @property
    def client(self):
        if self._client is None:
            self._client = _s3_client(self.connect_timeout, self.read_timeout)
        return self._client

    def _packages(self, service: ServiceConfig) -> list[PackageConfig]:
        packages = [service.package]
        packages.extend(
            f.package for f in service.functions.values()
            # Image functions have no code artifact.
            if not f.image
        )
        packages.extend(layer.package for layer in service.layers.values())
        return packages

    def fetch(self, service: ServiceConfig) -> dict[str, str]:
        """
        Download every ``s3://`` artifact of the service and point the
        configuration at the local copies.

        Returns:
            Mapping of S3 URI to local path

        Raises:
            ArtifactDownloadError: On the first failed download, or on timeout
        """
        packages = [p for p in self._packages(service) if is_s3_uri(p.artifact)]
        if not packages:
            return {}

        target_dir = self.download_dir or service.packaging_dir() / "artifacts"
        uris = sorted({p.artifact for p in packages})
        local = self.download_all(uris, target_dir)

        for package in packages:
            package.artifact = local[package.artifact]
        return local

    def download_all(self, uris: list[str], target_dir: Path) -> dict[str, str]:
        results: dict[str, str] = {}
        pool = ThreadPoolExecutor(max_workers=self.max_workers)
        futures = {pool.submit(self.download, uri, target_dir): uri for uri in uris}
        try:
            for future in as_completed(futures, timeout=self.timeout):
                results[futures[future]] = future.result()
        except TimeoutError:
            raise ArtifactDownloadError(
                f"Timed out after {self.timeout}s downloading artifacts"
            )
        finally:
            pool.shutdown(wait=False, cancel_futures=True)
        return results

    def download(self, uri: str, target_dir: Path) -> str:
        """Download one artifact. The local file keeps the key's base name."""
        from botocore.exceptions import BotoCoreError, ClientError

        bucket, key = parse_s3_uri(uri)
        path = Path(target_dir) / bucket / key
        logger.info("Downloading %s from bucket %s", key, bucket)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self.client.download_file(Bucket=bucket, Key=key, Filename=str(path))
        except (BotoCoreError, ClientError, OSError) as e:
            raise ArtifactDownloadError(f"Could not download {uri}: {e}") from e
        return str(path)
