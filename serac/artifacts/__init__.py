"""Artifact collaborators: S3 downloads and container image digests."""

from serac.artifacts.s3 import ArtifactFetcher, is_s3_uri, parse_s3_uri
from serac.artifacts.images import ImageResolver, ResolvedImage

__all__ = [
    "ArtifactFetcher",
    "is_s3_uri",
    "parse_s3_uri",
    "ImageResolver",
    "ResolvedImage",
]
