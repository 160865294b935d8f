"""
Container image resolution.

A version of an image function is identified by the image's content digest.
URIs pinned with ``@sha256:`` carry it already; tag-based ECR URIs are looked
up in ECR and rewritten to their digest form.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any

from serac.config.function import ImageConfig
from serac.config.provider import ProviderConfig
from serac.errors import CompilationError, ImageResolutionError

logger = logging.getLogger(__name__)

DIGEST_MARKER = "@sha256:"

_ECR_URI = re.compile(
    r"^(?P<registry>(?P<account>\d{12})\.dkr\.ecr\.(?P<region>[a-z0-9-]+)\.amazonaws\.com(\.cn)?)"
    r"/(?P<repository>[^:@]+):(?P<tag>[^:@]+)$"
)


@dataclass(frozen=True)
class ResolvedImage:
    uri: str
    """Image URI pinned to its digest"""

    digest: str
    """Hex SHA-256 of the image manifest"""


class ImageResolver:
    """
    Resolves image references of functions to pinned URIs.

    Clients are created per region on first use.
    """

    def __init__(self, client_factory: Any = None):
        self._client_factory = client_factory
        self._clients: dict[str, Any] = {}

    def _client(self, region: str):
        if region not in self._clients:
            if self._client_factory is not None:
                self._clients[region] = self._client_factory(region)
            else:
                try:
                    import boto3
                except ImportError:
                    raise CompilationError(
                        "boto3 required to resolve image tags. "
                        "Install with: pip install serac[aws]"
                    )
                self._clients[region] = boto3.client("ecr", region_name=region)
        return self._clients[region]

    def resolve(self, function_name: str, image: ImageConfig, provider: ProviderConfig) -> ResolvedImage:
        """
        Raises:
            ImageResolutionError: If the image is unknown or cannot be looked up
        """
        uri = self._image_uri(function_name, image, provider)
        if DIGEST_MARKER in uri:
            return ResolvedImage(uri=uri, digest=uri.split(DIGEST_MARKER, 1)[1])
        return self._lookup(function_name, uri)

    @staticmethod
    def _image_uri(function_name: str, image: ImageConfig, provider: ProviderConfig) -> str:
        if image.name:
            named = provider.ecr.images.get(image.name)
            if named is None:
                raise ImageResolutionError(
                    f'Referenced "{image.name}" not defined in "provider.ecr.images" '
                    f'(function "{function_name}")',
                    function_name,
                )
            if not named.uri:
                raise ImageResolutionError(
                    f'Image "{image.name}" has no uri; images built from a path '
                    f'must be pushed before compiling (function "{function_name}")',
                    function_name,
                )
            return named.uri
        if not image.uri:
            raise ImageResolutionError(
                f'Image of function "{function_name}" needs a "uri" or a "name"',
                function_name,
            )
        return image.uri

    def _lookup(self, function_name: str, uri: str) -> ResolvedImage:
        match = _ECR_URI.match(uri)
        if match is None:
            raise ImageResolutionError(
                f'Image URI "{uri}" of function "{function_name}" is neither pinned '
                f"with a digest nor an ECR repository tag",
                function_name,
            )
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            response = self._client(match["region"]).describe_images(
                registryId=match["account"],
                repositoryName=match["repository"],
                imageIds=[{"imageTag": match["tag"]}],
            )
            image_digest = response["imageDetails"][0]["imageDigest"]
        except (BotoCoreError, ClientError, KeyError, IndexError) as e:
            raise ImageResolutionError(
                f'Could not resolve image "{uri}" of function "{function_name}": {e}',
                function_name,
            ) from e

        digest = image_digest.split(":", 1)[1]
        logger.info("Resolved %s to digest %s", uri, digest)
        return ResolvedImage(
            uri=f'{match["registry"]}/{match["repository"]}{DIGEST_MARKER}{digest}',
            digest=digest,
        )
