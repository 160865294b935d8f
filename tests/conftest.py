"""
Shared fixtures for Serac tests.
"""

import pytest

from serac.config import ServiceConfig


@pytest.fixture
def make_service(tmp_path):
    """
    Build a ServiceConfig rooted at a temporary directory.

    The default service artifact is written so versioned functions can be
    hashed.
    """

    def factory(functions, provider=None, artifact=b"code-v1", **extra):
        packaging = tmp_path / ".serverless"
        packaging.mkdir(exist_ok=True)
        (packaging / "orders.zip").write_bytes(artifact)
        service = ServiceConfig.model_validate({
            "service": "orders",
            "provider": provider or {},
            "functions": functions,
            **extra,
        })
        service.service_dir = tmp_path
        return service

    return factory
