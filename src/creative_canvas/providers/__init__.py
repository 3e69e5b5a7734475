"""
Generation Service Providers.

This package provides the clients the execution engine talks to:
- HttpGenerationService: Remote generation backend over HTTP (aiohttp)
- SimulatedGenerationService: In-process backend for dry runs and tests
- ModelCatalog: Cached model discovery with built-in fallback
- download_output: Save generated media to disk

Usage:
    from creative_canvas.providers import HttpGenerationService, ProviderConfig

    async with HttpGenerationService(ProviderConfig(base_url=url)) as service:
        models = await service.list_models()
"""

from creative_canvas.providers.base import (
    AuthenticationError,
    GenerationService,
    JobStatusResponse,
    ModelCard,
    ModelKind,
    ProviderConfig,
    RateLimitError,
    ServiceError,
    ServiceJobError,
    ServiceJobStatus,
    ServiceUnavailableError,
    SubmitResponse,
)
from creative_canvas.providers.catalog import BUILTIN_MODELS, ModelCatalog
from creative_canvas.providers.download import (
    DownloadError,
    download_output,
    extension_from_url,
    probe_image_metadata,
    sanitize_filename,
)
from creative_canvas.providers.http import HttpGenerationService
from creative_canvas.providers.simulated import SimulatedGenerationService


__all__ = [
    # Base classes
    "GenerationService",
    "ProviderConfig",
    "ModelCard",
    "ModelKind",
    "SubmitResponse",
    "JobStatusResponse",
    "ServiceJobStatus",
    "ServiceJobError",
    # Exceptions
    "ServiceError",
    "AuthenticationError",
    "RateLimitError",
    "ServiceUnavailableError",
    "DownloadError",
    # Catalog
    "ModelCatalog",
    "BUILTIN_MODELS",
    # Download
    "download_output",
    "extension_from_url",
    "probe_image_metadata",
    "sanitize_filename",
    # Services
    "HttpGenerationService",
    "SimulatedGenerationService",
]
