"""Image provider adapters behind a single capability interface."""

from storyframe.services.providers.base import (
    GenerationOptions,
    ImageProvider,
    ImageReference,
    ImageResult,
    ProviderConfig,
)
from storyframe.services.providers.resolver import (
    available_providers,
    build_provider,
    resolve_provider,
    resolve_provider_name,
)

__all__ = [
    "GenerationOptions",
    "ImageProvider",
    "ImageReference",
    "ImageResult",
    "ProviderConfig",
    "available_providers",
    "build_provider",
    "resolve_provider",
    "resolve_provider_name",
]
