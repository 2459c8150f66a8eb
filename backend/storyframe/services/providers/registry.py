"""Declarative image model registry and model resolution.

Model priority: explicit request model > AI_IMAGE_MODEL > provider default
for the requested detail tier.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from storyframe.config import Settings
from storyframe.errors import FeatureDisabledError, ValidationError

logger = logging.getLogger(__name__)

DETAIL_TIERS = ("cheap", "standard", "pro")


@dataclass(frozen=True)
class ImageModelCapability:
    """Capability descriptor for a single image model."""
    provider: str
    model: str
    api_model: str          # name sent upstream
    requires_vertex: bool = False


@dataclass(frozen=True)
class DetailSettings:
    size: str
    quality: str


DETAIL_SETTINGS: dict[str, DetailSettings] = {
    "cheap": DetailSettings(size="512x512", quality="standard"),
    "standard": DetailSettings(size="1024x1024", quality="standard"),
    "pro": DetailSettings(size="1792x1024", quality="hd"),
}


class ImageModelRegistry:
    """In-memory registry of selectable image models."""

    def __init__(self) -> None:
        self._models: dict[str, ImageModelCapability] = {}
        self._defaults: dict[tuple[str, str], str] = {}

    def register(self, cap: ImageModelCapability) -> None:
        self._models[f"{cap.provider}:{cap.model}"] = cap

    def set_default(self, provider: str, detail: str, model: str) -> None:
        self._defaults[(provider, detail)] = model

    def get(self, provider: str, model: str) -> ImageModelCapability | None:
        return self._models.get(f"{provider}:{model}")

    def list_models(self, provider: str | None = None) -> list[ImageModelCapability]:
        return [c for c in self._models.values() if provider is None or c.provider == provider]

    def providers(self) -> list[str]:
        return sorted({c.provider for c in self._models.values()})

    def default_for(self, provider: str, detail: str) -> ImageModelCapability | None:
        model = self._defaults.get((provider, detail)) or self._defaults.get((provider, "standard"))
        return self.get(provider, model) if model else None


IMAGE_REGISTRY = ImageModelRegistry()

# Google - Gemini image via the Generative Language API
IMAGE_REGISTRY.register(ImageModelCapability("google", "gemini-3-pro-image-preview", "gemini-3-pro-image-preview"))
IMAGE_REGISTRY.register(ImageModelCapability("google", "gemini-3-pro-image", "gemini-3-pro-image"))
# Google - Imagen 3 via Vertex AI, gated
IMAGE_REGISTRY.register(ImageModelCapability("google", "imagen-3.0", "imagen-3.0-generate-001", requires_vertex=True))
IMAGE_REGISTRY.register(ImageModelCapability("google", "imagen-3.0-lite", "imagen-3.0-fast-generate-001", requires_vertex=True))
IMAGE_REGISTRY.register(ImageModelCapability("google", "imagen-3.0-highres", "imagen-3.0-generate-002", requires_vertex=True))

# OpenAI
IMAGE_REGISTRY.register(ImageModelCapability("openai", "dall-e-3", "dall-e-3"))
IMAGE_REGISTRY.register(ImageModelCapability("openai", "gpt-image-1024", "gpt-image-1"))
IMAGE_REGISTRY.register(ImageModelCapability("openai", "gpt-image-512", "gpt-image-1"))

IMAGE_REGISTRY.set_default("google", "cheap", "gemini-3-pro-image-preview")
IMAGE_REGISTRY.set_default("google", "standard", "gemini-3-pro-image")
IMAGE_REGISTRY.set_default("google", "pro", "gemini-3-pro-image")
IMAGE_REGISTRY.set_default("openai", "cheap", "gpt-image-512")
IMAGE_REGISTRY.set_default("openai", "standard", "gpt-image-1024")
IMAGE_REGISTRY.set_default("openai", "pro", "dall-e-3")


def resolve_model(
    provider: str,
    settings: Settings,
    requested_model: str | None = None,
    detail: str = "standard",
) -> ImageModelCapability | None:
    """Pick the model for ``provider``.

    Returns None for providers without registered models (they use their
    configured default). Raises ValidationError for an unsupported requested
    model and FeatureDisabledError for Imagen without Vertex AI.
    """
    provider = provider.lower()
    if provider not in IMAGE_REGISTRY.providers():
        if requested_model:
            logger.info("Model override %s ignored for provider %s", requested_model, provider)
        return None

    cap: ImageModelCapability | None = None
    if requested_model and requested_model.strip():
        model = requested_model.strip().lower()
        cap = IMAGE_REGISTRY.get(provider, model)
        if cap is None:
            supported = ", ".join(c.model for c in IMAGE_REGISTRY.list_models(provider))
            raise ValidationError(
                f"Unsupported model '{model}' for {provider} provider",
                reason=f"Supported: {supported}",
            )
    elif settings.AI_IMAGE_MODEL.strip():
        # An env model for another provider falls through to the default
        cap = IMAGE_REGISTRY.get(provider, settings.AI_IMAGE_MODEL.strip().lower())

    if cap is None:
        cap = IMAGE_REGISTRY.default_for(provider, detail if detail in DETAIL_TIERS else "standard")

    if cap is not None and cap.requires_vertex and not settings.ENABLE_VERTEX_AI:
        raise FeatureDisabledError(
            f"Google Imagen 3 (Vertex AI) is disabled; cannot use {cap.model}",
            reason="Enable ENABLE_VERTEX_AI or select a Gemini image model",
        )
    return cap
