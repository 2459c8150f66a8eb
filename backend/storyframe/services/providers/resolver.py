"""Provider resolution.

Pure functions over an explicit Settings object: explicit override, then the
configured default, then the first provider with credentials, then the
placeholder.
"""

from __future__ import annotations

import logging

import httpx

from storyframe.config import Settings
from storyframe.errors import ValidationError
from storyframe.services.providers.base import ImageProvider, ProviderConfig
from storyframe.services.providers.google_image import GoogleImageProvider
from storyframe.services.providers.openai_image import OpenAIImageProvider
from storyframe.services.providers.openrouter_image import OpenRouterImageProvider
from storyframe.services.providers.placeholder import PlaceholderProvider
from storyframe.services.providers.stability_image import StabilityImageProvider

logger = logging.getLogger(__name__)

PLACEHOLDER = "placeholder"
PROVIDER_ORDER = ("openai", "google", "stability", "openrouter")
KNOWN_PROVIDERS = frozenset(PROVIDER_ORDER) | {PLACEHOLDER}


def _credentials(settings: Settings) -> dict[str, str]:
    return {
        "openai": settings.OPENAI_API_KEY,
        "google": settings.GOOGLE_API_KEY,
        "stability": settings.STABILITY_API_KEY,
        "openrouter": settings.OPENROUTER_API_KEY,
    }


def available_providers(settings: Settings) -> list[str]:
    creds = _credentials(settings)
    return [name for name in PROVIDER_ORDER if creds[name].strip()]


def resolve_provider_name(settings: Settings, requested: str | None = None) -> str:
    """Decide which provider serves a request.

    Unknown names are rejected; known names without credentials fall
    through to the next rule.
    """
    available = set(available_providers(settings))

    for source, value in (("request", requested), ("AI_IMAGE_PROVIDER", settings.AI_IMAGE_PROVIDER)):
        name = (value or "").strip().lower()
        if not name or name == "auto":
            continue
        if name not in KNOWN_PROVIDERS:
            if source == "request":
                raise ValidationError(
                    f"Unknown provider: {name}",
                    reason=f"Supported providers: {', '.join(sorted(KNOWN_PROVIDERS))}",
                )
            logger.warning("Ignoring unknown AI_IMAGE_PROVIDER=%s", name)
            continue
        if name == PLACEHOLDER or name in available:
            return name
        logger.warning("Provider %s requested via %s but has no credentials", name, source)

    for name in PROVIDER_ORDER:
        if name in available:
            return name
    return PLACEHOLDER


def build_provider(
    name: str,
    settings: Settings,
    model: str | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> ImageProvider:
    """Instantiate the adapter for ``name`` with its configured credentials."""
    config = ProviderConfig(
        max_retries=settings.PROVIDER_MAX_RETRIES,
        retry_delay=settings.PROVIDER_RETRY_DELAY,
        timeout=settings.PROVIDER_TIMEOUT,
    )
    if name == "openai":
        return OpenAIImageProvider(
            api_key=settings.OPENAI_API_KEY,
            model=model or settings.OPENAI_IMAGE_MODEL,
            base_url=settings.OPENAI_BASE_URL,
            config=config, http_client=http_client,
        )
    if name == "google":
        return GoogleImageProvider(
            api_key=settings.GOOGLE_API_KEY,
            model=model or settings.GOOGLE_IMAGE_MODEL,
            base_url=settings.GOOGLE_BASE_URL,
            config=config, http_client=http_client,
        )
    if name == "stability":
        return StabilityImageProvider(
            api_key=settings.STABILITY_API_KEY,
            engine=model or settings.STABILITY_ENGINE,
            base_url=settings.STABILITY_BASE_URL,
            config=config, http_client=http_client,
        )
    if name == "openrouter":
        return OpenRouterImageProvider(
            api_key=settings.OPENROUTER_API_KEY,
            model=model or settings.OPENROUTER_IMAGE_MODEL,
            base_url=settings.OPENROUTER_BASE_URL,
            config=config, http_client=http_client,
        )
    return PlaceholderProvider(config=config)


def resolve_provider(
    settings: Settings,
    requested: str | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> ImageProvider:
    name = resolve_provider_name(settings, requested)
    logger.info("Resolved image provider: %s (requested=%s)", name, requested or "-")
    return build_provider(name, settings, http_client=http_client)
