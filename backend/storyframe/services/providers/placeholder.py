"""Placeholder provider - used when no image provider has credentials."""

from __future__ import annotations

from storyframe.services.placeholder_image import render_placeholder
from storyframe.services.providers.base import GenerationOptions, ImageProvider, ImageResult


class PlaceholderProvider(ImageProvider):
    """Deterministic local images. Never fails, so results are not fallbacks."""

    name = "placeholder"
    supports_batch = True

    async def _render(
        self,
        prompt: str,
        images: list[bytes],
        options: GenerationOptions,
        count: int,
    ) -> list[ImageResult]:
        return [
            ImageResult(
                image=render_placeholder(
                    prompt, options.width, options.height,
                    label="placeholder", variant=index,
                    transparent=options.transparent,
                ),
                provider=self.name,
                metadata={
                    "note": "Using placeholder - no AI provider configured",
                    "variant_index": index,
                },
            )
            for index in range(count)
        ]
