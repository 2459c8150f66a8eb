"""OpenAI image provider.

Reference images go to ``/images/edits`` as ``image[]`` parts; prompt-only
requests use ``/images/generations``. Batches use ``n``.
"""

from __future__ import annotations

import base64
import logging
from typing import Any

import httpx

from storyframe.services.providers.base import (
    GenerationOptions,
    ImageProvider,
    ImageResult,
    ProviderConfig,
    download_bytes,
)

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://api.openai.com/v1"


def _openai_size(width: int, height: int, model: str) -> str:
    if model == "dall-e-3":
        if width > height:
            return "1792x1024"
        if height > width:
            return "1024x1792"
        return "1024x1024"
    if width > height:
        return "1536x1024"
    if height > width:
        return "1024x1536"
    return "1024x1024"


class OpenAIImageProvider(ImageProvider):
    name = "openai"
    supports_batch = True

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gpt-image-1",
        base_url: str | None = None,
        config: ProviderConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not api_key:
            raise ValueError("OpenAI API key is required")
        super().__init__(config, http_client)
        self.api_key = api_key
        self.model = model
        self.base_url = (base_url or _DEFAULT_BASE_URL).rstrip("/")

    async def _render(
        self,
        prompt: str,
        images: list[bytes],
        options: GenerationOptions,
        count: int,
    ) -> list[ImageResult]:
        model = options.model or self.model
        size = _openai_size(options.width, options.height, model)
        if options.negative_prompt:
            prompt = f"{prompt} \nAvoid: {options.negative_prompt}"

        headers = {"Authorization": f"Bearer {self.api_key}"}
        client, own_client = self._client()
        try:
            if images:
                files: list[tuple[str, tuple[str, bytes, str]]] = [
                    ("image[]", (f"image-{i}.png", data, "image/png"))
                    for i, data in enumerate(images)
                ]
                if options.mask_image:
                    files.append(("mask", ("mask.png", options.mask_image, "image/png")))
                form: dict[str, Any] = {
                    "model": model,
                    "prompt": prompt,
                    "n": str(count),
                    "size": size,
                }
                if options.transparent:
                    form["background"] = "transparent"
                if options.quality and model == "dall-e-3":
                    form["quality"] = options.quality
                logger.info("Calling OpenAI image edit model=%s n=%d refs=%d", model, count, len(images))
                resp = await client.post(
                    f"{self.base_url}/images/edits", headers=headers, data=form, files=files,
                )
            else:
                body: dict[str, Any] = {
                    "model": model,
                    "prompt": prompt,
                    "n": count,
                    "size": size,
                }
                if model == "dall-e-3":
                    body["response_format"] = "b64_json"
                if options.quality and model == "dall-e-3":
                    body["quality"] = options.quality
                logger.info("Calling OpenAI image generation model=%s n=%d", model, count)
                resp = await client.post(
                    f"{self.base_url}/images/generations", headers=headers, json=body,
                )
            resp.raise_for_status()
            data = resp.json()

            if data.get("error"):
                raise RuntimeError(f"OpenAI image error: {data['error']}")

            results: list[ImageResult] = []
            for index, item in enumerate(data.get("data") or []):
                image_data: bytes | None = None
                if item.get("b64_json"):
                    image_data = base64.b64decode(item["b64_json"])
                elif item.get("url"):
                    image_data = await download_bytes(client, item["url"])
                if not image_data:
                    continue
                metadata: dict[str, Any] = {"model": model, "size": size, "variant_index": index}
                if item.get("revised_prompt"):
                    metadata["summary"] = item["revised_prompt"]
                results.append(ImageResult(image=image_data, provider=self.name, metadata=metadata))

            if not results:
                raise RuntimeError("OpenAI did not return image data")
            return results
        finally:
            if own_client:
                await client.aclose()
