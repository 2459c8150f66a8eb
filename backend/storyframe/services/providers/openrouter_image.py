"""OpenRouter image provider (multimodal chat completions with image output)."""

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
    decode_data_uri,
    download_bytes,
    to_data_uri,
)

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"

IMAGE_SYSTEM_PROMPT = (
    "You are a storyboard illustrator. Generate exactly one image that follows "
    "the description, keeping the referenced character's identity, outfit and "
    "proportions consistent with the supplied reference images."
)


class OpenRouterImageProvider(ImageProvider):
    name = "openrouter"
    supports_batch = False

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "google/gemini-2.5-flash-image",
        base_url: str | None = None,
        config: ProviderConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not api_key:
            raise ValueError("OpenRouter API key is required")
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
        text = prompt
        if options.negative_prompt:
            text = f"{text} \nAvoid: {options.negative_prompt}"

        user_content: list[dict[str, Any]] = [
            {"type": "image_url", "image_url": {"url": to_data_uri(data)}}
            for data in images
        ]
        user_content.append({"type": "text", "text": text})

        body = {
            "model": model,
            "messages": [
                {"role": "system", "content": IMAGE_SYSTEM_PROMPT},
                {"role": "user", "content": user_content},
            ],
            "modalities": ["image", "text"],
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        logger.info("Calling OpenRouter image model=%s refs=%d", model, len(images))
        client, own_client = self._client()
        try:
            resp = await client.post(f"{self.base_url}/chat/completions", headers=headers, json=body)
            resp.raise_for_status()
            data = resp.json()

            if data.get("error"):
                raise RuntimeError(f"OpenRouter image error: {data['error']}")
            choices = data.get("choices") or []
            if not choices:
                raise RuntimeError("OpenRouter returned empty choices")

            choice = choices[0]
            finish_reason = choice.get("finish_reason", "")
            if finish_reason in ("content_filter", "safety"):
                raise RuntimeError(f"Image blocked by content filter (finish_reason={finish_reason})")

            message = choice.get("message") or {}
            image_data = await self._extract_image(client, message)
        finally:
            if own_client:
                await client.aclose()

        if not image_data:
            raise RuntimeError(f"OpenRouter returned no image data (finish_reason={finish_reason})")

        metadata: dict[str, Any] = {"model": model}
        if isinstance(message.get("content"), str) and message["content"].strip():
            metadata["summary"] = message["content"].strip()[:500]
        return [ImageResult(image=image_data, provider=self.name, metadata=metadata)]

    async def _extract_image(self, client: httpx.AsyncClient, message: dict[str, Any]) -> bytes | None:
        # "images" array first, then multimodal content parts
        candidates: list[Any] = list(message.get("images") or [])
        if isinstance(message.get("content"), list):
            candidates.extend(message["content"])

        for part in candidates:
            if part.get("type") == "image_url":
                url_obj = part.get("image_url", {})
                url = url_obj.get("url", "") if isinstance(url_obj, dict) else str(url_obj)
                if url.startswith("data:"):
                    return decode_data_uri(url)
                if url.startswith("http"):
                    return await download_bytes(client, url)
            inline = part.get("inline_data")
            if inline and inline.get("data"):
                return base64.b64decode(inline["data"])
        return None
