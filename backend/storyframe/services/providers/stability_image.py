"""Stability AI provider (SDXL v1 REST API).

Text-to-image without references, image-to-image from the first reference
otherwise, masked image-to-image when a mask is supplied.
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
)

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://api.stability.ai/v1"
IMAGE_STRENGTH = 0.65


def _snap(value: int) -> int:
    """SDXL dimensions must be multiples of 64."""
    return max(512, min(1536, (int(value) // 64) * 64))


class StabilityImageProvider(ImageProvider):
    name = "stability"
    supports_batch = True

    def __init__(
        self,
        *,
        api_key: str,
        engine: str = "stable-diffusion-xl-1024-v1-0",
        base_url: str | None = None,
        config: ProviderConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not api_key:
            raise ValueError("Stability API key is required")
        super().__init__(config, http_client)
        self.api_key = api_key
        self.engine = engine
        self.base_url = (base_url or _DEFAULT_BASE_URL).rstrip("/")

    async def _render(
        self,
        prompt: str,
        images: list[bytes],
        options: GenerationOptions,
        count: int,
    ) -> list[ImageResult]:
        engine = options.model or self.engine
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }
        prompts: list[dict[str, Any]] = [{"text": prompt, "weight": 1}]
        if options.negative_prompt:
            prompts.append({"text": options.negative_prompt, "weight": -1})

        client, own_client = self._client()
        try:
            if images:
                form: dict[str, Any] = {
                    "cfg_scale": str(options.guidance),
                    "steps": str(options.steps),
                    "samples": str(count),
                }
                for i, p in enumerate(prompts):
                    form[f"text_prompts[{i}][text]"] = p["text"]
                    form[f"text_prompts[{i}][weight]"] = str(p["weight"])
                if options.seed is not None:
                    form["seed"] = str(options.seed)
                files: dict[str, tuple[str, bytes, str]] = {
                    "init_image": ("init.png", images[0], "image/png"),
                }
                if options.mask_image:
                    url = f"{self.base_url}/generation/{engine}/image-to-image/masking"
                    form["mask_source"] = "MASK_IMAGE_BLACK"
                    files["mask_image"] = ("mask.png", options.mask_image, "image/png")
                else:
                    url = f"{self.base_url}/generation/{engine}/image-to-image"
                    form["init_image_mode"] = "IMAGE_STRENGTH"
                    form["image_strength"] = str(IMAGE_STRENGTH)
                logger.info("Calling Stability image-to-image engine=%s samples=%d", engine, count)
                resp = await client.post(url, headers=headers, data=form, files=files)
            else:
                body: dict[str, Any] = {
                    "text_prompts": prompts,
                    "cfg_scale": options.guidance,
                    "width": _snap(options.width),
                    "height": _snap(options.height),
                    "steps": options.steps,
                    "samples": count,
                }
                if options.seed is not None:
                    body["seed"] = options.seed
                logger.info("Calling Stability text-to-image engine=%s samples=%d", engine, count)
                resp = await client.post(
                    f"{self.base_url}/generation/{engine}/text-to-image",
                    headers=headers, json=body,
                )
            resp.raise_for_status()
            data = resp.json()
        finally:
            if own_client:
                await client.aclose()

        results: list[ImageResult] = []
        for index, artifact in enumerate(data.get("artifacts") or []):
            if artifact.get("finishReason") == "CONTENT_FILTERED":
                logger.warning("Stability artifact %d filtered", index)
                continue
            if not artifact.get("base64"):
                continue
            results.append(ImageResult(
                image=base64.b64decode(artifact["base64"]),
                provider=self.name,
                metadata={
                    "engine": engine,
                    "seed": artifact.get("seed"),
                    "finish_reason": artifact.get("finishReason"),
                    "variant_index": index,
                },
            ))
        if not results:
            raise RuntimeError(f"Stability returned no usable artifacts: {data.get('message', '')}")
        return results
