"""Google Gemini image provider (Generative Language API).

Sends the prompt and inline reference images to ``:generateContent``;
collects ``inline_data`` parts from every candidate.
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

_DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


def extract_google_images(data: dict[str, Any]) -> list[ImageResult]:
    """Pull image parts (snake or camel case) and text summaries out of a response."""
    results: list[ImageResult] = []
    for candidate in data.get("candidates") or []:
        parts = (candidate.get("content") or {}).get("parts") or []
        texts = [p["text"] for p in parts if isinstance(p.get("text"), str) and p["text"].strip()]
        for part in parts:
            inline = part.get("inline_data") or part.get("inlineData")
            if not inline or not inline.get("data"):
                continue
            metadata: dict[str, Any] = {}
            if texts:
                metadata["summary"] = " ".join(texts)
            if candidate.get("safetyRatings"):
                metadata["safety_ratings"] = candidate["safetyRatings"]
            if candidate.get("finishReason"):
                metadata["finish_reason"] = candidate["finishReason"]
            results.append(ImageResult(
                image=base64.b64decode(inline["data"]),
                provider="google",
                mime_type=inline.get("mime_type") or inline.get("mimeType") or "image/png",
                metadata=metadata,
            ))
    return results


class GoogleImageProvider(ImageProvider):
    name = "google"
    supports_batch = False

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gemini-3-pro-image-preview",
        base_url: str | None = None,
        config: ProviderConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not api_key:
            raise ValueError("Google API key is required")
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
        if options.transparent:
            text = f"{text} \nUse a plain transparent or solid background."

        parts: list[dict[str, Any]] = [{"text": text}]
        for data in images:
            parts.append({
                "inline_data": {
                    "mime_type": "image/png",
                    "data": base64.b64encode(data).decode("ascii"),
                },
            })

        payload = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "candidateCount": count,
                "responseModalities": ["TEXT", "IMAGE"],
            },
        }

        url = f"{self.base_url}/models/{model}:generateContent"
        logger.info("Calling Google image model=%s refs=%d", model, len(images))

        client, own_client = self._client()
        try:
            resp = await client.post(url, params={"key": self.api_key}, json=payload)
            resp.raise_for_status()
            data = resp.json()
        finally:
            if own_client:
                await client.aclose()

        if data.get("error"):
            raise RuntimeError(f"Google image error: {data['error'].get('message', data['error'])}")
        feedback = data.get("promptFeedback") or {}
        if feedback.get("blockReason"):
            raise RuntimeError(f"Google blocked the prompt: {feedback['blockReason']}")

        results = extract_google_images(data)
        if not results:
            raise RuntimeError("No image generated by Google - check model compatibility")
        for result in results:
            result.metadata.setdefault("model", model)
        return results
