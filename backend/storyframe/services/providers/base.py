from __future__ import annotations
"""Provider capability interface - uniform retry, timeout and placeholder fallback.

Every adapter implements ``_render`` only. The public ``generate_*`` methods
wrap it and never raise: once retries are exhausted they return placeholder
results flagged with ``fallback=True`` and the upstream error message.
"""

import asyncio
import base64
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

from storyframe.services.prompts import describe_references
from storyframe.services.placeholder_image import render_placeholder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageReference:
    """A stored image sent alongside a prompt. Used to describe it in text."""

    role: str  # character | pose | previous | reference | mask
    bucket: str
    path: str
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "bucket": self.bucket,
            "path": self.path,
            "description": self.description,
        }


@dataclass
class GenerationOptions:
    width: int = 1024
    height: int = 1024
    negative_prompt: str | None = None
    steps: int = 30
    guidance: float = 7.0
    seed: int | None = None
    transparent: bool = False
    model: str | None = None
    quality: str | None = None
    mask_image: bytes | None = None


@dataclass
class ImageResult:
    """One generated image (real or placeholder)."""

    image: bytes
    provider: str
    mime_type: str = "image/png"
    metadata: dict[str, Any] = field(default_factory=dict)
    fallback: bool = False
    error: str | None = None

    @property
    def summary(self) -> str | None:
        return self.metadata.get("summary")


@dataclass
class ProviderConfig:
    """Retry/timeout policy for one adapter."""
    max_retries: int = 1
    retry_delay: float = 2.0
    timeout: float = 120.0


class ImageProvider(ABC):
    """Abstract image provider.

    Provides:
    - Retry with linear backoff
    - Timeout enforcement per upstream call
    - Placeholder fallback instead of exceptions
    - Exactly ``variants`` results for continuation requests
    """

    name: str = "unknown"
    supports_batch: bool = False

    def __init__(
        self,
        config: ProviderConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.config = config or ProviderConfig()
        self._http_client = http_client

    # -- capability surface -------------------------------------------------

    async def generate_pose_from_character(
        self,
        base_image: bytes,
        prompt: str,
        references: list[ImageReference] | None = None,
        options: GenerationOptions | None = None,
    ) -> ImageResult:
        options = options or GenerationOptions(transparent=True)
        results = await self._execute(
            "pose", self._compose(prompt, references), [base_image], options, 1,
        )
        return results[0]

    async def generate_scene_from_character(
        self,
        base_image: bytes,
        prompt: str,
        pose_image: bytes | None = None,
        references: list[ImageReference] | None = None,
        options: GenerationOptions | None = None,
        extra_images: list[bytes] | None = None,
    ) -> ImageResult:
        images = [base_image]
        if pose_image:
            images.append(pose_image)
        images.extend(extra_images or [])
        results = await self._execute(
            "scene", self._compose(prompt, references), images, options or GenerationOptions(), 1,
        )
        return results[0]

    async def generate_scene_continuation(
        self,
        base_image: bytes,
        prompt: str,
        previous_frames: list[bytes] | None = None,
        pose_image: bytes | None = None,
        references: list[ImageReference] | None = None,
        options: GenerationOptions | None = None,
        variants: int = 5,
    ) -> list[ImageResult]:
        images = [base_image]
        if pose_image:
            images.append(pose_image)
        images.extend(previous_frames or [])
        return await self._execute(
            "continuation", self._compose(prompt, references), images,
            options or GenerationOptions(), max(1, variants),
        )

    async def generate_from_prompt(
        self,
        prompt: str,
        options: GenerationOptions | None = None,
    ) -> ImageResult:
        results = await self._execute("text", prompt, [], options or GenerationOptions(), 1)
        return results[0]

    # -- adapter hook -------------------------------------------------------

    @abstractmethod
    async def _render(
        self,
        prompt: str,
        images: list[bytes],
        options: GenerationOptions,
        count: int,
    ) -> list[ImageResult]:
        """Call the upstream API. May raise; may return fewer than ``count``."""
        ...

    # -- internals ----------------------------------------------------------

    @staticmethod
    def _compose(prompt: str, references: list[ImageReference] | None) -> str:
        lines = describe_references(references or [])
        if not lines:
            return prompt
        return prompt + " \n" + " \n".join(lines)

    async def _attempt(
        self,
        operation: str,
        prompt: str,
        images: list[bytes],
        options: GenerationOptions,
        count: int,
    ) -> list[ImageResult]:
        """One upstream call under the retry policy. Raises the last error."""
        last_error: Exception | None = None
        for attempt in range(self.config.max_retries + 1):
            try:
                results = await asyncio.wait_for(
                    self._render(prompt, images, options, count),
                    timeout=self.config.timeout,
                )
                if not results:
                    raise RuntimeError(f"{self.name} returned no images")
                return results
            except Exception as e:
                last_error = e
                logger.warning(
                    "%s %s attempt %d/%d failed: %s",
                    self.name, operation, attempt + 1, self.config.max_retries + 1,
                    _describe(e),
                )
                if attempt < self.config.max_retries:
                    await asyncio.sleep(self.config.retry_delay * (attempt + 1))
        raise last_error

    async def _execute(
        self,
        operation: str,
        prompt: str,
        images: list[bytes],
        options: GenerationOptions,
        count: int,
    ) -> list[ImageResult]:
        if self.supports_batch or count == 1:
            try:
                results = await self._attempt(operation, prompt, images, options, count)
            except Exception as e:
                message = _describe(e)
                logger.warning("%s %s: using placeholder fallback (%s)", self.name, operation, message)
                return [
                    self._placeholder(prompt, options, index, error=message)
                    for index in range(count)
                ]
            return self._fit(results, count, prompt, options)

        # Sequential adapters: each variant gets its own timeout and retries.
        variants: list[ImageResult] = []
        for index in range(count):
            try:
                rendered = await self._attempt(operation, prompt, images, options, 1)
            except Exception as e:
                message = _describe(e)
                logger.warning(
                    "%s %s variant %d: using placeholder fallback (%s)",
                    self.name, operation, index, message,
                )
                variants.append(self._placeholder(prompt, options, index, error=message))
                continue
            variants.append(rendered[0])
        return variants

    def _fit(
        self,
        results: list[ImageResult],
        count: int,
        prompt: str,
        options: GenerationOptions,
    ) -> list[ImageResult]:
        """Truncate or top up so exactly ``count`` results come back."""
        if len(results) > count:
            return results[:count]
        if len(results) < count:
            logger.info("%s returned %d of %d variants, padding", self.name, len(results), count)
            missing = range(len(results), count)
            results = results + [
                self._placeholder(
                    prompt, options, index,
                    error=f"{self.name} returned {len(results)} of {count} variants",
                )
                for index in missing
            ]
        return results

    def _placeholder(
        self,
        prompt: str,
        options: GenerationOptions,
        index: int = 0,
        error: str | None = None,
    ) -> ImageResult:
        return ImageResult(
            image=render_placeholder(
                prompt, options.width, options.height,
                label=f"{self.name} unavailable", variant=index,
                transparent=options.transparent,
            ),
            provider=self.name,
            metadata={
                "note": f"Placeholder image: {self.name} generation failed",
                "variant_index": index,
            },
            fallback=True,
            error=error,
        )

    def _client(self) -> tuple[httpx.AsyncClient, bool]:
        """Return (client, owned). Owned clients must be closed by the caller."""
        if self._http_client is not None:
            return self._http_client, False
        return httpx.AsyncClient(timeout=self.config.timeout), True


def _describe(error: Exception | None) -> str:
    if error is None:
        return "unknown error"
    return str(error) or type(error).__name__


def decode_data_uri(value: str) -> bytes:
    """Decode ``data:image/...;base64,xxx`` or plain base64."""
    payload = value.split(",", 1)[1] if value.startswith("data:") and "," in value else value
    return base64.b64decode(payload)


def to_data_uri(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


async def download_bytes(client: httpx.AsyncClient, url: str) -> bytes:
    response = await client.get(url)
    response.raise_for_status()
    return response.content
