"""Image generation provider interface and the Together AI implementation."""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Any

from together import Together
from together.error import TogetherException

from core.config import HELICONE_BASE_URL, TOGETHER_BASE_URL, ServerConfig

logger = logging.getLogger(__name__)

FLUX_SCHNELL_MODEL = "black-forest-labs/FLUX.1-schnell"
OUTPUT_WIDTH = 1024
OUTPUT_HEIGHT = 768
GENERATION_STEPS = 3
# Reused for every iterative-mode call; prior images are not used as references.
ITERATIVE_SEED = 123


class ProviderError(RuntimeError):
    """Raised when the image API cannot produce an image."""


def resolve_api_key(explicit: str | None, *env_names: str) -> str:
    """Return the explicit key if given, else the first non-empty env variable."""
    if explicit and explicit.strip():
        return explicit.strip()
    for name in env_names:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return ""


class ImageProvider(ABC):
    """Base interface for image generation providers."""

    @abstractmethod
    def generate(self, prompt: str, seed: int | None = None) -> dict[str, Any]:
        """Generate one image and return the provider's first image object."""


class TogetherProvider(ImageProvider):
    """Together AI images API, optionally routed through the Helicone proxy."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = TOGETHER_BASE_URL,
        model: str = FLUX_SCHNELL_MODEL,
        default_headers: dict[str, str] | None = None,
        timeout: float | None = 120,
    ) -> None:
        self.api_key = resolve_api_key(api_key, "TOGETHER_API_KEY")
        self.base_url = base_url
        self.model = model
        self.default_headers = dict(default_headers or {})
        self.timeout = timeout

    def _get_client(self) -> Together:
        return Together(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            supplied_headers=self.default_headers or None,
        )

    def generate(self, prompt: str, seed: int | None = None) -> dict[str, Any]:
        if not self.api_key:
            raise ProviderError(
                "Together API key is required. Set TOGETHER_API_KEY or supply your own key."
            )

        client = self._get_client()
        logger.info("Generating image via Together model=%s seeded=%s", self.model, seed is not None)

        try:
            response = client.images.generate(
                prompt=prompt,
                model=self.model,
                width=OUTPUT_WIDTH,
                height=OUTPUT_HEIGHT,
                seed=seed,
                steps=GENERATION_STEPS,
                n=1,
                response_format="base64",
            )
        except TogetherException as exc:
            raise ProviderError(str(exc) or exc.__class__.__name__) from exc

        if not response.data:
            raise ProviderError("Together returned no images.")
        return response.data[0].model_dump(exclude_none=True)


def build_provider(config: ServerConfig, user_api_key: str | None = None) -> ImageProvider:
    """Create the provider for a single request.

    A caller-supplied key replaces the server key for this call only. When a
    Helicone key is configured the call goes through the logging proxy and is
    tagged with whether the caller brought their own key.
    """
    base_url = config.together_base_url
    headers: dict[str, str] = {}
    if config.helicone_api_key:
        base_url = HELICONE_BASE_URL
        headers = {
            "Helicone-Auth": f"Bearer {config.helicone_api_key}",
            "Helicone-Property-BYOK": "true" if user_api_key else "false",
        }
    return TogetherProvider(
        api_key=user_api_key or config.together_api_key,
        base_url=base_url,
        default_headers=headers,
    )
