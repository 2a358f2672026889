"""HTTP client the UI uses to call the generation proxy endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from core.models import GenerationSettings, ImageResponse

logger = logging.getLogger(__name__)


class FetchError(RuntimeError):
    """The endpoint call failed; the message is what the UI shows."""


class GenerateImageClient:
    def __init__(
        self,
        endpoint_url: str,
        timeout: float | None = 120,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self._transport = transport

    @staticmethod
    def build_body(
        prompt: str,
        user_api_key: str,
        iterative_mode: bool,
        settings: GenerationSettings,
    ) -> dict[str, Any]:
        return {
            "prompt": prompt,
            "userAPIKey": user_api_key,
            "iterativeMode": iterative_mode,
            **settings.to_request_fields(),
        }

    def generate(
        self,
        prompt: str,
        user_api_key: str,
        iterative_mode: bool,
        settings: GenerationSettings,
    ) -> ImageResponse:
        body = self.build_body(prompt, user_api_key, iterative_mode, settings)
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as http:
                resp = http.post(self.endpoint_url, json=body)
        except httpx.HTTPError as exc:
            logger.warning("Endpoint request failed: %s", exc)
            raise FetchError(str(exc) or exc.__class__.__name__) from exc

        if resp.is_error:
            raise FetchError(resp.text or f"Request failed with status {resp.status_code}")

        try:
            return ImageResponse.from_dict(resp.json())
        except ValueError as exc:
            raise FetchError(f"Unexpected response from image endpoint: {exc}") from exc

    __call__ = generate
