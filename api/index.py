"""Flask entrypoint exposing the image generation proxy.

``app`` is the WSGI object picked up by serverless runtimes such as Vercel;
run ``python api/index.py`` for a local development server.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, Response, jsonify, request
from pydantic import ValidationError

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from core.config import ServerConfig
from core.models import GenerateImageRequest
from core.providers import ITERATIVE_SEED, ImageProvider, build_provider
from core.ratelimit import (
    NO_REQUESTS_LEFT_MESSAGE,
    FixedWindowRateLimiter,
    RateLimiter,
    resolve_client_ip,
)

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str | None], ImageProvider]


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "body"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


def create_app(
    config: ServerConfig | None = None,
    provider_factory: ProviderFactory | None = None,
    rate_limiter: RateLimiter | None = None,
) -> Flask:
    """Build the proxy app.

    ``provider_factory`` receives the caller's API key (or None) and returns the
    provider for that request. ``rate_limiter`` defaults to a fixed-window
    limiter when ``RATELIMIT_STORAGE_URI`` is configured, else no limiting.
    """
    config = config or ServerConfig.from_env()
    if provider_factory is None:
        def provider_factory(user_api_key: str | None) -> ImageProvider:
            return build_provider(config, user_api_key)
    if rate_limiter is None and config.rate_limiting_enabled:
        rate_limiter = FixedWindowRateLimiter.from_uri(config.ratelimit_storage_uri)

    app = Flask(__name__)
    app.extensions["keystroke"] = {
        "config": config,
        "provider_factory": provider_factory,
        "rate_limiter": rate_limiter,
    }

    @app.get("/api/health")
    def health():
        return jsonify({"ok": True, "rateLimited": rate_limiter is not None})

    @app.post("/api/generateImage")
    def generate_image():
        payload = request.get_json(force=True, silent=True)
        if not isinstance(payload, dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400
        try:
            body = GenerateImageRequest.model_validate(payload)
        except ValidationError as exc:
            logger.info("Rejected generateImage request: %s", _validation_message(exc))
            return jsonify({"error": _validation_message(exc)}), 400

        user_api_key = body.user_api_key

        if rate_limiter is not None and not user_api_key:
            identifier = resolve_client_ip(request.headers)
            try:
                allowed = rate_limiter.limit(identifier)
            except Exception as exc:
                logger.exception("Rate limit check failed")
                return jsonify({"error": str(exc)}), 500
            if not allowed:
                logger.warning("Rate limit exceeded for %s", identifier)
                return Response(NO_REQUESTS_LEFT_MESSAGE, status=429, mimetype="text/plain")

        seed = ITERATIVE_SEED if body.iterativeMode else None
        try:
            provider = provider_factory(user_api_key)
            image = provider.generate(body.prompt, seed=seed)
        except Exception as exc:
            logger.exception("Image generation failed")
            return jsonify({"error": str(exc)}), 500

        return jsonify(image)

    return app


load_dotenv()
logging.basicConfig(level=ServerConfig.from_env().log_level)

app = create_app()


if __name__ == "__main__":
    app.run(debug=False, port=5000)
