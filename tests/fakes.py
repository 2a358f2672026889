"""In-memory stand-ins for the image API, the rate limiter and the clock."""

from __future__ import annotations

import base64
import io

from PIL import Image

from core.models import ImageResponse
from core.providers import ImageProvider
from core.ratelimit import RateLimiter


def make_png_b64(color: str = "red", size: tuple[int, int] = (4, 3)) -> str:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode("ascii")


class FakeProvider(ImageProvider):
    def __init__(self, image: dict | None = None, error: Exception | None = None) -> None:
        self.image = image or {"b64_json": make_png_b64(), "timings": {"inference": 0.42}}
        self.error = error
        self.calls: list[tuple[str, int | None]] = []

    def generate(self, prompt: str, seed: int | None = None) -> dict:
        self.calls.append((prompt, seed))
        if self.error is not None:
            raise self.error
        return self.image


class RecordingLimiter(RateLimiter):
    """Counts calls; allows the first ``capacity`` per identifier."""

    def __init__(self, capacity: int = 100) -> None:
        self.capacity = capacity
        self.hits: dict[str, int] = {}

    def limit(self, identifier: str) -> bool:
        count = self.hits.get(identifier, 0) + 1
        self.hits[identifier] = count
        return count <= self.capacity


class UnreachableLimiter(RateLimiter):
    """Quota store that cannot be reached."""

    def limit(self, identifier: str) -> bool:
        raise ConnectionError("Error 111 connecting to quota store")


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetcher:
    """Returns a distinct image per call unless told to fail."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.fail_with: Exception | None = None
        self.fixed: ImageResponse | None = None

    def __call__(self, prompt, user_api_key, iterative_mode, settings) -> ImageResponse:
        self.calls.append((prompt, user_api_key, iterative_mode, settings))
        if self.fail_with is not None:
            raise self.fail_with
        if self.fixed is not None:
            return self.fixed
        colors = ["red", "green", "blue", "white", "black", "yellow"]
        color = colors[(len(self.calls) - 1) % len(colors)]
        return ImageResponse(b64_json=make_png_b64(color, size=(len(self.calls), 2)), inference_s=0.5)
