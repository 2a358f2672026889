"""Data models for the live image generator."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, StrictBool, StrictStr


class AspectRatio(str, Enum):
    SQUARE = "1:1"
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"
    STANDARD = "4:3"


class Quality(str, Enum):
    STANDARD = "standard"
    HIGH = "high"
    MAX = "max"


class ModelVariant(str, Enum):
    STANDARD = "standard"
    CREATIVE = "creative"
    REALISTIC = "realistic"


ASPECT_RATIO_LABELS: dict[str, str] = {
    "1:1": "Square (1:1)",
    "16:9": "Landscape (16:9)",
    "9:16": "Portrait (9:16)",
    "4:3": "Standard (4:3)",
}

QUALITY_LABELS: dict[str, str] = {
    "standard": "Standard",
    "high": "High",
    "max": "Maximum",
}

MODEL_LABELS: dict[str, str] = {
    "standard": "Standard (Default)",
    "creative": "Creative",
    "realistic": "Realistic",
}

# Inclusive bounds for the numeric settings.
SETTING_RANGES: dict[str, tuple[int, int]] = {
    "style_strength": (0, 100),
    "guidance_scale": (1, 20),
    "steps": (10, 150),
}

_REQUEST_FIELD_NAMES: dict[str, str] = {
    "aspect_ratio": "aspectRatio",
    "quality": "quality",
    "style_strength": "styleStrength",
    "model": "model",
    "guidance_scale": "guidanceScale",
    "steps": "steps",
}


@dataclass(frozen=True)
class GenerationSettings:
    """User-adjustable generation settings.

    Instances are immutable and compare structurally, so they can be used as
    part of a fetch key and diffed to detect pending changes.
    """

    aspect_ratio: str = AspectRatio.SQUARE.value
    quality: str = Quality.STANDARD.value
    style_strength: int = 75
    model: str = ModelVariant.STANDARD.value
    guidance_scale: int = 7
    steps: int = 30

    def __post_init__(self) -> None:
        for name, enum_cls in (
            ("aspect_ratio", AspectRatio),
            ("quality", Quality),
            ("model", ModelVariant),
        ):
            value = getattr(self, name)
            try:
                # Normalize enum members to their plain string value.
                object.__setattr__(self, name, enum_cls(value).value)
            except ValueError:
                allowed = [m.value for m in enum_cls]
                raise ValueError(f"Invalid {name}: {value!r}. Allowed: {allowed}") from None

        for name, (low, high) in SETTING_RANGES.items():
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if not low <= value <= high:
                raise ValueError(f"{name} must be between {low} and {high}, got {value}")

    def with_value(self, name: str, value: Any) -> GenerationSettings:
        if name not in {f.name for f in fields(self)}:
            raise ValueError(f"Unknown setting: {name}")
        return replace(self, **{name: value})

    def to_request_fields(self) -> dict[str, Any]:
        """Render the settings with the camelCase names used on the wire."""
        return {_REQUEST_FIELD_NAMES[k]: v for k, v in asdict(self).items()}


DEFAULT_SETTINGS = GenerationSettings()


@dataclass(frozen=True)
class ImageResponse:
    b64_json: str
    inference_s: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImageResponse:
        if not isinstance(data, dict) or not isinstance(data.get("b64_json"), str):
            raise ValueError("Image response is missing 'b64_json'")
        timings = data.get("timings") or {}
        inference = timings.get("inference", 0.0) if isinstance(timings, dict) else 0.0
        return cls(b64_json=data["b64_json"], inference_s=float(inference or 0.0))


@dataclass(frozen=True)
class Generation:
    prompt: str
    image: ImageResponse


@dataclass(frozen=True)
class Notification:
    title: str
    description: str = ""
    variant: str = "default"

    @property
    def is_destructive(self) -> bool:
        return self.variant == "destructive"


@dataclass
class QueryState:
    """Outcome of the query bound to the current fetch key."""

    data: ImageResponse | None = None
    error: str | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


class GenerateImageRequest(BaseModel):
    """Body accepted by ``POST /api/generateImage``.

    Settings fields sent by the UI (``aspectRatio``, ``steps``...) are accepted
    and ignored; the endpoint uses fixed generation parameters.
    """

    model_config = ConfigDict(extra="ignore")

    prompt: StrictStr
    iterativeMode: StrictBool
    userAPIKey: StrictStr | None = None

    @property
    def user_api_key(self) -> str | None:
        key = (self.userAPIKey or "").strip()
        return key or None
