"""Analytics for the current prompt session."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from core.models import ImageResponse


@dataclass
class SessionAnalytics:
    """Tracks fetch outcomes for the current session."""

    fetch_count: int = 0
    inference_times: list[float] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)
    session_start: float = field(default_factory=time.time)

    def record_fetch(self) -> None:
        self.fetch_count += 1

    def record_success(self, image: ImageResponse) -> None:
        self.inference_times.append(image.inference_s)

    def record_error(self, prompt: str, error: str) -> None:
        self.errors.append({
            "prompt": prompt,
            "error": error,
            "timestamp": time.time(),
        })

    @property
    def success_count(self) -> int:
        return len(self.inference_times)

    @property
    def total_inference_time(self) -> float:
        return sum(self.inference_times)

    @property
    def avg_inference_time(self) -> float:
        if not self.inference_times:
            return 0.0
        return self.total_inference_time / len(self.inference_times)

    @property
    def session_duration(self) -> float:
        return time.time() - self.session_start

    def get_summary(self) -> dict[str, Any]:
        return {
            "fetches": self.fetch_count,
            "images": self.success_count,
            "errors": len(self.errors),
            "total_inference_s": round(self.total_inference_time, 2),
            "avg_inference_s": round(self.avg_inference_time, 2),
            "session_duration_s": round(self.session_duration, 2),
        }
