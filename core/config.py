"""Environment-driven configuration for the proxy endpoint and the UI client."""

from __future__ import annotations

import os
from dataclasses import dataclass

TOGETHER_BASE_URL = "https://api.together.xyz/v1"
HELICONE_BASE_URL = "https://together.helicone.ai/v1"
DEFAULT_ENDPOINT_URL = "http://localhost:5000/api/generateImage"


def _env(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class ServerConfig:
    """Settings read by the generation proxy endpoint."""

    together_api_key: str = ""
    together_base_url: str = TOGETHER_BASE_URL
    helicone_api_key: str = ""
    ratelimit_storage_uri: str = ""
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> ServerConfig:
        return cls(
            together_api_key=_env("TOGETHER_API_KEY"),
            together_base_url=_env("TOGETHER_BASE_URL", TOGETHER_BASE_URL) or TOGETHER_BASE_URL,
            helicone_api_key=_env("HELICONE_API_KEY"),
            ratelimit_storage_uri=_env("RATELIMIT_STORAGE_URI"),
            log_level=_env("LOG_LEVEL", "INFO").upper() or "INFO",
        )

    @property
    def rate_limiting_enabled(self) -> bool:
        return bool(self.ratelimit_storage_uri)


@dataclass(frozen=True)
class ClientConfig:
    """Settings read by the Streamlit UI."""

    endpoint_url: str = DEFAULT_ENDPOINT_URL
    fetch_timeout_s: float = 120.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> ClientConfig:
        raw_timeout = _env("KEYSTROKE_FETCH_TIMEOUT_S", "120")
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise ValueError(
                f"KEYSTROKE_FETCH_TIMEOUT_S must be a number, got {raw_timeout!r}"
            ) from None
        return cls(
            endpoint_url=_env("KEYSTROKE_API_URL", DEFAULT_ENDPOINT_URL) or DEFAULT_ENDPOINT_URL,
            fetch_timeout_s=timeout,
            log_level=_env("LOG_LEVEL", "INFO").upper() or "INFO",
        )
