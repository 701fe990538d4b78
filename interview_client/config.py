"""Runtime configuration for the interview client."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from dotenv import load_dotenv


# Load environment variables from .env file
_env_path = Path(__file__).parent.parent / ".env"
load_dotenv(_env_path)


DEFAULT_API_BASE_URL: Final[str] = "http://localhost:8000"
DEFAULT_HTTP_TIMEOUT_SECONDS: Final[float] = 30.0
DEFAULT_STREAM_CONNECT_TIMEOUT_SECONDS: Final[float] = 10.0
DEFAULT_STREAM_STALL_TIMEOUT_SECONDS: Final[float] = 60.0
DEFAULT_STREAM_RECONNECT_ATTEMPTS: Final[int] = 2
DEFAULT_STREAM_RETRY_DELAY_SECONDS: Final[float] = 1.0


@dataclass(frozen=True)
class ClientConfig:
    """Backend endpoint and stream timing settings."""

    api_base_url: str = DEFAULT_API_BASE_URL
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    stream_connect_timeout_seconds: float = DEFAULT_STREAM_CONNECT_TIMEOUT_SECONDS
    stream_stall_timeout_seconds: float = DEFAULT_STREAM_STALL_TIMEOUT_SECONDS
    stream_reconnect_attempts: int = DEFAULT_STREAM_RECONNECT_ATTEMPTS
    stream_retry_delay_seconds: float = DEFAULT_STREAM_RETRY_DELAY_SECONDS


def normalize_base_url(raw_url: str) -> str:
    """Strip whitespace and trailing slashes, require an http(s) scheme."""
    base_url = (raw_url or "").strip().rstrip("/")
    if not base_url:
        raise RuntimeError("INTERVIEW_API_BASE_URL resolved to empty value.")
    if not base_url.startswith(("http://", "https://")):
        raise RuntimeError(
            f"INTERVIEW_API_BASE_URL must start with http:// or https://. Got: {base_url}"
        )
    return base_url


def _read_positive_float(name: str, default: float) -> float:
    raw_value = (os.environ.get(name, str(default)) or "").strip()
    if not raw_value:
        raise RuntimeError(f"{name} resolved to empty value.")
    try:
        value = float(raw_value)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number. Got: {raw_value}") from exc
    if value <= 0:
        raise RuntimeError(f"{name} must be greater than zero. Got: {value}.")
    return value


def _read_non_negative_int(name: str, default: int) -> int:
    raw_value = (os.environ.get(name, str(default)) or "").strip()
    if not raw_value:
        raise RuntimeError(f"{name} resolved to empty value.")
    try:
        value = int(raw_value)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer. Got: {raw_value}") from exc
    if value < 0:
        raise RuntimeError(f"{name} must be zero or greater. Got: {value}.")
    return value


def load_client_config() -> ClientConfig:
    """Load client config from environment with strict validation."""
    return ClientConfig(
        api_base_url=normalize_base_url(
            os.environ.get("INTERVIEW_API_BASE_URL", DEFAULT_API_BASE_URL)
        ),
        http_timeout_seconds=_read_positive_float(
            "HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS
        ),
        stream_connect_timeout_seconds=_read_positive_float(
            "STREAM_CONNECT_TIMEOUT_SECONDS", DEFAULT_STREAM_CONNECT_TIMEOUT_SECONDS
        ),
        stream_stall_timeout_seconds=_read_positive_float(
            "STREAM_STALL_TIMEOUT_SECONDS", DEFAULT_STREAM_STALL_TIMEOUT_SECONDS
        ),
        stream_reconnect_attempts=_read_non_negative_int(
            "STREAM_RECONNECT_ATTEMPTS", DEFAULT_STREAM_RECONNECT_ATTEMPTS
        ),
        stream_retry_delay_seconds=_read_positive_float(
            "STREAM_RETRY_DELAY_SECONDS", DEFAULT_STREAM_RETRY_DELAY_SECONDS
        ),
    )
