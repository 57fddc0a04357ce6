"""Proxy configuration with environment variable overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv(override=False)


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


_DEFAULT_ENDPOINT = "https://api.minimax.chat/v1/t2a_v2"
_DEFAULT_ASYNC_ENDPOINT = "https://api.minimax.chat/v1/t2a_async_v2"

_TTS_MODES = {"sync", "async"}
_AUDIO_ENCODINGS = {"base64", "hex"}


@dataclass(slots=True)
class Settings:
    """TTS proxy settings. Override any field via environment variable."""

    api_key: str = _env_str("MINIMAX_API_KEY")
    group_id: str = _env_str("GROUP_ID")
    voice_id: str = _env_str("VOICE_ID")

    tts_mode: str = _env_str("TTS_MODE", "sync").lower()
    tts_endpoint: str = _env_str("TTS_ENDPOINT", _DEFAULT_ENDPOINT)
    tts_async_endpoint: str = _env_str("TTS_ASYNC_ENDPOINT", _DEFAULT_ASYNC_ENDPOINT)
    # Empty means "<tts_async_endpoint>/query".
    tts_query_endpoint: str = _env_str("TTS_QUERY_ENDPOINT")
    tts_model: str = _env_str("TTS_MODEL", "speech-2.5-hd-preview")
    tts_speed: float = float(os.environ.get("TTS_SPEED", "1.0"))
    tts_vol: float = float(os.environ.get("TTS_VOL", "1.0"))
    tts_pitch: int = int(os.environ.get("TTS_PITCH", "0"))
    tts_audio_encoding: str = _env_str("TTS_AUDIO_ENCODING", "base64").lower()
    tts_default_content_type: str = _env_str("TTS_DEFAULT_CONTENT_TYPE", "audio/mpeg")
    tts_max_text_chars: int = int(os.environ.get("TTS_MAX_TEXT_CHARS", "5000"))

    poll_interval_s: float = float(os.environ.get("TTS_POLL_INTERVAL_S", "1.0"))
    poll_max_attempts: int = int(os.environ.get("TTS_POLL_MAX_ATTEMPTS", "20"))
    poll_max_transient_errors: int = int(
        os.environ.get("TTS_POLL_MAX_TRANSIENT_ERRORS", "3")
    )
    request_timeout_s: float = float(os.environ.get("TTS_REQUEST_TIMEOUT_S", "10.0"))
    request_deadline_s: float = float(os.environ.get("TTS_REQUEST_DEADLINE_S", "30.0"))

    host: str = os.environ.get("SERVER_HOST", "0.0.0.0")
    port: int = int(os.environ.get("SERVER_PORT", "8787"))
    log_level: str = _env_str("LOG_LEVEL", "INFO").upper()

    def __post_init__(self) -> None:
        if self.tts_mode not in _TTS_MODES:
            raise ValueError("TTS_MODE must be one of: sync, async")
        if self.tts_audio_encoding not in _AUDIO_ENCODINGS:
            raise ValueError("TTS_AUDIO_ENCODING must be one of: base64, hex")
        if not self.tts_default_content_type.startswith("audio/"):
            raise ValueError("TTS_DEFAULT_CONTENT_TYPE must be an audio/* media type")
        if self.tts_max_text_chars < 1:
            raise ValueError("TTS_MAX_TEXT_CHARS must be >= 1")
        if self.poll_interval_s < 0.0:
            raise ValueError("TTS_POLL_INTERVAL_S must be >= 0")
        if self.poll_max_attempts < 1:
            raise ValueError("TTS_POLL_MAX_ATTEMPTS must be >= 1")
        if self.poll_max_transient_errors < 1:
            raise ValueError("TTS_POLL_MAX_TRANSIENT_ERRORS must be >= 1")
        if self.request_timeout_s <= 0.0:
            raise ValueError("TTS_REQUEST_TIMEOUT_S must be > 0")
        if self.request_deadline_s <= 0.0:
            raise ValueError("TTS_REQUEST_DEADLINE_S must be > 0")
        if self.poll_interval_s * self.poll_max_attempts >= self.request_deadline_s:
            raise ValueError(
                "TTS_POLL_INTERVAL_S * TTS_POLL_MAX_ATTEMPTS must stay below "
                "TTS_REQUEST_DEADLINE_S"
            )

    @property
    def query_endpoint(self) -> str:
        if self.tts_query_endpoint:
            return self.tts_query_endpoint
        return f"{self.tts_async_endpoint.rstrip('/')}/query"

    def missing_credentials(self) -> list[str]:
        """Return the env var names of required credentials that are unset."""
        required = (
            ("MINIMAX_API_KEY", self.api_key),
            ("GROUP_ID", self.group_id),
            ("VOICE_ID", self.voice_id),
        )
        return [name for name, value in required if not value]


settings = Settings()
