"""Request, job and audio models shared by the backend client, normalizer and poller."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from pydantic import BaseModel, field_validator


class SpeechRequest(BaseModel):
    """Inbound synthesis request body: ``{"text": "..."}``."""

    text: str

    @field_validator("text", mode="before")
    @classmethod
    def _strip_text(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("text")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value:
            raise ValueError("text must not be empty")
        return value


# ── Audio locators ─────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class InlineBytes:
    data: bytes


@dataclass(frozen=True, slots=True)
class RemoteUrl:
    url: str


@dataclass(frozen=True, slots=True)
class EmbeddedBase64:
    """Audio embedded in a JSON digest as an encoded string (base64 or hex)."""

    encoded: str


AudioLocator = Union[InlineBytes, RemoteUrl, EmbeddedBase64]


@dataclass(frozen=True, slots=True)
class AudioPayload:
    """Fully resolved audio ready to be returned to the caller."""

    data: bytes
    content_type: str


# ── Async jobs ─────────────────────────────────────────────────────────


@dataclass(slots=True)
class BackendJob:
    job_id: str
    created_at: float = field(default_factory=time.monotonic)


class JobState(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class JobStatus:
    """One poll observation. ``locator`` is set on success, ``reason`` on failure."""

    state: JobState
    locator: AudioLocator | None = None
    reason: str | None = None
    audio_format: str | None = None
    raw_status: str = ""
