"""TTS backend package exports."""

from tts_proxy.backend.client import MiniMaxClient
from tts_proxy.backend.normalizer import ResponseShapeNormalizer
from tts_proxy.backend.poller import JobPoller
from tts_proxy.backend.schemas import (
    AudioLocator,
    AudioPayload,
    BackendJob,
    EmbeddedBase64,
    InlineBytes,
    JobState,
    JobStatus,
    RemoteUrl,
    SpeechRequest,
)

__all__ = [
    "MiniMaxClient",
    "ResponseShapeNormalizer",
    "JobPoller",
    "AudioLocator",
    "AudioPayload",
    "BackendJob",
    "EmbeddedBase64",
    "InlineBytes",
    "JobState",
    "JobStatus",
    "RemoteUrl",
    "SpeechRequest",
]
