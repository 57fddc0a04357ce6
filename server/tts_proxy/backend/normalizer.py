"""Resolve the backend's several response shapes into raw audio bytes.

Decision order for a create response (first match wins):

1. ``Content-Type: audio/*``: the body is the audio.
2. JSON digest with a non-zero business code: ``UpstreamBusinessError``.
3. Digest with a remote audio URL: one secondary GET.
4. Digest with encoded audio: decode (base64, or hex when configured).
5. Otherwise: ``NoAudioDataError``.

The same procedure, minus step 1, applies to the digest returned when an
async job succeeds.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any

import httpx

from tts_proxy.backend.client import MiniMaxClient
from tts_proxy.backend.digest import (
    AUDIO_URL_KEYS,
    ENCODED_AUDIO_KEYS,
    audio_format,
    business_error,
    lookup,
    parse_digest,
)
from tts_proxy.backend.schemas import (
    AudioLocator,
    AudioPayload,
    EmbeddedBase64,
    InlineBytes,
    RemoteUrl,
)
from tts_proxy.errors import (
    AudioRetrievalError,
    DecodeError,
    NoAudioDataError,
    UpstreamBusinessError,
)

log = logging.getLogger(__name__)

_FORMAT_CONTENT_TYPES = {
    "mp3": "audio/mpeg",
    "mpeg": "audio/mpeg",
    "wav": "audio/wav",
    "flac": "audio/flac",
    "pcm": "audio/pcm",
    "ogg": "audio/ogg",
    "opus": "audio/ogg",
    "aac": "audio/aac",
}


def audio_content_type(resp: httpx.Response) -> str | None:
    """Return the response's media type if it declares ``audio/*``."""
    raw = resp.headers.get("content-type", "")
    media_type = raw.split(";", 1)[0].strip().lower()
    if media_type.startswith("audio/"):
        return media_type
    return None


def locate(digest: dict[str, Any]) -> AudioLocator | None:
    """Classify where the audio referenced by ``digest`` lives, URL first."""
    url = lookup(digest, AUDIO_URL_KEYS)
    if isinstance(url, str) and url.lower().startswith(("http://", "https://")):
        return RemoteUrl(url)
    encoded = lookup(digest, ENCODED_AUDIO_KEYS)
    if isinstance(encoded, str):
        return EmbeddedBase64(encoded)
    return None


def content_type_for_format(fmt: str | None) -> str | None:
    if not fmt:
        return None
    return _FORMAT_CONTENT_TYPES.get(fmt.strip().lower())


class ResponseShapeNormalizer:
    """Turns one completed backend response (or digest) into an AudioPayload."""

    def __init__(self, client: MiniMaxClient) -> None:
        self._client = client

    @property
    def default_content_type(self) -> str:
        return self._client.settings.tts_default_content_type

    async def resolve_response(self, resp: httpx.Response) -> AudioPayload:
        inline_type = audio_content_type(resp)
        if inline_type is not None:
            log.debug("Inline audio response (%s, %d bytes)", inline_type, len(resp.content))
            return await self.resolve_locator(
                InlineBytes(resp.content), content_type=inline_type
            )

        digest = parse_digest(resp)
        return await self.resolve_digest(digest)

    async def resolve_digest(self, digest: dict[str, Any]) -> AudioPayload:
        failure = business_error(digest)
        if failure is not None:
            code, message = failure
            raise UpstreamBusinessError(message, status_code=code)

        locator = locate(digest)
        if locator is None:
            raise NoAudioDataError("backend response contained no audio data")
        return await self.resolve_locator(
            locator, content_type=content_type_for_format(audio_format(digest))
        )

    async def resolve_locator(
        self, locator: AudioLocator, content_type: str | None = None
    ) -> AudioPayload:
        fallback = content_type or self.default_content_type

        if isinstance(locator, InlineBytes):
            if not locator.data:
                raise NoAudioDataError("backend returned an empty audio body")
            return AudioPayload(data=locator.data, content_type=fallback)

        if isinstance(locator, RemoteUrl):
            resp = await self._client.fetch_audio(locator.url)
            if not resp.is_success:
                raise AudioRetrievalError(
                    f"Failed to retrieve audio: {resp.status_code}"
                )
            log.debug("Fetched remote audio (%d bytes)", len(resp.content))
            return AudioPayload(
                data=resp.content,
                content_type=audio_content_type(resp) or fallback,
            )

        if isinstance(locator, EmbeddedBase64):
            return AudioPayload(data=self._decode(locator.encoded), content_type=fallback)

        raise NoAudioDataError(f"unsupported audio locator: {type(locator).__name__}")

    def _decode(self, encoded: str) -> bytes:
        encoding = self._client.settings.tts_audio_encoding
        try:
            if encoding == "hex":
                data = bytes.fromhex(encoded)
            else:
                # Line-wrapped base64 (RFC 2045) is accepted; other stray bytes are not.
                data = base64.b64decode("".join(encoded.split()), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecodeError(f"malformed {encoding} audio payload: {exc}") from exc
        if not data:
            raise NoAudioDataError("backend returned an empty audio payload")
        return data
