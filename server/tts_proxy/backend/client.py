"""Async HTTP client for the MiniMax text-to-audio endpoints."""

from __future__ import annotations

import logging

import httpx

from tts_proxy.config import Settings, settings as default_settings
from tts_proxy.errors import UpstreamTransportError

log = logging.getLogger(__name__)


class MiniMaxClient:
    """Thin async wrapper around the create, query and audio-fetch calls.

    The client never raises on HTTP status; callers inspect the returned
    ``httpx.Response``. Only transport-level failures are translated, into
    :class:`UpstreamTransportError`.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or default_settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    async def start(self) -> None:
        self._http()

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._settings.request_timeout_s, connect=5.0),
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._settings.api_key}"}

    def _create_body(self, text: str) -> dict:
        s = self._settings
        return {
            "model": s.tts_model,
            "voice_id": s.voice_id,
            "text": text,
            "speed": s.tts_speed,
            "vol": s.tts_vol,
            "pitch": s.tts_pitch,
        }

    async def create(self, text: str, *, asynchronous: bool = False) -> httpx.Response:
        """Submit a synthesis request to the sync or async create endpoint."""
        s = self._settings
        endpoint = s.tts_async_endpoint if asynchronous else s.tts_endpoint
        log.info(
            "Creating %s TTS request (%d chars, model=%s)",
            "async" if asynchronous else "sync",
            len(text),
            s.tts_model,
        )
        try:
            return await self._http().post(
                endpoint,
                params={"GroupId": s.group_id},
                headers=self._auth_headers(),
                json=self._create_body(text),
            )
        except httpx.HTTPError as exc:
            raise UpstreamTransportError(f"create request failed: {exc}") from exc

    async def query(self, job_id: str) -> httpx.Response:
        """Fetch the status digest for one async job."""
        try:
            return await self._http().get(
                self._settings.query_endpoint,
                params={"task_id": job_id},
                headers=self._auth_headers(),
            )
        except httpx.HTTPError as exc:
            raise UpstreamTransportError(f"status query failed: {exc}") from exc

    async def fetch_audio(self, url: str) -> httpx.Response:
        """Plain unauthenticated GET of a remote audio URL."""
        try:
            return await self._http().get(url)
        except httpx.HTTPError as exc:
            raise UpstreamTransportError(f"audio fetch failed: {exc}") from exc

    def debug_snapshot(self) -> dict:
        s = self._settings
        return {
            "mode": s.tts_mode,
            "model": s.tts_model,
            "loaded": self._client is not None,
            "credentials_missing": s.missing_credentials(),
        }
