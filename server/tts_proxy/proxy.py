"""Orchestrate one synthesis request: credentials, create call, poll, resolve."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import ValidationError

from tts_proxy.backend.client import MiniMaxClient
from tts_proxy.backend.normalizer import ResponseShapeNormalizer, content_type_for_format
from tts_proxy.backend.poller import JobPoller, SleepFn
from tts_proxy.backend.schemas import AudioPayload, SpeechRequest
from tts_proxy.config import Settings
from tts_proxy.errors import (
    BadRequestError,
    ConfigurationError,
    JobTimedOutError,
    UpstreamStatusError,
)

log = logging.getLogger(__name__)


class TtsProxy:
    """Per-request orchestrator around a shared MiniMaxClient.

    ``TTS_MODE=sync`` sends text to the synchronous endpoint and normalizes the
    reply directly. ``TTS_MODE=async`` submits a job and hands it to a fresh
    JobPoller before resolving the success locator.
    """

    def __init__(self, client: MiniMaxClient, *, sleep: SleepFn = asyncio.sleep) -> None:
        self._client = client
        self._normalizer = ResponseShapeNormalizer(client)
        self._sleep = sleep
        self.last_poller: JobPoller | None = None

    @property
    def settings(self) -> Settings:
        return self._client.settings

    def check_configuration(self) -> None:
        missing = self.settings.missing_credentials()
        if missing:
            log.error("Missing required configuration: %s", ", ".join(missing))
            raise ConfigurationError("Server configuration error: Missing API key or IDs.")

    def parse_request(self, body: Any) -> SpeechRequest:
        if not isinstance(body, dict):
            raise BadRequestError('Missing "text" field in request body.')
        try:
            req = SpeechRequest.model_validate(body)
        except ValidationError as exc:
            raise BadRequestError('Missing "text" field in request body.') from exc
        limit = self.settings.tts_max_text_chars
        if len(req.text) > limit:
            raise BadRequestError(f'"text" exceeds {limit} characters.')
        return req

    async def synthesize(self, req: SpeechRequest) -> AudioPayload:
        """Run the whole lifecycle under the request deadline."""
        self.check_configuration()
        deadline = self.settings.request_deadline_s
        try:
            return await asyncio.wait_for(self._synthesize(req.text), timeout=deadline)
        except asyncio.TimeoutError as exc:
            raise JobTimedOutError(
                f"TTS request exceeded the {deadline:g}s deadline"
            ) from exc

    async def _synthesize(self, text: str) -> AudioPayload:
        asynchronous = self.settings.tts_mode == "async"
        resp = await self._client.create(text, asynchronous=asynchronous)
        if not resp.is_success:
            raise UpstreamStatusError(resp.status_code, resp.text)

        if not asynchronous:
            return await self._normalizer.resolve_response(resp)

        poller = JobPoller(self._client, sleep=self._sleep)
        self.last_poller = poller
        status = await poller.poll(resp)
        assert status.locator is not None
        return await self._normalizer.resolve_locator(
            status.locator, content_type=content_type_for_format(status.audio_format)
        )
