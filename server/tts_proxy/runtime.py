"""Shared lazy runtime objects for the TTS backend client."""

from __future__ import annotations

import logging

from tts_proxy.backend.client import MiniMaxClient
from tts_proxy.config import settings

log = logging.getLogger(__name__)

_client: MiniMaxClient | None = None


def get_client() -> MiniMaxClient:
    global _client
    if _client is None:
        _client = MiniMaxClient(settings)
        log.info("TTS client created: %s", _client.debug_snapshot())
    return _client


async def close_client() -> None:
    global _client
    if _client is not None:
        await _client.close()
        _client = None
