"""Tests for the TtsProxy orchestrator against a mocked MiniMax backend."""

from __future__ import annotations

import asyncio
import base64
import json

import httpx
import pytest

from tts_proxy.backend.client import MiniMaxClient
from tts_proxy.backend.schemas import SpeechRequest
from tts_proxy.config import Settings
from tts_proxy.errors import (
    BadRequestError,
    ConfigurationError,
    CreateRejectedError,
    JobTimedOutError,
    UpstreamStatusError,
    UpstreamTransportError,
)
from tts_proxy.proxy import TtsProxy

AUDIO = b"\xff\xfb\x90\x64" * 32
SYNC_URL = "https://tts.example/v1/t2a_v2"
ASYNC_URL = "https://tts.example/v1/t2a_async_v2"


def _settings(**overrides) -> Settings:
    values = {
        "api_key": "test-key",
        "group_id": "group-1",
        "voice_id": "voice-1",
        "tts_endpoint": SYNC_URL,
        "tts_async_endpoint": ASYNC_URL,
        "tts_model": "speech-test",
        "poll_interval_s": 0.0,
        "poll_max_attempts": 5,
    }
    values.update(overrides)
    return Settings(**values)


def _inline_audio() -> httpx.Response:
    return httpx.Response(200, content=AUDIO, headers={"content-type": "audio/mpeg"})


class _FakeMiniMax:
    """Routes create/query/CDN calls and records what was requested."""

    def __init__(self, *, create=None, statuses=None, cdn=None) -> None:
        self.create = create or _inline_audio
        self.statuses = list(statuses or [])
        self.cdn = cdn
        self.calls: dict[str, list[httpx.Request]] = {"create": [], "query": [], "cdn": []}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "POST" and path in ("/v1/t2a_v2", "/v1/t2a_async_v2"):
            self.calls["create"].append(request)
            return self.create()
        if path == "/v1/t2a_async_v2/query":
            self.calls["query"].append(request)
            status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            return httpx.Response(200, json=status)
        if request.url.host == "cdn.example":
            self.calls["cdn"].append(request)
            return self.cdn(request)
        return httpx.Response(404, json={"error": "unknown route"})


def _proxy(fake: _FakeMiniMax, **overrides) -> TtsProxy:
    client = MiniMaxClient(_settings(**overrides), transport=httpx.MockTransport(fake))
    return TtsProxy(client)


# ---------------------------------------------------------------------------
# Request validation and configuration
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("body", [{}, {"text": ""}, {"text": "   "}, {"text": 42}, ["hi"]])
def test_parse_request_rejects_bad_bodies(body):
    proxy = _proxy(_FakeMiniMax())
    with pytest.raises(BadRequestError):
        proxy.parse_request(body)


def test_parse_request_trims_text():
    proxy = _proxy(_FakeMiniMax())
    assert proxy.parse_request({"text": "  hello  "}).text == "hello"


def test_parse_request_rejects_text_over_limit():
    proxy = _proxy(_FakeMiniMax(), tts_max_text_chars=10)
    with pytest.raises(BadRequestError, match="exceeds 10"):
        proxy.parse_request({"text": "x" * 11})


@pytest.mark.asyncio
async def test_missing_credentials_fail_before_any_network_call():
    fake = _FakeMiniMax()
    proxy = _proxy(fake, api_key="")

    with pytest.raises(ConfigurationError):
        await proxy.synthesize(SpeechRequest(text="hello"))
    assert fake.calls["create"] == []


# ---------------------------------------------------------------------------
# Sync path
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_sync_inline_audio_passthrough_and_create_body():
    fake = _FakeMiniMax()
    proxy = _proxy(fake)

    audio = await proxy.synthesize(SpeechRequest(text="Hello there"))

    assert audio.data == AUDIO
    assert audio.content_type == "audio/mpeg"
    create = fake.calls["create"][0]
    assert create.url.params["GroupId"] == "group-1"
    assert create.headers["authorization"] == "Bearer test-key"
    assert json.loads(create.content) == {
        "model": "speech-test",
        "voice_id": "voice-1",
        "text": "Hello there",
        "speed": 1.0,
        "vol": 1.0,
        "pitch": 0,
    }
    assert proxy.last_poller is None


@pytest.mark.asyncio
async def test_sync_hex_digest_is_decoded():
    fake = _FakeMiniMax(
        create=lambda: httpx.Response(
            200,
            json={
                "data": {"audio": AUDIO.hex(), "status": 2},
                "extra_info": {"audio_format": "mp3"},
                "base_resp": {"status_code": 0, "status_msg": "success"},
            },
        )
    )
    proxy = _proxy(fake, tts_audio_encoding="hex")

    audio = await proxy.synthesize(SpeechRequest(text="hex please"))
    assert audio.data == AUDIO
    assert audio.content_type == "audio/mpeg"


@pytest.mark.asyncio
async def test_non_success_create_status_is_reported():
    fake = _FakeMiniMax(create=lambda: httpx.Response(401, text="invalid api key"))
    proxy = _proxy(fake)

    with pytest.raises(UpstreamStatusError) as excinfo:
        await proxy.synthesize(SpeechRequest(text="hello"))
    assert excinfo.value.message == "MiniMax API Error: 401 - invalid api key"
    assert excinfo.value.http_status == 502


@pytest.mark.asyncio
async def test_create_transport_failure_is_reported():
    def _boom() -> httpx.Response:
        raise httpx.ConnectError("dns failure")

    proxy = _proxy(_FakeMiniMax(create=_boom))

    with pytest.raises(UpstreamTransportError):
        await proxy.synthesize(SpeechRequest(text="hello"))


@pytest.mark.asyncio
async def test_same_text_twice_submits_twice():
    fake = _FakeMiniMax()
    proxy = _proxy(fake)

    first = await proxy.synthesize(SpeechRequest(text="again"))
    second = await proxy.synthesize(SpeechRequest(text="again"))

    assert first.data == second.data == AUDIO
    assert len(fake.calls["create"]) == 2


# ---------------------------------------------------------------------------
# Async path
# ---------------------------------------------------------------------------


def _accepted() -> httpx.Response:
    return httpx.Response(
        200, json={"task_id": "task-7", "base_resp": {"status_code": 0, "status_msg": "success"}}
    )


@pytest.mark.asyncio
async def test_async_pending_twice_then_base64_success():
    fake = _FakeMiniMax(
        create=_accepted,
        statuses=[
            {"status": "Pending"},
            {"status": "Pending"},
            {"status": "Success", "audio": base64.b64encode(AUDIO).decode()},
        ],
    )
    proxy = _proxy(fake, tts_mode="async")

    audio = await proxy.synthesize(SpeechRequest(text="poll me"))

    assert audio.data == AUDIO
    assert proxy.last_poller is not None
    assert proxy.last_poller.pending_iterations == 2
    assert str(fake.calls["create"][0].url).startswith(ASYNC_URL)
    assert len(fake.calls["query"]) == 3


@pytest.mark.asyncio
async def test_async_success_with_remote_url_fetches_once():
    fake = _FakeMiniMax(
        create=_accepted,
        statuses=[
            {"status": "Processing"},
            {"status": "Success", "file_url": "https://cdn.example/task-7.wav"},
        ],
        cdn=lambda request: httpx.Response(
            200, content=AUDIO, headers={"content-type": "audio/wav"}
        ),
    )
    proxy = _proxy(fake, tts_mode="async")

    audio = await proxy.synthesize(SpeechRequest(text="fetch me"))

    assert audio.data == AUDIO
    assert audio.content_type == "audio/wav"
    assert len(fake.calls["cdn"]) == 1
    assert "authorization" not in fake.calls["cdn"][0].headers


@pytest.mark.asyncio
async def test_async_business_error_on_create_never_polls():
    fake = _FakeMiniMax(
        create=lambda: httpx.Response(
            200, json={"base_resp": {"status_code": 1008, "status_msg": "insufficient balance"}}
        ),
        statuses=[{"status": "Success", "audio": "AAAA"}],
    )
    proxy = _proxy(fake, tts_mode="async")

    with pytest.raises(CreateRejectedError) as excinfo:
        await proxy.synthesize(SpeechRequest(text="hello"))

    assert excinfo.value.message == "insufficient balance"
    assert excinfo.value.http_status == 500
    assert fake.calls["query"] == []


@pytest.mark.asyncio
async def test_async_always_processing_times_out_at_budget():
    fake = _FakeMiniMax(create=_accepted, statuses=[{"status": "Processing"}])
    proxy = _proxy(fake, tts_mode="async", poll_max_attempts=3)

    with pytest.raises(JobTimedOutError):
        await proxy.synthesize(SpeechRequest(text="slow"))
    assert len(fake.calls["query"]) == 3


@pytest.mark.asyncio
async def test_request_deadline_aborts_with_timed_out():
    async def _slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1.0)
        return httpx.Response(200, content=AUDIO, headers={"content-type": "audio/mpeg"})

    client = MiniMaxClient(
        _settings(request_deadline_s=0.05), transport=httpx.MockTransport(_slow)
    )
    proxy = TtsProxy(client)

    with pytest.raises(JobTimedOutError, match="deadline"):
        await proxy.synthesize(SpeechRequest(text="too slow"))
