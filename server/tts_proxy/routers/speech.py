"""POST / — synthesize speech through the upstream TTS backend."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response

from tts_proxy.backend.client import MiniMaxClient
from tts_proxy.errors import BadRequestError, MethodNotAllowedError, ProxyError
from tts_proxy.proxy import TtsProxy
from tts_proxy.runtime import get_client

log = logging.getLogger(__name__)

router = APIRouter()

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

AUDIO_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _client_for(request: Request) -> MiniMaxClient:
    client = getattr(request.app.state, "tts_client", None)
    return client if client is not None else get_client()


def error_response(exc: ProxyError) -> PlainTextResponse:
    return PlainTextResponse(
        exc.message,
        status_code=exc.http_status,
        headers={"Access-Control-Allow-Origin": "*", "X-Error-Kind": exc.kind},
    )


@router.options("/{path:path}")
async def preflight(path: str) -> Response:
    """CORS preflight for any path; never touches the backend."""
    del path
    return Response(status_code=204, headers=PREFLIGHT_HEADERS)


@router.post("/")
async def synthesize(request: Request) -> Response:
    """Accept ``{"text": "..."}`` and return the synthesized audio bytes.

    The body is only sent once the audio is fully resolved in memory; every
    failure becomes one plain-text response with the status of its kind.
    """
    proxy = TtsProxy(_client_for(request))
    try:
        proxy.check_configuration()
        try:
            body = await request.json()
        except ValueError as exc:
            raise BadRequestError("Request body must be valid JSON.") from exc
        speech = proxy.parse_request(body)
        audio = await proxy.synthesize(speech)
    except ProxyError as exc:
        if exc.http_status >= 500:
            log.error("TTS request failed (%s): %s", exc.kind, exc.message)
        else:
            log.info("TTS request rejected (%s): %s", exc.kind, exc.message)
        return error_response(exc)
    except Exception as exc:
        log.exception("Unexpected error while handling TTS request")
        return PlainTextResponse(
            f"Worker Error: {exc}",
            status_code=500,
            headers={"Access-Control-Allow-Origin": "*"},
        )

    log.info("Returning %d bytes of %s", len(audio.data), audio.content_type)
    return Response(
        content=audio.data,
        media_type=audio.content_type,
        headers=AUDIO_HEADERS,
    )


@router.api_route(
    "/{path:path}",
    methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "TRACE", "CONNECT"],
)
async def method_not_allowed(path: str) -> PlainTextResponse:
    del path
    return error_response(
        MethodNotAllowedError("Method Not Allowed or Invalid Path")
    )
