"""TTS proxy server entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from tts_proxy.config import settings
from tts_proxy.routers.speech import router as speech_router
from tts_proxy.runtime import close_client, get_client

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open/close the shared backend HTTP client."""
    missing = settings.missing_credentials()
    if missing:
        log.warning(
            "Required configuration missing (%s); every request will fail with 500",
            ", ".join(missing),
        )
    log.info(
        "TTS mode=%s poll_interval=%.2fs poll_max_attempts=%d deadline=%.1fs",
        settings.tts_mode,
        settings.poll_interval_s,
        settings.poll_max_attempts,
        settings.request_deadline_s,
    )

    client = get_client()
    await client.start()
    app.state.tts_client = client

    yield

    app.state.tts_client = None
    await close_client()


app = FastAPI(
    title="TTS Edge Proxy",
    version="0.1.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

app.include_router(speech_router)


def main() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
    )
    uvicorn.run(
        "tts_proxy.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
