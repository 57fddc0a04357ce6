"""Helpers for reading the JSON digests returned by the TTS backend.

Backend variants disagree on where fields live: some put them at the top
level, some nest them under ``data``. Lookups check both, top level first.
"""

from __future__ import annotations

from typing import Any

import httpx

from tts_proxy.errors import DecodeError

JOB_ID_KEYS = ("task_id", "job_id", "id")
AUDIO_URL_KEYS = ("audio_url", "file_url", "download_url", "url")
ENCODED_AUDIO_KEYS = ("audio", "audio_base64", "audio_data")
AUDIO_FORMAT_KEYS = ("audio_format", "format")


def parse_digest(resp: httpx.Response) -> dict[str, Any]:
    """Parse a response body as a JSON object."""
    try:
        data = resp.json()
    except ValueError as exc:
        raise DecodeError(f"backend response is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise DecodeError("backend response is not a JSON object")
    return data


def lookup(digest: dict[str, Any], keys: tuple[str, ...]) -> Any:
    """Return the first non-empty value for ``keys`` at top level or under ``data``."""
    scopes = [digest]
    nested = digest.get("data")
    if isinstance(nested, dict):
        scopes.append(nested)
    for scope in scopes:
        for key in keys:
            value = scope.get(key)
            if value not in (None, ""):
                return value
    return None


def business_error(digest: dict[str, Any]) -> tuple[int, str] | None:
    """Return ``(code, message)`` when the digest carries a non-zero business code."""
    base = digest.get("base_resp")
    if isinstance(base, dict):
        code = base.get("status_code")
        message = base.get("status_msg")
    else:
        code = digest.get("status_code")
        message = digest.get("status_msg")
    if code is None or isinstance(code, bool):
        return None
    try:
        code = int(code)
    except (TypeError, ValueError):
        return None
    if code == 0:
        return None
    return code, str(message) if message else f"status_code {code}"


def audio_format(digest: dict[str, Any]) -> str | None:
    extra = digest.get("extra_info")
    if isinstance(extra, dict):
        fmt = extra.get("audio_format")
        if isinstance(fmt, str) and fmt:
            return fmt
    fmt = lookup(digest, AUDIO_FORMAT_KEYS)
    return fmt if isinstance(fmt, str) else None
