"""Failure taxonomy for the TTS proxy.

Every failure the caller can observe is a :class:`ProxyError`. Each subclass
fixes a ``kind`` tag and an HTTP status; the router turns the exception into a
single plain-text response and never sends a partial audio body.
"""

from __future__ import annotations


class ProxyError(RuntimeError):
    """Base error carrying a kind tag, an HTTP status and a caller-safe message."""

    kind: str = "proxy_error"
    http_status: int = 500

    def __init__(self, message: str, *, http_status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if http_status is not None:
            self.http_status = http_status


class BadRequestError(ProxyError):
    """Caller input is invalid (missing/empty text, unparsable body)."""

    kind = "bad_request"
    http_status = 400


class MethodNotAllowedError(ProxyError):
    kind = "method_not_allowed"
    http_status = 405


class ConfigurationError(ProxyError):
    """Required backend credentials are missing."""

    kind = "configuration_error"
    http_status = 500


class UpstreamTransportError(ProxyError):
    """The backend could not be reached (connect error, timeout, protocol error)."""

    kind = "upstream_transport_error"
    http_status = 502


class UpstreamStatusError(UpstreamTransportError):
    """The backend answered with a non-2xx HTTP status."""

    kind = "upstream_status_error"

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"MiniMax API Error: {status_code} - {body}")
        self.status_code = status_code


class AudioRetrievalError(ProxyError):
    """The secondary fetch of a remote audio URL did not succeed."""

    kind = "audio_retrieval_error"
    http_status = 502


class UpstreamBusinessError(ProxyError):
    """The backend flagged a business-level failure code. Never retried."""

    kind = "upstream_business_error"
    http_status = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CreateRejectedError(UpstreamBusinessError):
    """The async create call was refused or returned no job identifier."""

    kind = "create_rejected"


class PollError(ProxyError):
    """Polling a job could not continue (transient budget spent or business error)."""

    kind = "poll_error"
    http_status = 502


class JobFailedError(ProxyError):
    kind = "job_failed"
    http_status = 500


class JobTimedOutError(ProxyError):
    """The poll budget or the request deadline ran out before a terminal state."""

    kind = "timed_out"
    http_status = 500


class DecodeError(ProxyError):
    kind = "decode_error"
    http_status = 500


class NoAudioDataError(ProxyError):
    kind = "no_audio_data"
    http_status = 500
