"""Drive one asynchronous TTS job from submission to a terminal state."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

import httpx

from tts_proxy.backend.client import MiniMaxClient
from tts_proxy.backend.digest import (
    JOB_ID_KEYS,
    audio_format,
    business_error,
    lookup,
    parse_digest,
)
from tts_proxy.backend.normalizer import locate
from tts_proxy.backend.schemas import BackendJob, JobState, JobStatus
from tts_proxy.errors import (
    CreateRejectedError,
    DecodeError,
    JobFailedError,
    JobTimedOutError,
    NoAudioDataError,
    PollError,
    UpstreamTransportError,
)

log = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

_STATUS_MAP = {
    "pending": JobState.PENDING,
    "queued": JobState.PENDING,
    "submitted": JobState.PENDING,
    "processing": JobState.PROCESSING,
    "running": JobState.PROCESSING,
    "in_progress": JobState.PROCESSING,
    "success": JobState.SUCCESS,
    "succeeded": JobState.SUCCESS,
    "completed": JobState.SUCCESS,
    "done": JobState.SUCCESS,
    "failed": JobState.FAILED,
    "fail": JobState.FAILED,
    "error": JobState.FAILED,
    "expired": JobState.FAILED,
}

_REASON_KEYS = ("error", "reason", "message", "status_msg")


def parse_status(digest: dict[str, Any]) -> JobStatus:
    """Classify one status digest. Unknown status strings count as processing."""
    raw = lookup(digest, ("status", "task_status", "state"))
    raw_status = str(raw) if raw is not None else ""
    state = _STATUS_MAP.get(raw_status.strip().lower())
    if state is None:
        log.warning("Unrecognised job status %r; treating as processing", raw_status)
        state = JobState.PROCESSING

    if state is JobState.SUCCESS:
        return JobStatus(
            state=state,
            locator=locate(digest),
            audio_format=audio_format(digest),
            raw_status=raw_status,
        )
    if state is JobState.FAILED:
        reason = lookup(digest, _REASON_KEYS)
        base = digest.get("base_resp")
        if reason is None and isinstance(base, dict):
            reason = base.get("status_msg")
        return JobStatus(
            state=state,
            reason=str(reason) if reason else raw_status,
            raw_status=raw_status,
        )
    return JobStatus(state=state, raw_status=raw_status)


class JobPoller:
    """Submit → poll → terminal state machine for one request.

    Each inbound request owns its own poller; nothing here is shared across
    requests. ``attempts`` counts status queries issued and
    ``pending_iterations`` counts queries answered with a non-terminal state.
    """

    def __init__(
        self,
        client: MiniMaxClient,
        *,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        s = client.settings
        self._client = client
        self._interval_s = s.poll_interval_s
        self._max_attempts = s.poll_max_attempts
        self._max_transient_errors = s.poll_max_transient_errors
        self._sleep = sleep
        self.attempts = 0
        self.pending_iterations = 0

    def submit(self, resp: httpx.Response) -> BackendJob:
        """Turn the async create response into a BackendJob or reject it."""
        try:
            digest = parse_digest(resp)
        except DecodeError as exc:
            raise CreateRejectedError(f"create response unreadable: {exc.message}") from exc

        failure = business_error(digest)
        if failure is not None:
            code, message = failure
            raise CreateRejectedError(message, status_code=code)

        job_id = lookup(digest, JOB_ID_KEYS)
        if job_id is None:
            raise CreateRejectedError("create response contained no job identifier")

        job = BackendJob(job_id=str(job_id))
        log.info("TTS job %s submitted", job.job_id)
        return job

    async def wait(self, job: BackendJob) -> JobStatus:
        """Poll ``job`` until it succeeds; raise on every other terminal state."""
        consecutive_errors = 0

        for attempt in range(1, self._max_attempts + 1):
            self.attempts = attempt
            try:
                status = await self._query(job)
            except (UpstreamTransportError, DecodeError) as exc:
                consecutive_errors += 1
                log.warning(
                    "Job %s poll %d failed (%d/%d consecutive): %s",
                    job.job_id,
                    attempt,
                    consecutive_errors,
                    self._max_transient_errors,
                    exc,
                )
                if consecutive_errors >= self._max_transient_errors:
                    raise PollError(
                        f"status query failed {consecutive_errors} times in a row: {exc}"
                    ) from exc
            else:
                consecutive_errors = 0
                if status.state is JobState.SUCCESS:
                    if status.locator is None:
                        raise NoAudioDataError(
                            f"job {job.job_id} succeeded without audio data"
                        )
                    log.info(
                        "TTS job %s completed after %d polls (%.1fs)",
                        job.job_id,
                        attempt,
                        time.monotonic() - job.created_at,
                    )
                    return status
                if status.state is JobState.FAILED:
                    raise JobFailedError(f"TTS job failed: {status.reason}")
                self.pending_iterations += 1
                log.debug("Job %s still %s", job.job_id, status.state.value)

            if attempt < self._max_attempts:
                await self._sleep(self._interval_s)

        raise JobTimedOutError(
            f"TTS job {job.job_id} did not finish after {self._max_attempts} polls"
        )

    async def poll(self, resp: httpx.Response) -> JobStatus:
        return await self.wait(self.submit(resp))

    async def _query(self, job: BackendJob) -> JobStatus:
        resp = await self._client.query(job.job_id)
        if not resp.is_success:
            raise UpstreamTransportError(
                f"status query returned {resp.status_code}: {resp.text[:200]}"
            )
        digest = parse_digest(resp)
        failure = business_error(digest)
        if failure is not None:
            # Business errors are terminal; PollError is not caught by the retry loop.
            _code, message = failure
            raise PollError(message, http_status=500)
        return parse_status(digest)
