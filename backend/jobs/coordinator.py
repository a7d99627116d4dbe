"""
Async Job Coordinator: runs device ID changes and outbound HTTP posts in
the background.

The caller gets an answer immediately and polls for the outcome. Both
operations share one status cell, so at most one job runs at a time. Every
start and every reset bumps a generation counter; a background job only
commits its result if its generation is still current, so a job that was
reset away can never overwrite newer status.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable

import httpx

from config import API_TIMEOUT
from identity.authority import IdentityAuthority
from identity.service import IdentityService, is_valid_custom_id
from jobs.models import JobOperation, JobSnapshot, JobState

logger = logging.getLogger(__name__)

INVALID_FORMAT = "Invalid format"
SAME_ID = "Same as current ID"
NOT_RESPONDING = "Server is not responding"

Poster = Callable[[str, str, str], str]


def parse_header(header: str) -> dict[str, str]:
    """Turn a single "Name: value" line into a headers dict."""
    name, sep, value = header.partition(":")
    if not sep or not name.strip():
        return {}
    return {name.strip(): value.strip()}


def post_text(url: str, body: str, header: str = "",
              transport: httpx.BaseTransport | None = None) -> str:
    """POST a JSON body and return the response text, whatever its status."""
    headers = {"Content-Type": "application/json"}
    headers.update(parse_header(header))
    with httpx.Client(timeout=API_TIMEOUT, transport=transport) as client:
        response = client.post(url, content=body.encode("utf-8"), headers=headers)
    return response.text


class AsyncJobCoordinator:
    """Owns the single process-wide background job."""

    def __init__(
        self,
        identity: IdentityService,
        authority: IdentityAuthority,
        executor: ThreadPoolExecutor | None = None,
        poster: Poster = post_text,
    ) -> None:
        self._identity = identity
        self._authority = authority
        self._poster = poster
        # One worker: two jobs never hit the network at once.
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="background-job"
        )
        self._status = JobSnapshot()
        self._lock = threading.Lock()
        self._future: Future | None = None

    def poll_status(self) -> JobSnapshot:
        """Non-blocking read of the current job state."""
        with self._lock:
            return self._status.model_copy()

    def reset(self) -> None:
        """Force the reported state back to idle.

        An in-flight job keeps running; its result is discarded.
        """
        with self._lock:
            self._status = JobSnapshot(generation=self._status.generation + 1)

    def start_change_identity(self, new_id: str, old_id: str) -> bool:
        """Start an ID change. Returns False if a job is already running."""
        return self._start(JobOperation.CHANGE_IDENTITY, self._change_identity, new_id, old_id)

    def start_post_request(self, url: str, body: str, header: str = "") -> bool:
        """POST body to url in the background. The response text becomes
        the job message. Returns False if a job is already running."""
        return self._start(JobOperation.POST_REQUEST, self._post_request, url, body, header)

    def wait(self, timeout: float | None = None) -> JobSnapshot:
        """Block until the latest submitted job finishes, then return the status."""
        future = self._future
        if future is not None:
            future.result(timeout)
        return self.poll_status()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _start(self, operation: JobOperation, procedure: Callable, *args: str) -> bool:
        with self._lock:
            if self._status.state == JobState.RUNNING:
                logger.info(f"Rejected {operation.value}: a job is already running")
                return False
            generation = self._status.generation + 1
            self._status = JobSnapshot(
                operation=operation,
                state=JobState.RUNNING,
                generation=generation,
            )

        try:
            self._future = self._executor.submit(self._run, generation, procedure, *args)
        except RuntimeError as e:
            # Executor already shut down
            logger.error(f"Could not schedule {operation.value}: {e}")
            self._commit(generation, JobState.FAILED, NOT_RESPONDING)
        return True

    def _run(self, generation: int, procedure: Callable, *args: str) -> None:
        try:
            state, message = procedure(*args)
        except httpx.HTTPError as e:
            logger.warning(f"Background request failed: {e}")
            state, message = JobState.FAILED, NOT_RESPONDING
        except Exception as e:
            logger.error(f"Background job failed: {e}", exc_info=True)
            state, message = JobState.FAILED, str(e) or NOT_RESPONDING

        if not self._commit(generation, state, message):
            logger.info(f"Discarded stale job result (generation {generation})")

    def _change_identity(self, new_id: str, old_id: str) -> tuple[JobState, str]:
        if not is_valid_custom_id(new_id):
            return JobState.FAILED, INVALID_FORMAT
        if new_id == old_id:
            return JobState.FAILED, SAME_ID

        signature = self._identity.sign(
            f"{self._identity.get_uuid()}:{old_id}:{new_id}".encode("utf-8")
        ).hex()
        message = self._authority.change_id(
            self._identity.get_uuid(), old_id, new_id, signature
        )
        if message:
            return JobState.FAILED, message

        self._identity.set_id(new_id)
        return JobState.SUCCEEDED, ""

    def _post_request(self, url: str, body: str, header: str) -> tuple[JobState, str]:
        return JobState.SUCCEEDED, self._poster(url, body, header)

    def _commit(self, generation: int, state: JobState, message: str) -> bool:
        with self._lock:
            if self._status.generation != generation:
                return False
            self._status = JobSnapshot(
                operation=self._status.operation,
                state=state,
                message=message,
                generation=generation,
            )
            return True
