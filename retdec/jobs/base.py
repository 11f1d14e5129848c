from __future__ import annotations

from collections.abc import Callable
import logging
import time
from typing import ClassVar, Self

from pydantic import ValidationError

from retdec.core.config import Settings
from retdec.core.errors import JobNotFinishedError, ProtocolError, ServiceError, WaitTimeoutError
from retdec.core.telemetry import get_tracer
from retdec.schemas.status import JobState, JobStatus
from retdec.services.connection import APIConnection, APIResponse

logger = logging.getLogger(__name__)


class Job:
    """A remote job polled through the connection that submitted it.

    The remote service owns the job state. Every call to ``poll_status`` asks
    for it again; ``status`` only remembers the answer of the latest poll.
    """

    resource_path: ClassVar[str]

    def __init__(
        self,
        job_id: str,
        conn: APIConnection,
        *,
        poll_interval_seconds: float | None = None,
        max_poll_attempts: int | None = None,
    ) -> None:
        self._id = job_id
        self._conn = conn
        self._poll_interval_seconds = (
            poll_interval_seconds
            if poll_interval_seconds is not None
            else Settings.model_fields["poll_interval_seconds"].default
        )
        self._max_poll_attempts = max_poll_attempts
        self._status: JobStatus | None = None

    @property
    def id(self) -> str:
        return self._id

    @property
    def status(self) -> JobStatus | None:
        return self._status

    @property
    def state(self) -> JobState:
        if self._status is None:
            return JobState.SUBMITTED
        return self._status.state

    def poll_status(self) -> JobStatus:
        url = f"{self._job_url()}/status"
        response = self._conn.send_get_request(url)
        content = response.body_as_json()
        try:
            status = JobStatus.model_validate(content)
        except ValidationError as exc:
            raise ProtocolError(url, f"{url} returned invalid JSON response", status_code=response.status_code) from exc
        self._status = status
        logger.debug("job status id=%s state=%s", self._id, status.state.value)
        return status

    def has_finished(self) -> bool:
        return self.poll_status().state.is_terminal

    def wait_until_finished(self, on_status: Callable[[JobStatus], None] | None = None) -> None:
        """Block until the service reports a terminal state.

        Raises ServiceError when the job failed remotely and WaitTimeoutError
        when ``max_poll_attempts`` polls did not observe a terminal state.
        """
        with get_tracer(__name__).start_as_current_span("job.wait_until_finished") as span:
            span.set_attribute("job.id", self._id)
            attempts = 0
            while True:
                status = self.poll_status()
                attempts += 1
                if on_status is not None:
                    on_status(status)
                if status.state.is_terminal:
                    break
                if self._max_poll_attempts is not None and attempts >= self._max_poll_attempts:
                    raise WaitTimeoutError(self._id, attempts)
                time.sleep(self._poll_interval_seconds)

            span.set_attribute("job.poll_count", attempts)
            span.set_attribute("job.state", status.state.value)
            if status.state is JobState.FAILED:
                logger.info("job failed id=%s error=%s", self._id, status.error)
                raise ServiceError(self._id, status.error)
            logger.info("job finished id=%s polls=%s", self._id, attempts)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id!r}, state={self.state.value!r})"

    def _job_url(self) -> str:
        return f"{self._conn.api_url()}/{self.resource_path}/{self._id}"

    def _get_output(self, name: str) -> APIResponse:
        if self.state is not JobState.SUCCEEDED:
            raise JobNotFinishedError(self._id)
        return self._conn.send_get_request(f"{self._job_url()}/outputs/{name}")
