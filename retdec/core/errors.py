from __future__ import annotations


class RetdecError(Exception):
    """Base error of the client."""


class ConfigurationError(RetdecError):
    """Raised when a call is misconfigured before any request is sent."""


class TransportError(RetdecError):
    """Raised when an HTTP exchange could not be completed."""

    def __init__(self, url: str, detail: str) -> None:
        super().__init__(f"request to {url} failed: {detail}")
        self.url = url


class ProtocolError(RetdecError):
    """Raised when a URL answered with something the client cannot use."""

    def __init__(self, url: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ServiceError(RetdecError):
    """Raised when the remote service reports that a job failed."""

    def __init__(self, job_id: str, reason: str | None) -> None:
        super().__init__(f"job {job_id} failed: {reason or 'no reason given'}")
        self.job_id = job_id
        self.reason = reason


class WaitTimeoutError(RetdecError):
    """Raised when a job is still not finished after the allowed number of polls."""

    def __init__(self, job_id: str, attempts: int) -> None:
        super().__init__(f"job {job_id} has not finished after {attempts} status checks")
        self.job_id = job_id
        self.attempts = attempts


class JobNotFinishedError(RetdecError):
    """Raised when outputs are requested from a job that has not succeeded."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"job {job_id} has not finished successfully; call wait_until_finished() first")
        self.job_id = job_id
