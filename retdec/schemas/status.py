from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class JobState(str, Enum):
    SUBMITTED = "submitted"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED)


class DecompilationPhase(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    part: str | None = None
    description: str | None = None
    completion: int | None = None
    warnings: list[str] = Field(default_factory=list)


class JobStatus(BaseModel):
    """One status report of a remote job."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    pending: bool = False
    running: bool = False
    finished: bool
    failed: bool = False
    error: str | None = None
    completion: int | None = None
    phases: list[DecompilationPhase] = Field(default_factory=list)

    @property
    def state(self) -> JobState:
        if self.finished:
            return JobState.FAILED if self.failed else JobState.SUCCEEDED
        if self.running:
            return JobState.RUNNING
        return JobState.SUBMITTED
