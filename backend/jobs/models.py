"""Pydantic models for background jobs."""

from enum import Enum
from pydantic import BaseModel


class JobState(str, Enum):
    """All possible states for a background job."""
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class JobOperation(str, Enum):
    CHANGE_IDENTITY = "change_identity"
    POST_REQUEST = "post_request"


class JobSnapshot(BaseModel):
    """Point-in-time view of the job, safe to hand to any thread."""
    operation: JobOperation = JobOperation.CHANGE_IDENTITY
    state: JobState = JobState.IDLE
    message: str = ""
    generation: int = 0

    def legacy_status(self) -> str:
        """The string form the UI script polls: " " while running, otherwise
        the message (a failure reason, or a posted request's response body)."""
        if self.state == JobState.RUNNING:
            return " "
        return self.message
