"""Data models for the job queue."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

FETCH_QUEUE = "fetch-articles"
PROCESS_QUEUE = "process-articles"
PUBLISH_QUEUE = "publish-articles"

STAGE_QUEUES = (FETCH_QUEUE, PROCESS_QUEUE, PUBLISH_QUEUE)


class JobState(str, Enum):
    WAITING = "waiting"
    DELAYED = "delayed"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class JobOptions:
    """Retry and retention policy applied to jobs added to a queue."""
    attempts: int = 1
    backoff_type: Optional[str] = None
    backoff_delay_ms: int = 0
    remove_on_complete: int = 100
    remove_on_fail: int = 500


@dataclass
class JobRecord:
    """A job as stored in the queue."""
    id: str
    queue: str
    name: str
    payload: dict[str, Any]
    state: str
    attempts_made: int
    max_attempts: int
    created_at: datetime
    available_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    failed_reason: Optional[str] = None
    stacktrace: list[str] = field(default_factory=list)
    return_value: Optional[dict[str, Any]] = None
    lock_token: Optional[str] = None


@dataclass
class QueueCounts:
    """Number of jobs per state in one queue."""
    queue: str
    waiting: int = 0
    delayed: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    paused: bool = False
