"""
Upload data models.

These models are ephemeral: a plan, its units and every progress snapshot
belong to a single upload session and are discarded once it ends.

Thread Safety:
    - UploadUnit, UploadPlan and UploadProgress are frozen dataclasses
    - Worker threads only read UploadUnit; only the session aggregator
      creates UploadProgress snapshots
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, Any, Optional, Tuple


class SessionState(Enum):
    """
    State of an upload session.

    Lifecycle:
        IDLE -> RUNNING -> (SUCCEEDED | FAILED | CANCELLED)
    """

    IDLE = "idle"
    """Session created, start() not called yet."""

    RUNNING = "running"
    """Units are being uploaded."""

    SUCCEEDED = "succeeded"
    """Every unit was accepted by the print server."""

    FAILED = "failed"
    """A unit failed; remaining units were cancelled."""

    CANCELLED = "cancelled"
    """The session was cancelled from outside."""

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.SUCCEEDED, SessionState.FAILED, SessionState.CANCELLED)


@dataclass(frozen=True)
class UploadUnit:
    """
    One physical copy of a document to upload.

    A document with quantity N expands into N units sharing ``group_id``.
    """

    group_id: str
    """Original queue identifier, used to aggregate per-document progress."""

    file_location: Path
    """Local file to send."""

    is_a3: bool = False
    """A3 paper flag sent to the print server."""


@dataclass(frozen=True)
class UploadProgress:
    """
    Snapshot of a session's progress.

    ``success_count`` always equals the sum of ``completed_per_group``.
    Snapshots emitted by one session never move backwards.
    """

    success_count: int
    """Units accepted so far."""

    total_count: int
    """Units in the session."""

    completed_per_group: Dict[str, int] = field(default_factory=dict)
    """Accepted units per group_id."""

    @property
    def is_complete(self) -> bool:
        return self.total_count > 0 and self.success_count == self.total_count

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "successCount": self.success_count,
            "totalCount": self.total_count,
            "completedPerGroup": dict(self.completed_per_group),
        }


@dataclass(frozen=True)
class UploadPlan:
    """Units to upload plus the initial progress bookkeeping."""

    units: Tuple[UploadUnit, ...]
    total_count: int
    completed_per_group: Dict[str, int]

    def initial_progress(self) -> UploadProgress:
        """Zero-progress snapshot for this plan."""
        return UploadProgress(
            success_count=0,
            total_count=self.total_count,
            completed_per_group=dict(self.completed_per_group),
        )


@dataclass
class UploadStatus:
    """
    Status of an upload session as seen by pollers.

    Written by the session thread in UploadService, read by request
    handlers through UploadStatusStore.
    """

    session_id: str
    """Unique session identifier (UUID)."""

    state: SessionState
    """Current session state."""

    progress: UploadProgress
    """Latest progress snapshot."""

    error_message: Optional[str] = None
    """User-visible failure message (never set for cancellation)."""

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    """When the session was submitted."""

    finished_at: Optional[datetime] = None
    """When the session reached a terminal state."""

    @property
    def is_finished(self) -> bool:
        return self.state.is_terminal

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "progress": self.progress.to_dict(),
            "error_message": self.error_message,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "complete": self.is_finished,
        }
