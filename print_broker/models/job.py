"""
Print Job Model
===============

Represents one print request moving through admission and execution.
"""

from datetime import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any


class JobKind(str, Enum):
    """Payload kind declared by the request's ``datatype`` field."""

    PDF = 'PDF'
    ZPL = 'ZPL'


class JobStatus(str, Enum):
    PENDING = 'pending'
    VALIDATING = 'validating'
    ADMITTED = 'admitted'
    REJECTED = 'rejected'
    PRINTING = 'printing'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'


TERMINAL_STATUSES = frozenset({JobStatus.REJECTED, JobStatus.SUCCEEDED, JobStatus.FAILED})


@dataclass
class PrintJob:
    """Print job state. Owned by the dispatch pipeline for its lifetime."""

    # Identification
    id: str
    printer: str = ""
    kind: Optional[JobKind] = None

    # Raw request body (PDF content is base64 inside it)
    payload: Dict[str, Any] = field(default_factory=dict, repr=False)

    # Status
    status: JobStatus = JobStatus.PENDING
    result_message: str = ""

    # Timestamps
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization (payload excluded)."""
        data = {
            'id': self.id,
            'printer': self.printer,
            'kind': self.kind.value if self.kind else None,
            'status': self.status.value,
            'result_message': self.result_message,
        }
        for key in ['created_at', 'started_at', 'completed_at']:
            value = getattr(self, key)
            data[key] = value.isoformat() if value else None
        return data

    def validating(self):
        """Mark job as under validation."""
        self.status = JobStatus.VALIDATING

    def admit(self, kind: JobKind):
        """Mark job as admitted for execution."""
        self.kind = kind
        self.status = JobStatus.ADMITTED

    def reject(self, message: str):
        """Mark job as rejected before execution."""
        self.status = JobStatus.REJECTED
        self.result_message = message
        self.completed_at = datetime.now()

    def start(self):
        """Mark job as printing."""
        self.status = JobStatus.PRINTING
        self.started_at = datetime.now()

    def complete(self, message: str):
        """Mark job as succeeded."""
        self.status = JobStatus.SUCCEEDED
        self.result_message = message
        self.completed_at = datetime.now()

    def fail(self, message: str):
        """Mark job as failed."""
        self.status = JobStatus.FAILED
        self.result_message = message
        self.completed_at = datetime.now()
