"""
Job Result
==========

Tagged outcome returned by each pipeline stage and composed by the dispatcher.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any


class Outcome(str, Enum):
    ADMITTED = 'admitted'
    REJECTED = 'rejected'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'


@dataclass(frozen=True)
class JobResult:
    outcome: Outcome
    message: str = ""
    code: Optional[str] = None
    job_id: Optional[str] = None

    @classmethod
    def admitted(cls, job_id: str = None) -> 'JobResult':
        return cls(Outcome.ADMITTED, job_id=job_id)

    @classmethod
    def rejected(cls, code: str, message: str, job_id: str = None) -> 'JobResult':
        return cls(Outcome.REJECTED, message, code, job_id)

    @classmethod
    def failed(cls, code: str, message: str, job_id: str = None) -> 'JobResult':
        return cls(Outcome.FAILED, message, code, job_id)

    @classmethod
    def succeeded(cls, message: str, job_id: str = None) -> 'JobResult':
        return cls(Outcome.SUCCEEDED, message, None, job_id)

    @property
    def success(self) -> bool:
        return self.outcome is Outcome.SUCCEEDED

    @property
    def is_terminal(self) -> bool:
        return self.outcome is not Outcome.ADMITTED

    def to_response(self) -> Dict[str, Any]:
        """Body returned to HTTP callers."""
        return {'success': self.success, 'message': self.message}
