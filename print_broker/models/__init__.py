"""
Print Broker Models
"""

from .job import PrintJob, JobKind, JobStatus
from .printer import NetworkDevice
from .result import JobResult, Outcome

__all__ = ['PrintJob', 'JobKind', 'JobStatus', 'NetworkDevice', 'JobResult', 'Outcome']
