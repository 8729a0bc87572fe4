"""
Job ID Allocation
=================

Short random job ids checked against a registry of ids still in flight.

The generator is not cryptographic, so uniqueness comes from the explicit
check-and-retry loop against the registry rather than from the randomness.
After ``max_attempts`` collisions the last candidate is returned anyway:
collisions become near impossible, not impossible.
"""

import random
import string
import threading
from typing import Callable, Optional, FrozenSet

from .config import ID_MIN_LENGTH, ID_MAX_LENGTH, ID_MAX_ATTEMPTS

ALPHABET = string.digits + 'abcdef'


class IDRegistry:
    """Set of outstanding job ids, guarded by a lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._ids = set()

    def __contains__(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)

    def snapshot(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._ids)

    def claim(self, generate: Callable[[], str], max_attempts: int = ID_MAX_ATTEMPTS) -> str:
        """
        Record an id drawn from ``generate``, redrawing while it collides.

        Check and insert happen under one lock hold, so concurrent claims
        cannot both take the same candidate. After ``max_attempts`` redraws
        the last candidate is recorded even if it is already outstanding.
        """
        with self._lock:
            candidate = generate()
            attempts = 0
            while candidate in self._ids and attempts < max_attempts:
                candidate = generate()
                attempts += 1
            self._ids.add(candidate)
        return candidate

    def release(self, job_id: str) -> bool:
        """Remove ``job_id``. Returns False if it was not outstanding."""
        with self._lock:
            if job_id in self._ids:
                self._ids.remove(job_id)
                return True
            return False


def _generate(length: int) -> str:
    return ''.join(random.choice(ALPHABET) for _ in range(length))


def allocate(existing: IDRegistry, length: Optional[int] = None,
             max_attempts: int = ID_MAX_ATTEMPTS) -> str:
    """
    Allocate a job id and record it in ``existing``.

    Args:
        existing: Registry of outstanding ids. The caller must release the
            returned id once the job terminates.
        length: Id length. Random in [6, 11] when not given.
        max_attempts: Regenerations allowed after a collision.

    Returns:
        The allocated id.
    """
    if length is None:
        length = random.randint(ID_MIN_LENGTH, ID_MAX_LENGTH)
    if length < 1:
        raise ValueError(f'id length must be >= 1 (got {length})')

    return existing.claim(lambda: _generate(length), max_attempts)
