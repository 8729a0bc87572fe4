"""
Temp File Manager
=================

Scratch files holding decoded job payloads, one per PDF job, named by job id.
"""

import logging
import re
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

_SAFE_STEM = re.compile(r'^[A-Za-z0-9_-]+$')


class TempFileManager:
    """Owns the lifecycle of on-disk job artifacts under one scratch directory."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory).resolve()
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, job_id: str, suffix: str = '.pdf') -> Path:
        """Artifact path for ``job_id``. Raises ValueError for unsafe ids."""
        if not job_id or not _SAFE_STEM.match(job_id):
            raise ValueError(f'Unsafe job id for temp file: {job_id!r}')
        path = (self.directory / f'{job_id}{suffix}').resolve()
        if path.parent != self.directory:
            raise ValueError(f'Temp file escapes scratch directory: {job_id!r}')
        return path

    def materialize(self, job_id: str, data: bytes, suffix: str = '.pdf') -> Path:
        """Write ``data`` to the job's artifact and return its path."""
        path = self.path_for(job_id, suffix)
        path.write_bytes(data)
        logger.debug("Wrote %d bytes to %s", len(data), path.name)
        return path

    def cleanup(self, path: Union[str, Path]) -> None:
        """Delete an artifact. A file that is already gone counts as deleted."""
        try:
            Path(path).unlink()
        except FileNotFoundError:
            logger.debug("Temp file %s already removed", Path(path).name)
