"""
Job Dispatcher
==============

Runs one print job through the pipeline:

    pending -> validating -> admitted | rejected -> printing -> succeeded | failed

Each stage returns a JobResult; pipeline errors are converted to results here
and never propagate to the caller. Whatever the outcome, the job id is
released and the temp file (if any) is removed before ``dispatch`` returns.

Jobs for the same printer are not serialized against each other.
"""

import base64
import binascii
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeout
from concurrent.futures import wait as wait_futures
from typing import Callable, Dict, List, Mapping, Set

from .config import PRINT_TIMEOUT
from .errors import (
    NO_PRINTERS_AVAILABLE,
    NOT_IMPLEMENTED,
    PRINT_FAILED,
    PRINTER_UNAVAILABLE,
    AvailabilityError,
    CleanupWarning,
    ExecutionError,
    PrintBrokerError,
    ValidationError,
)
from .ids import IDRegistry, allocate
from .models import JobKind, JobResult, PrintJob
from .registry import PrinterRegistry
from .tempfiles import TempFileManager
from .validation import classify

logger = logging.getLogger(__name__)


class JobDispatcher:
    """Orchestrates validation, availability, execution and cleanup per job."""

    def __init__(self, registry: PrinterRegistry, ids: IDRegistry,
                 tempfiles: TempFileManager, device,
                 timeout: float = PRINT_TIMEOUT):
        """
        Args:
            registry: Printer availability snapshot.
            ids: Outstanding job ids.
            tempfiles: Scratch file manager for PDF payloads.
            device: Print capability with ``print_file(path, printer)``.
            timeout: Seconds to wait for a device invocation, measured from
                the moment the call starts.
        """
        self.registry = registry
        self.ids = ids
        self.tempfiles = tempfiles
        self.device = device
        self.timeout = timeout
        self._inflight_lock = threading.Lock()
        self._inflight: Set[Future] = set()

        self._executors: Dict[JobKind, Callable[[PrintJob, List], str]] = {
            JobKind.PDF: self._execute_pdf,
            JobKind.ZPL: self._execute_zpl,
        }

    # =========================================================================
    # Pipeline
    # =========================================================================

    def dispatch(self, payload: Mapping) -> JobResult:
        """Run one job to a terminal state and return its result."""
        job = PrintJob(id=allocate(self.ids))
        artifacts: List = []

        try:
            result = self._admit(job, payload)
            if result.is_terminal:
                job.reject(result.message)
                logger.warning("Job %s rejected (%s): %s", job.id, result.code, result.message)
                return result
            return self._execute(job, artifacts)
        finally:
            self._cleanup(job, artifacts)

    def _admit(self, job: PrintJob, payload: Mapping) -> JobResult:
        job.validating()
        try:
            kind = self._validate(job, payload)
            self._check_availability(job)
        except PrintBrokerError as e:
            return JobResult.rejected(e.code, e.message, job.id)

        job.admit(kind)
        logger.info("Job %s admitted: %s -> %s", job.id, kind.value, job.printer)
        return JobResult.admitted(job.id)

    def _validate(self, job: PrintJob, payload: Mapping) -> JobKind:
        classification = classify(payload)
        if not classification.accepted:
            details = '; '.join(classification.errors)
            raise ValidationError(f"Invalid request: {details}" if details else "Invalid request")

        job.payload = dict(payload)
        job.printer = payload['printer']
        return classification.kind

    def _check_availability(self, job: PrintJob) -> None:
        if not self.registry.any():
            raise AvailabilityError("No printers are available", NO_PRINTERS_AVAILABLE)
        if not self.registry.is_available(job.printer):
            raise AvailabilityError(f"Printer '{job.printer}' is not available", PRINTER_UNAVAILABLE)

    def _execute(self, job: PrintJob, artifacts: List) -> JobResult:
        # Executor lookup compares kinds by equality; an unknown kind cannot
        # fall through to another kind's executor.
        executor = self._executors.get(job.kind)
        job.start()
        try:
            if executor is None:
                raise ExecutionError(f"No executor for job kind {job.kind}", NOT_IMPLEMENTED)
            message = executor(job, artifacts)
        except PrintBrokerError as e:
            job.fail(e.message)
            logger.error("Job %s failed (%s): %s", job.id, e.code, e.message)
            return JobResult.failed(e.code, e.message, job.id)
        except Exception as e:
            job.fail(str(e))
            logger.exception("Job %s failed unexpectedly", job.id)
            return JobResult.failed(PRINT_FAILED, str(e) or type(e).__name__, job.id)

        job.complete(message)
        logger.info("Job %s succeeded: %s", job.id, message)
        return JobResult.succeeded(message, job.id)

    # =========================================================================
    # Executors
    # =========================================================================

    def _execute_pdf(self, job: PrintJob, artifacts: List) -> str:
        try:
            # Wrapped base64 (76-column lines) is valid input
            encoded = ''.join(job.payload['content'].split())
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ExecutionError(f"PDF content is not valid base64: {e}")

        path = self.tempfiles.materialize(job.id, data)
        artifacts.append(path)

        future = self._invoke_device(job, path)
        try:
            future.result(timeout=self.timeout)
        except FutureTimeout:
            future.cancel()
            raise ExecutionError(f"Printing to '{job.printer}' timed out after {self.timeout:g}s")
        except PrintBrokerError:
            raise
        except Exception as e:
            raise ExecutionError(str(e) or type(e).__name__)

        return f"Printed PDF to '{job.printer}'"

    def _invoke_device(self, job: PrintJob, path) -> Future:
        """Start the device call on its own thread so the timeout covers only the call."""
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f'print-{job.id}')
        try:
            future = pool.submit(self.device.print_file, path, job.printer)
        finally:
            pool.shutdown(wait=False)

        with self._inflight_lock:
            self._inflight.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._inflight_lock:
            self._inflight.discard(future)

    def _execute_zpl(self, job: PrintJob, artifacts: List) -> str:
        raise ExecutionError("ZPL printing is not implemented", NOT_IMPLEMENTED)

    # =========================================================================
    # Cleanup
    # =========================================================================

    def _cleanup(self, job: PrintJob, artifacts: List) -> None:
        for path in artifacts:
            try:
                self.tempfiles.cleanup(path)
            except OSError as e:
                logger.warning("%s", CleanupWarning(f"Job {job.id}: could not remove temp file: {e}"))

        if not self.ids.release(job.id):
            logger.warning("%s", CleanupWarning(f"Job {job.id}: id was not outstanding at cleanup"))

    def shutdown(self, wait: bool = False) -> None:
        """Optionally wait for device calls still running after their job timed out."""
        if not wait:
            return
        with self._inflight_lock:
            pending = set(self._inflight)
        wait_futures(pending)
