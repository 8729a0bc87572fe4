# tests/test_dispatcher.py

import base64
import threading

from print_broker.dispatcher import JobDispatcher
from print_broker.errors import PrinterError
from print_broker.models import Outcome
from print_broker.registry import PrinterRegistry


def test_pdf_job_succeeds_and_reaches_device(dispatcher, gateway, pdf_job):
    job = pdf_job("HP1")

    result = dispatcher.dispatch(job)

    assert result.success is True
    assert result.outcome is Outcome.SUCCEEDED
    assert result.to_response() == {"success": True, "message": "Printed PDF to 'HP1'"}
    printer, path, data = gateway.seen_files[0]
    assert printer == "HP1"
    assert data == base64.b64decode(job["content"])
    assert path.name == f"{result.job_id}.pdf"


def test_artifact_and_id_are_cleaned_after_success(dispatcher, gateway, ids, tempfiles, pdf_job):
    result = dispatcher.dispatch(pdf_job("HP1"))

    _, path, _ = gateway.seen_files[0]
    assert not path.exists()
    assert result.job_id not in ids
    assert len(ids) == 0
    assert list(tempfiles.directory.iterdir()) == []


def test_artifact_and_id_are_cleaned_after_failure(dispatcher, gateway, ids, tempfiles, pdf_job):
    gateway.print_error = PrinterError("lp failed (rc=1): paper jam")

    result = dispatcher.dispatch(pdf_job("HP1"))

    assert result.success is False
    assert result.outcome is Outcome.FAILED
    assert result.code == "print_failed"
    assert result.message == "lp failed (rc=1): paper jam"
    _, path, _ = gateway.seen_files[0]
    assert not path.exists()
    assert len(ids) == 0
    assert list(tempfiles.directory.iterdir()) == []


def test_unexpected_device_exception_becomes_failure(dispatcher, gateway, pdf_job):
    gateway.print_error = RuntimeError("spooler offline")

    result = dispatcher.dispatch(pdf_job("HP1"))

    assert result.to_response() == {"success": False, "message": "spooler offline"}
    assert result.code == "print_failed"


def test_device_timeout_fails_job(registry, ids, tempfiles, gateway, pdf_job):
    gateway.print_delay = 0.5
    dispatcher = JobDispatcher(registry, ids, tempfiles, gateway, timeout=0.05)
    try:
        result = dispatcher.dispatch(pdf_job("HP1"))
    finally:
        dispatcher.shutdown(wait=True)

    assert result.success is False
    assert result.code == "print_failed"
    assert "timed out" in result.message
    assert len(ids) == 0


def test_timeout_measures_only_the_device_call(registry, ids, tempfiles, gateway, pdf_job):
    # Each call fits the timeout on its own; queued behind each other they would not
    gateway.print_delay = 0.3
    dispatcher = JobDispatcher(registry, ids, tempfiles, gateway, timeout=0.5)
    count = 12
    results = []
    lock = threading.Lock()
    barrier = threading.Barrier(count)

    def submit():
        barrier.wait()
        result = dispatcher.dispatch(pdf_job("HP1"))
        with lock:
            results.append(result)

    threads = [threading.Thread(target=submit) for _ in range(count)]
    try:
        for t in threads:
            t.start()
        for t in threads:
            t.join()
    finally:
        dispatcher.shutdown(wait=True)

    assert [r.message for r in results if not r.success] == []
    assert len(gateway.printed) == count
    assert len(ids) == 0


def test_invalid_request_is_rejected(dispatcher, gateway, ids):
    result = dispatcher.dispatch({"printer": "HP1", "datatype": "PDF"})

    assert result.outcome is Outcome.REJECTED
    assert result.code == "invalid_request"
    assert result.message.startswith("Invalid request")
    assert "content" in result.message
    assert gateway.seen_files == []
    assert len(ids) == 0


def test_invalid_base64_fails_without_reaching_device(dispatcher, gateway, tempfiles, pdf_job):
    result = dispatcher.dispatch(pdf_job("HP1", content="!!not base64!!"))

    assert result.outcome is Outcome.FAILED
    assert result.code == "print_failed"
    assert gateway.seen_files == []
    assert list(tempfiles.directory.iterdir()) == []


def test_line_wrapped_base64_is_accepted(dispatcher, gateway, pdf_job):
    data = b"%PDF-1.4\n" + b"x" * 200
    wrapped = base64.encodebytes(data).decode("ascii")
    assert "\n" in wrapped.strip()

    result = dispatcher.dispatch(pdf_job("HP1", content=wrapped))

    assert result.success is True
    assert gateway.seen_files[0][2] == data


def test_no_printers_available(registry, dispatcher, gateway, pdf_job):
    gateway.printers = []
    registry.refresh()

    result = dispatcher.dispatch(pdf_job("HP1"))

    assert registry.any() is False
    assert result.outcome is Outcome.REJECTED
    assert result.code == "no_printers_available"


def test_printer_unavailable_even_when_others_exist(registry, dispatcher, pdf_job):
    assert registry.any() is True

    result = dispatcher.dispatch(pdf_job("Canon"))

    assert result.outcome is Outcome.REJECTED
    assert result.code == "printer_unavailable"
    assert "Canon" in result.message


def test_failed_refresh_keeps_printer_admissible(registry, dispatcher, gateway, pdf_job):
    gateway.list_error = OSError("lpstat missing")
    registry.refresh()

    assert dispatcher.dispatch(pdf_job("HP1")).success is True


def test_zpl_job_reports_not_implemented(dispatcher, gateway, ids):
    result = dispatcher.dispatch({"printer": "HP1", "datatype": "ZPL", "name": "Jane"})

    assert result.success is False
    assert result.outcome is Outcome.FAILED
    assert result.code == "not_implemented"
    assert "not implemented" in result.message
    assert gateway.seen_files == []
    assert len(ids) == 0


def test_zpl_job_is_not_treated_as_pdf(dispatcher, gateway):
    result = dispatcher.dispatch({"printer": "HP1", "datatype": "ZPL", "content": "JVBERi0="})

    assert result.code == "not_implemented"
    assert gateway.seen_files == []


def test_cleanup_error_is_logged_not_raised(dispatcher, tempfiles, monkeypatch, caplog, pdf_job):
    def broken_cleanup(_path):
        raise PermissionError("read-only scratch dir")

    monkeypatch.setattr(tempfiles, "cleanup", broken_cleanup)

    result = dispatcher.dispatch(pdf_job("HP1"))

    assert result.success is True
    assert "could not remove temp file" in caplog.text


def test_concurrent_jobs_on_different_printers(dispatcher, gateway, ids, tempfiles, pdf_job):
    gateway.print_delay = 0.05
    payloads = {
        "HP1": pdf_job("HP1", base64.b64encode(b"%PDF-one").decode()),
        "HP2": pdf_job("HP2", base64.b64encode(b"%PDF-two").decode()),
    }
    results = {}
    barrier = threading.Barrier(len(payloads))

    def submit(printer):
        barrier.wait()
        results[printer] = dispatcher.dispatch(payloads[printer])

    threads = [threading.Thread(target=submit, args=(p,)) for p in payloads]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert all(r.success for r in results.values())
    assert results["HP1"].job_id != results["HP2"].job_id

    seen = {printer: data for printer, _, data in gateway.seen_files}
    assert seen == {"HP1": b"%PDF-one", "HP2": b"%PDF-two"}
    assert len(ids) == 0
    assert list(tempfiles.directory.iterdir()) == []


def test_same_printer_jobs_run_concurrently(dispatcher, gateway, pdf_job):
    count = 8
    # No per-printer serialization: every job for HP1 completes
    results = []
    lock = threading.Lock()

    def submit():
        result = dispatcher.dispatch(pdf_job("HP1"))
        with lock:
            results.append(result)

    threads = [threading.Thread(target=submit) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == count
    assert all(r.success for r in results)
    assert len({r.job_id for r in results}) == count


def test_registry_without_refresh_rejects_everything(ids, tempfiles, gateway, pdf_job):
    registry = PrinterRegistry(gateway.list_printers)
    dispatcher = JobDispatcher(registry, ids, tempfiles, gateway)
    try:
        result = dispatcher.dispatch(pdf_job("HP1"))
    finally:
        dispatcher.shutdown()

    assert result.code == "no_printers_available"
