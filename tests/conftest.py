import base64
import threading
import time
from pathlib import Path

import pytest

from print_broker.dispatcher import JobDispatcher
from print_broker.ids import IDRegistry
from print_broker.registry import PrinterRegistry
from print_broker.tempfiles import TempFileManager

PDF_BYTES = b"%PDF-1.4\n%fake\n"
PDF_CONTENT = base64.b64encode(PDF_BYTES).decode("ascii")


class FakeGateway:
    """Stands in for the OS print subsystem."""

    def __init__(self, printers=("HP1", "HP2")):
        self.printers = list(printers)
        self.list_error = None
        self.print_error = None
        self.print_delay = 0.0
        self.printed = []
        self.seen_files = []
        self._lock = threading.Lock()

    def list_printers(self):
        if self.list_error is not None:
            raise self.list_error
        return list(self.printers)

    def print_file(self, path, printer):
        path = Path(path)
        # Record what the device saw while the artifact existed
        with self._lock:
            self.seen_files.append((printer, path, path.read_bytes()))
        if self.print_delay:
            time.sleep(self.print_delay)
        if self.print_error is not None:
            raise self.print_error
        with self._lock:
            self.printed.append((printer, path.name))


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def registry(gateway):
    registry = PrinterRegistry(gateway.list_printers, interval=3600)
    registry.refresh()
    return registry


@pytest.fixture
def ids():
    return IDRegistry()


@pytest.fixture
def tempfiles(tmp_path):
    return TempFileManager(tmp_path / "temp" / "files")


@pytest.fixture
def dispatcher(registry, ids, tempfiles, gateway):
    dispatcher = JobDispatcher(registry, ids, tempfiles, gateway, timeout=5)
    yield dispatcher
    dispatcher.shutdown()


@pytest.fixture
def pdf_job():
    def make(printer="HP1", content=PDF_CONTENT):
        return {"printer": printer, "datatype": "PDF", "content": content}
    return make
