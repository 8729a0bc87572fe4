"""
Device Access
=============

Print capability consumed by the broker: list printers known to the OS and
submit files to them. Network devices registered in the printers store are
addressed directly over a raw (JetDirect) socket.
"""

import logging
import shutil
import socket
import subprocess
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, List

from .config import NETWORK_PORT, REACHABILITY_TIMEOUT, PRINT_TIMEOUT
from .errors import PrinterError, ValidationError
from .models import NetworkDevice
from .validation import validate_network_device

logger = logging.getLogger(__name__)

# Printers store key holding registered network devices
NETWORK_DEVICES_KEY = 'network'


# =============================================================================
# OS Providers
# =============================================================================

class PrinterProvider(ABC):
    """OS print subsystem."""

    @abstractmethod
    def list_printers(self) -> List[str]:
        """Names of printers the OS can print to."""

    @abstractmethod
    def print_file(self, file_path: Path, printer: str, timeout: float = None) -> None:
        """
        Submit ``file_path`` to ``printer``.

        Implementations raise PrinterError on failure.
        """


class CupsPrinterProvider(PrinterProvider):
    """CUPS-backed provider using ``lpstat`` and ``lp``."""

    def __init__(self, lp_path: str = 'lp', lpstat_path: str = 'lpstat'):
        self._lp_path = lp_path
        self._lpstat_path = lpstat_path

    def _require(self, command: str) -> None:
        if shutil.which(command) is None:
            raise PrinterError(f"CUPS not available: '{command}' not found in PATH")

    def list_printers(self) -> List[str]:
        self._require(self._lpstat_path)

        proc = subprocess.run(
            [self._lpstat_path, '-e'],
            capture_output=True,
            text=True,
            timeout=REACHABILITY_TIMEOUT * 5,
        )
        if proc.returncode == 0:
            return [line.strip() for line in proc.stdout.splitlines() if line.strip()]

        # Older CUPS clients have no -e; fall back to acceptance listing
        proc = subprocess.run(
            [self._lpstat_path, '-a'],
            capture_output=True,
            text=True,
            timeout=REACHABILITY_TIMEOUT * 5,
        )
        if proc.returncode != 0:
            out = (proc.stdout or '') + (proc.stderr or '')
            raise PrinterError(f"lpstat failed (rc={proc.returncode}): {out.strip()}")
        return [line.split()[0] for line in proc.stdout.splitlines() if line.strip()]

    def print_file(self, file_path: Path, printer: str, timeout: float = None) -> None:
        self._require(self._lp_path)

        file_path = Path(file_path)
        if not file_path.is_file():
            raise PrinterError(f"Print file does not exist: {file_path.name}")

        cmd = [self._lp_path, '-d', printer, '-t', file_path.stem, str(file_path)]
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
        except subprocess.TimeoutExpired:
            raise PrinterError(f"lp timed out after {timeout}s for printer {printer}")
        if proc.returncode != 0:
            out = (proc.stdout or '') + (proc.stderr or '')
            raise PrinterError(f"lp failed (rc={proc.returncode}): {out.strip()}")


class WindowsPrinterProvider(PrinterProvider):
    """Windows spooler provider (requires pywin32)."""

    def list_printers(self) -> List[str]:
        try:
            import win32print
        except ImportError:
            raise PrinterError("win32print not available on this system")

        printers = win32print.EnumPrinters(
            win32print.PRINTER_ENUM_LOCAL | win32print.PRINTER_ENUM_CONNECTIONS
        )
        return [p[2] for p in printers]

    def print_file(self, file_path: Path, printer: str, timeout: float = None) -> None:
        try:
            import win32api
        except ImportError:
            raise PrinterError("win32api not available on this system")

        file_path = Path(file_path)
        if not file_path.is_file():
            raise PrinterError(f"Print file does not exist: {file_path.name}")

        # Hands the file to the registered PDF handler's "printto" verb
        result = win32api.ShellExecute(0, 'printto', str(file_path), f'"{printer}"', '.', 0)
        if result <= 32:
            raise PrinterError(f"ShellExecute printto failed with code {result}")


def get_provider() -> PrinterProvider:
    """Provider for the current platform."""
    if sys.platform == 'win32':
        return WindowsPrinterProvider()
    return CupsPrinterProvider()


# =============================================================================
# Network Devices
# =============================================================================

def is_reachable(host: str, port: int = NETWORK_PORT, timeout: float = REACHABILITY_TIMEOUT) -> bool:
    """TCP connection test."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def send_raw(host: str, port: int, data: bytes, timeout: float = PRINT_TIMEOUT) -> int:
    """Send ``data`` to a raw printer socket. Returns bytes sent."""
    try:
        with socket.create_connection((host, port), timeout=timeout) as sock:
            sock.sendall(data)
    except socket.timeout:
        raise PrinterError(f"Connection timeout to {host}:{port}")
    except ConnectionRefusedError:
        raise PrinterError(f"Connection refused by {host}:{port}")
    except OSError as e:
        raise PrinterError(f"Cannot send to {host}:{port}: {e}")
    return len(data)


# =============================================================================
# Gateway
# =============================================================================

class PrintGateway:
    """
    Print capability used by the registry and dispatcher.

    Combines the OS provider with network devices stored under the
    ``network`` key of the printers store (a list of device records).
    """

    def __init__(self, provider: PrinterProvider, store=None,
                 reachability: Callable[..., bool] = is_reachable,
                 timeout: float = PRINT_TIMEOUT):
        self.provider = provider
        self.store = store
        self.reachability = reachability
        self.timeout = timeout

    def network_devices(self) -> Dict[str, NetworkDevice]:
        """Valid network devices from the store, keyed by device id."""
        if self.store is None:
            return {}

        devices = {}
        for record in self.store.get(NETWORK_DEVICES_KEY, []) or []:
            try:
                device = validate_network_device(record)
            except ValidationError as e:
                logger.warning("Skipping invalid network device record: %s", e)
                continue
            devices[device.device_id] = device
        return devices

    def list_printers(self) -> List[str]:
        """OS printers plus reachable network devices.

        A provider failure does not hide the network devices. It only
        propagates when there are no network devices to list instead.
        """
        devices = self.network_devices()
        try:
            names = list(self.provider.list_printers())
        except PrinterError as e:
            if not devices:
                raise
            logger.warning("OS printer listing failed, listing network devices only: %s", e)
            names = []

        for device_id, device in devices.items():
            if self.reachability(device.host, device.port):
                names.append(device_id)
            else:
                logger.info("Network device %s at %s:%s unreachable", device_id, device.host, device.port)
        return names

    def print_file(self, file_path: Path, printer: str) -> None:
        device = self.network_devices().get(printer)
        if device is not None:
            sent = send_raw(device.host, device.port, Path(file_path).read_bytes(), self.timeout)
            logger.debug("Sent %d bytes to %s (%s:%s)", sent, printer, device.host, device.port)
            return
        self.provider.print_file(Path(file_path), printer, timeout=self.timeout)


def register_network_device(store, record: Dict) -> NetworkDevice:
    """Validate ``record`` and add or replace it in the printers store."""
    device = validate_network_device(record)
    records = [
        r for r in (store.get(NETWORK_DEVICES_KEY, []) or [])
        if isinstance(r, dict) and r.get('deviceId') != device.device_id
    ]
    records.append(dict(record))
    store.set(NETWORK_DEVICES_KEY, records)
    return device

