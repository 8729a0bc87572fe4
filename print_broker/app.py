"""
Print Broker - Main Application
===============================

Local HTTP print broker. Accepts PDF/ZPL print jobs, checks them against
the available printers and hands them to the OS print subsystem.

Run: python -m print_broker
"""

import logging
import platform
import socket
import sys
from datetime import datetime
from pathlib import Path

from flask import Flask, request, jsonify
from flask_cors import CORS

from . import __version__
from .config import (
    PORT, HOST, DEBUG, LOG_LEVEL, LOG_FORMAT, STORAGE_DIR,
    PRINT_TIMEOUT, REFRESH_INTERVAL,
    temp_dir, templates_dir, printers_dir,
)
from .devices import PrintGateway, get_provider
from .dispatcher import JobDispatcher
from .errors import StorageError
from .ids import IDRegistry
from .registry import PrinterRegistry
from .storage import KeyValueStore
from .tempfiles import TempFileManager

logger = logging.getLogger(__name__)


# =============================================================================
# Startup
# =============================================================================

def setup_directories(storage_dir) -> dict:
    """Create the scratch and persistent store directories."""
    logger.info("Running directory structure setup in %s", storage_dir)
    paths = {
        'temp': Path(temp_dir(storage_dir)),
        'templates': Path(templates_dir(storage_dir)),
        'printers': Path(printers_dir(storage_dir)),
    }
    for path in paths.values():
        path.mkdir(parents=True, exist_ok=True)
    logger.info("Directory structure setup completed")
    return paths


def setup_storage(paths: dict) -> dict:
    """Initialize the templates and printers stores."""
    logger.info("Running persistent storage setup")
    stores = {
        'templates': KeyValueStore(paths['templates']).init(),
        'printers': KeyValueStore(paths['printers']).init(),
    }
    logger.info("Persistent storage setup completed")
    return stores


# =============================================================================
# Application Setup
# =============================================================================

def create_app(storage_dir=STORAGE_DIR, gateway=None, refresh_interval: float = REFRESH_INTERVAL,
               print_timeout: float = PRINT_TIMEOUT, start_refresh: bool = True) -> Flask:
    """
    Build the Flask app and its pipeline.

    Args:
        storage_dir: Root of the scratch and persistent directories.
        gateway: Print capability (``list_printers``/``print_file``).
            Defaults to the platform provider plus stored network devices.
        refresh_interval: Seconds between printer list refreshes.
        print_timeout: Seconds to wait for a device invocation.
        start_refresh: Start the background refresh thread.
    """
    paths = setup_directories(storage_dir)
    stores = setup_storage(paths)

    if gateway is None:
        gateway = PrintGateway(get_provider(), stores['printers'], timeout=print_timeout)

    registry = PrinterRegistry(gateway.list_printers, interval=refresh_interval, store=stores['printers'])
    dispatcher = JobDispatcher(
        registry=registry,
        ids=IDRegistry(),
        tempfiles=TempFileManager(paths['temp']),
        device=gateway,
        timeout=print_timeout,
    )

    app = Flask(__name__)
    CORS(app)
    app.extensions['print_broker'] = {
        'registry': registry,
        'dispatcher': dispatcher,
        'stores': stores,
        'gateway': gateway,
    }

    # =========================================================================
    # Routes
    # =========================================================================

    @app.route('/', methods=['GET'])
    def status():
        """Service status."""
        return jsonify({
            'success': True,
            'msg': f'Print-Server {__version__} is running.',
        })

    @app.route('/', methods=['POST'])
    def submit_job():
        """Submit a print job.

        Body (JSON or form): printer, datatype (PDF|ZPL), content (base64, PDF).
        Always answers HTTP 200; the outcome is in ``success``.
        """
        if request.is_json:
            payload = request.get_json(silent=True)
        else:
            payload = request.form.to_dict()

        result = dispatcher.dispatch(payload)
        return jsonify(result.to_response())

    @app.route('/health', methods=['GET'])
    def health():
        """Health check with system info."""
        return jsonify({
            'status': 'online',
            'version': __version__,
            'hostname': socket.gethostname(),
            'platform': platform.system(),
            'python': sys.version.split()[0],
            'printers_available': len(registry.snapshot()),
            'timestamp': datetime.now().isoformat(),
        })

    @app.route('/printers', methods=['GET'])
    def list_printers():
        """Printers in the current availability snapshot."""
        printers = sorted(registry.snapshot())
        return jsonify({
            'success': True,
            'printers': printers,
            'count': len(printers),
        })

    if start_refresh:
        registry.start()

    return app


# =============================================================================
# Main
# =============================================================================

def main():
    """Run the service."""
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

    logger.info("Launching Print-Server %s for %s", __version__, platform.system())
    try:
        app = create_app()
    except (OSError, StorageError):
        logger.exception("Server startup failed")
        sys.exit(1)

    logger.info("Print-Server %s listening on %s:%s", __version__, HOST, PORT)
    try:
        app.run(host=HOST, port=PORT, debug=DEBUG, threaded=True, use_reloader=False)
    except OSError:
        logger.exception("Cannot bind %s:%s", HOST, PORT)
        sys.exit(1)
    finally:
        extension = app.extensions['print_broker']
        extension['registry'].stop(timeout=1)
        extension['dispatcher'].shutdown()


if __name__ == '__main__':
    main()
