"""
Print Broker
============

Local HTTP print broker for PDF and ZPL print jobs.

Usage:
    python -m print_broker

API Endpoints:
    GET  /          - Service status
    POST /          - Submit print job (JSON or form body)
    GET  /health    - Health check
    GET  /printers  - Printers currently available
"""

__version__ = '0.1.0'
__author__ = 'Print Broker Contributors'
