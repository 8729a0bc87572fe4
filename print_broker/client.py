"""
Print Broker Client
===================

Python SDK for submitting jobs to a Print Broker.

Usage:
    from print_broker.client import PrintClient

    client = PrintClient('http://localhost:3000')

    # Printers currently available
    printers = client.list_printers()

    # Print a PDF
    with open('label.pdf', 'rb') as f:
        result = client.print_pdf('HP1', f.read())
"""

import base64
import requests
from typing import Dict, Any, List


class PrintClient:
    """Client for Print Broker."""

    def __init__(self, base_url: str = 'http://localhost:3000', timeout: float = 90):
        """
        Initialize client.

        Args:
            base_url: Base URL of the print broker
            timeout: Request timeout in seconds. Should exceed the broker's
                print timeout, since POST / waits for the job to finish.
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def _request(self, method: str, endpoint: str, data: Dict = None) -> Dict[str, Any]:
        """Make API request."""
        url = f'{self.base_url}{endpoint}'

        try:
            if method == 'GET':
                response = requests.get(url, timeout=self.timeout)
            elif method == 'POST':
                response = requests.post(url, json=data, timeout=self.timeout)
            else:
                raise ValueError(f'Unknown method: {method}')

            return response.json()

        except requests.exceptions.Timeout:
            return {'success': False, 'message': 'Request timeout'}
        except requests.exceptions.ConnectionError:
            return {'success': False, 'message': f'Cannot connect to {self.base_url}'}
        except requests.exceptions.RequestException as e:
            return {'success': False, 'message': str(e)}
        except ValueError as e:
            return {'success': False, 'message': f'Invalid response: {e}'}

    # =========================================================================
    # Health
    # =========================================================================

    def status(self) -> Dict[str, Any]:
        """Service status."""
        return self._request('GET', '/')

    def health(self) -> Dict[str, Any]:
        """Check service health."""
        return self._request('GET', '/health')

    def is_online(self) -> bool:
        """Check if service is online."""
        return self.health().get('status') == 'online'

    # =========================================================================
    # Printers
    # =========================================================================

    def list_printers(self) -> List[str]:
        """Printers in the broker's current availability snapshot."""
        result = self._request('GET', '/printers')
        return result.get('printers', [])

    # =========================================================================
    # Printing
    # =========================================================================

    def print_pdf(self, printer: str, pdf_data: bytes) -> Dict[str, Any]:
        """
        Print a PDF.

        Args:
            printer: Target printer name or network device id
            pdf_data: Raw PDF bytes

        Returns:
            Dict with ``success`` and ``message``
        """
        data = {
            'printer': printer,
            'datatype': 'PDF',
            'content': base64.b64encode(pdf_data).decode('ascii'),
        }
        return self._request('POST', '/', data)

    def print_file(self, printer: str, file_path: str) -> Dict[str, Any]:
        """Print a PDF file."""
        with open(file_path, 'rb') as f:
            return self.print_pdf(printer, f.read())

    def print_zpl(self, printer: str, **variables) -> Dict[str, Any]:
        """Submit a ZPL job with template variables."""
        data = {
            **variables,
            'printer': printer,
            'datatype': 'ZPL',
        }
        return self._request('POST', '/', data)
