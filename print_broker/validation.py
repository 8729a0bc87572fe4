"""
Request Validation
==================

Schemas for incoming print requests and network device records.

Requests go through two stages: the general schema (``printer`` string and a
known ``datatype``), then the schema for the declared kind. A payload that
fails either stage is rejected outright.
"""

from dataclasses import dataclass, field
from ipaddress import IPv4Address, IPv6Address
from typing import Any, Dict, List, Literal, Mapping, Optional, Type

from pydantic import BaseModel, ConfigDict, StrictStr
from pydantic import ValidationError as SchemaError

from .config import NETWORK_PORT
from .errors import ValidationError
from .models import JobKind, NetworkDevice


# =============================================================================
# Schemas
# =============================================================================

class GeneralRequest(BaseModel):
    """Shape every print request must have."""

    model_config = ConfigDict(extra='allow')

    printer: StrictStr
    datatype: Literal['PDF', 'ZPL']


class PDFRequest(BaseModel):
    """PDF job: base64 ``content``, no other fields."""

    model_config = ConfigDict(extra='forbid')

    printer: StrictStr
    datatype: Literal['PDF']
    content: StrictStr


class ZPLRequest(BaseModel):
    """ZPL job: template variables travel as extra fields."""

    model_config = ConfigDict(extra='allow')

    printer: StrictStr
    datatype: Literal['ZPL']


class NetworkDeviceSchema(BaseModel):
    """Networked device: device id plus an IPv4 or IPv6 address."""

    model_config = ConfigDict(extra='allow')

    deviceId: StrictStr
    address: Literal['ipv4', 'ipv6']
    ipv4: Optional[IPv4Address] = None
    ipv6: Optional[IPv6Address] = None
    port: int = NETWORK_PORT


class _IPv4(BaseModel):
    ip: IPv4Address


class _IPv6(BaseModel):
    ip: IPv6Address


KIND_SCHEMAS: Dict[JobKind, Type[BaseModel]] = {
    JobKind.PDF: PDFRequest,
    JobKind.ZPL: ZPLRequest,
}


# =============================================================================
# Classification
# =============================================================================

@dataclass
class Classification:
    """Result of classifying a request payload."""

    accepted: bool
    kind: Optional[JobKind] = None
    errors: List[str] = field(default_factory=list)


def _format_errors(error: SchemaError) -> List[str]:
    messages = []
    for err in error.errors():
        location = '.'.join(str(part) for part in err.get('loc', ())) or 'body'
        messages.append(f"{location}: {err.get('msg', 'invalid')}")
    return messages


def classify(payload: Any) -> Classification:
    """
    Validate a request payload and determine its kind.

    Args:
        payload: Decoded request body.

    Returns:
        Classification with ``accepted``, ``kind`` (None when rejected)
        and readable ``errors``.
    """
    if not isinstance(payload, Mapping):
        return Classification(False, None, ['body: Request body must be an object'])

    try:
        general = GeneralRequest.model_validate(dict(payload))
    except SchemaError as e:
        return Classification(False, None, _format_errors(e))

    kind = JobKind(general.datatype)
    try:
        KIND_SCHEMAS[kind].model_validate(dict(payload))
    except SchemaError as e:
        return Classification(False, None, _format_errors(e))

    return Classification(True, kind)


# =============================================================================
# Network Addresses
# =============================================================================

@dataclass
class IPAddressInfo:
    address: Optional[str] = None  # ipv4, ipv6
    ipv4: Optional[str] = None
    ipv6: Optional[str] = None
    valid: bool = False


def validate_ip_address(address: str) -> IPAddressInfo:
    """Determine whether ``address`` is a valid IPv4 or IPv6 address."""
    result = IPAddressInfo()
    try:
        result.ipv4 = str(_IPv4(ip=address).ip)
        result.address = 'ipv4'
    except SchemaError:
        try:
            result.ipv6 = str(_IPv6(ip=address).ip)
            result.address = 'ipv6'
        except SchemaError:
            pass
    result.valid = result.address is not None
    return result


def validate_network_device(data: Mapping) -> NetworkDevice:
    """
    Parse a stored network device record.

    Raises:
        ValidationError: if the record does not match the schema, or the
            declared address family has no address.
    """
    try:
        record = NetworkDeviceSchema.model_validate(dict(data))
    except SchemaError as e:
        raise ValidationError('; '.join(_format_errors(e))) from e
    except (TypeError, ValueError) as e:
        raise ValidationError(f'Network device must be an object: {e}') from e

    device = NetworkDevice(
        device_id=record.deviceId,
        address=record.address,
        ipv4=str(record.ipv4) if record.ipv4 else None,
        ipv6=str(record.ipv6) if record.ipv6 else None,
        port=record.port,
    )
    if not device.host:
        raise ValidationError(f"{record.address}: address required for device {record.deviceId}")
    return device
