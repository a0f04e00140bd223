"""
Port specifications for port-forwarding, in kubectl's `[local]:[remote]` form.
"""

from typing import Iterable, List

from kuberepl.core.errors import InvalidPortSpecError


def validate_port_spec(spec: str) -> str:
    """
    Accepts '8080', '8080:9090', ':3456' or '0:3456'. Either side may be
    empty; a non-empty side must be an unsigned integer.
    """
    parts = spec.split(":")
    if len(parts) > 2:
        raise InvalidPortSpecError(f"Invalid port specification '{spec}', can only contain one ':'")
    if not any(parts):
        raise InvalidPortSpecError(f"Invalid port specification '{spec}', no port given")
    for part in parts:
        if part and not (part.isascii() and part.isdigit()):
            raise InvalidPortSpecError(f"Invalid port specification '{spec}': '{part}' is not a port number")
        if part and int(part) > 65535:
            raise InvalidPortSpecError(f"Invalid port specification '{spec}': {part} is out of range")
    return spec


def validate_port_specs(specs: Iterable[str]) -> List[str]:
    validated = [validate_port_spec(s) for s in specs]
    if not validated:
        raise InvalidPortSpecError("At least one port is required")
    return validated
