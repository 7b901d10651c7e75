import ipaddress
from typing import Optional

from fastapi import Request

# cabe en incidents.log_source y en counters.counter_id ("<source>-<epoch>")
MAX_SOURCE_LENGTH = 64


def _first_forwarded(value: str) -> Optional[str]:
    ip = value.split(",")[0].strip()
    try:
        ipaddress.ip_address(ip)
        return ip
    except ValueError:
        return None


def get_request_source(request: Request) -> Optional[str]:
    """x-forwarded-for (1ra IP) -> x-source -> IP de la conexión."""
    fwd = request.headers.get("x-forwarded-for")
    if fwd:
        ip = _first_forwarded(fwd)
        if ip:
            return ip
    # x-source lo manda el cliente sin límite: se recorta
    source = (request.headers.get("x-source") or "").strip()[:MAX_SOURCE_LENGTH]
    if source:
        return source
    return request.client.host if request.client else None
