"""
Client metadata attached to audit log entries.

Services never reach into a global request context. Callers build a
RequestMetadata from the incoming HTTP request (or pass None when there
is none, e.g. scheduled jobs) and hand it to the service explicitly.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

# Checked in order; the first usable value wins over the socket address
CLIENT_IP_HEADERS = (
    "X-Forwarded-For",
    "X-Real-IP",
    "Proxy-Client-IP",
    "WL-Proxy-Client-IP",
)


def _is_usable(value: Optional[str]) -> bool:
    return bool(value) and value.strip().lower() != "unknown"


def resolve_client_ip(
    headers: Mapping[str, str],
    remote_addr: Optional[str] = None,
) -> Optional[str]:
    """
    Resolve the originating client IP behind proxies.

    Args:
        headers: Request headers (looked up case-insensitively)
        remote_addr: Socket peer address, used when no header is usable

    Returns:
        First comma-separated value of the first usable header, else
        remote_addr (which may itself be None)
    """
    normalized: dict[str, str] = {}
    for key, value in headers.items():
        normalized.setdefault(key.lower(), value)

    for header in CLIENT_IP_HEADERS:
        value = normalized.get(header.lower())
        if _is_usable(value):
            return value.split(",")[0].strip()

    return remote_addr


@dataclass(frozen=True)
class RequestMetadata:
    """Client IP address and User-Agent of the request that caused an event."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_request(cls, request: Optional[Request]) -> "RequestMetadata":
        """
        Build metadata from a FastAPI request.

        Returns empty metadata (no IP, no User-Agent) when request is None.
        """
        if request is None:
            return cls()

        remote_addr = request.client.host if request.client else None
        return cls(
            ip_address=resolve_client_ip(request.headers, remote_addr),
            user_agent=request.headers.get("User-Agent"),
        )
