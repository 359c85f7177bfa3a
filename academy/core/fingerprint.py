"""
Device fingerprinting.

A fingerprint is derived deterministically from request metadata
(User-Agent + client IP, SHA-256 hashed), so the same browser on the same
network reproduces the same value across sessions without client-side state.
"""

import hashlib

from fastapi import Request

DEVICE_ID_HEADER = "X-Device-Id"


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Checks X-Forwarded-For header first (for proxies/load balancers),
    falls back to direct client IP.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # X-Forwarded-For can contain multiple IPs, take the first (client)
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else ""


def get_user_agent(request: Request) -> str:
    """Extract User-Agent header from request (empty string if absent)."""
    return request.headers.get("User-Agent", "")


def generate_device_id(user_agent: str, ip_address: str) -> str:
    """Hash user agent and network origin into a stable fingerprint."""
    return hashlib.sha256((user_agent + ip_address).encode("utf-8")).hexdigest()


def device_id_from_request(request: Request) -> str:
    """Fingerprint of the device making this request."""
    return generate_device_id(get_user_agent(request), get_client_ip(request))


def get_request_device_id(request: Request) -> str | None:
    """Fingerprint the client presents with an authenticated request, if any."""
    value = request.headers.get(DEVICE_ID_HEADER)
    if value is None:
        return None
    value = value.strip()
    return value or None


def guess_device_name(user_agent: str | None) -> str:
    """
    Human-readable guess of the device from its user agent.

    Mobile platforms are checked first: iPhone user agents mention "Mac OS X"
    and Android ones mention "Linux".
    """
    if not user_agent:
        return "Unknown Device"

    for marker, name in (
        ("iPhone", "iPhone"),
        ("iPad", "iPad"),
        ("Android", "Android Device"),
        ("Windows", "Windows PC"),
        ("Mac", "Mac"),
        ("Linux", "Linux PC"),
    ):
        if marker in user_agent:
            return name

    return "Unknown Device"
