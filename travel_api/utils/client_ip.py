"""
Client IP extraction for requests arriving through proxies or load balancers.
"""
from typing import Optional

from fastapi import Request


def get_client_ip(request: Request) -> Optional[str]:
    """
    Real client IP of a request.

    Checked in order: X-Forwarded-For (first entry), X-Real-IP, then the
    socket peer. Only trust these headers behind a proxy that overwrites them.

    Args:
        request: Incoming request

    Returns:
        IP address string or None
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        client_ip = forwarded_for.split(",")[0].strip()
        if client_ip:
            return client_ip

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return None
