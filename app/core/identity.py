"""Caller identity resolution for per-caller quotas.

The resolved identity is only ever used through its SHA-256 digest. The
digest is unsalted, so it hides identities from casual inspection of the
store but does not resist enumeration of known identifiers.
"""

from __future__ import annotations

import hashlib
from typing import Mapping

ANONYMOUS = "anonymous"

# Checked in order after X-Forwarded-For
_CLIENT_IP_HEADERS = ("client-ip", "x-real-ip")


def client_ip_from_headers(headers: Mapping[str, str]) -> str | None:
    """Extract the originating client address set by a proxy or CDN.

    Prefers the first hop of ``X-Forwarded-For``, then ``Client-IP`` and
    ``X-Real-IP``. Header lookup must be case-insensitive (Starlette headers
    are).
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    for name in _CLIENT_IP_HEADERS:
        value = headers.get(name)
        if value and value.strip():
            return value.strip()
    return None


def resolve_caller_identity(user_id: str | None, headers: Mapping[str, str]) -> str:
    """Explicit user id, then proxy-reported client address, then "anonymous"."""
    if user_id and user_id.strip():
        return user_id.strip()
    return client_ip_from_headers(headers) or ANONYMOUS


def hash_identity(identity: str) -> str:
    """One-way pseudonymous key for a caller identity (hex SHA-256)."""
    return hashlib.sha256(identity.encode("utf-8")).hexdigest()
