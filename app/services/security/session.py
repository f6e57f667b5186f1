"""
Session Key Derivation

Keys CSRF tokens and rate-limit counters. Authenticated callers are keyed on
their username; anonymous callers on client address plus user agent.
"""

from typing import Optional

UNKNOWN = "unknown"
USER_AGENT_MAX_LENGTH = 50
IPV4_MAPPED_PREFIX = "::ffff:"


def normalize_client_ip(raw: Optional[str]) -> str:
    """
    Normalize a client address.

    "1.2.3.4, 5.6.7.8" -> "1.2.3.4" (first hop of a forwarded-for chain)
    "::ffff:1.2.3.4"   -> "1.2.3.4"
    """
    if not raw:
        return UNKNOWN
    ip = raw.split(",", 1)[0].strip()
    if ip.lower().startswith(IPV4_MAPPED_PREFIX):
        ip = ip[len(IPV4_MAPPED_PREFIX):]
    return ip or UNKNOWN


def derive_session_key(
    identity: Optional[str],
    forwarded_for: Optional[str],
    client_host: Optional[str],
    user_agent: Optional[str],
) -> str:
    """
    Build the session key for a request.

    Args:
        identity: Username of the authenticated caller, if any
        forwarded_for: Raw X-Forwarded-For header
        client_host: Socket peer address
        user_agent: Raw User-Agent header

    Returns:
        "user:{identity}" or "anon:{ip}:{user_agent[:50]}"
    """
    if identity:
        return f"user:{identity}"

    ip = normalize_client_ip(forwarded_for or client_host)
    agent = (user_agent or UNKNOWN)[:USER_AGENT_MAX_LENGTH]
    return f"anon:{ip}:{agent}"
