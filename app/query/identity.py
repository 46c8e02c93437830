# FILE: app/query/identity.py
"""Client identity used as the rate-limit key."""

from typing import Mapping

UNKNOWN_CLIENT = "unknown"


def get_client_identity(headers: Mapping[str, str]) -> str:
    """
    First X-Forwarded-For hop, else X-Real-IP, else "unknown".

    Header lookups go through ``headers.get`` so Starlette's
    case-insensitive Headers work as-is; plain dicts must use lowercase keys.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    return UNKNOWN_CLIENT
