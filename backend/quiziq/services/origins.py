"""
Origin extraction and allow-list checks.
"""
from typing import Sequence
from urllib.parse import urlsplit

DEFAULT_PORTS = {"http": 80, "https": 443}


def extract_origin(url: str) -> str | None:
    """
    ``scheme://host[:port]`` for an absolute URL, or None when the URL has
    no scheme or host.
    """
    try:
        parsed = urlsplit(url.strip())
        # Touch .port so malformed ports raise here
        parsed.port
    except ValueError:
        return None

    if not parsed.scheme or not parsed.netloc or not parsed.hostname:
        return None

    scheme = parsed.scheme.lower()
    # Credentials never belong to the origin
    host = parsed.netloc.rpartition("@")[2].lower()
    if parsed.port is not None and DEFAULT_PORTS.get(scheme) == parsed.port:
        host = host.rpartition(":")[0]
    return f"{scheme}://{host}"


def is_origin_allowed(
    origin: str,
    allowed_origins: Sequence[str],
    *,
    strict: bool = False,
) -> bool:
    """
    Check an origin against an allow-list; an empty list allows everything.

    Entries match by substring containment (``"example.com"`` admits
    ``"https://shop.example.com"``). With ``strict`` an entry must equal the
    origin exactly.
    """
    if not allowed_origins:
        return True
    if strict:
        return origin in allowed_origins
    return any(allowed in origin for allowed in allowed_origins)
