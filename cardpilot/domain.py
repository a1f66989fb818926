"""
Domain normalization for merchant resolution.

Every lookup (overrides, registry, AI cache, review queue) is keyed on the
output of ``extract_registrable_domain``; nothing downstream re-parses URLs.
"""

import re
from typing import Optional
from urllib.parse import urlsplit

DANGEROUS_SCHEMES = (
    "javascript:",
    "data:",
    "file:",
    "chrome:",
    "about:",
    "vbscript:",
    "blob:",
)

TWO_PART_TLDS = {"co.uk", "com.au", "co.nz", "co.jp", "com.br", "com.mx"}

_IPV4_RE = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")
_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://")


def extract_registrable_domain(raw: Optional[str]) -> Optional[str]:
    """
    Normalize a URL, bare hostname or arbitrary user input into a domain.

    Args:
        raw: anything the user pasted

    Returns:
        Lower-cased domain without ``www.`` or a trailing dot, or None when
        the input is empty, uses a dangerous scheme, is an IP literal or has
        no dot.
    """
    if not raw:
        return None

    value = raw.strip().lower()
    if not value:
        return None
    if value.startswith(DANGEROUS_SCHEMES):
        return None

    candidate = value if _SCHEME_RE.match(value) else f"https://{value}"
    try:
        hostname = urlsplit(candidate).hostname
    except ValueError:
        hostname = None

    if hostname is None:
        return _fallback_strip(value)

    hostname = hostname.rstrip(".")
    if hostname.startswith("www."):
        hostname = hostname[4:]
    if "." not in hostname or re.search(r"\s", hostname):
        return None
    if _IPV4_RE.match(hostname):
        return None
    if hostname.startswith("[") or ":" in hostname:
        return None
    return hostname


def _fallback_strip(value: str) -> Optional[str]:
    stripped = re.sub(r"^[a-z][a-z0-9+.-]*://", "", value)
    stripped = re.sub(r"^www\.", "", stripped)
    stripped = re.split(r"[/?#]", stripped, maxsplit=1)[0].rstrip(".")
    if "." in stripped and not re.search(r"\s", stripped):
        if _IPV4_RE.match(stripped) or stripped.startswith("[") or ":" in stripped:
            return None
        return stripped
    return None


def domain_matches(domain: str, registered: str) -> bool:
    """True when ``domain`` equals ``registered`` or is a subdomain of it."""
    domain = domain.lower()
    registered = registered.lower()
    return domain == registered or domain.endswith("." + registered)


def get_base_domain(domain: str) -> str:
    """Approximate the registrable root (``shop.example.co.uk`` -> ``example.co.uk``)."""
    parts = domain.lower().split(".")
    if len(parts) <= 2:
        return domain.lower()
    if ".".join(parts[-2:]) in TWO_PART_TLDS:
        return ".".join(parts[-3:])
    return ".".join(parts[-2:])


def display_name_from_domain(domain: Optional[str]) -> str:
    """Capitalized first label of a domain, used when nothing better is known."""
    if not domain:
        return "Unknown Merchant"
    first = domain.split(".")[0]
    return first[:1].upper() + first[1:] if first else "Unknown Merchant"
