"""Contact field normalizers shared by the importer and the lead store."""

import re
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_STRIP = re.compile(r"[^\d+]")


def normalize_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    email = email.strip().lower()
    return email if _EMAIL_RE.match(email) else None


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    if not phone:
        return None
    return _PHONE_STRIP.sub("", phone) or None


def normalize_website(website: Optional[str]) -> Optional[str]:
    """Add a missing scheme and lowercase scheme and host. Paths are case-sensitive and kept."""
    if not website or not website.strip():
        return None
    url = website.strip()
    if not url.lower().startswith(("http://", "https://")):
        url = "https://" + url
    parts = urlsplit(url)
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, parts.fragment))
