"""Stable identity for announcements.

Some sources hand out pre-signed object-storage links whose query string
(signature, expiry, credential) changes on every page load even though the
document behind it does not. For those URLs the query and fragment are
dropped before hashing, so the same document keeps the same fingerprint
across runs.
"""

from __future__ import annotations

import hashlib
import re
from urllib.parse import parse_qs, urlsplit

SEPARATOR = "|"

# Length of the short display id derived from a full fingerprint
SHORT_ID_LENGTH = 16

_OBJECT_STORAGE_HOST = re.compile(r"(^|\.)s3[.-]([a-z0-9-]+\.)*amazonaws\.com$", re.IGNORECASE)

_SIGNATURE_PARAMS = {"x-amz-signature", "x-goog-signature", "signature", "sig"}


def is_volatile_url(url: str) -> bool:
    """True if the URL looks like a pre-signed link whose query will change.

    Raises ValueError for URLs urllib cannot split.
    """
    parts = urlsplit(url)
    host = parts.hostname or ""
    if _OBJECT_STORAGE_HOST.search(host):
        return True
    params = parse_qs(parts.query, keep_blank_values=True)
    return any(key.lower() in _SIGNATURE_PARAMS for key in params)


def canonical_url(url: str) -> str:
    """Return ``scheme://host/path`` for volatile URLs, the URL unchanged otherwise.

    Never raises: URLs that cannot be parsed are returned as-is.
    """
    try:
        if not is_volatile_url(url):
            return url
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            return url
        host = parts.hostname or ""
        if parts.port is not None:
            host = f"{host}:{parts.port}"
        return f"{parts.scheme}://{host}{parts.path}"
    except ValueError:
        return url


def fingerprint(url: str, title: str) -> str:
    """SHA-256 over canonical URL and title, as 64 lowercase hex chars."""
    data = f"{canonical_url(url)}{SEPARATOR}{title}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def short_id(digest: str) -> str:
    """Display id for an event, derived from its full fingerprint."""
    return digest[:SHORT_ID_LENGTH]
