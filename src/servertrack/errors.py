from __future__ import annotations

import re

_URL_PATTERN = re.compile(r"[a-zA-Z][a-zA-Z0-9+.-]*://[^\s'\"<>]+")
_CREDENTIAL_PATTERN = re.compile(r"\b(username|token|password)=[^&\s'\"]*", re.IGNORECASE)


class TrackerError(Exception):
    pass


class FetchError(TrackerError):
    """Upstream API unreachable, non-success status or unparsable payload."""


class PersistenceError(TrackerError):
    """Store unavailable or a transaction was aborted."""


def sanitize_error(message: str) -> str:
    # Upstream URLs carry the API token in the query string.
    text = _URL_PATTERN.sub("<redacted url>", message)
    return _CREDENTIAL_PATTERN.sub(lambda m: f"{m.group(1)}=<redacted>", text)
