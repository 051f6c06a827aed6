# marks/core/validation.py
# Input checks applied before any store mutation or gateway call

from __future__ import annotations

import re
from urllib.parse import urlsplit

from marks.constants import MSG_FIELDS_REQUIRED, MSG_INVALID_URL
from marks.errors import ValidationError

_SCHEMES = ("http://", "https://")
_HOST_RE = re.compile(r"^[^\s/?#@:]+$")


def normalize_url(raw: str | None) -> str:
    """
    Trim the input and prefix ``https://`` when no http(s) scheme is given.

    The result must split into a scheme and a host without whitespace,
    otherwise ValidationError is raised:
      - "example.com"  -> "https://example.com"
      - "not a url"    -> ValidationError
    """
    value = (raw or "").strip()
    if not value:
        raise ValidationError(MSG_FIELDS_REQUIRED, field="url")

    if not value.startswith(_SCHEMES):
        value = f"https://{value}"

    try:
        parts = urlsplit(value)
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        raise ValidationError(MSG_INVALID_URL, field="url") from None

    host = parts.hostname or ""
    if parts.scheme not in ("http", "https") or not host or not _HOST_RE.match(host):
        raise ValidationError(MSG_INVALID_URL, field="url")
    return value


def validate_title(raw: str | None) -> str:
    title = (raw or "").strip()
    if not title:
        raise ValidationError(MSG_FIELDS_REQUIRED, field="title")
    return title
