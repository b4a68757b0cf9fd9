"""Secret masking and length bounding for logged values."""

import json
import re
from typing import Any

REDACTED = "[REDACTED]"
TRUNCATION_MARKER = "…[truncated]"
DEFAULT_MAX_LENGTH = 5000

# A whole JSON string (escapes included) or a bare token.
_QUOTED = r"\"(?:[^\"\\]|\\.)*\""
_BARE = r"[^\"\s,&}]*"
_VALUE = rf"(?:{_QUOTED}|{_BARE})"

_SECRET_PATTERN = re.compile(
    rf"(authorization\"?\s*[:=]\s*(?:{_QUOTED}|(?:(?:bearer|basic)\s+)?{_BARE})"
    r"|bearer\s+[A-Za-z0-9._~+/=:-]+"
    rf"|api[-_]?key\"?\s*[:=]\s*{_VALUE}"
    rf"|password\"?\s*[:=]\s*{_VALUE})",
    re.IGNORECASE,
)


def _to_text(value: Any) -> str:
    """Serialize a value to text, degrading to str() when JSON fails."""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(value)


def sanitize(value: Any) -> str:
    """Mask secret-looking substrings in a value.

    Structures are serialized to JSON before masking. Bearer tokens, API
    keys, passwords and authorization header values are replaced with
    ``[REDACTED]``; all other text is left untouched.

    Args:
        value: A string or any serializable structure. None yields "".

    Returns:
        The masked string.
    """
    if value is None:
        return ""
    return _SECRET_PATTERN.sub(REDACTED, _to_text(value))


def truncate(value: Any, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Bound a value's serialized length.

    Args:
        value: A string or serializable structure. None yields "".
        max_length: Maximum number of characters kept from the value.

    Returns:
        The value unchanged when it fits, otherwise its first ``max_length``
        characters followed by the truncation marker.
    """
    if value is None:
        return ""
    text = _to_text(value)
    if len(text) <= max_length:
        return text
    # Already-truncated values pass through unchanged.
    if (
        text.endswith(TRUNCATION_MARKER)
        and len(text) - len(TRUNCATION_MARKER) <= max_length
    ):
        return text
    return text[:max_length] + TRUNCATION_MARKER
