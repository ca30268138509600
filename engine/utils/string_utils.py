"""String manipulation utilities."""

import re
from typing import Optional


def split_csv(text: Optional[str]) -> list:
    """Split a comma separated option value, dropping blanks.

    Args:
        text: Value such as ``"cloudflare_record, cloudflare_argo"``

    Returns:
        List of stripped, non-empty items
    """
    if not text:
        return []
    return [item.strip() for item in text.split(",") if item.strip()]


def normalize_duration(value):
    """Shorten Go-style durations the way the API reports them.

    ``"24h0m0s"`` becomes ``"24h"`` and ``"1h30m0s"`` becomes ``"1h30m"``.
    Non-string values are returned unchanged.
    """
    if not isinstance(value, str) or not re.fullmatch(r"(\d+h)?(\d+m)?(\d+(\.\d+)?s)?", value):
        return value
    shortened = re.sub(r"(?<=[hm])0s$", "", value)
    shortened = re.sub(r"(?<=h)0m$", "", shortened)
    return shortened or value


def format_address(resource_type: str, name: str) -> str:
    """Build a ``type.name`` resource address."""
    return f"{resource_type}.{name}"
