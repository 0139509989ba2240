from __future__ import annotations
"""Reusable validation helpers for request payloads.

All helpers abort with 400 and a short description, so handlers can use them
inline.
"""
import math
import re
from typing import Any, Dict, Iterable, List, Optional
from flask import abort

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
# Thai vowel and tone marks are category Mn, which \w does not cover
_SLUG_STRIP = re.compile(r'[^\w\s\u0E00-\u0E7F-]', re.UNICODE)
_SLUG_DASH = re.compile(r'[\s_-]+')


def validate_status(new_status: str, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Validate that new_status is inside allowed.

    Returns the status (to enable inline usage) or aborts with 400.
    """
    if new_status not in allowed:
        abort(400, description=f"{field_name} invalid")
    return new_status


def require_fields(data: Dict[str, Any], *names: str):
    missing = [n for n in names if data.get(n) in (None, '')]
    if missing:
        abort(400, description=f"{', '.join(missing)} required")


def is_valid_email(value: Optional[str]) -> bool:
    return isinstance(value, str) and bool(EMAIL_RE.match(value))


def parse_str(value: Any, field_name: str, allow_none: bool = False, strip: bool = True) -> Optional[str]:
    """Return value (stripped unless strip=False); anything but a string (or None when allowed) is a 400."""
    if value is None and allow_none:
        return None
    if not isinstance(value, str):
        abort(400, description=f"{field_name} must be a string")
    return value.strip() if strip else value


def parse_number(value: Any, field_name: str, minimum: Optional[float] = 0, allow_none: bool = False) -> Optional[float]:
    if value in (None, ''):
        if allow_none:
            return None
        abort(400, description=f"{field_name} required")
    if isinstance(value, bool):
        abort(400, description=f"{field_name} must be a number")
    try:
        num = float(value)
    except (TypeError, ValueError):
        abort(400, description=f"{field_name} must be a number")
    if not math.isfinite(num):
        abort(400, description=f"{field_name} must be a number")
    if minimum is not None and num < minimum:
        abort(400, description=f"{field_name} must be >= {minimum:g}")
    return num


def parse_int(value: Any, field_name: str, minimum: Optional[int] = 0, allow_none: bool = False) -> Optional[int]:
    if value in (None, ''):
        if allow_none:
            return None
        abort(400, description=f"{field_name} required")
    if isinstance(value, bool):
        abort(400, description=f"{field_name} must be int")
    if isinstance(value, float) and not value.is_integer():
        abort(400, description=f"{field_name} must be int")
    try:
        num = int(value)
    except (TypeError, ValueError, OverflowError):
        abort(400, description=f"{field_name} must be int")
    if minimum is not None and num < minimum:
        abort(400, description=f"{field_name} must be >= {minimum}")
    return num


def parse_id_list(value: Any, field_name: str) -> Optional[List[int]]:
    if value in (None, ''):
        return None
    if not isinstance(value, list):
        abort(400, description=f"{field_name} must be a list")
    return [parse_int(v, field_name, minimum=1) for v in value]


def slugify(value: str) -> str:
    """Lowercase, strip punctuation, collapse whitespace/underscores to '-'. Thai letters and marks are kept."""
    value = _SLUG_STRIP.sub('', value.strip().lower())
    return _SLUG_DASH.sub('-', value).strip('-')

__all__ = [
    'validate_status', 'require_fields', 'is_valid_email', 'parse_str', 'parse_number', 'parse_int',
    'parse_id_list', 'slugify',
]
