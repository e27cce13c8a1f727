"""
Text helpers shared by the field resolver and the PDF renderer.

Every value that ends up on a form goes through ``clean_text`` first, so the
rules here decide what a "blank" field is.
"""

import logging
import math
import re
from datetime import date, datetime
from typing import Any

logger = logging.getLogger(__name__)

TRUTHY_STRINGS = frozenset({"1", "true", "yes", "y", "on", "checked"})

ISO_DATE_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")

# Tried in order once the ISO prefix check fails. Slash dates are month-first,
# which is how browsers parse them.
FALLBACK_DATE_FORMATS = (
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
    "%Y/%m/%d",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%a %b %d %Y",
)


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return ""
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


def is_truthy(value: Any) -> bool:
    """Checkbox semantics: True, or one of the accepted "on" strings."""
    if isinstance(value, bool):
        return value
    return clean_text(value).lower() in TRUTHY_STRINGS


def format_date_au(value: Any) -> str:
    """
    Render a date as DD/MM/YYYY.

    Accepts ``date``/``datetime`` objects, strings starting with YYYY-MM-DD and
    a handful of other common spellings. Anything that cannot be parsed is
    returned as-is (cleaned) rather than raising.
    """
    if isinstance(value, (date, datetime)):
        return value.strftime("%d/%m/%Y")

    text = clean_text(value)
    if not text:
        return ""

    match = ISO_DATE_PREFIX.match(text)
    if match:
        yyyy, mm, dd = match.groups()
        return f"{dd}/{mm}/{yyyy}"

    parsed = _parse_date(text)
    if parsed is None:
        logger.debug("Leaving unparseable date unchanged: %r", text)
        return text
    return parsed.strftime("%d/%m/%Y")


def _parse_date(text: str):
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in FALLBACK_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def get_path(obj: Any, path: str) -> Any:
    """Follow a dotted path through nested dicts (and lists by index)."""
    if not obj or not path:
        return None
    current = obj
    for part in (p for p in str(path).split(".") if p):
        if current is None:
            return None
        if isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, (list, tuple)) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else None
        else:
            return None
    return current
