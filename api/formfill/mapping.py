"""
Field value resolution.

Turns a form schema plus the data sources available for a request into the
flat ``{field_id: str}`` map that the renderer draws. Precedence per field:

    1. a non-empty manual value, when the field is manual or editable after prefill
    2. the mapped source (``map_key``), even when it resolves to ""
    3. for manual fields: the manual value as given, then the prior instance's
       ``values`` / ``filled_data`` / ``filledData`` entries, then ""

Nothing here does I/O and nothing here raises for bad schema entries.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from . import config
from .schemas import FieldSchemaEntry, RenderContext, parse_schema
from .text import clean_text, format_date_au, get_path

logger = logging.getLogger(__name__)

PREFIX_ALIASES = (
    (re.compile(r"^participant\.", re.IGNORECASE), "Participant."),
    (re.compile(r"^user\.", re.IGNORECASE), "User."),
    (re.compile(r"^workflowrequest\.", re.IGNORECASE), "WorkflowRequest."),
    (re.compile(r"^computed\.", re.IGNORECASE), "computed."),
)

INSTANCE_VALUE_KEYS = ("values", "filled_data", "filledData")


def today_local() -> datetime:
    try:
        zone = ZoneInfo(config.FORMFILL_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown FORMFILL_TIMEZONE %r, using UTC", config.FORMFILL_TIMEZONE)
        zone = timezone.utc
    return datetime.now(zone)


def compute_value(key: str, participant: Optional[dict], today: Optional[datetime] = None) -> str:
    participant = participant or {}
    if key == "computed.full_name":
        parts = [clean_text(participant.get("first_name")), clean_text(participant.get("last_name"))]
        return " ".join(p for p in parts if p)
    if key == "computed.dob_au":
        return format_date_au(participant.get("date_of_birth"))
    if key == "computed.today_au":
        return format_date_au(today or today_local())
    return ""


def normalize_map_key(map_key: str) -> str:
    for pattern, canonical in PREFIX_ALIASES:
        if pattern.match(map_key):
            return pattern.sub(canonical, map_key, count=1)
    return map_key


def resolve_map_key(map_key: Any, context: RenderContext, today: Optional[datetime] = None) -> str:
    raw = clean_text(map_key)
    if not raw:
        return ""
    key = normalize_map_key(raw)

    if key.startswith("Participant."):
        return clean_text(get_path(context.participant, key[len("Participant."):]))
    if key.startswith("User."):
        return clean_text(get_path(context.caller, key[len("User."):]))
    if key.startswith("WorkflowRequest."):
        return clean_text(get_path(context.workflow_request, key[len("WorkflowRequest."):]))
    if key.startswith("computed."):
        return clean_text(compute_value(key, context.participant, today=today))

    # bare keys predate the prefixes and always meant the participant
    return clean_text(get_path(context.participant, key))


def _instance_value(instance: Optional[dict], field_id: str) -> Any:
    if not isinstance(instance, dict):
        return None
    for bucket in INSTANCE_VALUE_KEYS:
        values = instance.get(bucket)
        if isinstance(values, dict) and values.get(field_id) is not None:
            return values[field_id]
    return None


def resolve_field(
    field: FieldSchemaEntry,
    manual_values: Dict[str, Any],
    instance: Optional[dict],
    context: RenderContext,
    today: Optional[datetime] = None,
) -> Optional[str]:
    """Value for one field, or None when the field does not get a text value."""
    field_id = field.field_id
    if not field_id or field.kind == "signature":
        return None

    manual = manual_values.get(field_id)
    has_manual = manual is not None and clean_text(manual) != ""

    if has_manual and (field.is_manual or field.prefill_editable):
        return clean_text(manual)
    if not field.is_manual:
        return resolve_map_key(field.source_key, context, today=today)
    if manual is not None:
        return clean_text(manual)
    return clean_text(_instance_value(instance, field_id))


def resolve_values(
    schema: Iterable[Any],
    manual_values: Optional[Dict[str, Any]] = None,
    instance: Optional[dict] = None,
    context: Optional[RenderContext] = None,
    today: Optional[datetime] = None,
) -> Dict[str, str]:
    manual_values = manual_values if isinstance(manual_values, dict) else {}
    context = context or RenderContext()
    today = today or today_local()

    resolved: Dict[str, str] = {}
    for field in parse_schema(schema):
        value = resolve_field(field, manual_values, instance, context, today=today)
        if value is not None:
            resolved[field.field_id] = value
    logger.debug("Resolved %d field values", len(resolved))
    return resolved
