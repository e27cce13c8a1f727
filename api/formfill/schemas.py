import logging
import math
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .text import clean_text

logger = logging.getLogger(__name__)

MANUAL_SENTINEL = "__manual__"
LEGACY_DEFAULT_W = 220.0
LEGACY_DEFAULT_H = 28.0


def _number_or_none(value):
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class Rect(BaseModel):
    """Field box in top-left-origin page units (pdf.js viewport at scale 1)."""
    model_config = ConfigDict(extra="ignore")

    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    h: float = 0.0

    @field_validator("x", "y", "w", "h", mode="before")
    @classmethod
    def _zero_when_missing(cls, value):
        number = _number_or_none(value)
        return 0.0 if number is None else number


class FieldSchemaEntry(BaseModel):
    """
    One field declared on a PDF form template.

    Schemas are stored as JSON written by the template designer, so both
    snake_case and camelCase spellings are accepted. Entries with a ``rect`` use
    top-left-origin coordinates; entries with bare ``x``/``y`` are legacy and
    already in PDF (bottom-left) space.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Any = None
    key: Any = None
    type: Any = "text"
    map_key: Any = Field(default=None, validation_alias=AliasChoices("map_key", "mapKey"))
    editable_after_prefill: Any = Field(
        default=False,
        validation_alias=AliasChoices("editable_after_prefill", "editableAfterPrefill"),
    )
    rect: Optional[Rect] = None
    x: Optional[float] = None
    y: Optional[float] = None
    w: Optional[float] = Field(default=None, validation_alias=AliasChoices("w", "width"))
    h: Optional[float] = Field(default=None, validation_alias=AliasChoices("h", "height"))
    page: Any = None
    page_index: Any = Field(default=None, validation_alias=AliasChoices("page_index", "pageIndex"))
    font_size: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("fontSize", "font_size", "size"),
    )

    @field_validator("x", "y", "w", "h", "font_size", mode="before")
    @classmethod
    def _lenient_number(cls, value):
        return _number_or_none(value)

    @field_validator("rect", mode="before")
    @classmethod
    def _rect_or_none(cls, value):
        # a non-object rect falls back to legacy placement; the field still resolves
        if isinstance(value, (dict, Rect)):
            return value
        return None

    @property
    def field_id(self) -> str:
        return clean_text(self.id) or clean_text(self.key)

    @property
    def kind(self) -> str:
        return clean_text(self.type).lower() or "text"

    @property
    def source_key(self) -> str:
        return clean_text(self.map_key)

    @property
    def is_manual(self) -> bool:
        return not self.source_key or self.source_key == MANUAL_SENTINEL

    @property
    def prefill_editable(self) -> bool:
        return bool(self.editable_after_prefill)

    @property
    def declared_page(self) -> Any:
        return self.page if self.page is not None else self.page_index

    @property
    def is_legacy(self) -> bool:
        return self.rect is None

    def placement(self) -> Rect:
        if self.rect is not None:
            return self.rect
        return Rect(
            x=self.x or 0.0,
            y=self.y or 0.0,
            w=LEGACY_DEFAULT_W if self.w is None else self.w,
            h=LEGACY_DEFAULT_H if self.h is None else self.h,
        )

    @classmethod
    def parse_entry(cls, raw: Any) -> Optional["FieldSchemaEntry"]:
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, dict):
            return None
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            logger.debug("Skipping malformed schema entry %r: %s", raw, exc)
            return None


def parse_schema(raw_schema: Any) -> List[FieldSchemaEntry]:
    if not isinstance(raw_schema, (list, tuple)):
        return []
    entries = []
    for raw in raw_schema:
        entry = FieldSchemaEntry.parse_entry(raw)
        if entry is not None:
            entries.append(entry)
    return entries


class RenderContext(BaseModel):
    """Records a map_key can read from. Built per request, never mutated."""
    participant: Optional[Dict[str, Any]] = None
    caller: Optional[Dict[str, Any]] = None
    workflow_request: Optional[Dict[str, Any]] = None

    @classmethod
    def from_workflow_request(cls, workflow_request: Optional[dict], caller: Optional[dict] = None) -> "RenderContext":
        request = workflow_request if isinstance(workflow_request, dict) else {}
        participant = request.get("participant_data") or request.get("participant")
        if not isinstance(participant, dict):
            participant = {}
        caller = caller if isinstance(caller, dict) else {}
        return cls(participant=participant, caller=caller, workflow_request=request)


# ---------- request bodies ----------

class ResolveRequest(BaseModel):
    field_schema: List[Any] = Field(default=[], validation_alias=AliasChoices("schema", "field_schema"))
    manual_values: Dict[str, Any] = {}
    instance: Optional[Dict[str, Any]] = None
    workflow_request: Optional[Dict[str, Any]] = None
    caller: Optional[Dict[str, Any]] = None
    participant: Optional[Dict[str, Any]] = None

    def context(self) -> RenderContext:
        ctx = RenderContext.from_workflow_request(self.workflow_request, self.caller)
        if self.participant is not None:
            ctx = ctx.model_copy(update={"participant": self.participant})
        return ctx


class RenderRequest(BaseModel):
    template_key: Optional[str] = None
    template_b64: Optional[str] = None
    field_schema: List[Any] = Field(default=[], validation_alias=AliasChoices("schema", "field_schema"))
    values: Dict[str, Any] = {}
    signature: Optional[str] = None  # data:image/png;base64,...


class CompleteRequest(ResolveRequest):
    template_key: str
    workflow_request_id: str
    instance_id: str
    participant_id: Optional[str] = None
    template_name: Optional[str] = None
    document_category: Optional[str] = None
    signature: Optional[str] = None
