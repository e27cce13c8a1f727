"""
Draws resolved form values onto a PDF template.

Schema entries with a ``rect`` were placed in the designer against a top-left
origin; entries with bare ``x``/``y`` are legacy and already in PDF user space
(bottom-left origin). Both may appear in one schema.

Every page that receives at least one mark gets a reportlab overlay which is
merged on top of the template page with pypdf.
"""

import logging
import math
from enum import Enum
from io import BytesIO
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from .schemas import FieldSchemaEntry, Rect, parse_schema
from .text import clean_text, is_truthy
from .utils import decode_signature

logger = logging.getLogger(__name__)

REGULAR_FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"
PNG_MAGIC = b"\x89PNG\r\n\x1a\n"

PAD_X = 2.0
PAD_Y = 2.0
LINE_HEIGHT_RATIO = 1.2
TEXT_SIZE = 11.0
CHECKBOX_MARK = "X"
CHECKBOX_SIZE = 14.0
CHECKBOX_MIN_SIZE = 10.0
CHECKBOX_MAX_SIZE = 18.0
SIGNATURE_W = 180.0
SIGNATURE_H = 60.0
TEXT_BOX_H = 28.0
TEXTAREA_BOX_W = 220.0
TEXTAREA_BOX_H = 60.0

NativeRect = Tuple[float, float, float, float]
DrawOp = Dict[str, Any]


class TemplateLoadError(Exception):
    """The template bytes could not be opened as a PDF document."""


class PageNumbering(Enum):
    ZERO_BASED = "zero-based"
    ONE_BASED = "one-based"


# ---------- page numbering ----------

def _page_number(field: FieldSchemaEntry) -> Optional[float]:
    raw = field.declared_page
    if raw is None:
        return 0.0
    if isinstance(raw, str) and not raw.strip():
        return 0.0
    try:
        number = float(raw)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def detect_page_numbering(fields: Sequence[FieldSchemaEntry]) -> PageNumbering:
    """
    Decide once for the whole schema whether page numbers start at 0 or 1.

    Designer output is zero-based but older templates were saved one-based.
    A schema is one-based only when no entry sits on page 0 and the smallest
    page is at least 1. Entries without a page count as page 0.
    """
    numbers = [n for n in (_page_number(f) for f in fields) if n is not None]
    if not numbers:
        return PageNumbering.ZERO_BASED
    if any(n == 0 for n in numbers) or min(numbers) < 1:
        return PageNumbering.ZERO_BASED
    return PageNumbering.ONE_BASED


def page_index_for(field: FieldSchemaEntry, numbering: PageNumbering, page_count: int) -> Optional[int]:
    number = _page_number(field)
    if number is None or not number.is_integer():
        return None
    index = int(number) - 1 if numbering is PageNumbering.ONE_BASED else int(number)
    if index < 0 or index >= page_count:
        return None
    return index


# ---------- geometry + text layout ----------

def to_native_rect(rect: Rect, page_height: float, legacy: bool) -> NativeRect:
    if legacy:
        return rect.x, rect.y, rect.w, rect.h
    return rect.x, page_height - rect.y - rect.h, rect.w, rect.h


def wrap_text(text: Any, size: float, max_width: float, font_name: str = REGULAR_FONT) -> List[str]:
    """Greedy word wrap. A word wider than ``max_width`` gets a line to itself."""
    lines: List[str] = []
    line = ""
    for word in clean_text(text).split():
        candidate = f"{line} {word}" if line else word
        if not line or stringWidth(candidate, font_name, size) <= max_width:
            line = candidate
        else:
            lines.append(line)
            line = word
    if line:
        lines.append(line)
    return lines


def _text_op(text: str, x: float, y: float, font: str, size: float) -> DrawOp:
    return {"type": "text", "text": text, "x": x, "y": y, "font": font, "size": size}


# ---------- per-field planning ----------

def _plan_checkbox(field: FieldSchemaEntry, raw: Any, box: NativeRect) -> Optional[List[DrawOp]]:
    if not is_truthy(raw):
        return None
    x, y, w, h = box
    declared = CHECKBOX_SIZE if field.font_size is None else field.font_size
    size = min(max(declared, CHECKBOX_MIN_SIZE), CHECKBOX_MAX_SIZE)
    # the mark is drawn bold but centred on its regular-weight width
    mark_w = stringWidth(CHECKBOX_MARK, REGULAR_FONT, size)
    tx = x + max(PAD_X, (w - mark_w) / 2)
    ty = y + max(PAD_Y, (h - size) / 2)
    return [_text_op(CHECKBOX_MARK, tx, ty, BOLD_FONT, size)]


def _plan_textarea(text: str, size: float, box: NativeRect) -> List[DrawOp]:
    x, y, w, h = box
    w = w or TEXTAREA_BOX_W
    h = h or TEXTAREA_BOX_H
    line_height = size * LINE_HEIGHT_RATIO
    max_lines = max(1, math.floor((h - PAD_Y * 2) / line_height))
    lines = wrap_text(text, size, max(0.0, w - PAD_X * 2))

    ops = []
    ty = y + h - PAD_Y - size
    for line in lines[:max_lines]:
        ops.append(_text_op(line, x + PAD_X, ty, REGULAR_FONT, size))
        ty -= line_height
    return ops


def plan_field(
    field: FieldSchemaEntry,
    page_height: float,
    values: Dict[str, Any],
    has_signature: bool,
) -> Optional[List[DrawOp]]:
    """Drawing operations for one field, or None when nothing should be drawn."""
    box = to_native_rect(field.placement(), page_height, field.is_legacy)
    kind = field.kind

    if kind == "signature":
        if not has_signature:
            return None
        x, y, w, h = box
        return [{"type": "signature", "x": x, "y": y, "w": w or SIGNATURE_W, "h": h or SIGNATURE_H}]

    # checkbox truthiness is read from the value as supplied, not the cleaned text
    raw = values.get(field.field_id)
    text = clean_text(raw)
    if not text:
        return None

    if kind == "checkbox":
        return _plan_checkbox(field, raw, box)

    size = TEXT_SIZE if field.font_size is None else field.font_size
    if size <= 0:
        return None
    if kind == "textarea":
        return _plan_textarea(text, size, box)

    x, y, _, h = box
    ty = y + max(PAD_Y, ((h or TEXT_BOX_H) - size) / 2)
    return [_text_op(text, x + PAD_X, ty, REGULAR_FONT, size)]


def plan_draw_ops(
    fields: Sequence[FieldSchemaEntry],
    page_sizes: Sequence[Tuple[float, float]],
    values: Dict[str, Any],
    has_signature: bool = False,
) -> Dict[int, List[DrawOp]]:
    numbering = detect_page_numbering(fields)
    draw_map: Dict[int, List[DrawOp]] = {}
    for field in fields:
        field_id = field.field_id
        if not field_id:
            continue
        pidx = page_index_for(field, numbering, len(page_sizes))
        if pidx is None:
            logger.debug("Field %s skipped: page %r out of range", field_id, field.declared_page)
            continue
        ops = plan_field(field, page_sizes[pidx][1], values, has_signature)
        if not ops:
            continue
        draw_map.setdefault(pidx, []).extend(ops)
    return draw_map


# ---------- document level ----------

def load_template(template_pdf_bytes: bytes) -> PdfReader:
    if not template_pdf_bytes:
        raise TemplateLoadError("template is empty")
    try:
        reader = PdfReader(BytesIO(bytes(template_pdf_bytes)))
        len(reader.pages)
    except (PyPdfError, ValueError, KeyError, TypeError) as exc:
        raise TemplateLoadError(f"template is not a readable PDF: {exc}") from exc
    return reader


def load_signature_image(signature_input: Any) -> Optional[ImageReader]:
    data = decode_signature(signature_input)
    if not data:
        return None
    if not data.startswith(PNG_MAGIC):
        logger.warning("Signature is not a PNG image; signature fields will be left blank")
        return None
    try:
        image = ImageReader(BytesIO(data))
        image.getRGBData()
    except Exception as exc:
        logger.warning("Could not embed signature image: %s", exc)
        return None
    return image


def _overlay_page(width: float, height: float, draw_ops: List[DrawOp], signature: Optional[ImageReader]) -> bytes:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=(width, height))
    c.setFillColorRGB(0, 0, 0)
    for op in draw_ops:
        t = op.get("type")
        if t == "text":
            c.setFont(op["font"], op["size"])
            c.drawString(op["x"], op["y"], op["text"])
        elif t == "signature" and signature is not None:
            c.drawImage(signature, op["x"], op["y"], width=op["w"], height=op["h"], mask="auto")
    c.showPage()
    c.save()
    return buf.getvalue()


def render_pdf_with_schema(
    template_pdf_bytes: bytes,
    schema: Any,
    values: Optional[Dict[str, Any]],
    signature_input: Any = None,
) -> bytes:
    """
    Render ``values`` onto the template described by ``schema``.

    Raises TemplateLoadError when the template cannot be read. Fields that
    cannot be drawn (bad page, empty value, unusable signature) are left blank.
    """
    reader = load_template(template_pdf_bytes)
    writer = PdfWriter()
    for page in reader.pages:
        writer.add_page(page)
    page_sizes = [(float(p.mediabox.width), float(p.mediabox.height)) for p in reader.pages]

    fields = parse_schema(schema)
    values = values if isinstance(values, dict) else {}
    signature = load_signature_image(signature_input)

    draw_map = plan_draw_ops(fields, page_sizes, values, has_signature=signature is not None)
    for pidx, ops in sorted(draw_map.items()):
        width, height = page_sizes[pidx]
        overlay_reader = PdfReader(BytesIO(_overlay_page(width, height, ops, signature)))
        writer.pages[pidx].merge_page(overlay_reader.pages[0])

    out = BytesIO()
    writer.write(out)
    logger.info(
        "Rendered %d fields onto %d page(s) (%d marked)",
        len(fields), len(page_sizes), len(draw_map),
    )
    return out.getvalue()
