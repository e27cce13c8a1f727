import base64
import binascii
import logging
from fastapi import APIRouter, HTTPException, Response
from minio.error import S3Error
from ..documents import build_document_record
from ..mapping import resolve_values
from ..pipeline import complete_form, completed_instance, completed_storage_path
from ..render import render_pdf_with_schema
from ..schemas import CompleteRequest, RenderRequest, ResolveRequest
from ..storage import get_bytes, put_bytes, public_url
from ..utils import b64png_to_bytes

logger = logging.getLogger(__name__)

router = APIRouter()

# ---------- helpers ----------
def _load_template(template_key=None, template_b64=None) -> bytes:
    if template_key:
        try:
            return get_bytes(template_key)
        except S3Error:
            raise HTTPException(404, "template not found")
    if template_b64:
        try:
            return base64.b64decode(template_b64)
        except (binascii.Error, ValueError):
            raise HTTPException(400, "template_b64 is not valid base64")
    raise HTTPException(400, "template_key or template_b64 required")

def _decode_signature(signature):
    if not signature:
        return None
    try:
        return b64png_to_bytes(signature)
    except (binascii.Error, ValueError):
        raise HTTPException(400, "signature is not valid base64")

# ---------- routes ----------

@router.post("/resolve")
def resolve_form_values(payload: ResolveRequest):
    values = resolve_values(payload.field_schema, payload.manual_values, payload.instance, payload.context())
    return {"values": values}

@router.post("/render")
def render_form(payload: RenderRequest):
    template = _load_template(payload.template_key, payload.template_b64)
    pdf_bytes = render_pdf_with_schema(
        template,
        payload.field_schema,
        payload.values,
        _decode_signature(payload.signature),
    )
    return Response(content=pdf_bytes, media_type="application/pdf")

@router.post("/complete")
def complete_pdf_form(payload: CompleteRequest):
    template = _load_template(template_key=payload.template_key)
    completed = complete_form(
        template,
        payload.field_schema,
        payload.manual_values,
        payload.instance,
        payload.context(),
        _decode_signature(payload.signature),
    )
    key = completed_storage_path(payload.workflow_request_id, payload.instance_id)
    put_bytes(key, completed.pdf_bytes, content_type="application/pdf")
    instance = completed_instance(
        payload.instance,
        payload.instance_id,
        key,
        public_url(key),
        completed,
        workflow_request_id=payload.workflow_request_id,
        template_name=payload.template_name,
        document_category=payload.document_category,
    )
    logger.info("Stored completed form %s at %s", payload.instance_id, key)
    return {
        "ok": True,
        "filled_data": completed.filled_data,
        "storage_path": key,
        "sha256": completed.sha256,
        "instance": instance,
        "document": build_document_record(instance, payload.participant_id),
    }
