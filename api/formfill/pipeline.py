"""
The "build completed document" use case shared by the API and the worker.

Resolve field values from the request's data sources, render them onto the
template, and describe the finished instance. Storage is left to the caller.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from . import config
from .documents import safe_file_name
from .mapping import resolve_values
from .render import render_pdf_with_schema
from .schemas import RenderContext
from .utils import sha256_bytes

logger = logging.getLogger(__name__)


@dataclass
class CompletedForm:
    pdf_bytes: bytes
    filled_data: Dict[str, str]
    sha256: str


def build_context(workflow_request: Optional[dict], caller: Optional[dict]) -> RenderContext:
    return RenderContext.from_workflow_request(workflow_request, caller)


def completed_storage_path(workflow_request_id: str, instance_id: str) -> str:
    return f"{config.FORMFILL_STORAGE_PREFIX}/{safe_file_name(workflow_request_id)}/{safe_file_name(instance_id)}.pdf"


def complete_form(
    template_pdf_bytes: bytes,
    schema: Any,
    manual_values: Optional[Dict[str, Any]] = None,
    instance: Optional[dict] = None,
    context: Optional[RenderContext] = None,
    signature: Any = None,
) -> CompletedForm:
    filled = resolve_values(schema, manual_values, instance, context)
    pdf_bytes = render_pdf_with_schema(template_pdf_bytes, schema, filled, signature)
    digest = sha256_bytes(pdf_bytes)
    logger.info("Completed form with %d values (sha256 %s)", len(filled), digest[:12])
    return CompletedForm(pdf_bytes=pdf_bytes, filled_data=filled, sha256=digest)


def completed_instance(
    instance: Optional[dict],
    instance_id: str,
    storage_path: str,
    url: Optional[str],
    completed: CompletedForm,
    **extra: Any,
) -> Dict[str, Any]:
    record = dict(instance or {})
    record.update({k: v for k, v in extra.items() if v is not None})
    record.update(
        {
            "id": instance_id,
            "status": "Completed",
            "filled_data": completed.filled_data,
            "completed_pdf_storage_path": storage_path,
            "completed_pdf_url": url,
            "completed_pdf_sha256": completed.sha256,
        }
    )
    return record
