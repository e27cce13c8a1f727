"""Document records for completed PDF form instances."""

import re
from typing import Any, Dict, Optional

UNSAFE_CHARS = re.compile(r"[^\w.\-() ]+", re.ASCII)
WHITESPACE = re.compile(r"\s+")


def safe_file_name(name: Any) -> str:
    name = str(name or "file")
    return WHITESPACE.sub("_", UNSAFE_CHARS.sub("_", name))


def build_document_record(instance: Optional[Dict[str, Any]], participant_id: Optional[str]) -> Dict[str, Any]:
    inst = instance or {}
    template_name = inst.get("template_name")
    return {
        "file_name": f"{safe_file_name(template_name or 'PDF_Form')}.pdf",
        "file_type": "application/pdf",
        "file_url": inst.get("completed_pdf_url") or None,
        "storage_path": inst.get("completed_pdf_storage_path") or None,
        "linked_participant_id": participant_id,
        "category": inst.get("document_category") or inst.get("category") or "Other",
        "description": f"Completed PDF form: {template_name or 'PDF Form'}",
        "source_pdf_form_instance_id": inst.get("id") or inst.get("instanceId") or None,
    }
