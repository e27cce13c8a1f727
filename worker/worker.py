import logging
from celery import Celery
from formfill.config import LOG_LEVEL, REDIS_URL, WORKER_QUEUE
from formfill.documents import build_document_record
from formfill.pipeline import complete_form, completed_instance, completed_storage_path
from formfill.schemas import CompleteRequest
from formfill.storage import get_bytes, put_bytes, public_url
from formfill.utils import b64png_to_bytes

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

cel = Celery("formfill", broker=REDIS_URL, backend=REDIS_URL)

@cel.task(name="complete_pdf_form", queue=WORKER_QUEUE)
def complete_pdf_form(payload: dict):
    req = CompleteRequest.model_validate(payload)
    template = get_bytes(req.template_key)
    signature = b64png_to_bytes(req.signature) if req.signature else None
    completed = complete_form(
        template,
        req.field_schema,
        req.manual_values,
        req.instance,
        req.context(),
        signature,
    )
    key = completed_storage_path(req.workflow_request_id, req.instance_id)
    put_bytes(key, completed.pdf_bytes, "application/pdf")
    instance = completed_instance(
        req.instance,
        req.instance_id,
        key,
        public_url(key),
        completed,
        workflow_request_id=req.workflow_request_id,
        template_name=req.template_name,
        document_category=req.document_category,
    )
    logger.info("Worker completed form %s -> %s", req.instance_id, key)
    return {
        "storage_path": key,
        "sha256": completed.sha256,
        "filled_data": completed.filled_data,
        "instance": instance,
        "document": build_document_record(instance, req.participant_id),
    }
