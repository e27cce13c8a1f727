import os

MINIO_ENDPOINT = os.getenv("MINIO_ENDPOINT", "minio:9000")
MINIO_ACCESS_KEY = os.getenv("MINIO_ACCESS_KEY", "minioadmin")
MINIO_SECRET_KEY = os.getenv("MINIO_SECRET_KEY", "minioadmin")
MINIO_BUCKET = os.getenv("MINIO_BUCKET", "casework")
MINIO_SECURE = os.getenv("MINIO_SECURE", "false").lower() == "true"
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
WORKER_QUEUE = os.getenv("WORKER_QUEUE", "pdf-forms")

FORMFILL_STORAGE_PREFIX = os.getenv("FORMFILL_STORAGE_PREFIX", "pdf_forms").strip("/")
# computed.today_au is evaluated in this zone
FORMFILL_TIMEZONE = os.getenv("FORMFILL_TIMEZONE", "UTC")
PUBLIC_FILES_BASE_URL = os.getenv("PUBLIC_FILES_BASE_URL")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
