import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .config import LOG_LEVEL
from .render import TemplateLoadError
from .routers import forms

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Casework form-fill API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(TemplateLoadError)
def template_load_error_handler(request: Request, exc: TemplateLoadError):
    logger.warning("Template load failed on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=422, content={"detail": str(exc)})

app.include_router(forms.router, prefix="/api/forms", tags=["forms"])

@app.get("/")
def root():
    return {"ok": True, "service": "formfill-api"}
