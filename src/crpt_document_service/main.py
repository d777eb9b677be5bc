from fastapi import FastAPI

from crpt_document_service.api.documents import router as documents_router
from crpt_document_service.api.health import router as health_router
from crpt_document_service.core.logging import configure_logging

configure_logging()

app = FastAPI(
    title="CRPT Document Service",
    version="0.1.0",
    description="Rate-limited client for the CRPT (Chestny ZNAK) document-creation API.",
)

app.include_router(health_router)
app.include_router(documents_router)
