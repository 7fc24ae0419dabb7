import logging

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

from notes_parser.api.routes.parse import router as parse_router
from notes_parser.core.config import get_settings

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title=settings.app_name,
    description="Multi-strategy parsing service that extracts client profiles (client, industry, competitors, sources, schedule) from unstructured client notes",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

app.include_router(parse_router)

@app.get("/", tags=["health"])
def root():
    return {"service": "client-notes-parser", "status": "running"}

@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}

def custom_openapi():
    """Generate OpenAPI schema with custom settings."""
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="Client Notes Parser API",
        version="0.1.0",
        description="Client notes parsing API with confidence scoring and validation",
        routes=app.routes,
    )
    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi
