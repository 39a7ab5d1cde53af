import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api_routers.v1 import api_router
from app.features.health.routes.health import router as health_router
from app.features.scan.routes.scan import router as scan_router
from app.platform.config import settings
from app.platform.exceptions import add_exception_handlers
from app.platform.logger import LOG_FORMAT

# Configure logging to show INFO level messages
logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

app = FastAPI(
    title="A11y Scan AI API",
    description="Accessibility audits with AI-generated remediation",
    version="1.0.0",
    debug=settings.DEBUG,
)


# Root endpoint for basic info
@app.get("/", tags=["Info"])
def root():
    return {
        "app_name": "A11y Scan AI API",
        "description": "Scans a web page for accessibility issues and suggests fixes.",
        "version": "1.0.0",
        "docs_url": "/docs",
        "api_base": "/api/v1",
    }


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

app.include_router(health_router)
app.include_router(api_router, prefix="/api/v1")
# Unversioned path used by the web client
app.include_router(scan_router, prefix="/api")
