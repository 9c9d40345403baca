import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import AUTO_CREATE_TABLES, CORS_ORIGINS, LOG_LEVEL
from .errors import MailSentryError
from .routers import health, ingest, metrics, monitoring, scan, scans

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# API metadata for OpenAPI documentation
description = """
## MailSentry Email Threat Triage API

Rule-based classification of monitored mailboxes with a quarantine workflow.

### Key Features

* **Classification:** ordered keyword rules (phishing > spam > suspicious > clean) with a risk level
* **Quarantine policy:** only non-clean, critical-risk results are quarantined automatically
* **Lifecycle:** manual quarantine, release and permanent delete of stored scan records
* **Monitoring gate:** only actively monitored addresses are scanned

### Quick Start

1. **Register an address:** `POST /monitoring` with header `X-Owner-ID`
2. **Simulate traffic:** `POST /ingest/simulate`
3. **Review:** `GET /scans?quarantined=true`, then release or delete
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    if AUTO_CREATE_TABLES:
        from .db import engine
        from .models import Base

        Base.metadata.create_all(engine)
        logger.info("Database tables ensured")
    yield


app = FastAPI(
    title="MailSentry Email Threat Triage API",
    description=description,
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "health", "description": "Service health and database connectivity checks"},
        {"name": "scan", "description": "Stateless classification preview"},
        {"name": "monitoring", "description": "Register monitored addresses and toggle their status"},
        {"name": "ingest", "description": "Scan and store batches of emails for a monitored address"},
        {"name": "scans", "description": "Stored scan records and the quarantine lifecycle"},
        {"name": "metrics", "description": "Dashboard counts"},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MailSentryError)
async def mailsentry_error_handler(request: Request, exc: MailSentryError):
    headers = {"Retry-After": "5"} if exc.retryable else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.__class__.__name__, "retryable": exc.retryable},
        headers=headers,
    )


app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(scan.router, prefix="/scan", tags=["scan"])
app.include_router(monitoring.router, prefix="/monitoring", tags=["monitoring"])
app.include_router(ingest.router, prefix="/ingest", tags=["ingest"])
app.include_router(scans.router, prefix="/scans", tags=["scans"])
app.include_router(metrics.router, prefix="/metrics", tags=["metrics"])
