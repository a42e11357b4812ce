"""
main.py — FastAPI Application Entrypoint

Purpose:
- Initialize application services (logging, config, error envelope).
- Register API routers.
- Define root-level health/status endpoints.
- Provide `app` object used by ASGI server (uvicorn).

This file should stay clean — no business logic here.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from wasteintel.api.routes import auth, charts, companies, company_detail, dashboard, upload, users
from wasteintel.core.config import settings
from wasteintel.core.errors import register_exception_handlers
from wasteintel.core.logging import bind_request_id, configure_logging, current_request_id, reset_request_id

# -----------------------------------------------------------------------------
# App Initialization
# -----------------------------------------------------------------------------

configure_logging(settings.LOG_LEVEL)

app = FastAPI(
    title="Waste Intelligence Platform API",
    description="Company waste-management metrics, KPIs and chart datasets",
    version="0.1.0",
)

register_exception_handlers(app)

# -----------------------------------------------------------------------------
# Request ID
# -----------------------------------------------------------------------------

@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    token = bind_request_id(request.headers.get("X-Request-ID"))
    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = current_request_id()
        return response
    finally:
        reset_request_id(token)

# -----------------------------------------------------------------------------
# CORS
# -----------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------------------------------------------------------------
# Router Registration
# -----------------------------------------------------------------------------

# company_detail first: its static /companies/aggregate-waste-metrics path
# must win over /companies/{company_id}
app.include_router(company_detail.router, prefix="/api")
app.include_router(companies.router, prefix="/api")
app.include_router(companies.coordinates_router, prefix="/api")
app.include_router(dashboard.router, prefix="/api")
app.include_router(charts.router, prefix="/api")
app.include_router(upload.router, prefix="/api")
app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")

# -----------------------------------------------------------------------------
# Health Check
# -----------------------------------------------------------------------------

@app.get("/")
def root():
    return {"status": "ok", "message": "Waste Intelligence backend running"}
