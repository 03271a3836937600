from __future__ import annotations

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stagewise import __version__
from stagewise.api.endpoints import docs, health, manifests, metrics, names, stages
from stagewise.api.middleware.error_shaping import SafeErrorMiddleware
from stagewise.api.middleware.request_context import RequestContextMiddleware

app = FastAPI(
    title="Stagewise Warehouse Convention API",
    version=__version__,
)

# ------------------------------------------------------------
# Middleware stack (ORDER MATTERS)
# Starlette reverses add_middleware order: the LAST call is the OUTERMOST wrapper.
# Runtime order (outermost -> innermost):
#   SafeErrorMiddleware -> CORSMiddleware -> RequestContext -> handler
# ------------------------------------------------------------
app.add_middleware(RequestContextMiddleware)

_cors_origins_raw = os.getenv("STAGEWISE_CORS_ORIGINS", "").strip()
_cors_origins = [o.strip() for o in _cors_origins_raw.split(",") if o.strip()] if _cors_origins_raw else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(SafeErrorMiddleware)


# ------------------------------------------------------------
# Versioned API
# ------------------------------------------------------------
for r in (stages.router, names.router, manifests.router, docs.router):
    app.include_router(r, prefix="/api/v1")

# health + metrics define their full paths
app.include_router(health.router)
app.include_router(metrics.router)


@app.get("/health")
def health_check():
    return {"status": "healthy"}
