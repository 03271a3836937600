from __future__ import annotations

from fastapi import APIRouter
from starlette.responses import JSONResponse

from stagewise.core.config import get_settings
from stagewise.core.observability.metrics import inc_named

router = APIRouter()


@router.get("/api/v1/health/live")
def liveness():
    inc_named("health_live")
    return {"status": "alive"}


@router.get("/api/v1/health/ready")
def readiness():
    """
    Readiness reflects ability to persist manifests: the workspace must be
    creatable and writable.
    """
    inc_named("health_ready")
    problems: list[str] = []

    root = get_settings().workspace_path
    try:
        root.mkdir(parents=True, exist_ok=True)
        probe = root / ".stagewise_ready_check.tmp"
        probe.write_text("ok", encoding="utf-8")
        probe.unlink()
    except OSError as e:
        problems.append(f"workspace_not_writable:{root} err={type(e).__name__}")

    if problems:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "problems": problems},
        )

    return {"status": "ready"}
