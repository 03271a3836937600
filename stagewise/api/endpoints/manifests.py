from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from stagewise.api.observability.metrics import LINT_FINDINGS_TOTAL
from stagewise.core.config import get_settings
from stagewise.core.lineage.graph import ModelGraph
from stagewise.core.lint.engine import lint_manifest
from stagewise.core.manifest.loader import dump_manifest, manifest_from_dict, parse_manifest
from stagewise.core.manifest.models import PipelineManifest
from stagewise.core.observability.metrics import inc_named
from stagewise.core.planner import plan_manifest
from stagewise.core.sqlgen import render_manifest_sql
from stagewise.core.store.manifest_store import ManifestStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/manifests", tags=["manifests"])


class ManifestPayload(BaseModel):
    manifest: Optional[Dict[str, Any]] = None
    yaml: Optional[str] = None
    force: bool = False


class PlanRequest(BaseModel):
    project: str = Field(min_length=1, pattern=r"\S")
    entities: Dict[str, List[str]] = Field(default_factory=dict)
    with_metrics: bool = True
    warehouse_schema: Optional[str] = None


def _resolve(payload: ManifestPayload) -> PipelineManifest:
    if payload.yaml is not None:
        return parse_manifest(payload.yaml)
    if payload.manifest is not None:
        return manifest_from_dict(payload.manifest)
    raise HTTPException(status_code=422, detail="Provide either 'manifest' or 'yaml'")


def _store() -> ManifestStore:
    return ManifestStore(get_settings().workspace_path)


@router.post("/lint")
def manifests_lint(payload: ManifestPayload):
    manifest = _resolve(payload)
    report = lint_manifest(manifest)
    inc_named("manifest_lint_runs")
    for f in report.findings:
        LINT_FINDINGS_TOTAL.labels(kind="manifest", level=f.level).inc()
    body = report.to_dict()
    body["project"] = manifest.project
    body["manifest_hash"] = manifest.deterministic_hash()
    return body


@router.post("/order")
def manifests_order(payload: ManifestPayload):
    manifest = _resolve(payload)
    graph = ModelGraph.from_manifest(manifest)
    order = graph.topological_order()
    return {"project": manifest.project, "order": order, "layers": graph.layers()}


@router.post("/sql")
def manifests_sql(payload: ManifestPayload):
    manifest = _resolve(payload)
    report = lint_manifest(manifest)
    if report.is_blocking and not payload.force:
        raise HTTPException(
            status_code=409,
            detail={
                "message": "Manifest has convention errors; pass force=true to render anyway",
                "findings": [f.to_dict() for f in report.errors],
            },
        )

    files = render_manifest_sql(manifest)
    inc_named("sql_renders")
    return {
        "project": manifest.project,
        "manifest_hash": manifest.deterministic_hash(),
        "files": files,
        "warnings": [f.to_dict() for f in report.warnings],
    }


@router.post("/plan")
def manifests_plan(payload: PlanRequest):
    if not payload.entities:
        raise HTTPException(status_code=422, detail="At least one entity is required")
    manifest = plan_manifest(
        payload.project,
        payload.entities,
        with_metrics=payload.with_metrics,
        warehouse_schema=payload.warehouse_schema,
    )

    return {
        "manifest": manifest.model_dump(mode="json"),
        "yaml": dump_manifest(manifest),
        "manifest_hash": manifest.deterministic_hash(),
    }


@router.post("")
def manifests_store(payload: ManifestPayload):
    manifest = _resolve(payload)
    result = _store().save(manifest)
    logger.info("manifest stored project=%s hash=%s", manifest.project, result["manifest_hash"])
    return result


@router.get("/{project}")
def manifests_list(project: str):
    return {"project": project, "manifests": _store().list_hashes(project)}


@router.get("/{project}/{manifest_hash}")
def manifests_get(project: str, manifest_hash: str):
    manifest = _store().load(project, manifest_hash)
    if not manifest:
        raise HTTPException(status_code=404, detail="Manifest not found")
    return manifest.model_dump(mode="json")
