"""
Pipeline manifest loader.

A manifest is a YAML (or JSON) mapping:

    project: sales
    sources:
      - name: odoo
        entities: [customer]
    models:
      - name: odoo_history
        stage: history
        inputs: [odoo]
        retention_days: 90
      - name: odoo_raw
        stage: raw
        inputs: [odoo_history]
        partition_column: load_date
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Union

import yaml
from pydantic import ValidationError

from stagewise.core.errors import ManifestError
from .models import PipelineManifest

_log = logging.getLogger("stagewise.manifest")


def _format_validation_error(exc: ValidationError) -> List[str]:
    problems: List[str] = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return problems


def manifest_from_dict(data: Any) -> PipelineManifest:
    if not isinstance(data, dict):
        raise ManifestError(
            f"Manifest must be a mapping, got {type(data).__name__}",
            [f"top-level: expected mapping, got {type(data).__name__}"],
        )
    try:
        return PipelineManifest.model_validate(data)
    except ValidationError as exc:
        problems = _format_validation_error(exc)
        raise ManifestError(f"Invalid manifest ({len(problems)} problem(s))", problems) from exc


def parse_manifest(text: str) -> PipelineManifest:
    # JSON is a YAML subset, so one parser covers both formats.
    try:
        data = yaml.safe_load(text or "")
    except yaml.YAMLError as exc:
        raise ManifestError(f"Manifest is not valid YAML: {exc}", [str(exc)]) from exc
    return manifest_from_dict(data)


def load_manifest(path: Union[str, Path]) -> PipelineManifest:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"Cannot read manifest {p}: {exc}", [str(exc)]) from exc

    manifest = parse_manifest(text)
    _log.info(
        "Loaded manifest project=%s models=%d sources=%d from %s",
        manifest.project,
        len(manifest.models),
        len(manifest.sources),
        p,
    )
    return manifest


def dump_manifest(manifest: PipelineManifest) -> str:
    data = manifest.model_dump(mode="json", exclude_defaults=True)
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False)
