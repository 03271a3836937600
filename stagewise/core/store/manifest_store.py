from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import List, Optional

from stagewise.core.errors import StoreError
from stagewise.core.manifest.models import PipelineManifest

_log = logging.getLogger("stagewise.store")

_PROJECT_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
_HASH_RE = re.compile(r"^[0-9a-f]{64}$")


def _check_project(project: str) -> str:
    if not _PROJECT_RE.match(project or "") or ".." in project:
        raise StoreError(f"Invalid project name: {project!r}")
    return project


def _check_hash(manifest_hash: str) -> str:
    if not _HASH_RE.match(manifest_hash or ""):
        raise StoreError(f"Invalid manifest hash: {manifest_hash!r}")
    return manifest_hash


class ManifestStore:
    """Content-addressed manifests under <root>/<project>/.stagewise/manifests/<hash>.json."""

    def __init__(self, workspace_root: Path):
        self.workspace_root = Path(workspace_root)

    def _manifest_dir(self, project: str) -> Path:
        return self.workspace_root / _check_project(project) / ".stagewise" / "manifests"

    def save(self, manifest: PipelineManifest) -> dict:
        manifest_hash = manifest.deterministic_hash()
        manifest_dir = self._manifest_dir(manifest.project)
        manifest_dir.mkdir(parents=True, exist_ok=True)
        manifest_path = manifest_dir / f"{manifest_hash}.json"

        created = not manifest_path.exists()
        if created:
            tmp = manifest_path.with_suffix(".json.tmp")
            tmp.write_text(
                json.dumps(manifest.model_dump(mode="json"), sort_keys=True, indent=2),
                encoding="utf-8",
            )
            tmp.replace(manifest_path)
            _log.info("Stored manifest project=%s hash=%s", manifest.project, manifest_hash)

        return {
            "manifest_hash": manifest_hash,
            "stored": True,
            "created": created,
            "path": str(manifest_path),
        }

    def load(self, project: str, manifest_hash: str) -> Optional[PipelineManifest]:
        manifest_path = self._manifest_dir(project) / f"{_check_hash(manifest_hash)}.json"
        if not manifest_path.exists():
            return None
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
        return PipelineManifest.model_validate(data)

    def list_hashes(self, project: str) -> List[str]:
        manifest_dir = self._manifest_dir(project)
        if not manifest_dir.exists():
            return []
        return sorted(p.stem for p in manifest_dir.glob("*.json") if _HASH_RE.match(p.stem))
