from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from stagewise.core.config import get_settings
from stagewise.core.errors import NamingError
from stagewise.core.manifest.models import ModelDeclaration, PipelineManifest, SourceSystem
from stagewise.core.stages.catalog import StageName, get_stage
from stagewise.core.stages.naming import build_table_name, is_identifier

_SOURCE_CHAIN = (StageName.RAW, StageName.ENRICHED, StageName.TRANSFORMED)
_ENTITY_CHAIN = (StageName.TAXONOMY, StageName.CORE)


def _name(stage: StageName, subject: str) -> str:
    return build_table_name(stage, subject).table


def _check_subject(kind: str, subject: str, stages) -> str:
    """Reject subjects that already carry a suffix of a stage they will be planned at."""
    subj = (subject or "").strip().lower()
    for stage in stages:
        suffix = get_stage(stage).suffix
        if suffix and subj.endswith(suffix):
            raise NamingError(
                f"{kind} name {subject!r} ends with the {stage.value} suffix {suffix!r}; "
                f"rename the {kind.lower()} without a stage suffix"
            )
    return subj


def plan_source(source: str, *, retention_days: Optional[int] = None) -> List[ModelDeclaration]:
    """history -> raw -> enriched -> transformed for one source system."""
    source = _check_subject("Source", source, (StageName.HISTORY,) + _SOURCE_CHAIN)
    days = retention_days or get_settings().retention_days
    out = [
        ModelDeclaration(
            name=_name(StageName.HISTORY, source),
            stage=StageName.HISTORY,
            inputs=[source],
            retention_days=days,
        )
    ]
    prev = out[0].name
    for stage in _SOURCE_CHAIN:
        name = _name(stage, source)
        out.append(ModelDeclaration(name=name, stage=stage, inputs=[prev]))
        prev = name
    return out


def plan_entity(
    entity: str,
    sources: Iterable[str],
    *,
    with_metrics: bool = True,
    group_by: Optional[List[str]] = None,
    measures: Optional[Dict[str, str]] = None,
    business: Optional[str] = None,
    include_sources: bool = True,
) -> List[ModelDeclaration]:
    srcs = list(dict.fromkeys(s.strip().lower() for s in sources if s and s.strip()))
    if not srcs:
        raise NamingError(f"Entity {entity!r} needs at least one source system")
    entity = _check_subject("Entity", entity, (StageName.FULL,) + _ENTITY_CHAIN + (StageName.METRICS,))

    out: List[ModelDeclaration] = []
    if include_sources:
        for src in srcs:
            out.extend(plan_source(src))

    full = _name(StageName.FULL, entity)
    out.append(
        ModelDeclaration(
            name=full,
            stage=StageName.FULL,
            inputs=[_name(StageName.TRANSFORMED, s) for s in srcs],
        )
    )

    prev = full
    for stage in _ENTITY_CHAIN:
        name = _name(stage, entity)
        out.append(ModelDeclaration(name=name, stage=stage, inputs=[prev]))
        prev = name
    core = prev

    if with_metrics:
        out.append(
            ModelDeclaration(
                name=_name(StageName.METRICS, entity),
                stage=StageName.METRICS,
                inputs=[core],
                group_by=list(group_by or ["source_system"]),
                measures=dict(measures or {"row_count": "COUNT(*)"}),
            )
        )

    if business:
        if not is_identifier(business):
            raise NamingError(f"Business export name {business!r} is not a valid identifier")
        out.append(
            ModelDeclaration(
                name=business,
                stage=StageName.BUSINESS,
                inputs=[_name(StageName.METRICS, entity) if with_metrics else core],
            )
        )
    return out


def plan_manifest(
    project: str,
    entities: Dict[str, List[str]],
    *,
    with_metrics: bool = True,
    warehouse_schema: Optional[str] = None,
) -> PipelineManifest:
    """
    Build a manifest covering every entity; a source shared by several
    entities gets its history..transformed chain once.
    """
    models: List[ModelDeclaration] = []
    source_entities: Dict[str, List[str]] = {}
    planned_sources = set()

    for entity, sources in entities.items():
        ent = entity.strip().lower()
        srcs = [s.strip().lower() for s in sources if s and s.strip()]
        for src in srcs:
            source_entities.setdefault(src, [])
            if ent not in source_entities[src]:
                source_entities[src].append(ent)
            if src not in planned_sources:
                models.extend(plan_source(src))
                planned_sources.add(src)
        models.extend(plan_entity(ent, srcs, with_metrics=with_metrics, include_sources=False))

    return PipelineManifest(
        project=project,
        warehouse_schema=warehouse_schema,
        sources=[SourceSystem(name=s, entities=e) for s, e in source_entities.items()],
        models=models,
    )
