from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from stagewise.core.config import DEFAULT_RETENTION_DAYS
from stagewise.core.errors import CircularDependencyError, NamingError
from stagewise.core.lineage.graph import ModelGraph
from stagewise.core.manifest.models import ModelDeclaration, PipelineManifest
from stagewise.core.stages.catalog import SCOPE_SOURCE, StageName, get_stage
from stagewise.core.stages.naming import TableName, parse_table_name

from .models import LEVEL_ERROR, LEVEL_INFO, LEVEL_WARN, Finding


@dataclass
class LintContext:
    manifest: PipelineManifest
    retention_days: int = DEFAULT_RETENTION_DAYS
    _names: Dict[str, Optional[TableName]] = field(default_factory=dict)

    @property
    def models(self) -> Dict[str, ModelDeclaration]:
        return self.manifest.model_map()

    @property
    def sources(self):
        return self.manifest.source_map()

    def parsed(self, name: str) -> Optional[TableName]:
        if name not in self._names:
            try:
                self._names[name] = parse_table_name(name)
            except NamingError:
                self._names[name] = None
        return self._names[name]


Rule = Callable[[LintContext], Iterable[Finding]]


def rule_duplicate_models(ctx: LintContext) -> Iterable[Finding]:
    counts = Counter(m.name for m in ctx.manifest.models)
    for name, n in sorted(counts.items()):
        if n > 1:
            yield Finding(
                level=LEVEL_ERROR,
                code="DUPLICATE_MODEL",
                message=f"Model {name!r} is declared {n} times.",
                model=name,
                details={"count": n},
            )


def rule_name_pattern(ctx: LintContext) -> Iterable[Finding]:
    for m in ctx.models.values():
        definition = get_stage(m.stage)
        parsed = ctx.parsed(m.name)

        if parsed is None:
            yield Finding(
                level=LEVEL_ERROR,
                code="INVALID_NAME",
                message=f"{m.name!r} is not a valid snake_case table name.",
                model=m.name,
            )
            continue

        if definition.name == StageName.BUSINESS:
            if parsed.stage != StageName.BUSINESS:
                yield Finding(
                    level=LEVEL_WARN,
                    code="BUSINESS_RESERVED_SUFFIX",
                    message=(
                        f"Business export {m.name!r} ends with the reserved suffix "
                        f"of stage {parsed.stage.value!r}."
                    ),
                    model=m.name,
                    details={"looks_like": parsed.stage.value},
                )
            continue

        if parsed.stage != definition.name:
            yield Finding(
                level=LEVEL_ERROR,
                code="NAME_PATTERN_MISMATCH",
                message=f"{m.name!r} is declared as {definition.name.value} but must follow {definition.pattern}.",
                model=m.name,
                details={"expected_pattern": definition.pattern, "parsed_stage": parsed.stage.value},
            )


def _history_findings(ctx: LintContext, m: ModelDeclaration) -> Iterable[Finding]:
    parsed = ctx.parsed(m.name)
    subject = parsed.subject if parsed and parsed.stage == StageName.HISTORY else None

    if len(m.inputs) > 1:
        yield Finding(
            level=LEVEL_ERROR,
            code="SINGLE_INPUT_FOR_STAGE",
            message=f"History model {m.name!r} must read exactly one source system.",
            model=m.name,
            details={"inputs": list(m.inputs)},
        )

    source_names = list(m.inputs) or ([subject] if subject else [])
    for src in source_names:
        if src in ctx.models:
            yield Finding(
                level=LEVEL_ERROR,
                code="HISTORY_INPUT_NOT_SOURCE",
                message=f"History model {m.name!r} reads model {src!r}; history reads a source system.",
                model=m.name,
                details={"input": src},
            )
        elif src not in ctx.sources:
            yield Finding(
                level=LEVEL_ERROR,
                code="UNKNOWN_SOURCE",
                message=f"Source system {src!r} read by {m.name!r} is not declared.",
                model=m.name,
                details={"source": src},
            )
        elif subject and src != subject:
            yield Finding(
                level=LEVEL_ERROR,
                code="SOURCE_SUBJECT_MISMATCH",
                message=f"{m.name!r} reads source {src!r}; expected {subject!r}.",
                model=m.name,
                details={"expected": subject, "actual": src},
            )


def rule_stage_inputs(ctx: LintContext) -> Iterable[Finding]:
    models = ctx.models
    for m in models.values():
        definition = get_stage(m.stage)

        if definition.name == StageName.HISTORY:
            yield from _history_findings(ctx, m)
            continue

        if not m.inputs:
            yield Finding(
                level=LEVEL_ERROR,
                code="MISSING_INPUT",
                message=f"{definition.name.value} model {m.name!r} declares no inputs.",
                model=m.name,
            )
            continue

        if not definition.multi_input and len(m.inputs) > 1:
            yield Finding(
                level=LEVEL_ERROR,
                code="SINGLE_INPUT_FOR_STAGE",
                message=f"{definition.name.value} model {m.name!r} must have exactly one input.",
                model=m.name,
                details={"inputs": list(m.inputs)},
            )

        allowed = [s.value for s in definition.inputs]
        for inp in m.inputs:
            upstream = models.get(inp)
            if upstream is None:
                if inp in ctx.sources:
                    yield Finding(
                        level=LEVEL_ERROR,
                        code="STAGE_INPUT_INVALID",
                        message=f"{m.name!r} reads source system {inp!r}; only history models read sources.",
                        model=m.name,
                        details={"input": inp, "allowed_stages": allowed},
                    )
                else:
                    yield Finding(
                        level=LEVEL_ERROR,
                        code="UNKNOWN_INPUT",
                        message=f"{m.name!r} reads {inp!r}, which is not a declared model.",
                        model=m.name,
                        details={"input": inp},
                    )
                continue

            if not definition.accepts(upstream.stage):
                yield Finding(
                    level=LEVEL_ERROR,
                    code="STAGE_INPUT_INVALID",
                    message=(
                        f"{definition.name.value} model {m.name!r} cannot read "
                        f"{upstream.stage.value} model {inp!r}."
                    ),
                    model=m.name,
                    details={"input": inp, "input_stage": upstream.stage.value, "allowed_stages": allowed},
                )


def rule_subject_continuity(ctx: LintContext) -> Iterable[Finding]:
    """Within one scope the subject carries through: crm_raw reads crm_history."""
    models = ctx.models
    for m in models.values():
        definition = get_stage(m.stage)
        if definition.multi_input or definition.name == StageName.HISTORY:
            continue

        mine = ctx.parsed(m.name)
        if mine is None or mine.stage != definition.name:
            continue

        for inp in m.inputs:
            upstream = models.get(inp)
            if upstream is None or not definition.accepts(upstream.stage):
                continue
            theirs = ctx.parsed(inp)
            if theirs is None or theirs.subject == mine.subject:
                continue
            code = "SOURCE_SUBJECT_MISMATCH" if definition.scope == SCOPE_SOURCE else "ENTITY_SUBJECT_MISMATCH"
            yield Finding(
                level=LEVEL_ERROR,
                code=code,
                message=f"{m.name!r} reads {inp!r}; subjects {mine.subject!r} and {theirs.subject!r} differ.",
                model=m.name,
                details={"expected": mine.subject, "actual": theirs.subject},
            )


def rule_full_sources(ctx: LintContext) -> Iterable[Finding]:
    models = ctx.models
    sources = ctx.sources
    for m in models.values():
        if m.stage != StageName.FULL:
            continue

        merged = sorted(set(m.inputs))
        if len(merged) == 1:
            yield Finding(
                level=LEVEL_INFO,
                code="FULL_SINGLE_SOURCE",
                message=f"{m.name!r} merges a single source; add sources as they come online.",
                model=m.name,
                details={"inputs": merged},
            )

        entity = ctx.parsed(m.name)
        if entity is None or entity.stage != StageName.FULL:
            continue
        for inp in merged:
            parsed = ctx.parsed(inp)
            if parsed is None or inp not in models or models[inp].stage != StageName.TRANSFORMED:
                continue
            src = sources.get(parsed.subject)
            if src is not None and src.entities and entity.subject not in src.entities:
                yield Finding(
                    level=LEVEL_WARN,
                    code="SOURCE_ENTITY_UNDECLARED",
                    message=f"Source {src.name!r} does not list entity {entity.subject!r} but feeds {m.name!r}.",
                    model=m.name,
                    details={"source": src.name, "entity": entity.subject},
                )


def rule_retention(ctx: LintContext) -> Iterable[Finding]:
    for m in ctx.models.values():
        if m.stage != StageName.HISTORY or m.retention_days is None:
            continue
        if m.retention_days != ctx.retention_days:
            yield Finding(
                level=LEVEL_WARN,
                code="RETENTION_MISMATCH",
                message=(
                    f"{m.name!r} keeps {m.retention_days} days of history; "
                    f"the convention is {ctx.retention_days}."
                ),
                model=m.name,
                details={"retention_days": m.retention_days, "expected": ctx.retention_days},
            )


def rule_metrics_measures(ctx: LintContext) -> Iterable[Finding]:
    for m in ctx.models.values():
        if m.stage == StageName.METRICS and not (m.group_by and m.measures):
            yield Finding(
                level=LEVEL_ERROR,
                code="METRICS_WITHOUT_MEASURES",
                message=f"Metrics model {m.name!r} needs both group_by and measures.",
                model=m.name,
            )


def rule_lineage_cycle(ctx: LintContext) -> Iterable[Finding]:
    try:
        ModelGraph.from_manifest(ctx.manifest).topological_order()
    except CircularDependencyError as exc:
        yield Finding(
            level=LEVEL_ERROR,
            code="LINEAGE_CYCLE",
            message=str(exc),
            details={"nodes": exc.nodes},
        )


def rule_dangling_models(ctx: LintContext) -> Iterable[Finding]:
    graph = ModelGraph.from_manifest(ctx.manifest)
    terminal = {StageName.CORE, StageName.METRICS, StageName.BUSINESS}
    for name, node in sorted(graph.nodes.items()):
        if node.stage in terminal:
            continue
        if not graph.consumers(name):
            yield Finding(
                level=LEVEL_INFO,
                code="DANGLING_MODEL",
                message=f"Nothing reads {name!r}; the chain stops at stage {node.stage.value}.",
                model=name,
            )


def default_rules() -> List[Rule]:
    return [
        rule_duplicate_models,
        rule_name_pattern,
        rule_stage_inputs,
        rule_subject_continuity,
        rule_full_sources,
        rule_retention,
        rule_metrics_measures,
        rule_lineage_cycle,
        rule_dangling_models,
    ]
