"""
SQL scaffolding for manifest models.

Each stage has one transformation class and therefore one template. Output is
plain ANSI-flavoured SQL meant to be committed and then edited by the model
author; nothing here talks to a warehouse.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from stagewise.core.config import Settings, get_settings
from stagewise.core.errors import SqlGenerationError
from stagewise.core.lineage.graph import ModelGraph
from stagewise.core.manifest.models import ModelDeclaration, PipelineManifest
from stagewise.core.stages.catalog import StageName, get_stage
from stagewise.core.stages.naming import is_identifier, parse_table_name

_log = logging.getLogger("stagewise.sqlgen")

DEFAULT_TIMESTAMP_COLUMN = "loaded_at"
DEFAULT_PARTITION_COLUMN = "load_date"


def _literal(value: str) -> str:
    return "'" + str(value).replace("'", "''") + "'"


def _column(name: str) -> str:
    # Source systems often carry mixed-case or spaced column names.
    if is_identifier(name):
        return name
    return '"' + str(name).replace('"', '""') + '"'


def _target_column(name: str, model: ModelDeclaration) -> str:
    if not is_identifier(name):
        raise SqlGenerationError(f"{model.name}: {name!r} is not a valid warehouse column name")
    return name


class _Renderer:
    def __init__(self, manifest: PipelineManifest, settings: Settings):
        self.manifest = manifest
        self.settings = settings
        self.schema = manifest.warehouse_schema or settings.default_schema

    def ref(self, name: str) -> str:
        return f"{self.schema}.{name}" if self.schema else name

    def single_input(self, model: ModelDeclaration) -> str:
        if len(model.inputs) != 1:
            raise SqlGenerationError(
                f"{model.name}: stage {model.stage.value} needs exactly one input, got {len(model.inputs)}"
            )
        return model.inputs[0]

    # -- per stage -----------------------------------------------------

    def history(self, model: ModelDeclaration) -> str:
        parsed = parse_table_name(model.name)
        source_name = model.inputs[0] if model.inputs else parsed.subject
        source = self.manifest.source_map().get(source_name)
        if source is not None:
            source_table = source.source_table(self.settings.source_schema)
        else:
            source_table = f"{self.settings.source_schema}.{source_name}"

        ts = _column(model.timestamp_column or DEFAULT_TIMESTAMP_COLUMN)
        days = model.retention_days or self.settings.retention_days
        return (
            "SELECT *\n"
            f"FROM {source_table}\n"
            f"WHERE {ts} >= CURRENT_DATE - INTERVAL '{int(days)}' DAY"
        )

    def raw(self, model: ModelDeclaration) -> str:
        src = self.ref(self.single_input(model))
        part = _column(model.partition_column or DEFAULT_PARTITION_COLUMN)
        return (
            "SELECT *\n"
            f"FROM {src}\n"
            f"WHERE {part} = (SELECT MAX({part}) FROM {src})"
        )

    def enriched(self, model: ModelDeclaration) -> str:
        src = self.ref(self.single_input(model))
        if not model.columns:
            return f"SELECT *\nFROM {src}"
        cols = [
            f"    {_column(old)} AS {_target_column(new, model)}"
            for old, new in model.columns.items()
        ]
        return "SELECT\n" + ",\n".join(cols) + f"\nFROM {src}"

    def _aggregate(self, model: ModelDeclaration, src: str) -> str:
        keys = [_target_column(k, model) for k in model.group_by]
        select = [f"    {k}" for k in keys]
        select += [f"    {expr} AS {_target_column(alias, model)}" for alias, expr in model.measures.items()]
        return (
            "SELECT\n" + ",\n".join(select) + f"\nFROM {src}\n"
            "GROUP BY " + ", ".join(keys)
        )

    def transformed(self, model: ModelDeclaration) -> str:
        src = self.ref(self.single_input(model))
        if model.group_by:
            # Grouping without measures renders as a distinct set of keys.
            return self._aggregate(model, src)
        if model.measures:
            extra = [f"    {expr} AS {_target_column(alias, model)}" for alias, expr in model.measures.items()]
            return "SELECT\n    *,\n" + ",\n".join(extra) + f"\nFROM {src}"
        return f"SELECT *\nFROM {src}"

    def full(self, model: ModelDeclaration) -> str:
        if not model.inputs:
            raise SqlGenerationError(f"{model.name}: full model needs at least one transformed input")
        parts: List[str] = []
        for inp in model.inputs:
            source = parse_table_name(inp).subject
            parts.append(f"SELECT {_literal(source)} AS source_system, *\nFROM {self.ref(inp)}")
        return "\nUNION ALL\n".join(parts)

    def taxonomy(self, model: ModelDeclaration) -> str:
        src = self.ref(self.single_input(model))
        if not model.vocabulary:
            return f"SELECT *\nFROM {src}"
        cases: List[str] = []
        for column, mapping in model.vocabulary.items():
            col = _target_column(column, model)
            whens = "\n".join(
                f"        WHEN {_literal(raw)} THEN {_literal(canonical)}" for raw, canonical in mapping.items()
            )
            cases.append(f"    CASE {col}\n{whens}\n        ELSE {col}\n    END AS {col}_std")
        return "SELECT\n    *,\n" + ",\n".join(cases) + f"\nFROM {src}"

    def core(self, model: ModelDeclaration) -> str:
        src = self.ref(self.single_input(model))
        if model.columns:
            cols = [f"    {_column(old)} AS {_target_column(new, model)}" for old, new in model.columns.items()]
            return "SELECT\n" + ",\n".join(cols) + f"\nFROM {src}"
        return f"SELECT *\nFROM {src}"

    def metrics(self, model: ModelDeclaration) -> str:
        src = self.ref(self.single_input(model))
        if not (model.group_by and model.measures):
            raise SqlGenerationError(f"{model.name}: metrics model needs both group_by and measures")
        return self._aggregate(model, src)

    def business(self, model: ModelDeclaration) -> str:
        if not model.inputs:
            raise SqlGenerationError(f"{model.name}: business export needs at least one input")
        if len(model.inputs) == 1:
            return f"SELECT *\nFROM {self.ref(model.inputs[0])}"
        aliases = [f"{inp.split('.')[-1]}_src" for inp in model.inputs]
        ctes = ",\n".join(
            f"{alias} AS (\n    SELECT * FROM {self.ref(inp)}\n)" for alias, inp in zip(aliases, model.inputs)
        )
        return (
            f"WITH {ctes}\n"
            f"-- join {', '.join(aliases[1:])} onto {aliases[0]} as the export requires\n"
            f"SELECT *\nFROM {aliases[0]}"
        )


_TEMPLATES: Dict[StageName, Callable[[_Renderer, ModelDeclaration], str]] = {
    StageName.HISTORY: _Renderer.history,
    StageName.RAW: _Renderer.raw,
    StageName.ENRICHED: _Renderer.enriched,
    StageName.TRANSFORMED: _Renderer.transformed,
    StageName.FULL: _Renderer.full,
    StageName.TAXONOMY: _Renderer.taxonomy,
    StageName.CORE: _Renderer.core,
    StageName.METRICS: _Renderer.metrics,
    StageName.BUSINESS: _Renderer.business,
}


def _header(model: ModelDeclaration) -> str:
    definition = get_stage(model.stage)
    lines = [
        "-- STAGEWISE-GENERATED MODEL",
        f"-- model: {model.name}",
        f"-- stage: {definition.order} {definition.name.value} ({definition.transformation})",
        f"-- inputs: {', '.join(model.inputs) if model.inputs else '-'}",
    ]
    if model.description:
        lines.append(f"-- {model.description}")
    return "\n".join(lines)


def model_path(model: ModelDeclaration) -> str:
    definition = get_stage(model.stage)
    return f"models/{definition.order}_{definition.name.value}/{model.name}.sql"


def render_model_sql(
    model: ModelDeclaration,
    manifest: PipelineManifest,
    settings: Optional[Settings] = None,
) -> str:
    renderer = _Renderer(manifest, settings or get_settings())
    body = _TEMPLATES[model.stage](renderer, model)
    return f"{_header(model)}\n\n{body};\n"


def render_manifest_sql(manifest: PipelineManifest, settings: Optional[Settings] = None) -> Dict[str, str]:
    """
    Render every model of the manifest.

    Returns:
      {"models/<order>_<stage>/<name>.sql": "<sql>"} in lineage order.
    """
    settings = settings or get_settings()
    models = manifest.model_map()
    order = ModelGraph.from_manifest(manifest).topological_order()

    files: Dict[str, str] = {}
    for name in order:
        model = models[name]
        files[model_path(model)] = render_model_sql(model, manifest, settings)

    _log.info("Rendered %d models for project=%s", len(files), manifest.project)
    return files
