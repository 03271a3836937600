from __future__ import annotations

import json
from hashlib import sha256
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from stagewise.core.stages.catalog import StageName


def _lower_strip(value: str) -> str:
    return str(value).strip().lower()


class SourceSystem(BaseModel):
    name: str
    description: Optional[str] = None
    schema_name: Optional[str] = None
    table: Optional[str] = None
    entities: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, v: str) -> str:
        return _lower_strip(v)

    def source_table(self, default_schema: str) -> str:
        schema = self.schema_name or default_schema
        table = self.table or self.name
        return f"{schema}.{table}" if schema else table


class ModelDeclaration(BaseModel):
    name: str
    stage: StageName
    inputs: List[str] = Field(default_factory=list)
    description: Optional[str] = None

    # history
    retention_days: Optional[int] = None
    timestamp_column: Optional[str] = None
    # raw
    partition_column: Optional[str] = None
    # enriched: {source_column: warehouse_column}
    columns: Dict[str, str] = Field(default_factory=dict)
    # transformed / metrics
    group_by: List[str] = Field(default_factory=list)
    measures: Dict[str, str] = Field(default_factory=dict)
    # taxonomy: {column: {raw_value: canonical_value}}
    vocabulary: Dict[str, Dict[str, str]] = Field(default_factory=dict)

    tags: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, v: str) -> str:
        return _lower_strip(v)

    @field_validator("inputs")
    @classmethod
    def _normalize_inputs(cls, v: List[str]) -> List[str]:
        return [_lower_strip(x) for x in v]

    @field_validator("retention_days")
    @classmethod
    def _positive_retention(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("retention_days must be positive")
        return v


class PipelineManifest(BaseModel):
    project: str
    warehouse_schema: Optional[str] = None
    sources: List[SourceSystem] = Field(default_factory=list)
    models: List[ModelDeclaration] = Field(default_factory=list)

    @field_validator("project")
    @classmethod
    def _project_not_blank(cls, v: str) -> str:
        v = str(v).strip()
        if not v:
            raise ValueError("project must not be empty")
        return v

    def model_map(self) -> Dict[str, ModelDeclaration]:
        # First declaration wins; duplicates are reported by the linter.
        out: Dict[str, ModelDeclaration] = {}
        for m in self.models:
            out.setdefault(m.name, m)
        return out

    def source_map(self) -> Dict[str, SourceSystem]:
        return {s.name: s for s in self.sources}

    def deterministic_hash(self) -> str:
        raw = json.dumps(
            self.model_dump(mode="json"),
            sort_keys=True,
            separators=(",", ":"),
        )
        return sha256(raw.encode()).hexdigest()
