"""
Stage catalog for the layered warehouse convention.

Every derived table lives in exactly one of nine stages. Stages 0-3 are
scoped to a single source system, stages 4-7 to a business entity that is
consolidated across sources, and stage 8 holds free-named business exports.

    0 history      <source>_history      retention filter
    1 raw          <source>_raw          latest-partition snapshot
    2 enriched     <source>_enriched     rename/type harmonization
    3 transformed  <source>_transformed  source-local cleaning/aggregation
    4 full         <entity>_full         union/merge across sources
    5 taxonomy     <entity>_taxonomy     vocabulary standardization
    6 core         <entity>_core         canonical analytical model
    7 metrics      <entity>_metrics      pre-aggregation
    8 business     custom name           ad-hoc business export
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from stagewise.core.errors import UnknownStageError


class StageName(str, Enum):
    HISTORY = "history"
    RAW = "raw"
    ENRICHED = "enriched"
    TRANSFORMED = "transformed"
    FULL = "full"
    TAXONOMY = "taxonomy"
    CORE = "core"
    METRICS = "metrics"
    BUSINESS = "business"


SCOPE_SOURCE = "source"
SCOPE_ENTITY = "entity"
SCOPE_CUSTOM = "custom"


@dataclass(frozen=True)
class StageDefinition:
    name: StageName
    order: int
    suffix: Optional[str]
    scope: str
    inputs: Tuple[StageName, ...]
    transformation: str
    description: str
    multi_input: bool = False

    @property
    def pattern(self) -> str:
        if self.suffix is None:
            return "<custom name>"
        placeholder = "<source>" if self.scope == SCOPE_SOURCE else "<entity>"
        return f"{placeholder}{self.suffix}"

    def accepts(self, upstream: StageName) -> bool:
        return upstream in self.inputs

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name.value,
            "order": self.order,
            "suffix": self.suffix,
            "pattern": self.pattern,
            "scope": self.scope,
            "inputs": [s.value for s in self.inputs],
            "transformation": self.transformation,
            "description": self.description,
            "multi_input": self.multi_input,
        }


# History reads an upstream source system, never another model: its inputs are empty.
STAGES: Tuple[StageDefinition, ...] = (
    StageDefinition(
        name=StageName.HISTORY,
        order=0,
        suffix="_history",
        scope=SCOPE_SOURCE,
        inputs=(),
        transformation="retention filter",
        description="Landing copy of a source system, trimmed to the retention window (90 days).",
    ),
    StageDefinition(
        name=StageName.RAW,
        order=1,
        suffix="_raw",
        scope=SCOPE_SOURCE,
        inputs=(StageName.HISTORY,),
        transformation="latest-partition snapshot",
        description="Most recent partition of the history table.",
    ),
    StageDefinition(
        name=StageName.ENRICHED,
        order=2,
        suffix="_enriched",
        scope=SCOPE_SOURCE,
        inputs=(StageName.RAW,),
        transformation="rename/type harmonization",
        description="Source columns renamed and cast to warehouse conventions.",
    ),
    StageDefinition(
        name=StageName.TRANSFORMED,
        order=3,
        suffix="_transformed",
        scope=SCOPE_SOURCE,
        inputs=(StageName.ENRICHED,),
        transformation="source-local cleaning/aggregation",
        description="Cleaning and aggregation that only concerns one source system.",
    ),
    StageDefinition(
        name=StageName.FULL,
        order=4,
        suffix="_full",
        scope=SCOPE_ENTITY,
        inputs=(StageName.TRANSFORMED,),
        transformation="union/merge across sources",
        description="One entity merged from every source system that carries it.",
        multi_input=True,
    ),
    StageDefinition(
        name=StageName.TAXONOMY,
        order=5,
        suffix="_taxonomy",
        scope=SCOPE_ENTITY,
        inputs=(StageName.FULL,),
        transformation="vocabulary standardization",
        description="Categorical values mapped onto a shared vocabulary.",
    ),
    StageDefinition(
        name=StageName.CORE,
        order=6,
        suffix="_core",
        scope=SCOPE_ENTITY,
        inputs=(StageName.TAXONOMY,),
        transformation="canonical analytical model",
        description="Canonical analytical model of the entity.",
    ),
    StageDefinition(
        name=StageName.METRICS,
        order=7,
        suffix="_metrics",
        scope=SCOPE_ENTITY,
        inputs=(StageName.CORE,),
        transformation="pre-aggregation",
        description="Pre-aggregated measures over the core model.",
    ),
    StageDefinition(
        name=StageName.BUSINESS,
        order=8,
        suffix=None,
        scope=SCOPE_CUSTOM,
        inputs=(StageName.CORE, StageName.METRICS),
        transformation="ad-hoc business export",
        description="Free-named export built for a business consumer.",
        multi_input=True,
    ),
)

_BY_NAME: Dict[str, StageDefinition] = {s.name.value: s for s in STAGES}
_BY_SUFFIX: Dict[str, StageDefinition] = {s.suffix: s for s in STAGES if s.suffix}


def get_stage(name) -> StageDefinition:
    key = name.value if isinstance(name, StageName) else str(name or "").strip().lower()
    try:
        return _BY_NAME[key]
    except KeyError:
        raise UnknownStageError(str(name)) from None


def list_stages() -> List[StageDefinition]:
    return list(STAGES)


def stage_for_suffix(suffix: str) -> Optional[StageDefinition]:
    s = (suffix or "").strip().lower()
    if s and not s.startswith("_"):
        s = "_" + s
    return _BY_SUFFIX.get(s)


def reserved_suffixes() -> List[str]:
    return [s.suffix for s in STAGES if s.suffix]
