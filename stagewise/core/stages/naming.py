from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional

from stagewise.core.errors import NamingError
from stagewise.core.stages.catalog import (
    STAGES,
    StageDefinition,
    StageName,
    get_stage,
)

_IDENTIFIER_RE = re.compile(r"^[a-z][a-z0-9_]*$")
_QUOTES = "\"`[]"


def is_identifier(text: str) -> bool:
    t = text or ""
    return bool(_IDENTIFIER_RE.match(t)) and not t.endswith("_")


@dataclass(frozen=True)
class TableName:
    subject: str
    stage: StageName
    schema: Optional[str] = None
    raw: str = ""

    @property
    def table(self) -> str:
        definition = get_stage(self.stage)
        if definition.suffix is None:
            return self.subject
        return f"{self.subject}{definition.suffix}"

    @property
    def qualified(self) -> str:
        return f"{self.schema}.{self.table}" if self.schema else self.table

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "raw": self.raw,
            "schema": self.schema,
            "table": self.table,
            "subject": self.subject,
            "stage": self.stage.value,
            "qualified": self.qualified,
        }


def _strip_quotes(part: str) -> str:
    return part.strip().strip(_QUOTES).strip()


def _split_qualified(text: str):
    parts = [_strip_quotes(p) for p in str(text or "").split(".")]
    if not parts or any(not p for p in parts):
        raise NamingError(f"Invalid table name: {text!r}")
    table = parts[-1].lower()
    schema = ".".join(p.lower() for p in parts[:-1]) or None
    return schema, table


def _match_suffix(table: str) -> Optional[StageDefinition]:
    # Longest suffix wins; none of the stage suffixes currently nest.
    best: Optional[StageDefinition] = None
    for definition in STAGES:
        sfx = definition.suffix
        if not sfx or not table.endswith(sfx) or len(table) == len(sfx):
            continue
        if best is None or len(sfx) > len(best.suffix or ""):
            best = definition
    return best


def parse_table_name(text: str, *, allow_custom: bool = True) -> TableName:
    """
    Parse ``[schema.]<subject>_<stage>`` into its parts.

    Only the last stage suffix counts, so ``crm_history_raw`` is the raw stage
    of subject ``crm_history``. Names without a stage suffix are business
    exports when ``allow_custom`` is set.
    """
    schema, table = _split_qualified(text)
    definition = _match_suffix(table)

    if definition is None:
        if not allow_custom:
            raise NamingError(f"Table name {text!r} carries no stage suffix")
        if not is_identifier(table):
            raise NamingError(f"Table name {text!r} is not a valid snake_case identifier")
        return TableName(subject=table, stage=StageName.BUSINESS, schema=schema, raw=str(text))

    subject = table[: -len(definition.suffix or "")]
    if not is_identifier(subject):
        raise NamingError(f"Subject {subject!r} in {text!r} is not a valid snake_case identifier")
    return TableName(subject=subject, stage=definition.name, schema=schema, raw=str(text))


def build_table_name(stage, subject: str, *, schema: Optional[str] = None) -> TableName:
    definition = get_stage(stage)
    subj = (subject or "").strip().lower()
    if not is_identifier(subj):
        raise NamingError(f"Subject {subject!r} is not a valid snake_case identifier")
    if definition.suffix and subj.endswith(definition.suffix):
        raise NamingError(f"Subject {subject!r} already ends with {definition.suffix!r}")
    schema = (schema or "").strip().lower() or None
    if schema is not None:
        if not all(is_identifier(p) for p in schema.split(".")):
            raise NamingError(f"Schema {schema!r} is not a valid identifier")
    built = TableName(subject=subj, stage=definition.name, schema=schema)
    return TableName(subject=subj, stage=definition.name, schema=schema, raw=built.qualified)


def matches_stage(text: str, stage) -> bool:
    try:
        parsed = parse_table_name(text)
    except NamingError:
        return False
    return parsed.stage == get_stage(stage).name
