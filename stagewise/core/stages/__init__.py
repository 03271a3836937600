from .catalog import (
    STAGES,
    StageDefinition,
    StageName,
    get_stage,
    list_stages,
    reserved_suffixes,
    stage_for_suffix,
)
from .naming import TableName, build_table_name, is_identifier, matches_stage, parse_table_name

__all__ = [
    "STAGES",
    "StageDefinition",
    "StageName",
    "TableName",
    "build_table_name",
    "get_stage",
    "is_identifier",
    "list_stages",
    "matches_stage",
    "parse_table_name",
    "reserved_suffixes",
    "stage_for_suffix",
]
