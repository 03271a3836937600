from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from stagewise.core.errors import UnknownStageError
from stagewise.core.stages.naming import build_table_name, parse_table_name

router = APIRouter(prefix="/names", tags=["naming"])


class ParseNameRequest(BaseModel):
    name: str
    allow_custom: bool = True


class BuildNameRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stage: str
    subject: str
    schema_name: Optional[str] = Field(default=None, alias="schema")


@router.post("/parse")
def names_parse(payload: ParseNameRequest):
    return parse_table_name(payload.name, allow_custom=payload.allow_custom).to_dict()


@router.post("/build")
def names_build(payload: BuildNameRequest):
    try:
        return build_table_name(payload.stage, payload.subject, schema=payload.schema_name).to_dict()
    except UnknownStageError as e:
        raise HTTPException(status_code=422, detail=str(e))
