from fastapi import APIRouter

from stagewise.core.stages.catalog import get_stage, list_stages

router = APIRouter(prefix="/stages", tags=["stages"])


@router.get("")
def stages_list():
    return {"stages": [s.to_dict() for s in list_stages()]}


@router.get("/{name}")
def stages_get(name: str):
    return get_stage(name).to_dict()
