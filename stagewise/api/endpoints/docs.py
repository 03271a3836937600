from fastapi import APIRouter
from pydantic import BaseModel

from stagewise.api.observability.metrics import LINT_FINDINGS_TOTAL
from stagewise.core.docs.consistency import check_document
from stagewise.core.observability.metrics import inc_named

router = APIRouter(prefix="/docs", tags=["docs"])


class DocumentLintRequest(BaseModel):
    text: str


@router.post("/lint")
def docs_lint(payload: DocumentLintRequest):
    report = check_document(payload.text)
    inc_named("docs_lint_runs")
    for f in report.findings:
        LINT_FINDINGS_TOTAL.labels(kind="docs", level=f.level).inc()
    return report.to_dict()
