from __future__ import annotations

import re
from prometheus_client import Counter, Histogram


def normalize_path(path: str) -> str:
    """Reduce high-cardinality paths for metrics labels."""
    p = path or "/"

    # manifest hashes
    p = re.sub(r"/[0-9a-f]{64}", "/:hash", p)
    # projects under the manifest store
    p = re.sub(r"^(/api/v1/manifests)/(?!lint$|order$|sql$|plan$)[^/]+", r"\1/:project", p)
    # stage detail
    p = re.sub(r"^(/api/v1/stages)/[^/]+$", r"\1/:name", p)

    return p


HTTP_REQUESTS_TOTAL = Counter(
    "stagewise_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "stagewise_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

LINT_FINDINGS_TOTAL = Counter(
    "stagewise_lint_findings_total",
    "Convention findings reported by the linters",
    ["kind", "level"],
)
