from .engine import LintEngine, lint_manifest
from .models import LEVEL_ERROR, LEVEL_INFO, LEVEL_WARN, Finding, LintReport
from .rules import LintContext, default_rules

__all__ = [
    "Finding",
    "LEVEL_ERROR",
    "LEVEL_INFO",
    "LEVEL_WARN",
    "LintContext",
    "LintEngine",
    "LintReport",
    "default_rules",
    "lint_manifest",
]
